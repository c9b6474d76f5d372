"""Client and profile endpoint tests."""


class TestClients:

    def test_create_and_get(self, client, admin, as_actor):
        res = client.post(
            "/api/v1/clients",
            json={"name": " PT Sinar ", "email": "info@sinar.test"},
            headers=as_actor(admin),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["name"] == "PT Sinar"
        assert body["created_by"] == admin.id
        assert client.get(f"/api/v1/clients/{body['id']}").status_code == 200

    def test_name_required(self, client, admin, as_actor):
        res = client.post("/api/v1/clients", json={"name": "  "}, headers=as_actor(admin))
        assert res.status_code == 400

    def test_admin_lead_only(self, client, lead, as_actor):
        assert client.post("/api/v1/clients", json={"name": "X"}, headers=as_actor(lead)).status_code == 403

    def test_list_filtered_by_creator(self, client, make_client, admin):
        make_client("PT A", created_by=admin.id)
        make_client("PT B")
        body = client.get(f"/api/v1/clients?created_by={admin.id}").get_json()
        assert [c["name"] for c in body["items"]] == ["PT A"]


class TestProfiles:

    def test_create_inspector(self, client, admin, as_actor):
        res = client.post(
            "/api/v1/profiles",
            json={"full_name": "Budi", "email": "budi@example.test", "role": "inspector",
                  "specialization": "mekanikal"},
            headers=as_actor(admin),
        )
        assert res.status_code == 201
        assert res.get_json()["specialization"] == "mekanikal"

    def test_duplicate_email_409(self, client, admin, as_actor):
        payload = {"full_name": "Sari", "email": "sari@example.test"}
        assert client.post("/api/v1/profiles", json=payload, headers=as_actor(admin)).status_code == 201
        assert client.post("/api/v1/profiles", json=payload, headers=as_actor(admin)).status_code == 409

    def test_invalid_role(self, client, admin, as_actor):
        res = client.post(
            "/api/v1/profiles",
            json={"full_name": "X", "email": "x@example.test", "role": "janitor"},
            headers=as_actor(admin),
        )
        assert res.status_code == 400

    def test_unknown_client_404(self, client, admin, as_actor):
        res = client.post(
            "/api/v1/profiles",
            json={"full_name": "X", "email": "x@example.test", "client_id": 999},
            headers=as_actor(admin),
        )
        assert res.status_code == 404

    def test_filter_by_role(self, client, admin, lead, inspector):
        body = client.get("/api/v1/profiles?role=inspector").get_json()
        assert [p["id"] for p in body["items"]] == [inspector.id]
        assert client.get("/api/v1/profiles?role=boss").status_code == 400
