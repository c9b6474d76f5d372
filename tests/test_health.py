"""
Health, reference data and cross-cutting HTTP behaviour:
request IDs, security headers, JSON error bodies, body guards.
"""


class TestHealth:

    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "ok"
        assert body["checks"]["redis"]["status"] == "skipped"
        assert body["checks"]["app"]["testing"] is True


class TestReference:

    def test_project_statuses(self, client):
        body = client.get("/api/v1/reference/project-statuses").get_json()
        assert body["default_workflow"] == "pipeline"
        assert set(body["workflows"]) == {"pipeline", "team_leader"}
        assert body["conflicts"][0]["workflow"] == "team_leader"
        draft = next(s for s in body["statuses"] if s["status"] == "draft")
        assert draft["label"] == "Draft"
        assert draft["progress"] == 10

    def test_document_statuses(self, client):
        body = client.get("/api/v1/reference/document-statuses").get_json()
        assert {"draft", "approved_by_hc"} <= {s["status"] for s in body["statuses"]}
        assert body["actions"]["reject_pl"]["requires_notes"] is True
        assert body["actions"]["submit"]["to"] == "submitted"

    def test_application_types(self, client):
        body = client.get("/api/v1/reference/application-types").get_json()
        categories = {c["category"]: [t["value"] for t in c["types"]] for c in body["categories"]}
        assert "SLF_BARU" in categories["SLF"]
        assert "PBG_BARU" in categories["PBG"]
        assert "urgent" in body["priorities"]

    def test_phases(self, client):
        body = client.get("/api/v1/reference/phases").get_json()
        assert [p["default_duration"] for p in body["SLF"]] == [7, 5, 10, 7, 14]


class TestCrossCutting:

    def test_request_id_echoed(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_request_id_generated(self, client):
        assert client.get("/api/v1/health/ready").headers["X-Request-ID"]

    def test_security_headers(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert "Server" not in res.headers

    def test_unknown_route_json_404(self, client):
        res = client.get("/api/v1/nowhere")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_method_not_allowed(self, client):
        assert client.delete("/api/v1/health/ready").status_code == 405

    def test_non_json_body_415(self, client, admin, as_actor):
        res = client.post(
            "/api/v1/projects",
            data="name=x",
            content_type="text/plain",
            headers=as_actor(admin),
        )
        assert res.status_code == 415

    def test_malformed_actor_header_ignored(self, client):
        res = client.post("/api/v1/projects", json={}, headers={"X-Profile-Id": "abc"})
        assert res.status_code == 401
