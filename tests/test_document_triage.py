"""
Document triage tests: pending documents (no project yet):
  - grouping by uploader client, "unknown" bucket
  - admin-scoped inbox
  - create project from a client group (fallbacks from building_info)
  - link documents to an existing project
  - HTTP endpoints under /documents/pending
"""

import pytest

from app.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from app.models import db as _db
from app.models.audit import AuditLog
from app.models.document import Document
from app.models.notification import Notification
from app.models.project import Project, ProjectPhase
from app.services.document_lifecycle import create_document
from app.services.document_triage import (
    UNKNOWN_CLIENT,
    admin_client_ids,
    create_project_from_documents,
    group_documents_by_client,
    link_documents_to_project,
    list_linkable_projects,
    list_pending_groups,
)
from app.services.project_wizard import create_project


BUILDING_INFO = {
    "buildingAddress": "Jl. Asia Afrika No. 8",
    "buildingCity": "Bandung",
    "notes": "Gedung kantor 4 lantai",
}


def _upload(profile, name="Gambar Arsitektur", **metadata):
    doc = create_document({"name": name, "document_type": "CLIENT_UPLOAD", "metadata": metadata}, actor=profile)
    _db.session.commit()
    return doc


@pytest.fixture()
def roster(admin, make_client, make_profile):
    """Two clients managed by ``admin`` with one or two uploader profiles each."""
    a = make_client("PT Alpha", created_by=admin.id)
    b = make_client("CV Beta", created_by=admin.id)
    return {
        "a": a,
        "b": b,
        "a1": make_profile("client", client_id=a.id),
        "a2": make_profile("client", client_id=a.id),
        "b1": make_profile("client", client_id=b.id),
        "orphan": make_profile("client"),
    }


# ═══════════════════════════════════════════════════════════════════════════
# Grouping
# ═══════════════════════════════════════════════════════════════════════════


class TestGrouping:

    def test_three_groups_with_unknown(self, roster):
        docs = [
            _upload(roster["a1"]),
            _upload(roster["a2"]),
            _upload(roster["b1"]),
            _upload(roster["orphan"], name="Tanpa klien"),
        ]
        groups = group_documents_by_client(docs)
        assert set(groups) == {roster["a"].id, roster["b"].id, UNKNOWN_CLIENT}
        assert len(groups[roster["a"].id]["documents"]) == 2
        assert [d.name for d in groups[UNKNOWN_CLIENT]["documents"]] == ["Tanpa klien"]
        assert groups[UNKNOWN_CLIENT]["client_id"] is None

    def test_first_building_info_wins(self, roster):
        docs = [
            _upload(roster["a1"]),
            _upload(roster["a1"], building_info=BUILDING_INFO, application_type="PBG"),
            _upload(roster["a2"], building_info={"buildingCity": "Jakarta"}, application_type="SLF"),
        ]
        group = group_documents_by_client(docs)[roster["a"].id]
        assert group["building_info"] == BUILDING_INFO
        assert group["application_type"] == "PBG"

    def test_empty_input(self):
        assert group_documents_by_client([]) == {}


# ═══════════════════════════════════════════════════════════════════════════
# Inbox
# ═══════════════════════════════════════════════════════════════════════════


class TestPendingInbox:

    def test_admin_sees_only_their_clients(self, roster, admin):
        _upload(roster["a1"])
        _upload(roster["b1"])
        _upload(roster["orphan"])
        groups = list_pending_groups(admin)
        assert set(groups) == {roster["a"].id, roster["b"].id}
        assert groups[roster["a"].id]["client"]["name"] == "PT Alpha"

    def test_admin_without_clients_gets_empty(self, make_profile, roster):
        _upload(roster["a1"])
        other_admin = make_profile("admin_lead")
        assert list_pending_groups(other_admin) == {}

    def test_clients_without_profiles(self, admin, make_client):
        make_client("PT Kosong", created_by=admin.id)
        assert list_pending_groups(admin) == {}

    def test_linked_documents_leave_the_inbox(self, roster, admin):
        doc = _upload(roster["a1"])
        create_project_from_documents(admin, roster["a"].id, {"name": "Proyek Alpha"}, [doc.id])
        _db.session.commit()
        assert list_pending_groups(admin) == {}

    def test_admin_client_ids_include_led_projects(self, admin, make_client, make_profile):
        other = make_profile("admin_lead")
        c = make_client("PT Gamma", created_by=other.id)
        _db.session.add(Project(name="Gamma", client_id=c.id, admin_lead_id=admin.id))
        _db.session.commit()
        assert c.id in admin_client_ids(admin)


# ═══════════════════════════════════════════════════════════════════════════
# Create project from documents
# ═══════════════════════════════════════════════════════════════════════════


class TestCreateFromDocuments:

    def test_fallbacks_from_building_info(self, roster, admin):
        d1 = _upload(roster["a1"], building_info=BUILDING_INFO, application_type="PBG")
        d2 = _upload(roster["a2"])
        project, docs = create_project_from_documents(admin, roster["a"].id, {"name": "Kantor Alpha"})
        _db.session.commit()

        assert {d.id for d in docs} == {d1.id, d2.id}
        assert project.address == BUILDING_INFO["buildingAddress"]
        assert project.location == BUILDING_INFO["buildingAddress"]
        assert project.city == "Bandung"
        assert project.description == "Gedung kantor 4 lantai"
        assert project.application_type == "PBG"
        assert project.priority == "medium"
        assert project.status == "draft"
        assert project.admin_lead_id == admin.id
        assert all(_db.session.get(Document, d.id).project_id == project.id for d in docs)

    def test_form_values_win(self, roster, admin):
        _upload(roster["a1"], building_info=BUILDING_INFO)
        project, _ = create_project_from_documents(
            admin, roster["a"].id,
            {"name": "Kantor", "city": "Cimahi", "application_type": "SLF_PERPANJANGAN", "priority": "high"},
        )
        assert project.city == "Cimahi"
        assert project.application_type == "SLF_PERPANJANGAN"
        assert project.priority == "high"

    def test_defaults_to_slf_and_no_phases(self, roster, admin):
        _upload(roster["a1"])
        project, _ = create_project_from_documents(admin, roster["a"].id, {"name": "Kantor"})
        assert project.application_type == "SLF"
        assert ProjectPhase.query.filter_by(project_id=project.id).count() == 0

    def test_selected_documents_only(self, roster, admin):
        keep = _upload(roster["a1"])
        other = _upload(roster["a2"])
        _project, docs = create_project_from_documents(admin, roster["a"].id, {"name": "Kantor"}, [keep.id])
        assert [d.id for d in docs] == [keep.id]
        assert _db.session.get(Document, other.id).project_id is None

    def test_document_from_other_client_rejected(self, roster, admin):
        _upload(roster["a1"])
        foreign = _upload(roster["b1"])
        with pytest.raises(ValidationError) as exc:
            create_project_from_documents(admin, roster["a"].id, {"name": "Kantor"}, [foreign.id])
        assert exc.value.details["document_ids"] == [foreign.id]

    def test_name_required(self, roster, admin):
        _upload(roster["a1"])
        with pytest.raises(ValidationError):
            create_project_from_documents(admin, roster["a"].id, {"name": "  "})

    def test_unknown_client(self, admin):
        with pytest.raises(NotFoundError):
            create_project_from_documents(admin, 9999, {"name": "Kantor"})

    def test_foreign_admin_denied(self, roster, make_profile):
        _upload(roster["a1"])
        with pytest.raises(PermissionDenied):
            create_project_from_documents(make_profile("admin_lead"), roster["a"].id, {"name": "Kantor"})

    def test_no_pending_documents(self, roster, admin):
        with pytest.raises(ValidationError):
            create_project_from_documents(admin, roster["a"].id, {"name": "Kantor"})

    def test_audit_and_uploader_notified(self, roster, admin):
        doc = _upload(roster["a1"])
        project, _ = create_project_from_documents(admin, roster["a"].id, {"name": "Kantor"})
        audit = AuditLog.query.filter_by(action="project.create_from_documents").one()
        assert audit.diff["document_ids"] == [doc.id]
        notif = Notification.query.filter_by(type="project_created").one()
        assert notif.recipient_id == roster["a1"].id
        assert notif.project_id == project.id


# ═══════════════════════════════════════════════════════════════════════════
# Link documents
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def alpha_project(roster, admin, lead):
    project = create_project({
        "name": "Gedung Alpha",
        "application_type": "SLF_BARU",
        "location": "Jl. Braga No. 1",
        "client_id": roster["a"].id,
        "priority": "medium",
        "project_lead_id": lead.id,
    }, actor=admin)
    _db.session.commit()
    return project


class TestLinkDocuments:

    def test_link(self, roster, admin, alpha_project):
        d1 = _upload(roster["a1"])
        d2 = _upload(roster["a2"])
        project, docs = link_documents_to_project(admin, alpha_project.id, [d2.id, d1.id])
        _db.session.commit()
        assert [d.id for d in docs] == [d2.id, d1.id]
        assert AuditLog.query.filter_by(action="document.link").count() == 2
        recipients = {n.recipient_id for n in Notification.query.filter_by(type="documents_linked")}
        assert recipients == {roster["a1"].id, roster["a2"].id}

    def test_linkable_projects(self, roster, admin, alpha_project):
        assert list_linkable_projects(admin, roster["a"].id) == [alpha_project]
        alpha_project.status = "completed"
        _db.session.commit()
        assert list_linkable_projects(admin, roster["a"].id) == []

    def test_project_without_client_limits_to_admin_clients(self, roster, admin, alpha_project, make_client,
                                                            make_profile):
        alpha_project.client_id = None
        _db.session.commit()
        outsider = make_profile("client", client_id=make_client("PT Lain").id)
        own = _upload(roster["a1"])
        foreign = _upload(outsider)
        orphan = _upload(roster["orphan"])
        with pytest.raises(ValidationError) as exc:
            link_documents_to_project(admin, alpha_project.id, [own.id, foreign.id, orphan.id])
        assert exc.value.details["other_client"] == sorted([foreign.id, orphan.id])

        _, docs = link_documents_to_project(admin, alpha_project.id, [own.id])
        assert [d.id for d in docs] == [own.id]

    def test_closed_project_rejected(self, roster, admin, alpha_project):
        doc = _upload(roster["a1"])
        alpha_project.status = "cancelled"
        _db.session.commit()
        with pytest.raises(ValidationError):
            link_documents_to_project(admin, alpha_project.id, [doc.id])

    def test_problem_documents_reported(self, roster, admin, alpha_project):
        linked = _upload(roster["a1"])
        link_documents_to_project(admin, alpha_project.id, [linked.id])
        _db.session.commit()
        foreign = _upload(roster["b1"])

        with pytest.raises(ValidationError) as exc:
            link_documents_to_project(admin, alpha_project.id, [linked.id, foreign.id, 4242])
        assert exc.value.details == {
            "missing": [4242],
            "already_linked": [linked.id],
            "other_client": [foreign.id],
        }

    def test_empty_selection(self, admin, alpha_project):
        with pytest.raises(ValidationError):
            link_documents_to_project(admin, alpha_project.id, [])

    def test_other_admin_denied(self, roster, make_profile, alpha_project):
        doc = _upload(roster["a1"])
        with pytest.raises(PermissionDenied):
            link_documents_to_project(make_profile("admin_lead"), alpha_project.id, [doc.id])


# ═══════════════════════════════════════════════════════════════════════════
# HTTP
# ═══════════════════════════════════════════════════════════════════════════


class TestTriageEndpoints:

    def test_pending_groups(self, client, roster, admin, as_actor):
        _upload(roster["a1"], building_info=BUILDING_INFO)
        _upload(roster["b1"])
        res = client.get("/api/v1/documents/pending", headers=as_actor(admin))
        assert res.status_code == 200
        body = res.get_json()
        assert body["total_documents"] == 2
        keys = {g["key"] for g in body["groups"]}
        assert keys == {str(roster["a"].id), str(roster["b"].id)}

    def test_pending_requires_admin_lead(self, client, roster, as_actor):
        res = client.get("/api/v1/documents/pending", headers=as_actor(roster["a1"]))
        assert res.status_code == 403

    def test_create_project_endpoint(self, client, roster, admin, as_actor):
        doc = _upload(roster["a1"], building_info=BUILDING_INFO)
        res = client.post(
            "/api/v1/documents/pending/create-project",
            json={"client_id": roster["a"].id, "form": {"name": "Kantor Alpha"}},
            headers=as_actor(admin),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["linked_document_ids"] == [doc.id]
        assert body["project"]["city"] == "Bandung"

    def test_create_project_rolls_back_on_error(self, client, roster, admin, as_actor):
        _upload(roster["a1"])
        res = client.post(
            "/api/v1/documents/pending/create-project",
            json={"client_id": roster["a"].id, "form": {"name": "Kantor", "priority": "asap"}},
            headers=as_actor(admin),
        )
        assert res.status_code == 422
        assert Project.query.count() == 0
        assert Document.query.filter(Document.project_id.isnot(None)).count() == 0

    def test_bad_document_ids(self, client, roster, admin, as_actor):
        res = client.post(
            "/api/v1/documents/pending/link",
            json={"project_id": 1, "document_ids": "1,2"},
            headers=as_actor(admin),
        )
        assert res.status_code == 400

    def test_link_endpoint(self, client, roster, admin, alpha_project, as_actor):
        doc = _upload(roster["a1"])
        res = client.post(
            "/api/v1/documents/pending/link",
            json={"project_id": alpha_project.id, "document_ids": [doc.id]},
            headers=as_actor(admin),
        )
        assert res.status_code == 200
        assert res.get_json()["linked_document_ids"] == [doc.id]

    def test_linkable_projects_endpoint(self, client, roster, admin, alpha_project, as_actor):
        res = client.get(
            f"/api/v1/documents/pending/linkable-projects?client_id={roster['a'].id}",
            headers=as_actor(admin),
        )
        assert [p["id"] for p in res.get_json()["items"]] == [alpha_project.id]

    def test_linkable_projects_needs_client(self, client, admin, as_actor):
        res = client.get("/api/v1/documents/pending/linkable-projects", headers=as_actor(admin))
        assert res.status_code == 400
