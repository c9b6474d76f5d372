"""
Document lifecycle tests:
  - transition table per action
  - role checks (reviewers vs uploader actions)
  - required notes on rejection / revision requests
  - review metadata, audit row and uploader notification
  - full review walk: draft → approved_by_hc
"""

import pytest

from app.core.exceptions import NotFoundError, PermissionDenied, TransitionError, ValidationError
from app.models import db as _db
from app.models.audit import AuditLog
from app.models.document import Document
from app.models.notification import Notification
from app.services.document_lifecycle import (
    can_perform,
    create_document,
    get_available_document_actions,
    transition_document,
    validate_document_transition,
)


@pytest.fixture()
def uploader(make_profile, make_client):
    return make_profile("client", client_id=make_client().id)


@pytest.fixture()
def head(make_profile):
    return make_profile("head_consultant")


@pytest.fixture()
def document(uploader):
    doc = create_document({"name": "Laporan Struktur", "document_type": "report"}, actor=uploader)
    _db.session.commit()
    return doc


def _walk(document, *steps):
    for action, actor in steps:
        transition_document(document.id, action, actor)


class TestCreateDocument:

    def test_defaults(self, document, uploader):
        assert document.status == "draft"
        assert document.document_type == "REPORT"
        assert document.is_pending
        assert document.created_by == uploader.id

    def test_validation(self, uploader):
        with pytest.raises(ValidationError) as exc:
            create_document({"document_type": "VIDEO", "metadata": "bukan objek", "project_id": 77}, actor=uploader)
        assert set(exc.value.details) == {"name", "document_type", "metadata", "project_id"}


class TestTransitionTable:

    def test_validate(self, document):
        assert validate_document_transition(document, "submit")["valid"]
        result = validate_document_transition(document, "approve_pl")
        assert result["valid"] is False
        assert result["to"] == "approved_by_pl"
        assert validate_document_transition(document, "explode")["reason"] == "Unknown action: explode"

    def test_available_actions_for_draft(self, document, uploader):
        actions = [a["action"] for a in get_available_document_actions(document, uploader)]
        assert actions == ["submit", "cancel"]

    def test_available_actions_filtered_by_role(self, document, uploader, admin, lead):
        _walk(document, ("submit", uploader))
        assert [a["action"] for a in get_available_document_actions(document, admin)] == [
            "verify", "approve", "reject", "cancel",
        ]
        assert [a["action"] for a in get_available_document_actions(document, uploader)] == ["cancel"]
        reject = next(a for a in get_available_document_actions(document, lead) if a["action"] == "reject")
        assert reject["requires_notes"] is True


class TestPermissions:

    def test_client_cannot_review(self, document, uploader):
        assert not can_perform(uploader, document, "verify")
        assert can_perform(uploader, document, "submit")

    def test_other_client_cannot_submit(self, document, make_profile):
        stranger = make_profile("client")
        assert not can_perform(stranger, document, "submit")
        with pytest.raises(PermissionDenied):
            transition_document(document.id, "submit", stranger)

    def test_no_actor(self, document):
        assert not can_perform(None, document, "submit")

    def test_wrong_reviewer(self, document, uploader, lead):
        _walk(document, ("submit", uploader))
        with pytest.raises(PermissionDenied):
            transition_document(document.id, "verify", lead)

    def test_superadmin(self, document, make_profile):
        assert can_perform(make_profile("superadmin"), document, "approve_hc")


class TestTransitions:

    def test_full_review_walk(self, document, uploader, admin, lead, head):
        _walk(
            document,
            ("submit", uploader),
            ("verify", admin),
            ("approve_pl", lead),
            ("approve_hc", head),
        )
        assert _db.session.get(Document, document.id).status == "approved_by_hc"
        actions = [r.action for r in AuditLog.query.filter_by(entity_type="document").order_by(AuditLog.id)]
        assert actions == ["document.submit", "document.verify", "document.approve_pl", "document.approve_hc"]

    def test_reject_requires_notes(self, document, uploader, admin, lead):
        _walk(document, ("submit", uploader), ("verify", admin))
        with pytest.raises(ValidationError) as exc:
            transition_document(document.id, "reject_pl", lead, notes="  ")
        assert "notes" in exc.value.details

        result = transition_document(document.id, "reject_pl", lead, notes="Gambar kurang lengkap")
        assert result["new_status"] == "rejected_by_pl"
        review = _db.session.get(Document, document.id).meta["review"]
        assert review["notes"] == "Gambar kurang lengkap"
        assert review["reviewed_by"] == lead.id

    def test_revision_loop(self, document, uploader, admin, lead, head):
        _walk(document, ("submit", uploader), ("verify", admin), ("approve_pl", lead))
        transition_document(document.id, "request_revision_hc", head, notes="Perbaiki perhitungan")
        result = transition_document(document.id, "revise", uploader)
        assert result["new_status"] == "draft"

    def test_illegal_transition(self, document, admin):
        with pytest.raises(TransitionError) as exc:
            transition_document(document.id, "approve", admin)
        assert exc.value.details["current"] == "draft"
        assert exc.value.details["allowed"] == ["cancel", "submit"]

    def test_unknown_action(self, document, admin):
        with pytest.raises(ValidationError):
            transition_document(document.id, "shred", admin)

    def test_unknown_document(self, admin):
        with pytest.raises(NotFoundError):
            transition_document(4242, "submit", admin)

    def test_uploader_notified(self, document, uploader, admin):
        _walk(document, ("submit", uploader), ("verify", admin))
        notes = Notification.query.filter_by(type="document_reviewed").all()
        # the uploader's own submit does not notify them
        assert len(notes) == 1
        assert notes[0].recipient_id == uploader.id
        assert "Awaiting Project Lead Review" in notes[0].message

    def test_metadata_preserved(self, uploader, admin):
        doc = create_document({"name": "Foto", "metadata": {"building_info": {"buildingCity": "Bogor"}}}, actor=uploader)
        transition_document(doc.id, "submit", uploader)
        transition_document(doc.id, "approve", admin)
        meta = _db.session.get(Document, doc.id).meta
        assert meta["building_info"] == {"buildingCity": "Bogor"}
        assert meta["review"]["action"] == "approve"


class TestDocumentEndpoints:

    def test_upload_and_get(self, client, uploader, as_actor):
        res = client.post(
            "/api/v1/documents",
            json={"name": "IMB Lama", "document_type": "PERMIT", "metadata": {"application_type": "SLF"}},
            headers=as_actor(uploader),
        )
        assert res.status_code == 201
        doc_id = res.get_json()["id"]

        res = client.get(f"/api/v1/documents/{doc_id}", headers=as_actor(uploader))
        body = res.get_json()
        assert body["status_label"] == "Draft"
        assert body["metadata"] == {"application_type": "SLF"}
        assert [a["action"] for a in body["available_actions"]] == ["submit", "cancel"]

    def test_upload_requires_actor(self, client):
        res = client.post("/api/v1/documents", json={"name": "x"})
        assert res.status_code == 401

    def test_transition_endpoint(self, client, document, uploader, admin, as_actor):
        res = client.post(
            f"/api/v1/documents/{document.id}/transition", json={"action": "submit"}, headers=as_actor(uploader),
        )
        assert res.status_code == 200
        res = client.post(
            f"/api/v1/documents/{document.id}/transition", json={"action": "reject"}, headers=as_actor(admin),
        )
        assert res.status_code == 422
        assert _db.session.get(Document, document.id).status == "submitted"

    def test_transition_forbidden(self, client, document, make_profile, as_actor):
        res = client.post(
            f"/api/v1/documents/{document.id}/transition",
            json={"action": "submit"},
            headers=as_actor(make_profile("client")),
        )
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_list_is_staff_only(self, client, document, uploader, admin, as_actor):
        assert client.get("/api/v1/documents", headers=as_actor(uploader)).status_code == 403
        res = client.get("/api/v1/documents?status=draft", headers=as_actor(admin))
        assert res.get_json()["total"] == 1

    def test_non_string_notes_422(self, client, document, uploader, as_actor):
        res = client.post(
            f"/api/v1/documents/{document.id}/transition",
            json={"action": "submit", "notes": 5},
            headers=as_actor(uploader),
        )
        assert res.status_code == 422
        assert res.get_json()["details"] == {"notes": "must be a string"}
        assert _db.session.get(Document, document.id).status == "draft"
