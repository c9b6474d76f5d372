"""
Inspection tests: scheduling, status transitions, checklist responses,
geotagged photos and the /inspections endpoints.
"""

from datetime import date, time

import pytest

from app.core.exceptions import TransitionError, ValidationError
from app.models import db as _db
from app.models.inspection import Inspection
from app.models.notification import Notification
from app.services.inspection_service import (
    add_inspection_photo,
    list_checklist_responses,
    list_inspections,
    record_checklist_response,
    schedule_inspection,
    transition_inspection,
    validate_geotag,
)
from app.services.project_wizard import create_project


@pytest.fixture()
def project(wizard_form, admin):
    p = create_project(wizard_form, actor=admin)
    _db.session.commit()
    return p


@pytest.fixture()
def inspection(project, inspector, lead):
    i = schedule_inspection(project, inspector.id, "2026-11-02", "09:00", "12:00", actor=lead)
    _db.session.commit()
    return i


@pytest.fixture()
def started(inspection, inspector):
    transition_inspection(inspection, "in_progress", actor=inspector)
    _db.session.commit()
    return inspection


class TestScheduling:

    def test_schedule(self, inspection, inspector):
        assert inspection.status == "scheduled"
        assert inspection.scheduled_date == date(2026, 11, 2)
        assert inspection.start_time == time(9, 0)
        assert inspection.inspector_id == inspector.id

    def test_inspector_notified(self, inspection, inspector):
        notes = Notification.query.filter_by(type="inspection_scheduled").all()
        # scheduled by the project lead, so only the inspector hears about it
        assert [n.recipient_id for n in notes] == [inspector.id]

    def test_dotted_date_format(self, project, inspector):
        i = schedule_inspection(project, inspector.id, "15.12.2026")
        assert i.scheduled_date == date(2026, 12, 15)

    def test_validation_errors(self, project, lead):
        with pytest.raises(ValidationError) as exc:
            schedule_inspection(project, lead.id, "not-a-date", "10:00", "09:00")
        assert set(exc.value.details) == {"inspector_id", "scheduled_date", "end_time"}

    def test_date_required(self, project, inspector):
        with pytest.raises(ValidationError) as exc:
            schedule_inspection(project, inspector.id, None)
        assert exc.value.details["scheduled_date"] == "scheduled_date is required"

    def test_final_project_rejected(self, project, inspector):
        project.status = "completed"
        with pytest.raises(ValidationError) as exc:
            schedule_inspection(project, inspector.id, "2026-11-02")
        assert "project_id" in exc.value.details

    def test_list_ordered_by_date(self, project, inspector, inspection):
        earlier = schedule_inspection(project, inspector.id, "2026-10-30")
        assert [i.id for i in list_inspections(project)] == [earlier.id, inspection.id]


class TestInspectionTransitions:

    def test_complete_sets_timestamp(self, started, inspector):
        result = transition_inspection(started, "completed", actor=inspector)
        assert result == {"inspection_id": started.id, "previous_status": "in_progress", "new_status": "completed"}
        assert started.completed_at is not None

    def test_reopen_after_rejection_clears_timestamp(self, started, lead):
        transition_inspection(started, "completed")
        transition_inspection(started, "rejected", actor=lead, notes="Foto fasad kurang")
        transition_inspection(started, "in_progress")
        assert started.completed_at is None
        assert started.notes == "Foto fasad kurang"

    def test_illegal(self, inspection):
        with pytest.raises(TransitionError) as exc:
            transition_inspection(inspection, "completed")
        assert exc.value.details["allowed"] == ["cancelled", "in_progress"]


class TestGeotag:

    def test_valid_pair(self):
        assert validate_geotag("-6.9147", 107.6098) == (-6.9147, 107.6098)

    def test_empty_pair(self):
        assert validate_geotag(None, "") == (None, None)

    @pytest.mark.parametrize("lat,lng,key", [
        (91, 10, "latitude"),
        (10, -181, "longitude"),
        ("abc", 10, "latitude"),
        (True, 10, "latitude"),
        (10, None, "geotag"),
    ])
    def test_invalid(self, lat, lng, key):
        with pytest.raises(ValidationError) as exc:
            validate_geotag(lat, lng)
        assert key in exc.value.details

    def test_required(self):
        with pytest.raises(ValidationError):
            validate_geotag(None, None, required=True)


class TestEvidence:

    def test_responses_need_in_progress(self, inspection):
        with pytest.raises(ValidationError):
            record_checklist_response(inspection, "A1", response={"value": "baik"})

    def test_upsert_response(self, started, inspector):
        row, created = record_checklist_response(started, "A1", "tpl-1", {"value": "baik"}, actor=inspector)
        assert created
        again, created = record_checklist_response(started, "A1", response={"value": "rusak ringan"}, actor=inspector)
        assert not created
        assert again.id == row.id
        assert again.template_id == "tpl-1"
        assert [r.response for r in list_checklist_responses(started)] == [{"value": "rusak ringan"}]

    def test_response_geotag_checked(self, started):
        with pytest.raises(ValidationError):
            record_checklist_response(started, "A2", photogeotag={"latitude": 100, "longitude": 0})

    def test_photo(self, started, inspector):
        photo = add_inspection_photo(started, "A1", "https://files.test/a1.jpg", -6.9, 107.6, actor=inspector)
        assert photo.is_geotagged
        assert photo.uploaded_by == inspector.id

    def test_photo_requires_geotag(self, started):
        with pytest.raises(ValidationError):
            add_inspection_photo(started, "A1", "https://files.test/a1.jpg", require_geotag=True)


class TestInspectionEndpoints:

    def test_schedule_and_walk(self, client, project, inspector, lead, as_actor):
        res = client.post(
            f"/api/v1/projects/{project.id}/inspections",
            json={"inspector_id": inspector.id, "scheduled_date": "2026-11-05", "start_time": "08:30"},
            headers=as_actor(lead),
        )
        assert res.status_code == 201
        inspection_id = res.get_json()["id"]
        assert res.get_json()["start_time"] == "08:30"

        res = client.post(
            f"/api/v1/inspections/{inspection_id}/transition",
            json={"status": "in_progress"},
            headers=as_actor(inspector),
        )
        assert res.status_code == 200

        res = client.post(
            f"/api/v1/inspections/{inspection_id}/checklist-responses",
            json={"item_id": "B3", "response": {"value": "baik"}},
            headers=as_actor(inspector),
        )
        assert res.status_code == 201
        res = client.post(
            f"/api/v1/inspections/{inspection_id}/checklist-responses",
            json={"item_id": "B3", "response": {"value": "rusak"}},
            headers=as_actor(inspector),
        )
        assert res.status_code == 200

        res = client.post(
            f"/api/v1/inspections/{inspection_id}/photos",
            json={"photo_url": "https://files.test/b3.jpg", "latitude": -6.2, "longitude": 106.8},
            headers=as_actor(inspector),
        )
        assert res.status_code == 201

        detail = client.get(f"/api/v1/inspections/{inspection_id}").get_json()
        assert len(detail["checklist_responses"]) == 1
        assert len(detail["photos"]) == 1

    def test_client_cannot_schedule(self, client, project, inspector, make_profile, as_actor):
        res = client.post(
            f"/api/v1/projects/{project.id}/inspections",
            json={"inspector_id": inspector.id, "scheduled_date": "2026-11-05"},
            headers=as_actor(make_profile("client")),
        )
        assert res.status_code == 403

    def test_illegal_transition_409(self, client, inspection, inspector, as_actor):
        res = client.post(
            f"/api/v1/inspections/{inspection.id}/transition",
            json={"status": "completed"},
            headers=as_actor(inspector),
        )
        assert res.status_code == 409

    def test_bad_geotag_422(self, client, started, inspector, as_actor):
        res = client.post(
            f"/api/v1/inspections/{started.id}/photos",
            json={"photo_url": "https://files.test/x.jpg", "latitude": -6.2},
            headers=as_actor(inspector),
        )
        assert res.status_code == 422
        assert "geotag" in res.get_json()["details"]

    def test_unknown_inspection_404(self, client):
        assert client.get("/api/v1/inspections/999").status_code == 404

    def test_non_string_photo_url_422(self, client, started, inspector, as_actor):
        res = client.post(
            f"/api/v1/inspections/{started.id}/photos",
            json={"photo_url": 123},
            headers=as_actor(inspector),
        )
        assert res.status_code == 422
        assert res.get_json()["details"] == {"photo_url": "must be a string"}

    def test_non_string_transition_notes_422(self, client, inspection, inspector, as_actor):
        res = client.post(
            f"/api/v1/inspections/{inspection.id}/transition",
            json={"status": "in_progress", "notes": 5},
            headers=as_actor(inspector),
        )
        assert res.status_code == 422
        assert _db.session.get(Inspection, inspection.id).status == "scheduled"

    def test_non_string_schedule_notes_422(self, client, project, inspector, lead, as_actor):
        res = client.post(
            f"/api/v1/projects/{project.id}/inspections",
            json={"inspector_id": inspector.id, "scheduled_date": "2026-11-05", "notes": ["pagi"]},
            headers=as_actor(lead),
        )
        assert res.status_code == 422
        assert "notes" in res.get_json()["details"]
