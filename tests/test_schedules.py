"""
Schedule tests: project calendar entries, manager access rules, status
moves and the /schedules endpoints.
"""

import pytest

from app.core.exceptions import PermissionDenied, TransitionError, ValidationError
from app.models import db as _db
from app.models.audit import AuditLog
from app.models.notification import Notification
from app.models.schedule import Schedule
from app.services.project_wizard import create_project
from app.services.schedule_service import (
    can_manage_schedule,
    create_schedule,
    delete_schedule,
    list_schedules,
    list_schedules_for_profile,
    update_schedule,
)


@pytest.fixture()
def project(wizard_form, admin):
    p = create_project(wizard_form, actor=admin)
    _db.session.commit()
    return p


@pytest.fixture()
def meeting(project, lead, inspector):
    s = create_schedule(project, {
        "title": "Rapat kick-off",
        "schedule_date": "2026-11-02T09:00",
        "assigned_to": inspector.id,
        "location": "Kantor Dinas PU",
    }, actor=lead)
    _db.session.commit()
    return s


# ═════════════════════════════════════════════════════════════════════════════
# Service
# ═════════════════════════════════════════════════════════════════════════════

class TestCreateSchedule:

    def test_defaults(self, meeting, lead, inspector):
        assert meeting.status == "scheduled"
        assert meeting.schedule_type == "meeting"
        assert meeting.created_by == lead.id
        assert meeting.assigned_to == inspector.id
        assert meeting.schedule_date.hour == 9

    def test_assignee_notified(self, meeting, inspector):
        notes = Notification.query.filter_by(type="schedule_assigned").all()
        assert [n.recipient_id for n in notes] == [inspector.id]

    def test_audited(self, meeting):
        row = AuditLog.query.filter_by(action="schedule.create").one()
        assert row.entity_id == str(meeting.id)

    def test_required_fields(self, project, admin):
        with pytest.raises(ValidationError) as exc:
            create_schedule(project, {"title": "  ", "schedule_type": "party"}, actor=admin)
        assert set(exc.value.details) == {"title", "schedule_date", "schedule_type"}

    def test_bad_date(self, project, admin):
        with pytest.raises(ValidationError) as exc:
            create_schedule(project, {"title": "Rapat", "schedule_date": "besok"}, actor=admin)
        assert "schedule_date" in exc.value.details

    def test_client_cannot_be_assignee(self, project, admin, make_profile):
        owner = make_profile("client")
        with pytest.raises(ValidationError) as exc:
            create_schedule(project, {
                "title": "Rapat", "schedule_date": "2026-11-02", "assigned_to": owner.id,
            }, actor=admin)
        assert exc.value.details == {"assigned_to": "Assignee must be a staff profile"}

    def test_final_project_rejected(self, project, admin):
        project.status = "cancelled"
        with pytest.raises(ValidationError) as exc:
            create_schedule(project, {"title": "Rapat", "schedule_date": "2026-11-02"}, actor=admin)
        assert "project_id" in exc.value.details

    def test_outside_lead_denied(self, project, make_profile):
        other_lead = make_profile("project_lead")
        with pytest.raises(PermissionDenied):
            create_schedule(project, {"title": "Rapat", "schedule_date": "2026-11-02"}, actor=other_lead)

    def test_manager_rules(self, project, admin, lead, inspector, make_profile):
        assert can_manage_schedule(admin, project)
        assert can_manage_schedule(lead, project)
        assert not can_manage_schedule(inspector, project)
        assert not can_manage_schedule(make_profile("project_lead"), project)
        assert not can_manage_schedule(None, project)


class TestUpdateSchedule:

    def test_edit_and_complete(self, meeting, lead):
        update_schedule(meeting, {"title": "Rapat teknis", "status": "completed"}, actor=lead)
        assert meeting.title == "Rapat teknis"
        assert meeting.status == "completed"
        row = AuditLog.query.filter_by(action="schedule.update").one()
        assert set(row.diff) == {"title", "status"}

    def test_completed_is_terminal(self, meeting, lead):
        update_schedule(meeting, {"status": "completed"}, actor=lead)
        with pytest.raises(TransitionError) as exc:
            update_schedule(meeting, {"status": "scheduled"}, actor=lead)
        assert exc.value.details["allowed"] == []

    def test_cancelled_can_be_rescheduled(self, meeting, lead):
        update_schedule(meeting, {"status": "cancelled"}, actor=lead)
        update_schedule(meeting, {"status": "scheduled", "schedule_date": "2026-11-09T13:30"}, actor=lead)
        assert meeting.status == "scheduled"
        assert meeting.schedule_date.day == 9

    def test_unknown_status(self, meeting, lead):
        with pytest.raises(ValidationError) as exc:
            update_schedule(meeting, {"status": "postponed"}, actor=lead)
        assert "status" in exc.value.details

    def test_reassign_notifies_new_assignee(self, meeting, lead, make_profile):
        drafter = make_profile("drafter")
        update_schedule(meeting, {"assigned_to": drafter.id}, actor=lead)
        recipients = {n.recipient_id for n in Notification.query.filter_by(type="schedule_assigned")}
        assert drafter.id in recipients

    def test_no_change_no_audit(self, meeting, lead):
        update_schedule(meeting, {"title": "Rapat kick-off"}, actor=lead)
        assert AuditLog.query.filter_by(action="schedule.update").count() == 0

    def test_delete(self, meeting, admin):
        schedule_id = meeting.id
        delete_schedule(meeting, actor=admin)
        assert _db.session.get(Schedule, schedule_id) is None
        assert AuditLog.query.filter_by(action="schedule.delete").count() == 1


class TestScheduleQueries:

    def test_project_list_ordered_by_date(self, project, meeting, admin):
        earlier = create_schedule(project, {"title": "Tenggat dokumen", "schedule_date": "2026-10-30",
                                            "schedule_type": "deadline"}, actor=admin)
        assert [s.id for s in list_schedules(project)] == [earlier.id, meeting.id]
        assert [s.id for s in list_schedules(project, status="completed")] == []

    def test_profile_calendar(self, project, meeting, admin, lead, inspector, make_profile):
        outsider = make_profile("drafter")
        assert [s.id for s in list_schedules_for_profile(admin)] == [meeting.id]
        assert [s.id for s in list_schedules_for_profile(lead)] == [meeting.id]
        # on the team and the assignee
        assert [s.id for s in list_schedules_for_profile(inspector)] == [meeting.id]
        assert list_schedules_for_profile(outsider).all() == []


# ═════════════════════════════════════════════════════════════════════════════
# Endpoints
# ═════════════════════════════════════════════════════════════════════════════

class TestScheduleEndpoints:

    def test_create_and_list(self, client, project, lead, inspector, as_actor):
        res = client.post(
            f"/api/v1/projects/{project.id}/schedules",
            json={"title": "Inspeksi struktur", "schedule_type": "inspection",
                  "schedule_date": "2026-11-05T08:30", "assigned_to": inspector.id},
            headers=as_actor(lead),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["schedule_type"] == "inspection"
        assert body["schedule_date"].startswith("2026-11-05T08:30")

        listed = client.get(f"/api/v1/projects/{project.id}/schedules").get_json()
        assert listed["total"] == 1

        mine = client.get("/api/v1/schedules", headers=as_actor(inspector)).get_json()
        assert [s["id"] for s in mine["items"]] == [body["id"]]

    def test_missing_fields_422(self, client, project, lead, as_actor):
        res = client.post(f"/api/v1/projects/{project.id}/schedules", json={}, headers=as_actor(lead))
        assert res.status_code == 422
        assert {"title", "schedule_date"} <= set(res.get_json()["details"])

    def test_non_string_description_422(self, client, project, lead, as_actor):
        res = client.post(
            f"/api/v1/projects/{project.id}/schedules",
            json={"title": "Rapat", "schedule_date": "2026-11-05", "description": 7},
            headers=as_actor(lead),
        )
        assert res.status_code == 422
        assert res.get_json()["details"] == {"description": "must be a string"}

    def test_inspector_cannot_create(self, client, project, inspector, as_actor):
        res = client.post(
            f"/api/v1/projects/{project.id}/schedules",
            json={"title": "Rapat", "schedule_date": "2026-11-05"},
            headers=as_actor(inspector),
        )
        assert res.status_code == 403

    def test_outside_lead_403(self, client, meeting, make_profile, as_actor):
        res = client.put(
            f"/api/v1/schedules/{meeting.id}",
            json={"title": "Diambil alih"},
            headers=as_actor(make_profile("project_lead")),
        )
        assert res.status_code == 403
        assert _db.session.get(Schedule, meeting.id).title == "Rapat kick-off"

    def test_update_illegal_status_409(self, client, meeting, lead, as_actor):
        client.put(f"/api/v1/schedules/{meeting.id}", json={"status": "completed"}, headers=as_actor(lead))
        res = client.put(f"/api/v1/schedules/{meeting.id}", json={"status": "in_progress"},
                         headers=as_actor(lead))
        assert res.status_code == 409

    def test_delete(self, client, meeting, admin, as_actor):
        schedule_id = meeting.id
        res = client.delete(f"/api/v1/schedules/{schedule_id}", headers=as_actor(admin))
        assert res.get_json() == {"deleted": schedule_id}
        assert client.get(f"/api/v1/schedules/{schedule_id}").status_code == 404

    def test_calendar_requires_staff(self, client, make_profile, as_actor):
        assert client.get("/api/v1/schedules").status_code == 401
        assert client.get("/api/v1/schedules", headers=as_actor(make_profile("client"))).status_code == 403
