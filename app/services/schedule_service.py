"""
Schedule Service

Project calendar entries: meetings, inspection slots and deadlines.

Access rules:
  - admin leads (and superadmin) manage every project's schedule
  - project leads manage projects they lead or sit on the team of
  - anyone may be the assignee of an entry, as long as they are staff
"""

import logging

from app.core.exceptions import NotFoundError, PermissionDenied, TransitionError, ValidationError
from app.models import db
from app.models.audit import write_audit
from app.models.profile import STAFF_ROLES, Profile
from app.models.project import Project, ProjectTeam
from app.models.schedule import Schedule
from app.models.status import (
    SCHEDULE_STATUSES,
    SCHEDULE_TRANSITIONS,
    SCHEDULE_TYPES,
    is_final_status,
    validate_schedule_transition,
)
from app.services.notification import NotificationService
from app.utils.helpers import optional_text, parse_datetime_input

logger = logging.getLogger(__name__)

MANAGER_ROLES = frozenset({"admin_lead", "superadmin"})
TEXT_FIELDS = ("description", "location")


def get_schedule(schedule_id: int) -> Schedule:
    schedule = db.session.get(Schedule, schedule_id)
    if schedule is None:
        raise NotFoundError(resource="Schedule", resource_id=schedule_id)
    return schedule


def _led_project_ids(profile_id: int):
    team = db.session.query(ProjectTeam.project_id).filter(ProjectTeam.user_id == profile_id)
    return db.session.query(Project.id).filter(
        (Project.project_lead_id == profile_id) | (Project.id.in_(team))
    )


def can_manage_schedule(actor, project: Project) -> bool:
    if actor is None:
        return False
    if actor.role in MANAGER_ROLES:
        return True
    if actor.role != "project_lead":
        return False
    if project.project_lead_id == actor.id:
        return True
    return ProjectTeam.query.filter_by(project_id=project.id, user_id=actor.id).first() is not None


def _require_manager(actor, project: Project) -> None:
    if not can_manage_schedule(actor, project):
        raise PermissionDenied("Project schedule is not managed by this profile")


def list_schedules(project: Project, status: str | None = None) -> list[Schedule]:
    query = Schedule.query.filter_by(project_id=project.id)
    if status:
        query = query.filter(Schedule.status == status)
    return query.order_by(Schedule.schedule_date.asc(), Schedule.id.asc()).all()


def list_schedules_for_profile(profile, status: str | None = None):
    """
    Query for the schedules a profile should see, soonest first.

    Managers see everything; other staff see entries on projects they
    lead or work on, plus anything assigned to them.
    """
    query = Schedule.query
    if profile.role not in MANAGER_ROLES:
        query = query.filter(
            Schedule.project_id.in_(_led_project_ids(profile.id))
            | (Schedule.assigned_to == profile.id)
        )
    if status:
        query = query.filter(Schedule.status == status)
    return query.order_by(Schedule.schedule_date.asc(), Schedule.id.asc())


# ── Validation ───────────────────────────────────────────────────────────────

def _clean(data: dict, *, partial: bool) -> tuple[dict, dict]:
    """Validate submitted fields; returns (values, errors)."""
    values, errors = {}, {}

    if not partial or "title" in data:
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            errors["title"] = "title is required"
        else:
            values["title"] = title.strip()

    if not partial or "schedule_date" in data:
        try:
            when = parse_datetime_input(data.get("schedule_date"))
        except ValueError as exc:
            errors["schedule_date"] = str(exc)
        else:
            if when is None:
                errors["schedule_date"] = "schedule_date is required"
            else:
                values["schedule_date"] = when

    if "schedule_type" in data or not partial:
        schedule_type = data.get("schedule_type") or "meeting"
        if schedule_type not in SCHEDULE_TYPES:
            errors["schedule_type"] = f"Schedule type must be one of: {', '.join(sorted(SCHEDULE_TYPES))}"
        else:
            values["schedule_type"] = schedule_type

    for field in TEXT_FIELDS:
        if field in data:
            try:
                values[field] = optional_text(data[field], field)
            except ValidationError as exc:
                errors.update(exc.details)

    if "assigned_to" in data:
        raw = data["assigned_to"]
        if raw is None or raw == "":
            values["assigned_to"] = None
        else:
            try:
                assignee = db.session.get(Profile, int(raw))
            except (TypeError, ValueError):
                errors["assigned_to"] = "assigned_to must be an integer"
            else:
                if assignee is None or assignee.role not in STAFF_ROLES:
                    errors["assigned_to"] = "Assignee must be a staff profile"
                else:
                    values["assigned_to"] = assignee.id

    return values, errors


# ── Mutations ────────────────────────────────────────────────────────────────

def create_schedule(project: Project, data: dict, actor=None) -> Schedule:
    """
    Add a calendar entry to a project.

    Raises:
        PermissionDenied: actor does not manage the project
        ValidationError: missing title/date, bad type or assignee, final project
    """
    _require_manager(actor, project)
    values, errors = _clean(data, partial=False)
    if is_final_status(project.status):
        errors["project_id"] = f"Project is {project.status}; no further schedules"
    if errors:
        raise ValidationError("Invalid schedule", details=errors)

    schedule = Schedule(project_id=project.id, status="scheduled", created_by=actor.id, **values)
    db.session.add(schedule)
    db.session.flush()

    logger.info("Schedule %s (%s) created for project %s at %s",
                schedule.id, schedule.schedule_type, project.id, schedule.schedule_date,
                extra={"project_id": project.id, "profile_id": actor.id})

    try:
        write_audit(
            entity_type="schedule",
            entity_id=schedule.id,
            action="schedule.create",
            actor_id=actor.id,
            project_id=project.id,
            diff={"title": schedule.title, "schedule_date": schedule.schedule_date,
                  "assigned_to": schedule.assigned_to},
        )
    except Exception:
        logger.warning("Audit log failed for schedule creation; main flow unaffected", exc_info=True)

    NotificationService.notify_schedule_assigned(schedule, project, sender_id=actor.id)
    return schedule


def update_schedule(schedule: Schedule, data: dict, actor=None) -> Schedule:
    """
    Edit fields and/or move the entry's status.

    Raises:
        PermissionDenied, ValidationError, TransitionError
    """
    project = db.session.get(Project, schedule.project_id)
    _require_manager(actor, project)
    values, errors = _clean(data, partial=True)

    new_status = None
    if "status" in data:
        new_status = data.get("status")
        if new_status not in SCHEDULE_STATUSES:
            errors["status"] = f"Status must be one of: {', '.join(sorted(SCHEDULE_STATUSES))}"
            new_status = None
    if errors:
        raise ValidationError("Invalid schedule update", details=errors)

    if new_status is not None and new_status != schedule.status:
        if not validate_schedule_transition(schedule.status, new_status):
            raise TransitionError(
                "Schedule", schedule.status, new_status,
                allowed=SCHEDULE_TRANSITIONS.get(schedule.status, []),
            )
        values["status"] = new_status

    changes = {}
    for attr, value in values.items():
        if getattr(schedule, attr) != value:
            changes[attr] = {"old": getattr(schedule, attr), "new": value}
            setattr(schedule, attr, value)
    db.session.flush()

    if changes:
        try:
            write_audit(
                entity_type="schedule",
                entity_id=schedule.id,
                action="schedule.update",
                actor_id=actor.id,
                project_id=schedule.project_id,
                diff=changes,
            )
        except Exception:
            logger.warning("Audit log failed for schedule update; main flow unaffected", exc_info=True)
    if "assigned_to" in changes:
        NotificationService.notify_schedule_assigned(schedule, project, sender_id=actor.id)
    return schedule


def delete_schedule(schedule: Schedule, actor=None) -> None:
    project = db.session.get(Project, schedule.project_id)
    _require_manager(actor, project)
    snapshot = {"title": schedule.title, "schedule_date": schedule.schedule_date, "status": schedule.status}
    schedule_id = schedule.id
    db.session.delete(schedule)
    db.session.flush()

    logger.info("Schedule %s deleted from project %s", schedule_id, project.id,
                extra={"project_id": project.id, "profile_id": actor.id})
    try:
        write_audit(
            entity_type="schedule",
            entity_id=schedule_id,
            action="schedule.delete",
            actor_id=actor.id,
            project_id=project.id,
            diff=snapshot,
        )
    except Exception:
        logger.warning("Audit log failed for schedule deletion; main flow unaffected", exc_info=True)
