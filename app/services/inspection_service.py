"""
Inspection Service

Scheduling, status transitions and evidence capture for site inspections.

Evidence rules:
  - checklist responses and photos are only accepted while the inspection
    is in progress
  - one response per checklist item (re-answering updates it)
  - photo coordinates come in pairs and must be valid WGS84 degrees
"""

import logging
from datetime import UTC, datetime

from app.core.exceptions import NotFoundError, TransitionError, ValidationError
from app.models import db
from app.models.audit import write_audit
from app.models.inspection import ChecklistResponse, Inspection, InspectionPhoto
from app.models.profile import Profile
from app.models.project import Project
from app.models.status import INSPECTION_TRANSITIONS, is_final_status, validate_inspection_transition
from app.services.notification import NotificationService
from app.utils.helpers import optional_text, parse_date_input, parse_time_input

logger = logging.getLogger(__name__)

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def get_inspection(inspection_id: int) -> Inspection:
    inspection = db.session.get(Inspection, inspection_id)
    if inspection is None:
        raise NotFoundError(resource="Inspection", resource_id=inspection_id)
    return inspection


def list_inspections(project: Project) -> list[Inspection]:
    return (
        Inspection.query
        .filter_by(project_id=project.id)
        .order_by(Inspection.scheduled_date.asc(), Inspection.id.asc())
        .all()
    )


# ── Scheduling ───────────────────────────────────────────────────────────────

def schedule_inspection(
    project: Project,
    inspector_id,
    scheduled_date,
    start_time=None,
    end_time=None,
    notes: str | None = None,
    actor=None,
) -> Inspection:
    """
    Schedule a site visit.

    Raises:
        ValidationError: bad inspector, date/time, or the project is final
    """
    errors = {}
    if is_final_status(project.status):
        errors["project_id"] = f"Project is {project.status}; no further inspections"

    inspector = None
    try:
        inspector = db.session.get(Profile, int(inspector_id))
    except (TypeError, ValueError):
        errors["inspector_id"] = "inspector_id must be an integer"
    else:
        if inspector is None or inspector.role != "inspector":
            errors["inspector_id"] = "Selected profile is not an inspector"

    parsed = {}
    for field, value, parser in (
        ("scheduled_date", scheduled_date, parse_date_input),
        ("start_time", start_time, parse_time_input),
        ("end_time", end_time, parse_time_input),
    ):
        try:
            parsed[field] = parser(value)
        except ValueError as exc:
            errors[field] = str(exc)
    if not errors.get("scheduled_date") and parsed.get("scheduled_date") is None:
        errors["scheduled_date"] = "scheduled_date is required"
    if parsed.get("start_time") and parsed.get("end_time") and parsed["end_time"] <= parsed["start_time"]:
        errors["end_time"] = "end_time must be after start_time"

    try:
        notes = optional_text(notes, "notes")
    except ValidationError as exc:
        errors.update(exc.details)

    if errors:
        raise ValidationError("Invalid inspection schedule", details=errors)

    actor_id = actor.id if actor is not None else None
    inspection = Inspection(
        project_id=project.id,
        inspector_id=inspector.id,
        scheduled_date=parsed["scheduled_date"],
        start_time=parsed["start_time"],
        end_time=parsed["end_time"],
        status="scheduled",
        notes=notes,
    )
    db.session.add(inspection)
    db.session.flush()

    logger.info("Inspection %s scheduled for project %s on %s",
                inspection.id, project.id, inspection.scheduled_date,
                extra={"project_id": project.id, "profile_id": actor_id})

    try:
        write_audit(
            entity_type="inspection",
            entity_id=inspection.id,
            action="inspection.schedule",
            actor_id=actor_id,
            project_id=project.id,
            diff={"inspector_id": inspector.id, "scheduled_date": inspection.scheduled_date},
        )
    except Exception:
        logger.warning("Audit log failed for inspection scheduling; main flow unaffected", exc_info=True)

    NotificationService.notify_inspection_scheduled(inspection, project, sender_id=actor_id)
    return inspection


# ── Transitions ──────────────────────────────────────────────────────────────

def transition_inspection(inspection: Inspection, new_status: str, actor=None, notes: str | None = None) -> dict:
    """
    Move an inspection to ``new_status``.

    Completing sets ``completed_at``; re-opening a rejected inspection
    clears it.
    """
    if not validate_inspection_transition(inspection.status, new_status):
        raise TransitionError(
            "Inspection", inspection.status, new_status,
            allowed=INSPECTION_TRANSITIONS.get(inspection.status, []),
        )

    notes = optional_text(notes, "notes")
    previous_status = inspection.status
    inspection.status = new_status
    if new_status == "completed":
        inspection.completed_at = datetime.now(UTC)
    elif new_status == "in_progress":
        inspection.completed_at = None
    if notes:
        inspection.notes = notes
    db.session.flush()

    actor_id = actor.id if actor is not None else None
    logger.info("Inspection %s: %s → %s", inspection.id, previous_status, new_status,
                extra={"project_id": inspection.project_id, "from_status": previous_status,
                       "to_status": new_status, "profile_id": actor_id})

    try:
        write_audit(
            entity_type="inspection",
            entity_id=inspection.id,
            action="inspection.transition",
            actor_id=actor_id,
            project_id=inspection.project_id,
            diff={"status": {"old": previous_status, "new": new_status}},
        )
    except Exception:
        logger.warning("Audit log failed for inspection transition; main flow unaffected", exc_info=True)

    return {
        "inspection_id": inspection.id,
        "previous_status": previous_status,
        "new_status": new_status,
    }


# ── Evidence ─────────────────────────────────────────────────────────────────

def _require_in_progress(inspection: Inspection) -> None:
    if inspection.status != "in_progress":
        raise ValidationError(
            "Evidence can only be recorded while the inspection is in progress",
            details={"status": inspection.status},
        )


def _coordinate(value, name: str, bounds: tuple[float, float], errors: dict):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        errors[name] = f"{name} must be a number"
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors[name] = f"{name} must be a number"
        return None
    low, high = bounds
    if not low <= number <= high:
        errors[name] = f"{name} must be between {low:g} and {high:g}"
        return None
    return number


def validate_geotag(latitude, longitude, *, required: bool = False) -> tuple[float | None, float | None]:
    """
    Normalise a coordinate pair.

    Raises:
        ValidationError: out of range, non-numeric, half a pair, or missing
            when ``required``
    """
    errors = {}
    lat = _coordinate(latitude, "latitude", LATITUDE_RANGE, errors)
    lng = _coordinate(longitude, "longitude", LONGITUDE_RANGE, errors)
    if not errors:
        if (lat is None) != (lng is None):
            errors["geotag"] = "latitude and longitude must be given together"
        elif required and lat is None:
            errors["geotag"] = "This checklist item requires a geotagged photo"
    if errors:
        raise ValidationError("Invalid photo geotag", details=errors)
    return lat, lng


def record_checklist_response(
    inspection: Inspection,
    item_id,
    template_id=None,
    response=None,
    actor=None,
    photogeotag=None,
) -> tuple[ChecklistResponse, bool]:
    """
    Upsert the answer for one checklist item.

    Returns:
        (response row, created flag)
    """
    _require_in_progress(inspection)
    item_id = str(item_id or "").strip()
    if not item_id:
        raise ValidationError("item_id is required", details={"item_id": "item_id is required"})
    if photogeotag is not None:
        if not isinstance(photogeotag, dict):
            raise ValidationError("photogeotag_data must be an object",
                                  details={"photogeotag_data": "must be an object"})
        validate_geotag(photogeotag.get("latitude"), photogeotag.get("longitude"))

    actor_id = actor.id if actor is not None else None
    row = ChecklistResponse.query.filter_by(inspection_id=inspection.id, item_id=item_id).first()
    created = row is None
    if created:
        row = ChecklistResponse(inspection_id=inspection.id, item_id=item_id)
        db.session.add(row)
    row.template_id = str(template_id) if template_id is not None else row.template_id
    row.response = response
    row.responded_by = actor_id
    row.responded_at = datetime.now(UTC)
    if photogeotag is not None:
        row.photogeotag_data = photogeotag
    db.session.flush()
    return row, created


def list_checklist_responses(inspection: Inspection) -> list[ChecklistResponse]:
    return inspection.responses.order_by(ChecklistResponse.item_id.asc()).all()


def add_inspection_photo(
    inspection: Inspection,
    checklist_item_id=None,
    photo_url: str | None = None,
    latitude=None,
    longitude=None,
    actor=None,
    require_geotag: bool = False,
) -> InspectionPhoto:
    _require_in_progress(inspection)
    photo_url = optional_text(photo_url, "photo_url")
    if not photo_url:
        raise ValidationError("photo_url is required", details={"photo_url": "photo_url is required"})
    lat, lng = validate_geotag(latitude, longitude, required=require_geotag)

    photo = InspectionPhoto(
        inspection_id=inspection.id,
        checklist_item_id=str(checklist_item_id) if checklist_item_id is not None else None,
        photo_url=photo_url,
        latitude=lat,
        longitude=lng,
        uploaded_by=actor.id if actor is not None else None,
    )
    db.session.add(photo)
    db.session.flush()
    return photo


def list_inspection_photos(inspection: Inspection) -> list[InspectionPhoto]:
    return inspection.photos.order_by(InspectionPhoto.uploaded_at.asc(), InspectionPhoto.id.asc()).all()
