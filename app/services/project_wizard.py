"""
Project Creation Wizard Service

One parameterised wizard for SLF and PBG projects:

    step 0  details        name, application_type (+ optional category), location
    step 1  client         client_id
    step 2  timeline       priority, phase_durations
    step 3  team           project_lead_id, inspector_ids
    step 4  confirmation   everything above

``validate_form`` is pure and drives step advancement; ``create_project``
re-validates the whole form and writes the project, its five phases and the
team rows in one unit of work (flush only; the caller commits).

Usage:
    from app.services.project_wizard import can_advance, create_project

    if can_advance(form, step):
        ...
    project = create_project(form, actor=g.profile)
"""

import logging
from datetime import UTC, datetime

from app.core.exceptions import ValidationError
from app.models import db
from app.models.audit import write_audit
from app.models.profile import Client, Profile
from app.models.project import (
    APPLICATION_TYPES,
    PHASE_KEYS,
    PHASE_TEMPLATES,
    PRIORITIES,
    VALID_APPLICATION_TYPES,
    Project,
    ProjectPhase,
    ProjectTeam,
    application_category,
)
from app.services.notification import NotificationService

logger = logging.getLogger(__name__)

FORM_STEPS = ("details", "client", "timeline", "team", "confirmation")

MIN_NAME_LENGTH = 3
MIN_LOCATION_LENGTH = 5


# ── Validation ───────────────────────────────────────────────────────────────

def _text(form: dict, key: str) -> str:
    value = form.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _missing(form: dict, key: str) -> bool:
    return form.get(key) in (None, "")


def _is_positive_int(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    if isinstance(value, str) and value.strip().isdigit():
        return int(value) > 0
    return False


def _validate_details(form: dict) -> dict:
    errors = {}
    if len(_text(form, "name")) < MIN_NAME_LENGTH:
        errors["name"] = f"Project name must be at least {MIN_NAME_LENGTH} characters"

    app_type = _text(form, "application_type")
    category = _text(form, "application_category")
    if not app_type:
        errors["application_type"] = "Application type is required"
    elif app_type not in VALID_APPLICATION_TYPES:
        errors["application_type"] = f"Unknown application type: {app_type}"
    elif category:
        if category not in APPLICATION_TYPES:
            errors["application_category"] = f"Unknown application category: {category}"
        elif application_category(app_type) != category:
            errors["application_type"] = f"{app_type} is not a {category} application type"

    if len(_text(form, "location")) < MIN_LOCATION_LENGTH:
        errors["location"] = f"Location must be at least {MIN_LOCATION_LENGTH} characters"
    return errors


def _validate_client(form: dict) -> dict:
    if _missing(form, "client_id"):
        return {"client_id": "Client is required"}
    return {}


def _validate_timeline(form: dict) -> dict:
    errors = {}
    priority = _text(form, "priority")
    if not priority:
        errors["priority"] = "Priority is required"
    elif priority not in PRIORITIES:
        errors["priority"] = f"Priority must be one of: {', '.join(PRIORITIES)}"

    durations = form.get("phase_durations")
    if durations is None:
        return errors
    if not isinstance(durations, dict):
        errors["phase_durations"] = "Phase durations must be an object keyed phase1..phase5"
        return errors
    for key, value in durations.items():
        if key not in PHASE_KEYS:
            errors[f"phase_durations.{key}"] = f"Unknown phase key: {key}"
        elif not _is_positive_int(value):
            errors[f"phase_durations.{key}"] = "Duration must be a positive number of days"
    return errors


def _validate_team(form: dict) -> dict:
    errors = {}
    if _missing(form, "project_lead_id"):
        errors["project_lead_id"] = "Project lead is required"
    inspectors = form.get("inspector_ids")
    if inspectors is not None and not isinstance(inspectors, list):
        errors["inspector_ids"] = "inspector_ids must be a list"
    return errors


_STEP_VALIDATORS = (_validate_details, _validate_client, _validate_timeline, _validate_team)


def validate_form(form: dict, step: int) -> dict:
    """
    Field errors for one wizard step; empty dict means the step is complete.

    The confirmation step (4) re-checks every earlier step.

    Raises:
        ValueError: step outside 0..4
    """
    if isinstance(step, bool) or not isinstance(step, int) or not 0 <= step < len(FORM_STEPS):
        raise ValueError(f"step must be between 0 and {len(FORM_STEPS) - 1}, got {step!r}")
    form = form or {}
    if step == len(FORM_STEPS) - 1:
        return validate_all(form)
    return _STEP_VALIDATORS[step](form)


def validate_all(form: dict) -> dict:
    errors = {}
    for validator in _STEP_VALIDATORS:
        errors.update(validator(form or {}))
    return errors


def can_advance(form: dict, step: int) -> bool:
    return not validate_form(form, step)


# ── Phases ───────────────────────────────────────────────────────────────────

def _template(application_type) -> tuple:
    return PHASE_TEMPLATES[application_category(application_type) or "SLF"]


def default_phase_durations(application_type=None) -> dict:
    """phase1..phase5 → default days for the application's category."""
    return {key: row[1] for key, row in zip(PHASE_KEYS, _template(application_type))}


def total_duration(durations: dict) -> int:
    return sum(int(durations.get(key) or 0) for key in PHASE_KEYS)


def resolve_phase_durations(application_type, overrides: dict | None = None) -> dict:
    """Defaults for the category with any valid overrides applied."""
    durations = default_phase_durations(application_type)
    for key, value in (overrides or {}).items():
        if key in durations:
            durations[key] = int(value)
    return durations


def build_phase_plan(application_type, durations: dict | None = None) -> list[dict]:
    """Five phase rows in order; the first starts in progress, the rest pending."""
    resolved = resolve_phase_durations(application_type, durations)
    plan = []
    for index, (key, (name, _default, description)) in enumerate(
        zip(PHASE_KEYS, _template(application_type))
    ):
        plan.append({
            "phase": index + 1,
            "phase_name": name,
            "description": description,
            "estimated_duration": resolved[key],
            "status": "in_progress" if index == 0 else "pending",
            "order_index": index,
        })
    return plan


# ── Submission ───────────────────────────────────────────────────────────────

def _check_references(form: dict) -> tuple[int, int, list[int]]:
    errors = {}
    client_id = project_lead_id = None
    try:
        client_id = int(form["client_id"])
    except (TypeError, ValueError):
        errors["client_id"] = "client_id must be an integer"
    else:
        if db.session.get(Client, client_id) is None:
            errors["client_id"] = "Client not found"

    try:
        project_lead_id = int(form["project_lead_id"])
    except (TypeError, ValueError):
        errors["project_lead_id"] = "project_lead_id must be an integer"
    else:
        lead = db.session.get(Profile, project_lead_id)
        if lead is None:
            errors["project_lead_id"] = "Project lead not found"
        elif lead.role != "project_lead":
            errors["project_lead_id"] = "Selected profile is not a project lead"

    inspector_ids = []
    for raw in form.get("inspector_ids") or []:
        try:
            inspector_id = int(raw)
        except (TypeError, ValueError):
            errors["inspector_ids"] = "inspector_ids must contain integer ids"
            continue
        inspector = db.session.get(Profile, inspector_id)
        if inspector is None or inspector.role != "inspector":
            errors["inspector_ids"] = f"Profile {inspector_id} is not an inspector"
        elif inspector_id not in inspector_ids:
            inspector_ids.append(inspector_id)

    if errors:
        raise ValidationError("Project form references unknown records", details=errors)
    return client_id, project_lead_id, inspector_ids


def create_project(form: dict, actor=None) -> Project:
    """
    Create a project with its phase plan and team in one unit of work.

    Returns:
        The flushed Project.

    Raises:
        ValidationError: form errors (``details`` is the field map)
    """
    errors = validate_all(form)
    if errors:
        raise ValidationError("Project form is invalid", details=errors)

    client_id, project_lead_id, inspector_ids = _check_references(form)
    actor_id = actor.id if actor is not None else None
    application_type = _text(form, "application_type")
    durations = resolve_phase_durations(application_type, form.get("phase_durations"))

    project = Project(
        name=_text(form, "name"),
        application_type=application_type,
        status="draft",
        location=_text(form, "location"),
        address=_text(form, "address") or None,
        city=_text(form, "city") or None,
        description=_text(form, "description") or None,
        priority=_text(form, "priority"),
        client_id=client_id,
        project_lead_id=project_lead_id,
        admin_lead_id=actor_id if actor is not None and actor.role == "admin_lead" else None,
        created_by=actor_id,
        phase_durations=durations,
        estimated_duration=total_duration(durations),
    )
    db.session.add(project)
    db.session.flush()

    now = datetime.now(UTC)
    for row in build_phase_plan(application_type, durations):
        phase = ProjectPhase(project_id=project.id, **row)
        if phase.status == "in_progress":
            phase.started_at = now
        db.session.add(phase)

    members = [(project_lead_id, "project_lead")] + [(i, "inspector") for i in inspector_ids]
    for user_id, role in members:
        db.session.add(ProjectTeam(
            project_id=project.id, user_id=user_id, role=role, assigned_by=actor_id,
        ))
    db.session.flush()

    logger.info(
        "Project %s created via wizard (%s, %d days, %d team members)",
        project.id, application_type, project.estimated_duration, len(members),
        extra={"project_id": project.id, "profile_id": actor_id},
    )

    try:
        write_audit(
            entity_type="project",
            entity_id=project.id,
            action="project.create",
            actor_id=actor_id,
            project_id=project.id,
            diff={
                "status": {"old": None, "new": "draft"},
                "application_type": application_type,
                "estimated_duration": project.estimated_duration,
            },
        )
    except Exception:
        logger.warning("Audit log failed for project creation; main flow unaffected", exc_info=True)

    for user_id, role in members:
        NotificationService.notify_team_assigned(project, user_id, role, sender_id=actor_id)

    return project
