"""
Project Lifecycle Service

Moves a project through its status pipeline with:
  - Transition validation against a named workflow table
  - Phase synchronisation (timeline rows follow the status)
  - Audit log
  - Notifications to the project lead and admin lead

Workflows:
  pipeline     canonical 12-status sequence (default)
  team_leader  team-leader table, includes four alternate statuses

Usage:
    from app.services.project_lifecycle import transition_project

    result = transition_project(
        project_id=7,
        new_status="inspection_scheduled",
        actor=g.profile,
        workflow="pipeline",
        note="Site visit booked",
    )
"""

import logging
from datetime import UTC, datetime

from app.core.exceptions import NotFoundError, TransitionError, ValidationError
from app.models import db
from app.models.audit import write_audit
from app.models.project import Project, ProjectPhase
from app.models.status import (
    DEFAULT_WORKFLOW,
    WORKFLOWS,
    get_project_phase,
    get_status_label,
    next_allowed_statuses,
)
from app.services.notification import NotificationService
from app.utils.helpers import optional_text

logger = logging.getLogger(__name__)


def _check_workflow(workflow: str) -> str:
    workflow = workflow or DEFAULT_WORKFLOW
    if not isinstance(workflow, str):
        raise ValidationError("workflow must be a string", details={"workflow": "must be a string"})
    if workflow not in WORKFLOWS:
        raise ValidationError(
            f"Unknown workflow: {workflow}",
            details={"workflow": f"must be one of {', '.join(sorted(WORKFLOWS))}"},
        )
    return workflow


def validate_transition(project: Project, new_status: str, workflow: str = DEFAULT_WORKFLOW) -> dict:
    """Validate whether ``new_status`` is reachable from the project's status."""
    allowed = next_allowed_statuses(project.status, workflow)
    if new_status not in allowed:
        if not allowed:
            reason = f"'{project.status}' has no outgoing transitions in workflow '{workflow}'"
        else:
            reason = f"Cannot move from '{project.status}' to '{new_status}'"
        return {"valid": False, "from": project.status, "to": new_status,
                "reason": reason, "allowed": sorted(allowed)}
    return {"valid": True, "from": project.status, "to": new_status,
            "reason": None, "allowed": sorted(allowed)}


def get_available_transitions(project: Project, workflow: str = DEFAULT_WORKFLOW) -> list[dict]:
    """Allowed next statuses for ``project`` with their labels, sorted by status."""
    workflow = _check_workflow(workflow)
    return [
        {"status": s, "label": get_status_label(s)}
        for s in sorted(next_allowed_statuses(project.status, workflow))
    ]


def sync_phases(project: Project, status: str) -> list[ProjectPhase]:
    """
    Align phase rows with ``status``.

    Phases before the status's timeline phase are completed, the current one
    is in progress, later ones pending. ``completed`` closes every phase;
    statuses outside the timeline (cancelled, rejected) leave rows untouched.
    """
    phases = project.phases.order_by(ProjectPhase.phase).all()
    if not phases:
        return []

    current = get_project_phase(status)
    if current == 0:
        return phases

    now = datetime.now(UTC)
    for phase in phases:
        if status == "completed" or phase.phase < current:
            target = "completed"
        elif phase.phase == current:
            target = "in_progress"
        else:
            target = "pending"

        if phase.status == target:
            continue
        if target == "completed":
            phase.completed_at = now
            phase.started_at = phase.started_at or now
        elif target == "in_progress":
            phase.started_at = phase.started_at or now
            phase.completed_at = None
        else:
            phase.started_at = None
            phase.completed_at = None
        phase.status = target
    return phases


def transition_project(
    project_id: int,
    new_status: str,
    actor=None,
    *,
    workflow: str = DEFAULT_WORKFLOW,
    note: str | None = None,
) -> dict:
    """
    Execute a project status transition.

    Args:
        project_id: Project PK
        new_status: Target status
        actor: Acting Profile (None for system transitions)
        workflow: Name of the transition table to enforce
        note: Optional free-text reason, kept in the audit diff

    Returns:
        {"project_id", "previous_status", "new_status", "workflow", "phase",
         "label"}

    Raises:
        NotFoundError, ValidationError (unknown workflow), TransitionError
    """
    workflow = _check_workflow(workflow)
    note = optional_text(note, "note")
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)

    validation = validate_transition(project, new_status, workflow)
    if not validation["valid"]:
        raise TransitionError(
            "Project", project.status, new_status,
            allowed=validation["allowed"], message=validation["reason"],
        )

    previous_status = project.status
    project.status = new_status
    sync_phases(project, new_status)
    db.session.flush()

    actor_id = actor.id if actor is not None else None
    logger.info(
        "Project %s: %s → %s (workflow=%s)", project.id, previous_status, new_status, workflow,
        extra={"project_id": project.id, "from_status": previous_status,
               "to_status": new_status, "workflow": workflow, "profile_id": actor_id},
    )

    diff = {"status": {"old": previous_status, "new": new_status}, "workflow": workflow}
    if note:
        diff["note"] = note
    try:
        write_audit(
            entity_type="project",
            entity_id=project.id,
            action="project.transition",
            actor_id=actor_id,
            project_id=project.id,
            diff=diff,
        )
    except Exception:
        logger.warning("Audit log failed for project transition; main flow unaffected", exc_info=True)

    NotificationService.notify_status_changed(project, previous_status, new_status, sender_id=actor_id)

    return {
        "project_id": project.id,
        "previous_status": previous_status,
        "new_status": new_status,
        "label": get_status_label(new_status),
        "workflow": workflow,
        "phase": get_project_phase(new_status),
    }
