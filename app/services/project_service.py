"""Project queries, field edits and team membership."""

from __future__ import annotations

import logging

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.models.audit import AuditLog, write_audit
from app.models.profile import Client, Profile
from app.models.project import (
    PRIORITIES,
    TEAM_ROLES,
    VALID_APPLICATION_TYPES,
    Project,
    ProjectTeam,
)
from app.services.notification import NotificationService
from app.services.project_wizard import MIN_LOCATION_LENGTH, MIN_NAME_LENGTH

logger = logging.getLogger(__name__)

# Editable through PUT; status only moves through transitions.
EDITABLE_FIELDS = ("name", "location", "address", "city", "description", "priority", "application_type")
EDITABLE_REFS = ("client_id", "project_lead_id")


def get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def list_projects(
    *,
    status: str | None = None,
    client_id: int | None = None,
    member_id: int | None = None,
):
    """Query for projects, newest first, optionally filtered."""
    query = Project.query
    if status:
        query = query.filter(Project.status == status)
    if client_id is not None:
        query = query.filter(Project.client_id == client_id)
    if member_id is not None:
        team_project_ids = db.session.query(ProjectTeam.project_id).filter(ProjectTeam.user_id == member_id)
        query = query.filter(
            (Project.project_lead_id == member_id)
            | (Project.admin_lead_id == member_id)
            | (Project.created_by == member_id)
            | (Project.id.in_(team_project_ids))
        )
    return query.order_by(Project.created_at.desc(), Project.id.desc())


def update_project(project: Project, data: dict, actor=None) -> Project:
    """Apply field edits; raises ValidationError with a field map."""
    if "status" in data:
        raise ValidationError(
            "status cannot be edited directly",
            details={"status": "Use POST /projects/<id>/transition"},
        )

    errors = {}
    changes = {}
    for attr in EDITABLE_FIELDS:
        if attr not in data:
            continue
        value = data.get(attr)
        value = str(value).strip() if value is not None else None
        if attr == "name" and (not value or len(value) < MIN_NAME_LENGTH):
            errors[attr] = f"Project name must be at least {MIN_NAME_LENGTH} characters"
            continue
        if attr == "location" and (not value or len(value) < MIN_LOCATION_LENGTH):
            errors[attr] = f"Location must be at least {MIN_LOCATION_LENGTH} characters"
            continue
        if attr == "priority" and value not in PRIORITIES:
            errors[attr] = f"Priority must be one of: {', '.join(PRIORITIES)}"
            continue
        if attr == "application_type" and value not in VALID_APPLICATION_TYPES:
            errors[attr] = f"Unknown application type: {value}"
            continue
        if getattr(project, attr) != (value or None):
            changes[attr] = {"old": getattr(project, attr), "new": value or None}

    for attr in EDITABLE_REFS:
        if attr not in data:
            continue
        raw = data.get(attr)
        if raw is None:
            changes[attr] = {"old": getattr(project, attr), "new": None}
            continue
        try:
            ref_id = int(raw)
        except (TypeError, ValueError):
            errors[attr] = f"{attr} must be an integer"
            continue
        if attr == "client_id" and db.session.get(Client, ref_id) is None:
            errors[attr] = "Client not found"
            continue
        if attr == "project_lead_id":
            lead = db.session.get(Profile, ref_id)
            if lead is None or lead.role != "project_lead":
                errors[attr] = "Selected profile is not a project lead"
                continue
        if getattr(project, attr) != ref_id:
            changes[attr] = {"old": getattr(project, attr), "new": ref_id}

    if errors:
        raise ValidationError("Invalid project update", details=errors)

    for attr, change in changes.items():
        setattr(project, attr, change["new"])
    db.session.flush()

    if changes:
        try:
            write_audit(
                entity_type="project",
                entity_id=project.id,
                action="project.update",
                actor_id=actor.id if actor is not None else None,
                project_id=project.id,
                diff=changes,
            )
        except Exception:
            logger.warning("Audit log failed for project update; main flow unaffected", exc_info=True)
    return project


def get_project_history(project_id: int):
    """Audit rows for a project, oldest first."""
    return (
        AuditLog.query
        .filter(AuditLog.project_id == project_id)
        .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
        .all()
    )


# ── Team ─────────────────────────────────────────────────────────────────────

def list_team(project: Project) -> list[ProjectTeam]:
    return project.team.order_by(ProjectTeam.assigned_at.asc(), ProjectTeam.id.asc()).all()


def assign_team_member(project: Project, profile_id, role: str, actor=None) -> ProjectTeam:
    """
    Add a profile to the project team.

    Raises:
        ValidationError: bad role or unknown profile
        ConflictError: profile already holds that role on the project
    """
    if role not in TEAM_ROLES:
        raise ValidationError(
            f"Unknown team role: {role}",
            details={"role": f"must be one of {', '.join(sorted(TEAM_ROLES))}"},
        )
    try:
        profile_id = int(profile_id)
    except (TypeError, ValueError) as exc:
        raise ValidationError("user_id must be an integer", details={"user_id": "must be an integer"}) from exc

    profile = db.session.get(Profile, profile_id)
    if profile is None:
        raise ValidationError("Profile not found", details={"user_id": "Profile not found"})

    existing = ProjectTeam.query.filter_by(project_id=project.id, user_id=profile_id, role=role).first()
    if existing is not None:
        raise ConflictError("ProjectTeam", "user_id/role", f"{profile_id}/{role}")

    actor_id = actor.id if actor is not None else None
    member = ProjectTeam(project_id=project.id, user_id=profile_id, role=role, assigned_by=actor_id)
    db.session.add(member)
    db.session.flush()

    try:
        write_audit(
            entity_type="project_team",
            entity_id=member.id,
            action="project_team.assign",
            actor_id=actor_id,
            project_id=project.id,
            diff={"user_id": profile_id, "role": role},
        )
    except Exception:
        logger.warning("Audit log failed for team assignment; main flow unaffected", exc_info=True)

    NotificationService.notify_team_assigned(project, profile_id, role, sender_id=actor_id)
    return member


def remove_team_member(project: Project, member_id: int, actor=None) -> None:
    member = db.session.get(ProjectTeam, member_id)
    if member is None or member.project_id != project.id:
        raise NotFoundError(resource="ProjectTeam", resource_id=member_id)

    diff = {"user_id": member.user_id, "role": member.role}
    db.session.delete(member)
    db.session.flush()

    try:
        write_audit(
            entity_type="project_team",
            entity_id=member_id,
            action="project_team.remove",
            actor_id=actor.id if actor is not None else None,
            project_id=project.id,
            diff=diff,
        )
    except Exception:
        logger.warning("Audit log failed for team removal; main flow unaffected", exc_info=True)
