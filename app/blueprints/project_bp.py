"""
Project Blueprint.

Wizard validation, project CRUD, lifecycle transitions, phases and team.

Endpoints:
    POST   /api/v1/projects/validate                  wizard step check
    GET    /api/v1/projects/phase-defaults            phase plan for a type
    GET    /api/v1/projects                           list (status, client_id, mine)
    POST   /api/v1/projects                           create via wizard (admin_lead)
    GET    /api/v1/projects/<id>                      detail with phases + team
    PUT    /api/v1/projects/<id>                      edit fields
    POST   /api/v1/projects/<id>/transition           change status
    GET    /api/v1/projects/<id>/transitions          allowed next statuses
    GET    /api/v1/projects/<id>/history              audit trail
    GET    /api/v1/projects/<id>/phases
    GET    /api/v1/projects/<id>/team
    POST   /api/v1/projects/<id>/team
    DELETE /api/v1/projects/<id>/team/<member_id>

Layer contract:
    - Blueprint: parse input, call service, commit, return JSON.
    - Service exceptions are mapped to HTTP by the app-level handlers.
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import paginate_query
from app.middleware.actor_context import current_actor, require_roles
from app.models.project import Project, ProjectPhase
from app.models.status import DEFAULT_WORKFLOW
from app.services import project_service
from app.services.project_lifecycle import get_available_transitions, transition_project
from app.services.project_wizard import (
    FORM_STEPS,
    build_phase_plan,
    create_project,
    resolve_phase_durations,
    total_duration,
    validate_form,
)
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")

TRANSITION_ROLES = ("admin_lead", "project_lead", "head_consultant")


# ── Wizard ─────────────────────────────────────────────────────────────────────

@project_bp.route("/projects/validate", methods=["POST"])
def validate_project_form():
    """Validate one wizard step without persisting anything."""
    data = request.get_json(silent=True) or {}
    form = data.get("form")
    if not isinstance(form, dict):
        return api_error(E.VALIDATION_REQUIRED, "form object is required")
    step = data.get("step", 0)
    try:
        errors = validate_form(form, step)
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    return jsonify({
        "step": step,
        "step_name": FORM_STEPS[step],
        "errors": errors,
        "can_advance": not errors,
    })


@project_bp.route("/projects/phase-defaults", methods=["GET"])
def phase_defaults():
    application_type = request.args.get("application_type", "SLF")
    durations = resolve_phase_durations(application_type)
    return jsonify({
        "application_type": application_type,
        "phase_durations": durations,
        "estimated_duration": total_duration(durations),
        "phases": build_phase_plan(application_type, durations),
    })


# ── CRUD ───────────────────────────────────────────────────────────────────────

@project_bp.route("/projects", methods=["GET"])
def list_projects():
    member_id = None
    if request.args.get("mine") in ("1", "true"):
        actor = current_actor()
        if actor is None:
            return api_error(E.UNAUTHENTICATED, "Acting profile required for mine=1")
        member_id = actor.id

    query = project_service.list_projects(
        status=request.args.get("status") or None,
        client_id=request.args.get("client_id", type=int),
        member_id=member_id,
    )
    items, total = paginate_query(query)
    return jsonify({"items": [p.to_dict() for p in items], "total": total})


@project_bp.route("/projects", methods=["POST"])
@require_roles("admin_lead")
def create():
    form = request.get_json(silent=True)
    if not isinstance(form, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON body is required")

    project = create_project(form, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict(include_children=True)), 201


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    return jsonify(project.to_dict(include_children=True))


@project_bp.route("/projects/<int:project_id>", methods=["PUT"])
@require_roles("admin_lead", "project_lead")
def update_project(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON body is required")

    project_service.update_project(project, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict(include_children=True))


# ── Lifecycle ──────────────────────────────────────────────────────────────────

@project_bp.route("/projects/<int:project_id>/transition", methods=["POST"])
@require_roles(*TRANSITION_ROLES)
def transition(project_id):
    data = request.get_json(silent=True) or {}
    new_status = str(data.get("status") or "").strip()
    if not new_status:
        return api_error(E.VALIDATION_REQUIRED, "status is required")

    result = transition_project(
        project_id,
        new_status,
        current_actor(),
        workflow=data.get("workflow") or DEFAULT_WORKFLOW,
        note=data.get("note"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


@project_bp.route("/projects/<int:project_id>/transitions", methods=["GET"])
def available_transitions(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    workflow = request.args.get("workflow") or DEFAULT_WORKFLOW
    return jsonify({
        "project_id": project.id,
        "status": project.status,
        "workflow": workflow,
        "transitions": get_available_transitions(project, workflow),
    })


@project_bp.route("/projects/<int:project_id>/history", methods=["GET"])
def history(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    rows = project_service.get_project_history(project.id)
    return jsonify({"project_id": project.id, "items": [r.to_dict() for r in rows], "total": len(rows)})


@project_bp.route("/projects/<int:project_id>/phases", methods=["GET"])
def phases(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    rows = project.phases.order_by(ProjectPhase.phase).all()
    return jsonify({
        "project_id": project.id,
        "items": [p.to_dict() for p in rows],
        "estimated_duration": project.estimated_duration,
    })


# ── Team ───────────────────────────────────────────────────────────────────────

@project_bp.route("/projects/<int:project_id>/team", methods=["GET"])
def list_team(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    members = project_service.list_team(project)
    return jsonify({"items": [m.to_dict() for m in members], "total": len(members)})


@project_bp.route("/projects/<int:project_id>/team", methods=["POST"])
@require_roles("admin_lead", "project_lead")
def add_team_member(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if data.get("user_id") is None:
        return api_error(E.VALIDATION_REQUIRED, "user_id is required")
    if not data.get("role"):
        return api_error(E.VALIDATION_REQUIRED, "role is required")

    member = project_service.assign_team_member(project, data["user_id"], data["role"], actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(member.to_dict()), 201


@project_bp.route("/projects/<int:project_id>/team/<int:member_id>", methods=["DELETE"])
@require_roles("admin_lead", "project_lead")
def remove_team_member(project_id, member_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    project_service.remove_team_member(project, member_id, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": member_id})
