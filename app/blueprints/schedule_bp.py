"""
Schedule Blueprint.

Endpoints:
    GET    /api/v1/schedules                          own calendar (?status=)
    GET    /api/v1/projects/<id>/schedules            (?status=)
    POST   /api/v1/projects/<id>/schedules            (admin_lead, project_lead)
    GET    /api/v1/schedules/<id>
    PUT    /api/v1/schedules/<id>                     fields and/or status
    DELETE /api/v1/schedules/<id>
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import paginate_query
from app.middleware.actor_context import current_actor, require_roles
from app.models.profile import STAFF_ROLES
from app.models.project import Project
from app.models.schedule import Schedule
from app.services import schedule_service
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

schedule_bp = Blueprint("schedule", __name__, url_prefix="/api/v1")

MANAGE_ROLES = ("admin_lead", "project_lead")


@schedule_bp.route("/schedules", methods=["GET"])
@require_roles(*STAFF_ROLES)
def my_schedules():
    query = schedule_service.list_schedules_for_profile(
        current_actor(), status=request.args.get("status") or None,
    )
    items, total = paginate_query(query)
    return jsonify({"items": [s.to_dict() for s in items], "total": total})


@schedule_bp.route("/projects/<int:project_id>/schedules", methods=["GET"])
def list_project_schedules(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    items = schedule_service.list_schedules(project, status=request.args.get("status") or None)
    return jsonify({"items": [s.to_dict() for s in items], "total": len(items)})


@schedule_bp.route("/projects/<int:project_id>/schedules", methods=["POST"])
@require_roles(*MANAGE_ROLES)
def create(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON body is required")

    schedule = schedule_service.create_schedule(project, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(schedule.to_dict()), 201


@schedule_bp.route("/schedules/<int:schedule_id>", methods=["GET"])
def get_schedule(schedule_id):
    schedule, err = get_or_404(Schedule, schedule_id)
    if err:
        return err
    return jsonify(schedule.to_dict())


@schedule_bp.route("/schedules/<int:schedule_id>", methods=["PUT"])
@require_roles(*MANAGE_ROLES)
def update(schedule_id):
    schedule, err = get_or_404(Schedule, schedule_id)
    if err:
        return err
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON body is required")

    schedule_service.update_schedule(schedule, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(schedule.to_dict())


@schedule_bp.route("/schedules/<int:schedule_id>", methods=["DELETE"])
@require_roles(*MANAGE_ROLES)
def delete(schedule_id):
    schedule, err = get_or_404(Schedule, schedule_id)
    if err:
        return err
    schedule_service.delete_schedule(schedule, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": schedule_id})
