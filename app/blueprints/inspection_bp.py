"""
Inspection Blueprint.

Endpoints:
    GET  /api/v1/projects/<id>/inspections
    POST /api/v1/projects/<id>/inspections               (admin_lead, project_lead)
    GET  /api/v1/inspections/<id>
    POST /api/v1/inspections/<id>/transition             {status, notes}
    GET  /api/v1/inspections/<id>/checklist-responses
    POST /api/v1/inspections/<id>/checklist-responses    upsert by item_id
    GET  /api/v1/inspections/<id>/photos
    POST /api/v1/inspections/<id>/photos
"""

import logging

from flask import Blueprint, jsonify, request

from app.middleware.actor_context import current_actor, require_roles
from app.models.inspection import Inspection
from app.models.project import Project
from app.services import inspection_service
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

inspection_bp = Blueprint("inspection", __name__, url_prefix="/api/v1")

FIELD_ROLES = ("inspector", "project_lead")


@inspection_bp.route("/projects/<int:project_id>/inspections", methods=["GET"])
def list_inspections(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    items = inspection_service.list_inspections(project)
    return jsonify({"items": [i.to_dict() for i in items], "total": len(items)})


@inspection_bp.route("/projects/<int:project_id>/inspections", methods=["POST"])
@require_roles("admin_lead", "project_lead")
def schedule(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if data.get("inspector_id") is None:
        return api_error(E.VALIDATION_REQUIRED, "inspector_id is required")

    inspection = inspection_service.schedule_inspection(
        project,
        data["inspector_id"],
        data.get("scheduled_date"),
        start_time=data.get("start_time"),
        end_time=data.get("end_time"),
        notes=data.get("notes"),
        actor=current_actor(),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(inspection.to_dict()), 201


@inspection_bp.route("/inspections/<int:inspection_id>", methods=["GET"])
def get_inspection(inspection_id):
    inspection, err = get_or_404(Inspection, inspection_id)
    if err:
        return err
    return jsonify(inspection.to_dict(include_children=True))


@inspection_bp.route("/inspections/<int:inspection_id>/transition", methods=["POST"])
@require_roles(*FIELD_ROLES)
def transition(inspection_id):
    inspection, err = get_or_404(Inspection, inspection_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    new_status = str(data.get("status") or "").strip()
    if not new_status:
        return api_error(E.VALIDATION_REQUIRED, "status is required")

    result = inspection_service.transition_inspection(
        inspection, new_status, actor=current_actor(), notes=data.get("notes"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


# ── Evidence ───────────────────────────────────────────────────────────────────

@inspection_bp.route("/inspections/<int:inspection_id>/checklist-responses", methods=["GET"])
def list_responses(inspection_id):
    inspection, err = get_or_404(Inspection, inspection_id)
    if err:
        return err
    rows = inspection_service.list_checklist_responses(inspection)
    return jsonify({"items": [r.to_dict() for r in rows], "total": len(rows)})


@inspection_bp.route("/inspections/<int:inspection_id>/checklist-responses", methods=["POST"])
@require_roles(*FIELD_ROLES)
def record_response(inspection_id):
    inspection, err = get_or_404(Inspection, inspection_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not data.get("item_id"):
        return api_error(E.VALIDATION_REQUIRED, "item_id is required")

    row, created = inspection_service.record_checklist_response(
        inspection,
        data["item_id"],
        template_id=data.get("template_id"),
        response=data.get("response"),
        actor=current_actor(),
        photogeotag=data.get("photogeotag_data"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(row.to_dict()), 201 if created else 200


@inspection_bp.route("/inspections/<int:inspection_id>/photos", methods=["GET"])
def list_photos(inspection_id):
    inspection, err = get_or_404(Inspection, inspection_id)
    if err:
        return err
    rows = inspection_service.list_inspection_photos(inspection)
    return jsonify({"items": [p.to_dict() for p in rows], "total": len(rows)})


@inspection_bp.route("/inspections/<int:inspection_id>/photos", methods=["POST"])
@require_roles(*FIELD_ROLES)
def add_photo(inspection_id):
    inspection, err = get_or_404(Inspection, inspection_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not data.get("photo_url"):
        return api_error(E.VALIDATION_REQUIRED, "photo_url is required")

    photo = inspection_service.add_inspection_photo(
        inspection,
        checklist_item_id=data.get("checklist_item_id"),
        photo_url=data["photo_url"],
        latitude=data.get("latitude"),
        longitude=data.get("longitude"),
        actor=current_actor(),
        require_geotag=bool(data.get("require_geotag", False)),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(photo.to_dict()), 201
