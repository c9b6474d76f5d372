"""
Document Blueprint.

Upload records, review lifecycle and the admin-lead triage inbox.

Endpoints:
    GET  /api/v1/documents                              ?project_id=&status=
    POST /api/v1/documents                              record an upload
    GET  /api/v1/documents/<id>
    POST /api/v1/documents/<id>/transition              {action, notes}
    GET  /api/v1/documents/pending                      grouped by client
    POST /api/v1/documents/pending/create-project       {client_id, form, document_ids}
    POST /api/v1/documents/pending/link                 {project_id, document_ids}
    GET  /api/v1/documents/pending/linkable-projects    ?client_id=
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import paginate_query
from app.middleware.actor_context import current_actor, require_roles
from app.models.document import Document
from app.models.profile import ROLES, STAFF_ROLES
from app.services.document_lifecycle import (
    create_document,
    get_available_document_actions,
    transition_document,
)
from app.services.document_triage import (
    create_project_from_documents,
    link_documents_to_project,
    list_linkable_projects,
    list_pending_groups,
)
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error, get_or_404, parse_id_list

logger = logging.getLogger(__name__)

document_bp = Blueprint("document", __name__, url_prefix="/api/v1")


def _serialize_group(key, group):
    return {
        "key": str(key),
        "client_id": group["client_id"],
        "client": group.get("client"),
        "building_info": group["building_info"],
        "application_type": group["application_type"],
        "documents": [d.to_dict() for d in group["documents"]],
        "count": len(group["documents"]),
    }


# ═══════════════════════════════════════════════════════════════════════════
#  DOCUMENTS
# ═══════════════════════════════════════════════════════════════════════════

@document_bp.route("/documents", methods=["GET"])
@require_roles(*STAFF_ROLES)
def list_documents():
    q = Document.query
    project_id = request.args.get("project_id", type=int)
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    status = request.args.get("status")
    if status:
        q = q.filter_by(status=status)
    items, total = paginate_query(q.order_by(Document.created_at.desc(), Document.id.desc()))
    return jsonify({"items": [d.to_dict() for d in items], "total": total})


@document_bp.route("/documents", methods=["POST"])
@require_roles(*ROLES)
def upload_document():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON body is required")
    document = create_document(data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(document.to_dict()), 201


@document_bp.route("/documents/<int:document_id>", methods=["GET"])
def get_document(document_id):
    document, err = get_or_404(Document, document_id)
    if err:
        return err
    data = document.to_dict()
    data["available_actions"] = get_available_document_actions(document, current_actor())
    return jsonify(data)


@document_bp.route("/documents/<int:document_id>/transition", methods=["POST"])
@require_roles(*ROLES)
def transition(document_id):
    data = request.get_json(silent=True) or {}
    action = str(data.get("action") or "").strip()
    if not action:
        return api_error(E.VALIDATION_REQUIRED, "action is required")

    result = transition_document(document_id, action, current_actor(), notes=data.get("notes"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


# ═══════════════════════════════════════════════════════════════════════════
#  TRIAGE (pending documents)
# ═══════════════════════════════════════════════════════════════════════════

@document_bp.route("/documents/pending", methods=["GET"])
@require_roles("admin_lead")
def pending_documents():
    groups = list_pending_groups(current_actor())
    return jsonify({
        "groups": [_serialize_group(k, g) for k, g in groups.items()],
        "total_documents": sum(len(g["documents"]) for g in groups.values()),
    })


@document_bp.route("/documents/pending/create-project", methods=["POST"])
@require_roles("admin_lead")
def pending_create_project():
    data = request.get_json(silent=True) or {}
    client_id = data.get("client_id")
    if client_id is None:
        return api_error(E.VALIDATION_REQUIRED, "client_id is required")
    try:
        client_id = int(client_id)
        document_ids = parse_id_list(data.get("document_ids"))
    except (TypeError, ValueError) as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    form = data.get("form") or {}
    if not isinstance(form, dict):
        return api_error(E.VALIDATION_INVALID, "form must be an object")

    project, documents = create_project_from_documents(current_actor(), client_id, form, document_ids)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "project": project.to_dict(),
        "linked_document_ids": [d.id for d in documents],
    }), 201


@document_bp.route("/documents/pending/link", methods=["POST"])
@require_roles("admin_lead")
def pending_link():
    data = request.get_json(silent=True) or {}
    if data.get("project_id") is None:
        return api_error(E.VALIDATION_REQUIRED, "project_id is required")
    try:
        project_id = int(data["project_id"])
        document_ids = parse_id_list(data.get("document_ids"))
    except (TypeError, ValueError) as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))

    project, documents = link_documents_to_project(current_actor(), project_id, document_ids)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "project_id": project.id,
        "linked_document_ids": [d.id for d in documents],
    })


@document_bp.route("/documents/pending/linkable-projects", methods=["GET"])
@require_roles("admin_lead")
def linkable_projects():
    client_id = request.args.get("client_id", type=int)
    if client_id is None:
        return api_error(E.VALIDATION_REQUIRED, "client_id query parameter is required")
    projects = list_linkable_projects(current_actor(), client_id)
    return jsonify({"items": [p.to_dict() for p in projects], "total": len(projects)})
