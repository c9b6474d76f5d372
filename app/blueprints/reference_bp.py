"""
Reference Data Blueprint.

Read-only access to the closed vocabularies so clients never hard-code
labels, colors, progress weights or transition tables.

Endpoints:
    GET /api/v1/reference/project-statuses
    GET /api/v1/reference/document-statuses
    GET /api/v1/reference/application-types
    GET /api/v1/reference/phases
"""

from flask import Blueprint, jsonify

from app.models.project import (
    APPLICATION_TYPE_LABELS,
    APPLICATION_TYPES,
    PHASE_KEYS,
    PHASE_TEMPLATES,
    PRIORITIES,
)
from app.models.status import (
    ALTERNATE_WORKFLOW_STATUSES,
    DEFAULT_WORKFLOW,
    DOCUMENT_ACTIONS_REQUIRING_NOTES,
    DOCUMENT_TRANSITIONS,
    VOCABULARY_VERSION,
    WORKFLOWS,
    DocumentStatus,
    ProjectStatus,
    describe_project_status,
    get_document_status_color,
    get_document_status_label,
    workflow_vocabulary_conflicts,
)

reference_bp = Blueprint("reference", __name__, url_prefix="/api/v1/reference")


@reference_bp.route("/project-statuses", methods=["GET"])
def project_statuses():
    return jsonify({
        "version": VOCABULARY_VERSION,
        "statuses": [describe_project_status(s.value) for s in ProjectStatus],
        "alternate_statuses": [describe_project_status(s) for s in sorted(ALTERNATE_WORKFLOW_STATUSES)],
        "workflows": {
            name: {status: list(targets) for status, targets in table.items()}
            for name, table in WORKFLOWS.items()
        },
        "default_workflow": DEFAULT_WORKFLOW,
        "conflicts": workflow_vocabulary_conflicts(),
    })


@reference_bp.route("/document-statuses", methods=["GET"])
def document_statuses():
    return jsonify({
        "version": VOCABULARY_VERSION,
        "statuses": [
            {
                "status": s.value,
                "label": get_document_status_label(s.value),
                "color": get_document_status_color(s.value),
            }
            for s in DocumentStatus
        ],
        "actions": {
            action: {
                "from": list(rule["from"]),
                "to": rule["to"],
                "requires_notes": action in DOCUMENT_ACTIONS_REQUIRING_NOTES,
            }
            for action, rule in DOCUMENT_TRANSITIONS.items()
        },
    })


@reference_bp.route("/application-types", methods=["GET"])
def application_types():
    return jsonify({
        "categories": [
            {
                "category": category,
                "types": [{"value": t, "label": APPLICATION_TYPE_LABELS[t]} for t in types],
            }
            for category, types in APPLICATION_TYPES.items()
        ],
        "priorities": list(PRIORITIES),
    })


@reference_bp.route("/phases", methods=["GET"])
def phases():
    return jsonify({
        category: [
            {"key": key, "phase": i + 1, "phase_name": name,
             "default_duration": days, "description": description}
            for i, (key, (name, days, description)) in enumerate(zip(PHASE_KEYS, template))
        ]
        for category, template in PHASE_TEMPLATES.items()
    })
