"""
Document Lifecycle Service

Manages document / report status transitions with:
  - Transition validation (action table in app.models.status)
  - Role check per review action
  - Review notes kept under metadata["review"]
  - Audit log
  - Notification to the uploader

10 actions:
  submit, verify, approve, approve_pl, reject_pl, approve_hc,
  request_revision_hc, reject, revise, cancel

Usage:
    from app.services.document_lifecycle import transition_document

    result = transition_document(
        document_id=12,
        action="reject_pl",
        actor=g.profile,
        notes="Lampiran struktur belum lengkap",
    )
"""

import logging
from datetime import UTC, datetime

from app.core.exceptions import NotFoundError, PermissionDenied, TransitionError, ValidationError
from app.models import db
from app.models.audit import write_audit
from app.models.document import DOCUMENT_TYPES, Document
from app.models.project import Project
from app.models.status import (
    DOCUMENT_ACTIONS_REQUIRING_NOTES,
    DOCUMENT_TRANSITIONS,
    get_document_status_label,
)
from app.services.notification import NotificationService
from app.utils.helpers import optional_text

logger = logging.getLogger(__name__)

# Review actions and the roles allowed to take them. Actions not listed
# (submit, revise, cancel) belong to the uploader or any staff member.
ACTION_ROLES = {
    "verify": {"admin_lead"},
    "approve": {"admin_lead", "project_lead", "head_consultant"},
    "reject": {"admin_lead", "project_lead", "head_consultant"},
    "approve_pl": {"project_lead"},
    "reject_pl": {"project_lead"},
    "approve_hc": {"head_consultant"},
    "request_revision_hc": {"head_consultant"},
}

UPLOADER_ACTIONS = frozenset({"submit", "revise", "cancel"})


def validate_document_transition(document: Document, action: str) -> dict:
    """Validate whether an action is valid for the current document state."""
    rule = DOCUMENT_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": document.status, "to": None,
                "reason": f"Unknown action: {action}"}

    if document.status not in rule["from"]:
        return {"valid": False, "from": document.status, "to": rule["to"],
                "reason": f"Cannot '{action}' from status '{document.status}'"}

    return {"valid": True, "from": document.status, "to": rule["to"], "reason": None}


def can_perform(actor, document: Document, action: str) -> bool:
    if actor is None:
        return False
    if actor.role == "superadmin":
        return True
    if action in UPLOADER_ACTIONS:
        return actor.id == document.created_by or actor.role != "client"
    return actor.role in ACTION_ROLES.get(action, set())


def get_available_document_actions(document: Document, actor=None) -> list[dict]:
    """Actions legal from the document's status (and for ``actor`` when given)."""
    actions = []
    for action, rule in DOCUMENT_TRANSITIONS.items():
        if document.status not in rule["from"]:
            continue
        if actor is not None and not can_perform(actor, document, action):
            continue
        actions.append({
            "action": action,
            "to": rule["to"],
            "label": get_document_status_label(rule["to"]),
            "requires_notes": action in DOCUMENT_ACTIONS_REQUIRING_NOTES,
        })
    return actions


def create_document(data: dict, actor=None) -> Document:
    """
    Record an uploaded document. Bytes live elsewhere; only the URL is kept.

    ``project_id`` may be omitted: the document is then pending triage.
    """
    errors = {}
    name = str(data.get("name") or "").strip()
    if not name:
        errors["name"] = "name is required"

    document_type = str(data.get("document_type") or "OTHER").strip().upper()
    if document_type not in DOCUMENT_TYPES:
        errors["document_type"] = f"must be one of {', '.join(sorted(DOCUMENT_TYPES))}"

    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        errors["metadata"] = "metadata must be an object"

    project_id = data.get("project_id")
    if project_id is not None:
        try:
            project_id = int(project_id)
        except (TypeError, ValueError):
            errors["project_id"] = "project_id must be an integer"
        else:
            if db.session.get(Project, project_id) is None:
                errors["project_id"] = "Project not found"

    if errors:
        raise ValidationError("Invalid document", details=errors)

    document = Document(
        project_id=project_id,
        created_by=actor.id if actor is not None else None,
        document_type=document_type,
        name=name,
        status="draft",
        meta=metadata,
        url=data.get("url"),
    )
    db.session.add(document)
    db.session.flush()
    logger.info("Document %s recorded (pending=%s)", document.id, document.is_pending,
                extra={"document_id": document.id, "project_id": project_id})
    return document


def transition_document(document_id: int, action: str, actor=None, *, notes: str | None = None) -> dict:
    """
    Execute a document lifecycle transition.

    Returns:
        {"document_id", "previous_status", "new_status", "action", "label"}

    Raises:
        NotFoundError, ValidationError, PermissionDenied, TransitionError
    """
    document = db.session.get(Document, document_id)
    if document is None:
        raise NotFoundError(resource="Document", resource_id=document_id)

    if action not in DOCUMENT_TRANSITIONS:
        raise ValidationError(
            f"Unknown action: {action}",
            details={"action": f"must be one of {', '.join(DOCUMENT_TRANSITIONS)}"},
        )

    if not can_perform(actor, document, action):
        raise PermissionDenied(f"Role may not '{action}' this document")

    validation = validate_document_transition(document, action)
    if not validation["valid"]:
        allowed = [a["action"] for a in get_available_document_actions(document)]
        raise TransitionError(
            "Document", document.status, validation["to"],
            allowed=allowed, message=validation["reason"],
        )

    notes = optional_text(notes, "notes")
    if action in DOCUMENT_ACTIONS_REQUIRING_NOTES and not notes:
        raise ValidationError(
            f"Notes are required to '{action}'",
            details={"notes": "Review notes are required"},
        )

    previous_status = document.status
    document.status = validation["to"]
    actor_id = actor.id if actor is not None else None

    # JSON columns only track reassignment
    meta = dict(document.meta or {})
    if action not in UPLOADER_ACTIONS or notes:
        meta["review"] = {
            "action": action,
            "notes": notes,
            "reviewed_by": actor_id,
            "reviewed_at": datetime.now(UTC).isoformat(),
        }
    document.meta = meta
    db.session.flush()

    logger.info(
        "Document %s: %s → %s (%s)", document.id, previous_status, document.status, action,
        extra={"document_id": document.id, "project_id": document.project_id,
               "from_status": previous_status, "to_status": document.status, "profile_id": actor_id},
    )

    diff = {"status": {"old": previous_status, "new": document.status}}
    if notes:
        diff["notes"] = notes
    try:
        write_audit(
            entity_type="document",
            entity_id=document.id,
            action=f"document.{action}",
            actor_id=actor_id,
            project_id=document.project_id,
            diff=diff,
        )
    except Exception:
        logger.warning("Audit log failed for document transition; main flow unaffected", exc_info=True)

    label = get_document_status_label(document.status)
    NotificationService.notify_document_reviewed(document, label, sender_id=actor_id)

    return {
        "document_id": document.id,
        "previous_status": previous_status,
        "new_status": document.status,
        "label": label,
        "action": action,
    }
