"""
SLF/PBG Certification Workflow
Audit domain model.

Models:
    - AuditLog: immutable, append-only audit trail for lifecycle events.
"""

import json
from datetime import UTC, datetime

from app.models import db

# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = {
    "project", "document", "inspection", "project_team", "schedule", "payment",
}

AUDIT_ACTIONS = {
    # Project lifecycle
    "project.create",
    "project.transition",
    "project.update",
    "project.create_from_documents",
    # Document lifecycle
    "document.submit",
    "document.verify",
    "document.approve",
    "document.approve_pl",
    "document.reject_pl",
    "document.approve_hc",
    "document.request_revision_hc",
    "document.reject",
    "document.revise",
    "document.cancel",
    "document.link",
    # Team / inspections
    "project_team.assign",
    "project_team.remove",
    "inspection.schedule",
    "inspection.transition",
    # Schedules / payments
    "schedule.create",
    "schedule.update",
    "schedule.delete",
    "payment.upload",
    "payment.verify",
    "payment.reject",
}


class AuditLog(db.Model):
    """
    Immutable audit trail for every lifecycle event.

    One row per action.  ``diff_json`` carries the old→new snapshot.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_project", "project_id"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Polymorphic entity reference
    entity_type = db.Column(
        db.String(30), nullable=False,
        comment="project | document | inspection | project_team | schedule | payment",
    )
    entity_id = db.Column(
        db.String(36), nullable=False,
        comment="PK of the referenced entity (int-as-string)",
    )

    # What happened
    action = db.Column(
        db.String(60), nullable=False,
        comment="project.transition | document.approve_pl | …",
    )
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="NULL for system entries",
    )

    # Change payload
    diff_json = db.Column(
        db.Text, default="{}",
        comment="JSON: {field: {old, new}}",
    )

    # Timestamp (immutable)
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def diff(self) -> dict:
        """Deserialise *diff_json* to a Python dict."""
        try:
            return json.loads(self.diff_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor_id": self.actor_id,
            "diff": self.diff,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    entity_type: str,
    entity_id,
    action: str,
    actor_id: int | None = None,
    project_id: int | None = None,
    diff: dict | None = None,
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) AuditLog instance.

    Raises:
        ValueError: unknown entity type or action
    """
    if entity_type not in AUDIT_ENTITY_TYPES:
        raise ValueError(f"Unknown audit entity type: {entity_type}")
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")
    log = AuditLog(
        project_id=project_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor_id=actor_id,
        diff_json=json.dumps(diff or {}, default=str),
    )
    db.session.add(log)
    db.session.flush()
    return log
