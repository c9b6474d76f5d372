"""
SLF/PBG Certification Workflow
Notification domain model.

Models:
    - Notification: in-app notification record with read tracking
"""

from datetime import UTC, datetime

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

NOTIFICATION_TYPES = {
    "project_created",
    "documents_linked",
    "status_changed",
    "document_reviewed",
    "team_assigned",
    "inspection_scheduled",
    "schedule_assigned",
    "payment_uploaded",
    "payment_reviewed",
    "system",
}


class Notification(db.Model):
    """
    In-app notification entity.

    One record per recipient per event.
    """

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    sender_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )
    type = db.Column(db.String(40), nullable=False, default="system")
    message = db.Column(db.Text, default="")
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )

    # Read tracking
    read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))

    def mark_read(self):
        self.read = True
        self.read_at = datetime.now(UTC)

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "sender_id": self.sender_id,
            "type": self.type,
            "message": self.message,
            "project_id": self.project_id,
            "read": self.read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.type} → {self.recipient_id}>"
