"""
SLF/PBG Certification Workflow
Schedule domain model.

Models:
    - Schedule: calendar entry (meeting, inspection slot, deadline) on a project
"""

from datetime import UTC, datetime

from app.models import db
from app.models.status import SCHEDULE_STATUSES, SCHEDULE_TYPES, in_check


class Schedule(db.Model):
    __tablename__ = "schedules"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    schedule_type = db.Column(
        db.String(20), nullable=False, default="meeting",
        comment="inspection | meeting | deadline | rescheduled",
    )
    schedule_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    location = db.Column(db.String(300), nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default="scheduled",
        comment="scheduled | in_progress | completed | cancelled",
    )
    assigned_to = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    created_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        db.CheckConstraint(in_check("status", SCHEDULE_STATUSES), name="ck_schedules_status"),
        db.CheckConstraint(in_check("schedule_type", SCHEDULE_TYPES), name="ck_schedules_type"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "schedule_type": self.schedule_type,
            "schedule_date": self.schedule_date.isoformat() if self.schedule_date else None,
            "location": self.location,
            "status": self.status,
            "assigned_to": self.assigned_to,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Schedule {self.id}: project={self.project_id} {self.schedule_type} [{self.status}]>"
