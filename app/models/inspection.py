"""
SLF/PBG Certification Workflow
Inspection domain model.

Models:
    - Inspection: scheduled site visit by an inspector
    - ChecklistResponse: answer to one checklist item (one row per item)
    - InspectionPhoto: photo evidence, optionally geotagged
"""

from datetime import UTC, datetime

from app.models import db
from app.models.status import INSPECTION_STATUSES, in_check


class Inspection(db.Model):
    """A site inspection of a project."""

    __tablename__ = "inspections"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    inspector_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    scheduled_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=True)
    end_time = db.Column(db.Time, nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default="scheduled",
        comment="scheduled | in_progress | completed | cancelled | rejected",
    )
    notes = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))

    responses = db.relationship(
        "ChecklistResponse", backref="inspection", lazy="dynamic", cascade="all, delete-orphan",
    )
    photos = db.relationship(
        "InspectionPhoto", backref="inspection", lazy="dynamic", cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint(in_check("status", INSPECTION_STATUSES), name="ck_inspections_status"),
    )

    def to_dict(self, include_children=False):
        data = {
            "id": self.id,
            "project_id": self.project_id,
            "inspector_id": self.inspector_id,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "status": self.status,
            "notes": self.notes,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_children:
            data["checklist_responses"] = [r.to_dict() for r in self.responses]
            data["photos"] = [p.to_dict() for p in self.photos]
        return data

    def __repr__(self):
        return f"<Inspection {self.id}: project={self.project_id} [{self.status}]>"


class ChecklistResponse(db.Model):
    __tablename__ = "checklist_responses"

    id = db.Column(db.Integer, primary_key=True)
    inspection_id = db.Column(
        db.Integer, db.ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    item_id = db.Column(db.String(100), nullable=False)
    template_id = db.Column(db.String(100), nullable=True)
    response = db.Column(db.JSON, nullable=True, comment="Free-form answer payload")
    responded_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )
    responded_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))
    photogeotag_data = db.Column(db.JSON, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("inspection_id", "item_id", name="uq_checklist_responses_item"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "inspection_id": self.inspection_id,
            "item_id": self.item_id,
            "template_id": self.template_id,
            "response": self.response,
            "responded_by": self.responded_by,
            "responded_at": self.responded_at.isoformat() if self.responded_at else None,
            "photogeotag_data": self.photogeotag_data,
        }

    def __repr__(self):
        return f"<ChecklistResponse {self.inspection_id}:{self.item_id}>"


class InspectionPhoto(db.Model):
    __tablename__ = "inspection_photos"

    id = db.Column(db.Integer, primary_key=True)
    inspection_id = db.Column(
        db.Integer, db.ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    checklist_item_id = db.Column(db.String(100), nullable=True)
    photo_url = db.Column(db.String(1000), nullable=False)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    uploaded_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )
    uploaded_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))

    @property
    def is_geotagged(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self):
        return {
            "id": self.id,
            "inspection_id": self.inspection_id,
            "checklist_item_id": self.checklist_item_id,
            "photo_url": self.photo_url,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_geotagged": self.is_geotagged,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

    def __repr__(self):
        return f"<InspectionPhoto {self.id}: inspection={self.inspection_id}>"
