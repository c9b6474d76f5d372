"""
SLF/PBG Certification Workflow
Document domain model.

Models:
    - Document: uploaded file record (URL only); project_id stays NULL until
      an admin lead triages it into a project.
"""

from datetime import UTC, datetime

from app.models import db
from app.models.status import (
    DOCUMENT_STATUSES,
    get_document_status_color,
    get_document_status_label,
    in_check,
)


# ── Constants ────────────────────────────────────────────────────────────────

DOCUMENT_TYPES = {
    "REPORT", "CONTRACT", "PERMIT", "DRAWING", "CERTIFICATE",
    "INVOICE", "PHOTO", "CLIENT_UPLOAD", "OTHER",
}


class Document(db.Model):
    """
    A document or inspection report.

    ``meta`` is stored in the ``metadata`` column (the attribute name is
    reserved by SQLAlchemy). Known keys: category, size, original_name,
    building_info, application_type, review.
    """

    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True,
        comment="NULL = pending triage",
    )
    created_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    document_type = db.Column(db.String(40), nullable=False, default="OTHER")
    name = db.Column(db.String(300), nullable=False)
    status = db.Column(db.String(40), nullable=False, default="draft", index=True)
    meta = db.Column("metadata", db.JSON, nullable=True, default=dict)
    url = db.Column(db.String(1000), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), index=True,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    uploader = db.relationship("Profile", foreign_keys=[created_by])

    __table_args__ = (
        db.CheckConstraint(in_check("status", DOCUMENT_STATUSES), name="ck_documents_status"),
    )

    @property
    def is_pending(self) -> bool:
        return self.project_id is None

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "created_by": self.created_by,
            "document_type": self.document_type,
            "name": self.name,
            "status": self.status,
            "status_label": get_document_status_label(self.status),
            "status_color": get_document_status_color(self.status),
            "metadata": self.meta or {},
            "url": self.url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Document {self.id}: {self.name} [{self.status}]>"
