"""
SLF/PBG Certification Workflow
Payment domain model.

Models:
    - Payment: client-uploaded payment proof awaiting admin verification
"""

from datetime import UTC, datetime

from app.models import db
from app.models.status import PAYMENT_STATUSES, in_check


class Payment(db.Model):
    """
    One transfer proof for a project.

    ``status`` starts at pending; an admin lead either verifies it or
    rejects it with a reason. Rejected proofs stay on record and the
    client uploads a fresh one.
    """

    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    proof_url = db.Column(db.String(1000), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default="pending", index=True,
        comment="pending | verified | rejected",
    )
    rejection_reason = db.Column(db.Text, nullable=True)

    uploaded_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    verified_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))

    project = db.relationship("Project", foreign_keys=[project_id])

    __table_args__ = (
        db.CheckConstraint(in_check("status", PAYMENT_STATUSES), name="ck_payments_status"),
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "amount": float(self.amount) if self.amount is not None else None,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "proof_url": self.proof_url,
            "notes": self.notes,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "uploaded_by": self.uploaded_by,
            "verified_by": self.verified_by,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Payment {self.id}: project={self.project_id} {self.amount} [{self.status}]>"
