"""
SLF/PBG Certification Workflow
People domain model.

Models:
    - Client: the building owner / company a certification is for
    - Profile: any user of the system (staff or client-side)
"""

from datetime import UTC, datetime

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

ROLES = frozenset({
    "admin_lead",
    "project_lead",
    "inspector",
    "drafter",
    "head_consultant",
    "client",
    "superadmin",
})

STAFF_ROLES = ROLES - {"client"}


class Client(db.Model):
    """Client organisation; client-side profiles point here via client_id."""

    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    company_name = db.Column(db.String(200), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, nullable=True, index=True, comment="profiles.id of the creating admin")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "company_name": self.company_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Client {self.id}: {self.name}>"


class Profile(db.Model):
    """
    A user of the system.

    ``specialization`` is only meaningful for inspectors; ``client_id`` only
    for client-side users.
    """

    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False, unique=True)
    phone_number = db.Column(db.String(50), nullable=True)
    role = db.Column(
        db.String(30), nullable=False, default="client",
        comment="admin_lead | project_lead | inspector | drafter | head_consultant | client | superadmin",
    )
    specialization = db.Column(db.String(100), nullable=True)
    client_id = db.Column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "role": self.role,
            "specialization": self.specialization,
            "client_id": self.client_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Profile {self.id}: {self.full_name} ({self.role})>"
