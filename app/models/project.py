"""
SLF/PBG Certification Workflow
Project domain model.

Models:
    - Project: one certification job (SLF or PBG application)
    - ProjectPhase: one of five fixed execution phases per project
    - ProjectTeam: profile ↔ project assignment with a team role
"""

from datetime import UTC, datetime

from app.models import db
from app.models.status import KNOWN_PROJECT_STATUSES, describe_project_status, in_check


# ── Constants ────────────────────────────────────────────────────────────────

APPLICATION_TYPES = {
    "SLF": ("SLF_BARU", "SLF_PERPANJANGAN", "SLF_PERUBAHAN"),
    "PBG": ("PBG_BARU", "PBG_PERUBAHAN"),
}

APPLICATION_TYPE_LABELS = {
    "SLF_BARU": "Permohonan Baru",
    "SLF_PERPANJANGAN": "Perpanjangan",
    "SLF_PERUBAHAN": "Perubahan",
    "PBG_BARU": "Permohonan Baru",
    "PBG_PERUBAHAN": "Perubahan",
}

# Bare categories are accepted: triage only knows the category.
VALID_APPLICATION_TYPES = frozenset(
    [t for types in APPLICATION_TYPES.values() for t in types] + list(APPLICATION_TYPES)
)

PRIORITIES = ("low", "medium", "high", "urgent")

TEAM_ROLES = frozenset({"project_lead", "inspector", "drafter", "head_consultant", "admin_lead"})

PHASE_STATUSES = frozenset({"pending", "in_progress", "completed"})

PHASE_KEYS = ("phase1", "phase2", "phase3", "phase4", "phase5")

# category → ordered (name, default duration in days, description)
PHASE_TEMPLATES = {
    "SLF": (
        ("Persiapan Dokumen", 7, "Pengumpulan dan verifikasi dokumen persyaratan"),
        ("Inspeksi Lapangan", 5, "Kunjungan dan pemeriksaan bangunan"),
        ("Penyusunan Laporan", 10, "Analisis dan penyusunan laporan teknis"),
        ("Review & Approval", 7, "Review internal dan persetujuan"),
        ("Pengajuan Pemerintah", 14, "Submit ke DPKP dan penerbitan SLF"),
    ),
    "PBG": (
        ("Persiapan Dokumen", 7, "Pengumpulan dokumen persyaratan PBG"),
        ("Review Teknis", 10, "Pemeriksaan kelengkapan teknis"),
        ("Konsultasi Publik", 7, "Proses konsultasi publik (jika diperlukan)"),
        ("Persetujuan Teknis", 14, "Review dan persetujuan teknis"),
        ("Penerbitan PBG", 7, "Penerbitan Persetujuan Bangunan Gedung"),
    ),
}


def application_category(application_type) -> str | None:
    """Return "SLF" / "PBG" for a type or bare category, else None."""
    if not application_type:
        return None
    for category, types in APPLICATION_TYPES.items():
        if application_type == category or application_type in types:
            return category
    return None


class Project(db.Model):
    """A single SLF/PBG certification project."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    client_id = db.Column(
        db.Integer, db.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    application_type = db.Column(
        db.String(30), nullable=False, default="SLF",
        comment="SLF_BARU | SLF_PERPANJANGAN | SLF_PERUBAHAN | PBG_BARU | PBG_PERUBAHAN | SLF | PBG",
    )
    status = db.Column(db.String(40), nullable=False, default="draft", index=True)
    location = db.Column(db.String(300), nullable=True)
    address = db.Column(db.String(300), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)
    priority = db.Column(db.String(20), nullable=False, default="medium", comment="low | medium | high | urgent")

    project_lead_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    admin_lead_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    created_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )

    phase_durations = db.Column(db.JSON, nullable=True, comment="{phase1..phase5: days}")
    estimated_duration = db.Column(db.Integer, nullable=True, comment="Sum of phase durations (days)")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    phases = db.relationship(
        "ProjectPhase", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ProjectPhase.phase",
    )
    team = db.relationship(
        "ProjectTeam", backref="project", lazy="dynamic", cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint(in_check("status", KNOWN_PROJECT_STATUSES), name="ck_projects_status"),
        db.CheckConstraint(in_check("priority", PRIORITIES), name="ck_projects_priority"),
    )

    def to_dict(self, include_children=False) -> dict:
        """Serialize project fields for API responses."""
        data = {
            "id": self.id,
            "name": self.name,
            "client_id": self.client_id,
            "application_type": self.application_type,
            "status": self.status,
            "status_info": describe_project_status(self.status),
            "location": self.location,
            "address": self.address,
            "city": self.city,
            "description": self.description,
            "priority": self.priority,
            "project_lead_id": self.project_lead_id,
            "admin_lead_id": self.admin_lead_id,
            "created_by": self.created_by,
            "phase_durations": self.phase_durations,
            "estimated_duration": self.estimated_duration,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_children:
            data["phases"] = [p.to_dict() for p in self.phases]
            data["team"] = [m.to_dict() for m in self.team]
        return data

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.name} [{self.status}]>"


class ProjectPhase(db.Model):
    """One of the five fixed timeline phases of a project."""

    __tablename__ = "project_phases"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    phase = db.Column(db.Integer, nullable=False, comment="1-5")
    phase_name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    estimated_duration = db.Column(db.Integer, nullable=False, comment="days")
    status = db.Column(db.String(20), nullable=False, default="pending")
    order_index = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("project_id", "phase", name="uq_project_phases_project_phase"),
        db.CheckConstraint(in_check("status", PHASE_STATUSES), name="ck_project_phases_status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "phase": self.phase,
            "phase_name": self.phase_name,
            "description": self.description,
            "estimated_duration": self.estimated_duration,
            "status": self.status,
            "order_index": self.order_index,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<ProjectPhase {self.project_id}#{self.phase}: {self.status}>"


class ProjectTeam(db.Model):
    """Assignment of a profile to a project in a given team role."""

    __tablename__ = "project_teams"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    role = db.Column(db.String(30), nullable=False)
    assigned_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(UTC))
    assigned_by = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )

    user = db.relationship("Profile", foreign_keys=[user_id])

    __table_args__ = (
        db.UniqueConstraint("project_id", "user_id", "role", name="uq_project_teams_member_role"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "full_name": self.user.full_name if self.user else None,
            "role": self.role,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "assigned_by": self.assigned_by,
        }

    def __repr__(self):
        return f"<ProjectTeam {self.project_id}: user={self.user_id} role={self.role}>"
