"""initial_schema

Clients, profiles, projects (phases + team), documents, inspections
(checklist responses + photos), notifications and the audit log.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


PROJECT_STATUSES = (
    "admin_lead_review", "cancelled", "client_review", "completed", "draft",
    "government_submitted", "head_consultant_review", "inspection_completed",
    "inspection_in_progress", "inspection_scheduled", "project_lead_review",
    "report_draft", "report_submitted", "revisions_required", "slf_issued", "submitted",
)
DOCUMENT_STATUSES = (
    "approved", "approved_by_hc", "approved_by_pl", "cancelled", "completed", "draft",
    "in_progress", "rejected", "rejected_by_pl", "revision_requested_by_hc",
    "scheduled", "submitted", "verified_by_admin_team",
)
INSPECTION_STATUSES = ("cancelled", "completed", "in_progress", "rejected", "scheduled")
PHASE_STATUSES = ("completed", "in_progress", "pending")
PRIORITIES = ("high", "low", "medium", "urgent")


def _in(column, values):
    return sa.text(f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")")


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "clients" not in existing_tables:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("company_name", sa.String(length=200), nullable=True),
            sa.Column("email", sa.String(length=200), nullable=True),
            sa.Column("phone", sa.String(length=50), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            _ts("created_at"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_clients_created_by", "clients", ["created_by"])

    if "profiles" not in existing_tables:
        op.create_table(
            "profiles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("phone_number", sa.String(length=50), nullable=True),
            sa.Column("role", sa.String(length=30), nullable=False, server_default="client"),
            sa.Column("specialization", sa.String(length=100), nullable=True),
            sa.Column("client_id", sa.Integer(), nullable=True),
            _ts("created_at"),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index("ix_profiles_client_id", "profiles", ["client_id"])

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("client_id", sa.Integer(), nullable=True),
            sa.Column("application_type", sa.String(length=30), nullable=False, server_default="SLF"),
            sa.Column("status", sa.String(length=40), nullable=False, server_default="draft"),
            sa.Column("location", sa.String(length=300), nullable=True),
            sa.Column("address", sa.String(length=300), nullable=True),
            sa.Column("city", sa.String(length=100), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            sa.Column("project_lead_id", sa.Integer(), nullable=True),
            sa.Column("admin_lead_id", sa.Integer(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("phase_durations", sa.JSON(), nullable=True),
            sa.Column("estimated_duration", sa.Integer(), nullable=True),
            _ts("created_at", nullable=False),
            _ts("updated_at", nullable=False),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["project_lead_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["admin_lead_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.CheckConstraint(_in("status", PROJECT_STATUSES), name="ck_projects_status"),
            sa.CheckConstraint(_in("priority", PRIORITIES), name="ck_projects_priority"),
            sa.PrimaryKeyConstraint("id"),
        )
        for col in ("client_id", "status", "project_lead_id", "admin_lead_id", "created_by"):
            op.create_index(f"ix_projects_{col}", "projects", [col])

    if "project_phases" not in existing_tables:
        op.create_table(
            "project_phases",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("phase", sa.Integer(), nullable=False),
            sa.Column("phase_name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("estimated_duration", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
            _ts("started_at"),
            _ts("completed_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.CheckConstraint(_in("status", PHASE_STATUSES), name="ck_project_phases_status"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "phase", name="uq_project_phases_project_phase"),
        )
        op.create_index("ix_project_phases_project_id", "project_phases", ["project_id"])

    if "project_teams" not in existing_tables:
        op.create_table(
            "project_teams",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("role", sa.String(length=30), nullable=False),
            _ts("assigned_at"),
            sa.Column("assigned_by", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["assigned_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "user_id", "role", name="uq_project_teams_member_role"),
        )
        op.create_index("ix_project_teams_project_id", "project_teams", ["project_id"])
        op.create_index("ix_project_teams_user_id", "project_teams", ["user_id"])

    if "documents" not in existing_tables:
        op.create_table(
            "documents",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("document_type", sa.String(length=40), nullable=False, server_default="OTHER"),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column("status", sa.String(length=40), nullable=False, server_default="draft"),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("url", sa.String(length=1000), nullable=True),
            _ts("created_at", nullable=False),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.CheckConstraint(_in("status", DOCUMENT_STATUSES), name="ck_documents_status"),
            sa.PrimaryKeyConstraint("id"),
        )
        for col in ("project_id", "created_by", "status", "created_at"):
            op.create_index(f"ix_documents_{col}", "documents", [col])

    if "inspections" not in existing_tables:
        op.create_table(
            "inspections",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("inspector_id", sa.Integer(), nullable=True),
            sa.Column("scheduled_date", sa.Date(), nullable=False),
            sa.Column("start_time", sa.Time(), nullable=True),
            sa.Column("end_time", sa.Time(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
            sa.Column("notes", sa.Text(), nullable=True),
            _ts("completed_at"),
            _ts("created_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["inspector_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.CheckConstraint(_in("status", INSPECTION_STATUSES), name="ck_inspections_status"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_inspections_project_id", "inspections", ["project_id"])
        op.create_index("ix_inspections_inspector_id", "inspections", ["inspector_id"])

    if "checklist_responses" not in existing_tables:
        op.create_table(
            "checklist_responses",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("inspection_id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.String(length=100), nullable=False),
            sa.Column("template_id", sa.String(length=100), nullable=True),
            sa.Column("response", sa.JSON(), nullable=True),
            sa.Column("responded_by", sa.Integer(), nullable=True),
            _ts("responded_at"),
            sa.Column("photogeotag_data", sa.JSON(), nullable=True),
            sa.ForeignKeyConstraint(["inspection_id"], ["inspections.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["responded_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("inspection_id", "item_id", name="uq_checklist_responses_item"),
        )
        op.create_index("ix_checklist_responses_inspection_id", "checklist_responses", ["inspection_id"])

    if "inspection_photos" not in existing_tables:
        op.create_table(
            "inspection_photos",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("inspection_id", sa.Integer(), nullable=False),
            sa.Column("checklist_item_id", sa.String(length=100), nullable=True),
            sa.Column("photo_url", sa.String(length=1000), nullable=False),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("uploaded_by", sa.Integer(), nullable=True),
            _ts("uploaded_at"),
            sa.ForeignKeyConstraint(["inspection_id"], ["inspections.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["uploaded_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_inspection_photos_inspection_id", "inspection_photos", ["inspection_id"])

    if "notifications" not in existing_tables:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("recipient_id", sa.Integer(), nullable=False),
            sa.Column("sender_id", sa.Integer(), nullable=True),
            sa.Column("type", sa.String(length=40), nullable=False, server_default="system"),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("read_at"),
            _ts("created_at"),
            sa.ForeignKeyConstraint(["recipient_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["sender_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
        op.create_index("ix_notifications_project_id", "notifications", ["project_id"])

    if "audit_logs" not in existing_tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("entity_type", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("action", sa.String(length=60), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=True),
            sa.Column("diff_json", sa.Text(), nullable=True),
            _ts("timestamp", nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["actor_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_project", "audit_logs", ["project_id"])
        op.create_index("idx_audit_action", "audit_logs", ["action"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])
        op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])


def downgrade():
    for table in (
        "audit_logs", "notifications", "inspection_photos", "checklist_responses",
        "inspections", "documents", "project_teams", "project_phases", "projects",
        "profiles", "clients",
    ):
        op.drop_table(table)
