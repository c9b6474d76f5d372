"""schedules_payments

Project schedules and client payment proofs.

Revision ID: 0002_schedules_payments
Revises: 0001_initial_schema
Create Date: 2026-10-18 15:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0002_schedules_payments"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


SCHEDULE_STATUSES = ("cancelled", "completed", "in_progress", "scheduled")
SCHEDULE_TYPES = ("deadline", "inspection", "meeting", "rescheduled")
PAYMENT_STATUSES = ("pending", "rejected", "verified")


def _in(column, values):
    return sa.text(f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")")


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "schedules" not in existing_tables:
        op.create_table(
            "schedules",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("schedule_type", sa.String(length=20), nullable=False, server_default="meeting"),
            _ts("schedule_date", nullable=False),
            sa.Column("location", sa.String(length=300), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
            sa.Column("assigned_to", sa.Integer(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["assigned_to"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.CheckConstraint(_in("status", SCHEDULE_STATUSES), name="ck_schedules_status"),
            sa.CheckConstraint(_in("schedule_type", SCHEDULE_TYPES), name="ck_schedules_type"),
            sa.PrimaryKeyConstraint("id"),
        )
        for col in ("project_id", "schedule_date", "assigned_to"):
            op.create_index(f"ix_schedules_{col}", "schedules", [col])

    if "payments" not in existing_tables:
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("amount", sa.Numeric(precision=14, scale=2), nullable=False),
            sa.Column("payment_date", sa.Date(), nullable=False),
            sa.Column("proof_url", sa.String(length=1000), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("rejection_reason", sa.Text(), nullable=True),
            sa.Column("uploaded_by", sa.Integer(), nullable=True),
            sa.Column("verified_by", sa.Integer(), nullable=True),
            _ts("verified_at"),
            _ts("created_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["uploaded_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["verified_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.CheckConstraint(_in("status", PAYMENT_STATUSES), name="ck_payments_status"),
            sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
            sa.PrimaryKeyConstraint("id"),
        )
        for col in ("project_id", "status", "uploaded_by"):
            op.create_index(f"ix_payments_{col}", "payments", [col])


def downgrade():
    for table in ("payments", "schedules"):
        op.drop_table(table)
