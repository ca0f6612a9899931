"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-09-01 00:00:00.000000

"""
from typing import Sequence, Union
from uuid import uuid4

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_LICENSE_TYPES = [
    "None",
    "E1",
    "E3",
    "E5",
    "Business Basic",
    "Business Standard",
    "Business Premium",
]


def upgrade() -> None:
    # Create hires table
    op.create_table(
        "hires",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("department", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("direct_report", sa.String(255), nullable=True),
        sa.Column("on_site_date", sa.Date(), nullable=False),
        sa.Column("username", sa.String(20), nullable=True),
        sa.Column("password", sa.String(255), nullable=True),
        sa.Column("account_creation_status", sa.String(50), nullable=False, server_default="Pending"),
        sa.Column("laptop_ready", sa.String(50), nullable=False, server_default="Pending"),
        sa.Column("license_assigned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status_srf", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("microsoft_365_license", sa.String(100), nullable=False, server_default="None"),
        sa.Column(
            "mailing_list",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("distribution_list_sync_status", sa.String(20), nullable=True),
        sa.Column("distribution_list_sync_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("srf_document_path", sa.String(500), nullable=True),
        sa.Column("srf_document_name", sa.String(255), nullable=True),
        sa.Column("srf_document_uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ict_support_pic", sa.String(255), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_hires_created_at", "hires", ["created_at"])
    op.create_index("idx_hires_email", "hires", ["email"])
    op.create_index("idx_hires_department", "hires", ["department"])

    # Per-hire operational trail; survives hire deletion
    op.create_table(
        "hire_audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("hire_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action_type", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column("performed_by", sa.String(255), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_hire_audit_logs_hire", "hire_audit_logs", ["hire_id", "timestamp"])

    # Create settings table
    op.create_table(
        "settings",
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("value", postgresql.JSONB(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    # Create app_users table
    op.create_table(
        "app_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="support"),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("changes", postgresql.JSONB(), nullable=True),
        sa.Column("ip_address", postgresql.INET(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_audit_logs_created", "audit_logs", ["created_at"])
    op.create_index("idx_audit_logs_resource", "audit_logs", ["resource_type", "resource_id"])
    op.create_index("idx_audit_logs_user", "audit_logs", ["user_id"])

    # Create departments table
    op.create_table(
        "departments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # Create license_types table
    license_types = op.create_table(
        "license_types",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.bulk_insert(
        license_types,
        [{"id": uuid4(), "name": name} for name in DEFAULT_LICENSE_TYPES],
    )


def downgrade() -> None:
    op.drop_table("license_types")
    op.drop_table("departments")
    op.drop_index("idx_audit_logs_user", table_name="audit_logs")
    op.drop_index("idx_audit_logs_resource", table_name="audit_logs")
    op.drop_index("idx_audit_logs_created", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("app_users")
    op.drop_table("settings")
    op.drop_index("idx_hire_audit_logs_hire", table_name="hire_audit_logs")
    op.drop_table("hire_audit_logs")
    op.drop_index("idx_hires_department", table_name="hires")
    op.drop_index("idx_hires_email", table_name="hires")
    op.drop_index("idx_hires_created_at", table_name="hires")
    op.drop_table("hires")
