"""create registry tables

Revision ID: a7c31e5d9b20
Revises:
Create Date: 2026-10-17 09:12:41.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a7c31e5d9b20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create enterprises, documents, document_grants, audit_entries and audit_counters."""
    op.create_table(
        "enterprises",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("owner", sa.String(128), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("registered_at", sa.DateTime(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enterprise_id", sa.String(64), sa.ForeignKey("enterprises.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("document_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("content_hash", sa.LargeBinary(32), nullable=False),
        sa.Column("document_type", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("enterprise_id", "document_id", name="uq_document_enterprise_document"),
    )

    op.create_table(
        "document_grants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enterprise_id", sa.String(64), sa.ForeignKey("enterprises.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("document_id", sa.String(64), nullable=False),
        sa.Column("user_principal", sa.String(128), nullable=False),
        sa.Column("permission_level", sa.Integer(), nullable=False),
        sa.Column("granted_by", sa.String(128), nullable=False),
        sa.Column("granted_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("enterprise_id", "document_id", "user_principal", name="uq_grant_document_user"),
    )

    op.create_table(
        "audit_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enterprise_id", sa.String(64), sa.ForeignKey("enterprises.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("document_id", sa.String(64), nullable=False, server_default=""),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("user_principal", sa.String(128), nullable=False),
        sa.Column("action", sa.String(16), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("details_json", sa.Text(), nullable=True),
        sa.UniqueConstraint("enterprise_id", "document_id", "sequence", name="uq_audit_entry_sequence"),
    )

    op.create_table(
        "audit_counters",
        sa.Column("enterprise_id", sa.String(64), primary_key=True),
        sa.Column("document_id", sa.String(64), primary_key=True),
        sa.Column("next_sequence", sa.Integer(), nullable=False, server_default="1"),
    )


def downgrade() -> None:
    op.drop_table("audit_counters")
    op.drop_table("audit_entries")
    op.drop_table("document_grants")
    op.drop_table("documents")
    op.drop_table("enterprises")
