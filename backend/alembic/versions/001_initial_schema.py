"""Initial schema — discount_sets, discounts.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "discount_sets",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("shop", sa.String(255), nullable=False),
        sa.Column("master_discount_id", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_discount_sets_shop", "discount_sets", ["shop"])

    op.create_table(
        "discounts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("shop", sa.String(255), nullable=False),
        sa.Column("code", sa.String(255), nullable=False),
        sa.Column("master_discount_id", sa.String(255), nullable=False),
        sa.Column(
            "discount_set_id", UUID(as_uuid=True),
            sa.ForeignKey("discount_sets.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("remote_id", sa.String(255), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("claim_token", UUID(as_uuid=True), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("shop", "code", name="uq_discounts_shop_code"),
    )
    op.create_index("ix_discounts_shop", "discounts", ["shop"])
    op.create_index("ix_discounts_remote_id", "discounts", ["remote_id"])
    op.create_index("ix_discounts_set_status", "discounts", ["discount_set_id", "status"])


def downgrade() -> None:
    op.drop_index("ix_discounts_set_status", table_name="discounts")
    op.drop_index("ix_discounts_remote_id", table_name="discounts")
    op.drop_index("ix_discounts_shop", table_name="discounts")
    op.drop_table("discounts")
    op.drop_index("ix_discount_sets_shop", table_name="discount_sets")
    op.drop_table("discount_sets")
