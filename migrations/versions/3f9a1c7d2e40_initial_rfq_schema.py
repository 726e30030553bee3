"""initial_rfq_schema

Revision ID: 3f9a1c7d2e40
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f9a1c7d2e40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "rfqs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("product_id", sa.String(36), nullable=True),
        sa.Column("category_id", sa.String(36), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(50), nullable=False, server_default="pieces"),
        sa.Column("budget_min", sa.Numeric(14, 2), nullable=True),
        sa.Column("budget_max", sa.Numeric(14, 2), nullable=True),
        sa.Column("delivery_location", sa.String(300), nullable=True),
        sa.Column("buyer_id", sa.String(36), nullable=True),
        sa.Column("admin_id", sa.String(36), nullable=True),
        sa.Column("contact_name", sa.String(200), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("distribution_type", sa.String(20), nullable=False, server_default="all"),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("specifications", sa.JSON(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('draft','published','closed','cancelled')",
            name="chk_rfq_status",
        ),
        sa.CheckConstraint(
            "distribution_type IN ('all','category','specific')",
            name="chk_rfq_distribution_type",
        ),
        sa.CheckConstraint("quantity >= 1", name="chk_rfq_quantity"),
    )
    op.create_index("idx_rfqs_buyer", "rfqs", ["buyer_id"])
    op.create_index("idx_rfqs_status", "rfqs", ["status"])
    op.create_index("idx_rfqs_created_at", "rfqs", ["created_at"])
    op.create_index("idx_rfqs_contact_email", "rfqs", ["contact_email"])

    op.create_table(
        "rfq_target_sellers",
        sa.Column(
            "rfq_id",
            sa.String(36),
            sa.ForeignKey("rfqs.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("seller_id", sa.String(36), primary_key=True),
        sa.Column("added_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "rfq_responses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "rfq_id",
            sa.String(36),
            sa.ForeignKey("rfqs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seller_id", sa.String(36), nullable=False),
        sa.Column("quote_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("quote_quantity", sa.Integer(), nullable=True),
        sa.Column("delivery_time_days", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("submitted_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("rfq_id", "seller_id", name="uq_rfq_response_seller"),
        sa.CheckConstraint("quote_price >= 0", name="chk_rfq_response_price"),
        sa.CheckConstraint(
            "status IN ('pending','submitted','accepted','rejected')",
            name="chk_rfq_response_status",
        ),
    )
    op.create_index("idx_rfq_responses_seller", "rfq_responses", ["seller_id"])


def downgrade() -> None:
    op.drop_index("idx_rfq_responses_seller", table_name="rfq_responses")
    op.drop_table("rfq_responses")
    op.drop_table("rfq_target_sellers")
    op.drop_index("idx_rfqs_contact_email", table_name="rfqs")
    op.drop_index("idx_rfqs_created_at", table_name="rfqs")
    op.drop_index("idx_rfqs_status", table_name="rfqs")
    op.drop_index("idx_rfqs_buyer", table_name="rfqs")
    op.drop_table("rfqs")
