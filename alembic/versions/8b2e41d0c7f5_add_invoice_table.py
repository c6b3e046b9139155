"""add invoice table

Revision ID: 8b2e41d0c7f5
Revises: 3f1c9a2b7d4e
Create Date: 2026-10-20 10:03:17.552904

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '8b2e41d0c7f5'
down_revision: Union[str, Sequence[str], None] = '3f1c9a2b7d4e'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "invoice",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("invoice_code", sa.String(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_index("ix_invoice_user_id", "invoice", ["user_id"])
    op.create_index("ix_invoice_order_id", "invoice", ["order_id"])
    op.create_index("ix_invoice_invoice_code", "invoice", ["invoice_code"])
    op.create_index("ix_invoice_status", "invoice", ["status"])


def downgrade():
    op.drop_index("ix_invoice_status", table_name="invoice")
    op.drop_index("ix_invoice_invoice_code", table_name="invoice")
    op.drop_index("ix_invoice_order_id", table_name="invoice")
    op.drop_index("ix_invoice_user_id", table_name="invoice")
    op.drop_table("invoice")
