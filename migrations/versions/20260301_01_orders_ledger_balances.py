"""orders, ledger and balances

Revision ID: 3f9c2d71b8a4
Revises: 
Create Date: 2026-03-01 10:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9c2d71b8a4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "payment_orders",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("rail", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="created"),
        sa.Column("payer_wallet", sa.String(length=128)),
        sa.Column("payer_email", sa.String(length=255)),
        sa.Column("source_amount", sa.String(length=64), nullable=False),
        sa.Column("source_currency", sa.String(length=20), nullable=False),
        sa.Column("rate", sa.String(length=64), nullable=False),
        sa.Column("token_units", sa.BigInteger(), nullable=False),
        sa.Column("fiat_units", sa.BigInteger(), nullable=False),
        sa.Column("credit_units", sa.BigInteger(), nullable=False),
        sa.Column("settlement_amount", sa.BigInteger(), nullable=False),
        sa.Column("external_ref", sa.String(length=100), nullable=False),
        sa.Column("settlement_target", sa.Text()),
        sa.Column("failure_reason", sa.String(length=50)),
        sa.Column("detail", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True)),
        sa.Column("credited_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("external_ref", name="uq_payment_orders_external_ref"),
    )
    op.create_index("ix_payment_orders_status", "payment_orders", ["status"])
    op.create_index("ix_payment_orders_payer_wallet", "payment_orders", ["payer_wallet"])
    op.create_index("ix_payment_orders_expires_at", "payment_orders", ["expires_at"])

    op.create_table(
        "credit_balances",
        sa.Column("wallet", sa.String(length=128), primary_key=True),
        sa.Column("balance_units", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "credit_ledger",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(length=36), sa.ForeignKey("payment_orders.id"), nullable=False),
        sa.Column("wallet", sa.String(length=128), sa.ForeignKey("credit_balances.wallet"), nullable=False),
        sa.Column("amount_units", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("order_id", name="uq_credit_ledger_order_id"),
    )
    op.create_index("ix_credit_ledger_wallet", "credit_ledger", ["wallet"])


def downgrade() -> None:
    op.drop_index("ix_credit_ledger_wallet", table_name="credit_ledger")
    op.drop_table("credit_ledger")
    op.drop_table("credit_balances")
    op.drop_index("ix_payment_orders_expires_at", table_name="payment_orders")
    op.drop_index("ix_payment_orders_payer_wallet", table_name="payment_orders")
    op.drop_index("ix_payment_orders_status", table_name="payment_orders")
    op.drop_table("payment_orders")
