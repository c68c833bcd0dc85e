"""one payment transaction per ticket

Revision ID: 0002_payment_per_ticket
Revises: 0001_initial
Create Date: 2026-10-18

"""

from alembic import op

revision = "0002_payment_per_ticket"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.drop_index("ix_payment_transactions_ticket_id", table_name="payment_transactions")
    op.create_index(
        "uq_payment_transactions_ticket_id", "payment_transactions", ["ticket_id"], unique=True,
    )


def downgrade() -> None:
    op.drop_index("uq_payment_transactions_ticket_id", table_name="payment_transactions")
    op.create_index("ix_payment_transactions_ticket_id", "payment_transactions", ["ticket_id"])
