"""initial schema: users, banks, report settings, statements

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa

from bankrec.models.types import Money

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str) -> sa.Column:
    return sa.Column(name, Money(), nullable=False, server_default="0")


def upgrade() -> None:
    # users
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # banks
    op.create_table(
        "banks",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
    )

    # report_settings (single row)
    op.create_table(
        "report_settings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("report_heading", sa.String(length=300), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # statements
    op.create_table(
        "statements",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("statement_id", sa.Integer(), nullable=False),
        sa.Column("bank_code", sa.String(length=32), nullable=False),
        sa.Column("bank_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("reconciliation_date", sa.Date(), nullable=False),
        sa.Column("reconciliation_month", sa.String(length=32), nullable=False, server_default=""),
        _money("balance_as_per_bank"),
        _money("balance_as_per_book"),
        _money("total_additions"),
        _money("total_deductions"),
        _money("corrected_balance"),
        _money("total_book_additions"),
        _money("total_book_deductions"),
        _money("corrected_book_balance"),
        _money("difference"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "statement_id", name="uq_statements_user_statement_id"),
    )
    op.create_index("ix_statements_user_bank", "statements", ["user_id", "bank_code"])

    # statement_items
    op.create_table(
        "statement_items",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("record_id", sa.Uuid(), sa.ForeignKey("statements.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("narration", sa.Text(), nullable=False, server_default=""),
        _money("amount"),
    )
    op.create_index("ix_statement_items_record_id", "statement_items", ["record_id"])


def downgrade() -> None:
    op.drop_index("ix_statement_items_record_id", table_name="statement_items")
    op.drop_table("statement_items")
    op.drop_index("ix_statements_user_bank", table_name="statements")
    op.drop_table("statements")
    op.drop_table("report_settings")
    op.drop_table("banks")
    op.drop_table("users")
