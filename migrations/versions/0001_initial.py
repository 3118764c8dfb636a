"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "budget_sheets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_budget_sheets_id", "budget_sheets", ["id"])
    op.create_index("ix_budget_sheets_user_id", "budget_sheets", ["user_id"])

    op.create_table(
        "budget_diary_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("budget_id", sa.Integer(), sa.ForeignKey("budget_sheets.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("access_level", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("budget_id", "user_id", name="uq_budget_diary_members_budget_user"),
    )
    op.create_index("ix_budget_diary_members_id", "budget_diary_members", ["id"])
    op.create_index("ix_budget_diary_members_budget_id", "budget_diary_members", ["budget_id"])
    op.create_index("ix_budget_diary_members_user_id", "budget_diary_members", ["user_id"])

    op.create_table(
        "split_expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_split_expenses_id", "split_expenses", ["id"])
    op.create_index("ix_split_expenses_date", "split_expenses", ["date"])
    op.create_index("ix_split_expenses_creator_id", "split_expenses", ["creator_id"])

    op.create_table(
        "split_expense_shares",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("split_expense_id", sa.Integer(), sa.ForeignKey("split_expenses.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("split_expense_id", "user_id", name="uq_split_expense_shares_expense_user"),
    )
    op.create_index("ix_split_expense_shares_id", "split_expense_shares", ["id"])
    op.create_index("ix_split_expense_shares_split_expense_id", "split_expense_shares", ["split_expense_id"])
    op.create_index("ix_split_expense_shares_user_id", "split_expense_shares", ["user_id"])

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_activities_id", "activities", ["id"])
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_activity_type", "activities", ["activity_type"])
    op.create_index("ix_activities_created_at", "activities", ["created_at"])


def downgrade():
    op.drop_table("activities")
    op.drop_table("split_expense_shares")
    op.drop_table("split_expenses")
    op.drop_table("budget_diary_members")
    op.drop_table("budget_sheets")
    op.drop_table("users")
