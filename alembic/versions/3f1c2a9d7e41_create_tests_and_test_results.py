"""create tests & test_results

Revision ID: 3f1c2a9d7e41
Revises:
Create Date: 2026-10-18 09:12:05.118240
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f1c2a9d7e41"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TEST_TYPES = "('strength', 'speed', 'endurance', 'agility', 'technique', 'power', 'reaction', 'coordination')"
TEST_UNITS = "('kg', 'reps', 'sec', 'min', 'cm', 'm', 'km/h', 'score', 'percent')"


def upgrade() -> None:
    # ---- tests ----
    op.create_table(
        "tests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("test_type", sa.String(length=50), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(f"test_type IN {TEST_TYPES}", name="ck_tests_test_type"),
        sa.CheckConstraint(f"unit IN {TEST_UNITS}", name="ck_tests_unit"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_tests_id"), "tests", ["id"], unique=False)

    # ---- test_results ----
    op.create_table(
        "test_results",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("test_id", sa.Integer(), nullable=False),
        # users and teams live in the user service, so no FK for these
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("test_date", sa.Date(), nullable=False),
        sa.Column("result", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("test_type", sa.String(length=50), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("comparison_to_previous", sa.Float(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(f"test_type IN {TEST_TYPES}", name="ck_test_results_test_type"),
        sa.CheckConstraint(f"unit IN {TEST_UNITS}", name="ck_test_results_unit"),
        sa.ForeignKeyConstraint(["test_id"], ["tests.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_test_results_id"), "test_results", ["id"], unique=False)
    op.create_index("idx_test_results_user_test", "test_results", ["user_id", "test_id"], unique=False)
    op.create_index("idx_test_results_team_test", "test_results", ["team_id", "test_id"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_test_results_team_test", table_name="test_results")
    op.drop_index("idx_test_results_user_test", table_name="test_results")
    op.drop_index(op.f("ix_test_results_id"), table_name="test_results")
    op.drop_table("test_results")

    op.drop_index(op.f("ix_tests_id"), table_name="tests")
    op.drop_table("tests")
