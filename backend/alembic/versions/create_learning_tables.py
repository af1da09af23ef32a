"""Create users, roadmaps, detailed courses and learning history tables

Revision ID: create_learning_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "create_learning_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("preferences", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)

    op.create_table(
        "roadmaps",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("roadmap_id", sa.String(), nullable=False),
        sa.Column("subject", sa.String(), nullable=False),
        sa.Column("difficulty", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("total_duration", sa.String(), nullable=False),
        sa.Column("estimated_hours", sa.String(), nullable=False),
        sa.Column("prerequisites", sa.JSON(), nullable=False),
        sa.Column("learning_outcomes", sa.JSON(), nullable=False),
        sa.Column("chapters", sa.JSON(), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        # One copy of a generated roadmap per user
        sa.UniqueConstraint("user_id", "roadmap_id", name="idx_roadmaps_user_roadmap"),
    )
    op.create_index("ix_roadmaps_user_id", "roadmaps", ["user_id"])
    op.create_index("ix_roadmaps_roadmap_id", "roadmaps", ["roadmap_id"])

    op.create_table(
        "detailed_courses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("roadmap_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("chapters", sa.JSON(), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "user_id", "roadmap_id", name="idx_detailed_courses_user_roadmap"
        ),
    )
    op.create_index("ix_detailed_courses_user_id", "detailed_courses", ["user_id"])
    op.create_index("ix_detailed_courses_roadmap_id", "detailed_courses", ["roadmap_id"])

    op.create_table(
        "learning_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("roadmap_id", sa.String(), nullable=False),
        sa.Column("subject", sa.String(), nullable=False),
        sa.Column("difficulty", sa.String(), nullable=False),
        sa.Column("chapter_progress", sa.JSON(), nullable=False),
        sa.Column("learning_preferences", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("last_accessed_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_learning_history_user_id", "learning_history", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_learning_history_user_id", table_name="learning_history")
    op.drop_table("learning_history")

    op.drop_index("ix_detailed_courses_roadmap_id", table_name="detailed_courses")
    op.drop_index("ix_detailed_courses_user_id", table_name="detailed_courses")
    op.drop_table("detailed_courses")

    op.drop_index("ix_roadmaps_roadmap_id", table_name="roadmaps")
    op.drop_index("ix_roadmaps_user_id", table_name="roadmaps")
    op.drop_table("roadmaps")

    op.drop_index("ix_users_external_id", table_name="users")
    op.drop_table("users")
