"""Initial lesson portal schema."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01_initial_portal_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "learner_profiles",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("join_date", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("subscription_tier", sa.String(length=32), nullable=False, server_default="free"),
        sa.Column("subscription_status", sa.String(length=32), nullable=False, server_default="inactive"),
        sa.Column("preferred_level", sa.String(length=32), nullable=False, server_default="both"),
        sa.Column("language_support", sa.String(length=32), nullable=False, server_default="english"),
    )

    op.create_table(
        "lessons",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("content_type", sa.String(length=16), nullable=False),
        sa.Column("level", sa.String(length=32), nullable=False),
        sa.Column("language_support", sa.String(length=32), nullable=False, server_default="english"),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("release_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_lessons_published_week", "lessons", ["published", "week_number"])
    op.create_index("ix_lessons_release_date", "lessons", ["release_date"])

    op.create_table(
        "lesson_completions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("learner_id", sa.String(length=64), sa.ForeignKey("learner_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("lesson_id", sa.String(length=64), sa.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("percentage_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("learner_id", "lesson_id", name="uq_lesson_completion_learner_lesson"),
    )
    op.create_index("ix_lesson_completions_learner", "lesson_completions", ["learner_id"])

    op.create_table(
        "persistence_audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("learner_id", sa.String(length=64), sa.ForeignKey("learner_profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index(
        "ix_audit_events_learner_created",
        "persistence_audit_events",
        ["learner_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_audit_events_learner_created", table_name="persistence_audit_events")
    op.drop_table("persistence_audit_events")
    op.drop_index("ix_lesson_completions_learner", table_name="lesson_completions")
    op.drop_table("lesson_completions")
    op.drop_index("ix_lessons_release_date", table_name="lessons")
    op.drop_index("ix_lessons_published_week", table_name="lessons")
    op.drop_table("lessons")
    op.drop_table("learner_profiles")
