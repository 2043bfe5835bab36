"""Initial schema for learners, topics, generation jobs and review state.

Revision ID: 5f1c2a9d7e10
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "5f1c2a9d7e10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  learner_plan = postgresql.ENUM("free", "pro", name="learner_plan", create_type=False)
  learner_plan.create(op.get_bind(), checkfirst=True)

  op.create_table(
    "learners",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("plan", learner_plan, nullable=False, server_default="free"),
    sa.Column("topics_used", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
  )

  op.create_table(
    "topics",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("slug", sa.String(), nullable=False, unique=True),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("requester_id", sa.String(), nullable=True),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("category", sa.String(), nullable=True),
    sa.Column("difficulty", sa.String(), nullable=False, server_default="beginner"),
    sa.Column("estimated_minutes", sa.Integer(), nullable=False, server_default="30"),
    sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    sa.Column("mind_map_json", postgresql.JSONB(), nullable=True),
    sa.Column("confidence_score", sa.Integer(), nullable=True),
    sa.Column("validation_json", postgresql.JSONB(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
  )
  op.create_index("ix_topics_requester_id", "topics", ["requester_id"])

  op.create_table(
    "principles",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("topic_id", sa.String(), sa.ForeignKey("topics.id", ondelete="CASCADE"), nullable=False),
    sa.Column("order_index", sa.Integer(), nullable=False),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("explanation", sa.Text(), nullable=False),
    sa.Column("analogy", sa.Text(), nullable=True),
    sa.Column("visual_type", sa.String(), nullable=True),
    sa.Column("visual_data", postgresql.JSONB(), nullable=True),
    sa.Column("key_takeaways", postgresql.JSONB(), nullable=True),
    sa.UniqueConstraint("topic_id", "order_index", name="ux_principles_topic_order"),
  )
  op.create_index("ix_principles_topic_id", "principles", ["topic_id"])

  op.create_table(
    "generation_jobs",
    sa.Column("job_id", sa.String(), primary_key=True),
    sa.Column("requester_id", sa.String(), nullable=True),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("slug", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("progress", sa.Float(), nullable=False, server_default="0"),
    sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("max_attempts", sa.Integer(), nullable=False),
    sa.Column("result_json", postgresql.JSONB(), nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("logs", postgresql.JSONB(), nullable=True),
    sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
  )
  op.create_index("ix_generation_jobs_requester_id", "generation_jobs", ["requester_id"])
  op.create_index("ix_generation_jobs_claimable", "generation_jobs", ["status", "next_attempt_at"])
  op.create_index("ux_generation_jobs_active_slug", "generation_jobs", ["slug"], unique=True, postgresql_where=sa.text("status IN ('queued', 'running')"))

  op.create_table(
    "principle_mastery",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("learner_id", sa.String(), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
    sa.Column("principle_id", sa.String(), sa.ForeignKey("principles.id", ondelete="CASCADE"), nullable=False),
    sa.Column("topic_id", sa.String(), sa.ForeignKey("topics.id", ondelete="CASCADE"), nullable=False),
    sa.Column("mastery_score", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("times_reviewed", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("times_correct", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("last_reviewed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.UniqueConstraint("learner_id", "principle_id", name="ux_principle_mastery_learner_principle"),
  )
  op.create_index("ix_principle_mastery_learner_id", "principle_mastery", ["learner_id"])

  op.create_table(
    "review_schedules",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("learner_id", sa.String(), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
    sa.Column("principle_id", sa.String(), sa.ForeignKey("principles.id", ondelete="CASCADE"), nullable=False),
    sa.Column("topic_id", sa.String(), sa.ForeignKey("topics.id", ondelete="CASCADE"), nullable=False),
    sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("ease_factor", sa.Integer(), nullable=False, server_default="250"),
    sa.Column("interval_days", sa.Integer(), nullable=False, server_default="1"),
    sa.Column("repetitions", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("status", sa.String(), nullable=False, server_default="pending"),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.UniqueConstraint("learner_id", "principle_id", name="ux_review_schedules_learner_principle"),
  )
  op.create_index("ix_review_schedules_learner_id", "review_schedules", ["learner_id"])
  op.create_index("ix_review_schedules_due_at", "review_schedules", ["due_at"])


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_table("review_schedules")
  op.drop_table("principle_mastery")
  op.drop_table("generation_jobs")
  op.drop_table("principles")
  op.drop_table("topics")
  op.drop_table("learners")
  postgresql.ENUM(name="learner_plan").drop(op.get_bind(), checkfirst=True)
