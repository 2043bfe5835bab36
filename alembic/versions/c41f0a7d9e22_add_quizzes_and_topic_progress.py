"""Add quizzes, quiz questions and per-topic learner progress.

Revision ID: c41f0a7d9e22
Revises: 8b3e6d41c2a7
Create Date: 2026-10-19 15:30:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "c41f0a7d9e22"
down_revision = "8b3e6d41c2a7"
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "quizzes",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("topic_id", sa.String(), sa.ForeignKey("topics.id", ondelete="CASCADE"), nullable=False),
    sa.Column("learner_id", sa.String(), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
    sa.Column("total_questions", sa.Integer(), nullable=False),
    sa.Column("correct_count", sa.Integer(), nullable=True),
    sa.Column("score", sa.Integer(), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
  )
  op.create_index("ix_quizzes_topic_id", "quizzes", ["topic_id"])
  op.create_index("ix_quizzes_learner_id", "quizzes", ["learner_id"])

  op.create_table(
    "quiz_questions",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("quiz_id", sa.String(), sa.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False),
    sa.Column("principle_id", sa.String(), sa.ForeignKey("principles.id", ondelete="SET NULL"), nullable=True),
    sa.Column("order_index", sa.Integer(), nullable=False),
    sa.Column("question_text", sa.Text(), nullable=False),
    sa.Column("options", postgresql.JSONB(), nullable=False),
    sa.Column("correct_answer", sa.Integer(), nullable=False),
    sa.Column("explanation", sa.Text(), nullable=True),
    sa.Column("user_answer", sa.Integer(), nullable=True),
    sa.Column("is_correct", sa.Boolean(), nullable=True),
    sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
    sa.UniqueConstraint("quiz_id", "order_index", name="ux_quiz_questions_quiz_order"),
  )
  op.create_index("ix_quiz_questions_quiz_id", "quiz_questions", ["quiz_id"])

  op.create_table(
    "topic_progress",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("learner_id", sa.String(), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
    sa.Column("topic_id", sa.String(), sa.ForeignKey("topics.id", ondelete="CASCADE"), nullable=False),
    sa.Column("principles_completed", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("total_principles", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("quizzes_taken", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("best_score", sa.Integer(), nullable=True),
    sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.UniqueConstraint("learner_id", "topic_id", name="ux_topic_progress_learner_topic"),
  )
  op.create_index("ix_topic_progress_learner_id", "topic_progress", ["learner_id"])
  op.create_index("ix_topics_public_created", "topics", ["is_public", "created_at"])


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_topics_public_created", table_name="topics")
  op.drop_table("topic_progress")
  op.drop_table("quiz_questions")
  op.drop_table("quizzes")
