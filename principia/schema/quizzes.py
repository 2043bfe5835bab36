"""SQLAlchemy models for generated quizzes and per-topic learner progress."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from principia.core.database import Base

_JSON = JSON().with_variant(JSONB(), "postgresql")


class Quiz(Base):
  __tablename__ = "quizzes"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
  learner_id: Mapped[str] = mapped_column(ForeignKey("learners.id", ondelete="CASCADE"), nullable=False, index=True)
  total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
  correct_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
  score: Mapped[int | None] = mapped_column(Integer, nullable=True)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class QuizQuestion(Base):
  __tablename__ = "quiz_questions"
  __table_args__ = (UniqueConstraint("quiz_id", "order_index", name="ux_quiz_questions_quiz_order"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  quiz_id: Mapped[str] = mapped_column(ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
  # Questions outlive a principle being regenerated; they just stop feeding mastery.
  principle_id: Mapped[str | None] = mapped_column(ForeignKey("principles.id", ondelete="SET NULL"), nullable=True)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False)
  question_text: Mapped[str] = mapped_column(Text, nullable=False)
  options: Mapped[list] = mapped_column(_JSON, nullable=False)
  correct_answer: Mapped[int] = mapped_column(Integer, nullable=False)
  explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
  user_answer: Mapped[int | None] = mapped_column(Integer, nullable=True)
  is_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
  answered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class TopicProgress(Base):
  __tablename__ = "topic_progress"
  __table_args__ = (UniqueConstraint("learner_id", "topic_id", name="ux_topic_progress_learner_topic"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  learner_id: Mapped[str] = mapped_column(ForeignKey("learners.id", ondelete="CASCADE"), nullable=False, index=True)
  topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
  principles_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  total_principles: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  quizzes_taken: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  best_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
  last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
