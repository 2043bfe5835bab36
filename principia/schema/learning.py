"""SQLAlchemy models for per-learner mastery and spaced-repetition schedules."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from principia.core.database import Base


class PrincipleMastery(Base):
  __tablename__ = "principle_mastery"
  __table_args__ = (UniqueConstraint("learner_id", "principle_id", name="ux_principle_mastery_learner_principle"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  learner_id: Mapped[str] = mapped_column(ForeignKey("learners.id", ondelete="CASCADE"), nullable=False, index=True)
  principle_id: Mapped[str] = mapped_column(ForeignKey("principles.id", ondelete="CASCADE"), nullable=False)
  topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
  mastery_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  times_reviewed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  times_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class ReviewSchedule(Base):
  __tablename__ = "review_schedules"
  __table_args__ = (UniqueConstraint("learner_id", "principle_id", name="ux_review_schedules_learner_principle"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  learner_id: Mapped[str] = mapped_column(ForeignKey("learners.id", ondelete="CASCADE"), nullable=False, index=True)
  principle_id: Mapped[str] = mapped_column(ForeignKey("principles.id", ondelete="CASCADE"), nullable=False)
  topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
  due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
  # Fixed-point multiplier scaled by 100 (250 == 2.50).
  ease_factor: Mapped[int] = mapped_column(Integer, nullable=False, default=250, server_default="250")
  interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
  repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending", server_default="pending")
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
