"""SQLAlchemy model for the learner usage counters consumed by the generation pipeline."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from principia.core.database import Base


class Learner(Base):
  __tablename__ = "learners"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  plan: Mapped[str] = mapped_column(Enum("free", "pro", name="learner_plan"), nullable=False, default="free", server_default="free")
  topics_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
