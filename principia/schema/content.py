"""SQLAlchemy models for generated topics and their ordered principles."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from principia.core.database import Base

_JSON = JSON().with_variant(JSONB(), "postgresql")


class Topic(Base):
  __tablename__ = "topics"
  __table_args__ = (Index("ix_topics_public_created", "is_public", "created_at"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  # Slug uniqueness is the backstop that keeps concurrent generations of one subject from both landing.
  slug: Mapped[str] = mapped_column(String, unique=True, nullable=False)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  requester_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  category: Mapped[str | None] = mapped_column(String, nullable=True)
  difficulty: Mapped[str] = mapped_column(String, nullable=False, default="beginner", server_default="beginner")
  estimated_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30, server_default="30")
  is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
  mind_map_json: Mapped[dict | None] = mapped_column(_JSON, nullable=True)
  confidence_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
  validation_json: Mapped[dict | None] = mapped_column(_JSON, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Principle(Base):
  __tablename__ = "principles"
  __table_args__ = (UniqueConstraint("topic_id", "order_index", name="ux_principles_topic_order"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  explanation: Mapped[str] = mapped_column(Text, nullable=False)
  analogy: Mapped[str | None] = mapped_column(Text, nullable=True)
  visual_type: Mapped[str | None] = mapped_column(String, nullable=True)
  visual_data: Mapped[dict | None] = mapped_column(_JSON, nullable=True)
  key_takeaways: Mapped[list | None] = mapped_column(_JSON, nullable=True)
