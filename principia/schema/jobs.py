from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from principia.core.database import Base


class GenerationJob(Base):
  __tablename__ = "generation_jobs"
  __table_args__ = (
    Index("ix_generation_jobs_claimable", "status", "next_attempt_at"),
    Index("ix_generation_jobs_lease", "status", "lease_expires_at"),
    # At most one queued or running job per slug.
    Index("ux_generation_jobs_active_slug", "slug", unique=True, postgresql_where=text("status IN ('queued', 'running')")),
  )

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  requester_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  slug: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False)
  progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
  attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  max_attempts: Mapped[int] = mapped_column(Integer, nullable=False)
  result_json: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  logs: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
  next_attempt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  lease_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
