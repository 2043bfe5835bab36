"""Postgres-backed repository for generation jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError

from principia.core.database import get_session_factory
from principia.jobs.models import ACTIVE_STATUSES, JobRecord, JobStatus
from principia.schema.jobs import GenerationJob
from principia.storage.jobs_repo import MAX_RUNNING_PROGRESS, DuplicateActiveJobError, JobsRepository, lease_expired_message

logger = logging.getLogger(__name__)

MAX_STORED_LOGS = 100


def _now() -> datetime:
  return datetime.now(UTC)


class PostgresJobsRepository(JobsRepository):
  """Persist generation jobs to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> None:
    async with self._session_factory() as session:
      job = GenerationJob(
        job_id=record.job_id,
        requester_id=record.requester_id,
        title=record.title,
        slug=record.slug,
        status=record.status,
        progress=record.progress,
        attempt_count=record.attempt_count,
        max_attempts=record.max_attempts,
        result_json=record.result_json,
        error_message=record.error_message,
        logs=list(record.logs)[-MAX_STORED_LOGS:],
        next_attempt_at=record.next_attempt_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(job)
      try:
        await session.commit()
      except IntegrityError as exc:
        # The partial unique index on active slugs rejected a concurrent duplicate.
        await session.rollback()
        raise DuplicateActiveJobError(record.slug) from exc

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def update_job(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    progress: float | None = None,
    result_json: dict[str, Any] | None = None,
    error_message: str | None = None,
    logs: list[str] | None = None,
    next_attempt_at: datetime | None = None,
    finished_at: datetime | None = None,
    claimed_attempt: int | None = None,
  ) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJob, job_id, with_for_update=True)
      if row is None:
        return None
      if claimed_attempt is not None and (row.status != "running" or row.attempt_count != claimed_attempt):
        logger.warning("Dropping settle for job %s attempt %s; the job moved on to %s attempt %s.", job_id, claimed_attempt, row.status, row.attempt_count)
        return None
      if status is not None:
        row.status = status
        if status != "running":
          row.lease_expires_at = None
      if progress is not None:
        row.progress = max(row.progress, progress)
      if result_json is not None:
        row.result_json = result_json
      if error_message is not None:
        row.error_message = error_message
      if logs is not None:
        row.logs = list(logs)[-MAX_STORED_LOGS:]
      if next_attempt_at is not None:
        row.next_attempt_at = next_attempt_at
      if finished_at is not None:
        row.finished_at = finished_at
      row.updated_at = _now()
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def claim_next(self, *, now: datetime, lease: timedelta) -> JobRecord | None:
    queued = and_(GenerationJob.status == "queued", GenerationJob.next_attempt_at <= now)
    abandoned = and_(GenerationJob.status == "running", GenerationJob.lease_expires_at < now)
    # SKIP LOCKED lets concurrent workers claim different rows without blocking on each other.
    stmt = select(GenerationJob).where(or_(queued, abandoned)).order_by(GenerationJob.next_attempt_at.asc(), GenerationJob.created_at.asc()).with_for_update(skip_locked=True).limit(1)
    async with self._session_factory() as session:
      while True:
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
          return None

        if row.status == "running":
          if row.attempt_count >= row.max_attempts:
            message = lease_expired_message(row.attempt_count)
            logger.error("Job %s lease expired on its final attempt; marking failed.", row.job_id)
            row.status = "failed"
            row.error_message = message
            row.logs = [*(row.logs or []), message][-MAX_STORED_LOGS:]
            row.lease_expires_at = None
            row.finished_at = now
            row.updated_at = now
            await session.commit()
            continue
          logger.warning("Job %s lease expired during attempt %s; reclaiming.", row.job_id, row.attempt_count)

        row.status = "running"
        row.attempt_count = row.attempt_count + 1
        row.started_at = row.started_at or now
        row.lease_expires_at = now + lease
        row.updated_at = now
        session.add(row)
        await session.commit()
        await session.refresh(row)
        return self._model_to_record(row)

  async def advance_progress(self, job_id: str, progress: float, *, logs: list[str] | None = None) -> JobRecord | None:
    target = min(float(progress), MAX_RUNNING_PROGRESS)
    values: dict[str, Any] = {"progress": func.greatest(GenerationJob.progress, target), "updated_at": _now()}
    if logs is not None:
      values["logs"] = list(logs)[-MAX_STORED_LOGS:]
    async with self._session_factory() as session:
      # Only running jobs move; a late report from a superseded attempt must not touch a terminal row.
      stmt = update(GenerationJob).where(GenerationJob.job_id == job_id, GenerationJob.status == "running").values(**values).returning(GenerationJob).execution_options(synchronize_session=False)
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        return None
      return self._model_to_record(row)

  async def find_active_by_slug(self, slug: str) -> JobRecord | None:
    async with self._session_factory() as session:
      stmt = select(GenerationJob).where(GenerationJob.slug == slug, GenerationJob.status.in_(tuple(ACTIVE_STATUSES))).order_by(GenerationJob.created_at.asc()).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      return self._model_to_record(row)

  async def purge_completed(self, *, older_than: datetime) -> int:
    async with self._session_factory() as session:
      stmt = delete(GenerationJob).where(GenerationJob.status == "completed", GenerationJob.finished_at < older_than)
      result = await session.execute(stmt)
      await session.commit()
      return int(result.rowcount or 0)

  def _model_to_record(self, row: GenerationJob) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      requester_id=row.requester_id,
      title=row.title,
      slug=row.slug,
      status=row.status,
      created_at=row.created_at,
      updated_at=row.updated_at,
      next_attempt_at=row.next_attempt_at,
      max_attempts=row.max_attempts,
      progress=float(row.progress or 0.0),
      attempt_count=row.attempt_count,
      result_json=row.result_json,
      error_message=row.error_message,
      logs=list(row.logs or []),
      started_at=row.started_at,
      lease_expires_at=row.lease_expires_at,
      finished_at=row.finished_at,
    )
