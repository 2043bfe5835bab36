"""Polling loop that feeds claimed jobs to a generation worker one at a time."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime, timedelta

from principia.ai.factory import _get_content_service
from principia.config import Settings
from principia.jobs.worker import GenerationWorker
from principia.storage.factory import _get_content_repo, _get_jobs_repo, _get_learners_repo
from principia.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)

PURGE_INTERVAL_SECONDS = 600.0


class WorkerLoop:
  """Poll the shared queue until ``stop_event`` is set."""

  def __init__(self, *, worker: GenerationWorker, jobs_repo: JobsRepository, poll_interval_seconds: float, completed_retention: timedelta | None = None) -> None:
    self._worker = worker
    self._jobs_repo = jobs_repo
    self._poll_interval = poll_interval_seconds
    self._completed_retention = completed_retention
    self._last_purge: float | None = None

  async def run(self, stop_event: asyncio.Event) -> None:
    logger.info("Worker loop started (poll every %.1fs).", self._poll_interval)
    while not stop_event.is_set():
      processed = await self.tick()
      if processed:
        continue
      try:
        await asyncio.wait_for(stop_event.wait(), timeout=self._poll_interval)
      except TimeoutError:
        pass
    logger.info("Worker loop stopped.")

  async def tick(self) -> bool:
    """Process at most one job; return whether a job was handled."""

    try:
      record = await self._worker.run_once()
    except Exception:  # noqa: BLE001
      # Claim or settle failed; a job left running is reclaimed once its lease expires.
      logger.exception("Worker iteration failed.")
      return False

    if record is not None:
      return True

    await self._maybe_purge()
    return False

  async def _maybe_purge(self) -> None:
    if self._completed_retention is None:
      return
    now = time.monotonic()
    if self._last_purge is not None and now - self._last_purge < PURGE_INTERVAL_SECONDS:
      return
    self._last_purge = now
    try:
      removed = await self._jobs_repo.purge_completed(older_than=datetime.now(UTC) - self._completed_retention)
    except Exception:  # noqa: BLE001
      logger.exception("Purging completed jobs failed.")
      return
    if removed:
      logger.info("Purged %s completed job(s).", removed)


def build_worker_loop(settings: Settings) -> WorkerLoop:
  """Wire the Postgres repositories and the Gemini backend into a polling loop."""

  jobs_repo = _get_jobs_repo(settings)
  worker = GenerationWorker(
    jobs_repo=jobs_repo,
    content_repo=_get_content_repo(settings),
    learners_repo=_get_learners_repo(settings),
    content_service=_get_content_service(settings),
    settings=settings,
  )
  retention = timedelta(hours=settings.completed_job_retention_hours) if settings.completed_job_retention_hours else None
  return WorkerLoop(worker=worker, jobs_repo=jobs_repo, poll_interval_seconds=settings.worker_poll_interval_seconds, completed_retention=retention)
