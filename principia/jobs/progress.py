"""Progress reporting for generation jobs."""

from __future__ import annotations

import logging
from typing import Protocol

from principia.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)

COMPLETE_PERCENT = 100.0


class ProgressReporter(Protocol):
  """Receives the percentage reached by the job currently being processed."""

  async def report(self, percentage: float) -> None:
    """Record that the job reached ``percentage``."""


class JobProgressReporter:
  """Write progress to the job record, never moving it backward."""

  def __init__(self, *, job_id: str, jobs_repo: JobsRepository, initial_progress: float = 0.0) -> None:
    self._job_id = job_id
    self._jobs_repo = jobs_repo
    self._last = max(float(initial_progress), 0.0)

  @property
  def last_reported(self) -> float:
    return self._last

  async def report(self, percentage: float) -> None:
    value = max(self._last, min(float(percentage), COMPLETE_PERCENT))
    self._last = value
    # 100 is persisted by the completion update together with the completed status.
    if value >= COMPLETE_PERCENT:
      return
    record = await self._jobs_repo.advance_progress(self._job_id, value)
    if record is None:
      logger.warning("Progress %.0f%% for job %s was not recorded; the job is no longer running.", value, self._job_id)
