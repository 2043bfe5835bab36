"""Storage interfaces for background generation jobs."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Protocol

from principia.jobs.models import JobRecord, JobStatus

# 100 is only ever written together with the completed status.
MAX_RUNNING_PROGRESS = 99.0


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: JobRecord) -> None:
    """Persist an initial job record; raise ``DuplicateActiveJobError`` when the slug already has an active job."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

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
    """Apply partial updates to a job.

    With ``claimed_attempt`` the write only lands while the job is still running that attempt; a superseded
    worker gets ``None`` back and the row is left untouched.
    """

  async def claim_next(self, *, now: datetime, lease: timedelta) -> JobRecord | None:
    """Atomically claim the oldest due job, bump its attempt count and hold it for ``lease``.

    Due jobs are queued jobs past ``next_attempt_at`` and running jobs whose lease expired because their worker
    died. An expired job that already used its final attempt is failed instead of claimed.
    """

  async def advance_progress(self, job_id: str, progress: float, *, logs: list[str] | None = None) -> JobRecord | None:
    """Raise the stored progress to ``progress`` without ever lowering it."""

  async def find_active_by_slug(self, slug: str) -> JobRecord | None:
    """Return a queued or running job targeting ``slug``, if any."""

  async def purge_completed(self, *, older_than: datetime) -> int:
    """Delete completed jobs finished before ``older_than``; failed jobs are kept."""


class DuplicateActiveJobError(Exception):
  """Raised when another queued or running job already targets the same slug."""

  def __init__(self, slug: str) -> None:
    super().__init__(f"An active job for slug '{slug}' already exists.")
    self.slug = slug


def lease_expired_message(attempt_count: int) -> str:
  """Error recorded when the worker holding the final attempt stopped renewing its claim."""

  return f"Worker stopped responding during attempt {attempt_count}; no attempts left."
