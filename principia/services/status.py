"""Read-only view of job state for polling clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status

from principia.jobs.models import JobRecord, JobStatus
from principia.storage.jobs_repo import MAX_RUNNING_PROGRESS, JobsRepository

_JOB_NOT_FOUND_MSG = "Job not found."


@dataclass(frozen=True)
class JobStatusView:
  job_id: str
  state: JobStatus
  progress: float
  result: dict[str, Any] | None = None
  error: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.state in ("completed", "failed")


def status_from_record(record: JobRecord) -> JobStatusView:
  """Project a job record onto the polled status, enforcing the terminal invariants."""

  if record.status == "completed":
    return JobStatusView(job_id=record.job_id, state="completed", progress=100.0, result=record.result_json)

  # Anything short of completion stays below 100 even if a stale row says otherwise.
  progress = min(max(float(record.progress or 0.0), 0.0), MAX_RUNNING_PROGRESS)
  if record.status == "failed":
    return JobStatusView(job_id=record.job_id, state="failed", progress=progress, error=record.error_message or "Generation failed.")
  return JobStatusView(job_id=record.job_id, state=record.status, progress=progress)


async def get_job_status(job_id: str, *, jobs_repo: JobsRepository) -> JobStatusView:
  record = await jobs_repo.get_job(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return status_from_record(record)
