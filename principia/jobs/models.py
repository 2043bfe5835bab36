"""Domain models for asynchronous topic generation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

JobStatus = Literal["queued", "running", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})
ACTIVE_STATUSES: frozenset[str] = frozenset({"queued", "running"})


@dataclass
class JobRecord:
  """Represents a background topic generation job.

  Once terminal, exactly one of ``result_json`` (completed) or ``error_message``
  (failed) is set, and ``progress`` is 100 iff the job completed.
  """

  job_id: str
  requester_id: str | None
  title: str
  slug: str
  status: JobStatus
  created_at: datetime
  updated_at: datetime
  next_attempt_at: datetime
  max_attempts: int
  progress: float = 0.0
  attempt_count: int = 0
  result_json: dict[str, Any] | None = None
  error_message: str | None = None
  logs: list[str] = field(default_factory=list)
  started_at: datetime | None = None
  lease_expires_at: datetime | None = None
  finished_at: datetime | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES

  @property
  def attempts_remaining(self) -> int:
    return max(self.max_attempts - self.attempt_count, 0)
