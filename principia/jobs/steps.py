"""Ordered, named steps of the topic generation pipeline."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from principia.ai.content_service import TopicContent, ValidationReport
from principia.jobs.models import JobRecord
from principia.storage.content_repo import TopicRecord

MAX_TRACKED_LOGS = 100


@dataclass
class GenerationContext:
  """Mutable state threaded through the steps of one attempt."""

  job: JobRecord
  content: TopicContent | None = None
  validation: ValidationReport | None = None
  topic: TopicRecord | None = None
  reused_existing: bool = False
  logs: list[str] = field(default_factory=list)

  def add_log(self, message: str) -> None:
    """Append a log line while preserving the rolling window."""

    self.logs.append(message)
    if len(self.logs) > MAX_TRACKED_LOGS:
      self.logs = self.logs[-MAX_TRACKED_LOGS:]


StepHandler = Callable[[GenerationContext], Awaitable[None]]


@dataclass(frozen=True)
class PipelineStep:
  """One stage of a generation attempt.

  A failing required step fails the attempt and is retried with the whole job. A failing
  ``best_effort`` step is logged and skipped. ``progress`` is reported once the step has run,
  whether it succeeded or was skipped; ``None`` leaves reporting to the completion update.
  """

  name: str
  handler: StepHandler
  progress: float | None
  best_effort: bool = False
