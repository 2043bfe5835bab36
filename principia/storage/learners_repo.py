"""Storage interfaces for learner plans and usage counters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

LearnerPlan = Literal["free", "pro"]


@dataclass(frozen=True)
class LearnerRecord:
  id: str
  plan: LearnerPlan = "free"
  topics_used: int = 0


class LearnersRepository(Protocol):
  """Repository contract for learner usage."""

  async def get_learner(self, learner_id: str) -> LearnerRecord | None:
    """Fetch a learner by identifier."""

  async def ensure_learner(self, learner_id: str) -> LearnerRecord:
    """Return the learner, creating a free-plan row on first sight."""

  async def increment_topics_used(self, learner_id: str) -> int:
    """Atomically add one generated topic to the learner's usage and return the new total."""
