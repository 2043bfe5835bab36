"""Storage interfaces for mastery records and review schedules."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from principia.learning.mastery import MasteryRecord
from principia.learning.scheduler import ScheduleRecord


class LearningRepository(Protocol):
  """Repository contract keyed by (learner, principle)."""

  async def apply_outcome(self, *, record_id: str, learner_id: str, principle_id: str, topic_id: str, was_correct: bool, now: datetime) -> MasteryRecord:
    """Atomically count one graded answer for (learner, principle) and return the updated record.

    The first answer creates the row with ``record_id``; later answers increment the stored counters in place,
    so concurrent answers for the same principle are all counted.
    """

  async def list_mastery(self, learner_id: str) -> list[MasteryRecord]:
    """Return every mastery record for a learner."""

  async def get_schedule(self, schedule_id: str) -> ScheduleRecord | None:
    """Fetch a review schedule by identifier."""

  async def get_schedule_for_principle(self, learner_id: str, principle_id: str) -> ScheduleRecord | None:
    """Fetch the review schedule for one principle."""

  async def save_schedule(self, record: ScheduleRecord) -> ScheduleRecord:
    """Upsert a review schedule by (learner, principle)."""

  async def list_due_schedules(self, learner_id: str, *, now: datetime, limit: int = 50) -> list[ScheduleRecord]:
    """Return schedules due at or before ``now``, oldest first."""

  async def count_due_schedules(self, learner_id: str, *, now: datetime) -> int:
    """Count schedules due at or before ``now``."""

  async def count_schedules(self, learner_id: str) -> int:
    """Count every schedule a learner has."""
