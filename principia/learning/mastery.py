"""Mastery aggregation derived from graded quiz answers and reviews."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime

from principia.learning.scheduler import PASSING_QUALITY, validate_quality

WEAK_THRESHOLD = 60
MASTERED_THRESHOLD = 80


@dataclass(frozen=True)
class MasteryRecord:
  """Correct-answer ratio for one (learner, principle) pair."""

  id: str
  learner_id: str
  principle_id: str
  topic_id: str
  mastery_score: int = 0
  times_reviewed: int = 0
  times_correct: int = 0
  last_reviewed_at: datetime | None = None


@dataclass(frozen=True)
class MasteryOverview:
  """Learner-level analytics over every tracked principle."""

  tracked: int
  principles_mastered: int
  weak_principles_count: int
  average_mastery: int


def mastery_score(times_correct: int, times_reviewed: int) -> int:
  """Return ``round(correct / reviewed * 100)`` with halves rounded up, 0 when nothing was reviewed."""

  if times_reviewed < 0 or times_correct < 0 or times_correct > times_reviewed:
    raise ValueError("times_correct must be between 0 and times_reviewed.")
  if times_reviewed == 0:
    return 0
  return (200 * times_correct + times_reviewed) // (2 * times_reviewed)


def outcome_from_quality(quality: int) -> bool:
  """Map a review grade to a quiz-style correct/incorrect outcome."""

  return validate_quality(quality) >= PASSING_QUALITY


def new_mastery_record(*, record_id: str, learner_id: str, principle_id: str, topic_id: str) -> MasteryRecord:
  return MasteryRecord(id=record_id, learner_id=learner_id, principle_id=principle_id, topic_id=topic_id)


def record_outcome(record: MasteryRecord, *, was_correct: bool, now: datetime) -> MasteryRecord:
  """Fold one graded interaction into ``record``."""

  times_reviewed = record.times_reviewed + 1
  times_correct = record.times_correct + (1 if was_correct else 0)
  return replace(record, times_reviewed=times_reviewed, times_correct=times_correct, mastery_score=mastery_score(times_correct, times_reviewed), last_reviewed_at=now)


def is_weak(record: MasteryRecord) -> bool:
  return record.mastery_score < WEAK_THRESHOLD


def is_mastered(record: MasteryRecord) -> bool:
  return record.mastery_score >= MASTERED_THRESHOLD


def weakest_first(records: Iterable[MasteryRecord]) -> list[MasteryRecord]:
  """Return the weak records ordered by score, oldest review first on ties."""

  weak = [record for record in records if is_weak(record)]
  # Never-reviewed rows sort ahead of reviewed ones with the same score.
  return sorted(weak, key=lambda record: (record.mastery_score, record.last_reviewed_at is not None, record.last_reviewed_at or datetime.min))


def summarize(records: Iterable[MasteryRecord]) -> MasteryOverview:
  """Build the learner overview used by analytics surfaces."""

  items = list(records)
  if not items:
    return MasteryOverview(tracked=0, principles_mastered=0, weak_principles_count=0, average_mastery=0)

  total = sum(record.mastery_score for record in items)
  average = (2 * total + len(items)) // (2 * len(items))
  return MasteryOverview(
    tracked=len(items),
    principles_mastered=sum(1 for record in items if is_mastered(record)),
    weak_principles_count=sum(1 for record in items if is_weak(record)),
    average_mastery=average,
  )
