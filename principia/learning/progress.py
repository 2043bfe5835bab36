"""Quiz scoring and per-topic progress for a learner."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

PASSING_SCORE = 70


@dataclass(frozen=True)
class TopicProgressRecord:
  """How far one learner got through one topic."""

  id: str
  learner_id: str
  topic_id: str
  principles_completed: int = 0
  total_principles: int = 0
  quizzes_taken: int = 0
  best_score: int | None = None
  last_accessed_at: datetime | None = None
  completed_at: datetime | None = None

  @property
  def is_completed(self) -> bool:
    return self.completed_at is not None


def quiz_score(correct_count: int, total_questions: int) -> int:
  """Return the percentage of correct answers, halves rounded up."""

  if total_questions <= 0:
    raise ValueError("A quiz needs at least one question.")
  if correct_count < 0 or correct_count > total_questions:
    raise ValueError("correct_count must be between 0 and total_questions.")
  return (200 * correct_count + total_questions) // (2 * total_questions)


def is_passing(score: int) -> bool:
  return score >= PASSING_SCORE


def new_progress_record(*, record_id: str, learner_id: str, topic_id: str, total_principles: int) -> TopicProgressRecord:
  return TopicProgressRecord(id=record_id, learner_id=learner_id, topic_id=topic_id, total_principles=total_principles)


def apply_quiz_result(record: TopicProgressRecord, *, score: int, total_principles: int, now: datetime) -> TopicProgressRecord:
  """Count a finished quiz; a passing score completes the topic and every principle in it."""

  best = score if record.best_score is None else max(record.best_score, score)
  passed = is_passing(score)
  return replace(
    record,
    quizzes_taken=record.quizzes_taken + 1,
    best_score=best,
    total_principles=total_principles,
    principles_completed=total_principles if passed else min(record.principles_completed, total_principles),
    last_accessed_at=now,
    completed_at=record.completed_at or (now if passed else None),
  )


def apply_reading(record: TopicProgressRecord, *, principles_completed: int, total_principles: int, now: datetime) -> TopicProgressRecord:
  """Record reading progress; the completed count never moves backwards."""

  completed = min(max(record.principles_completed, principles_completed), total_principles)
  return replace(record, principles_completed=completed, total_principles=total_principles, last_accessed_at=now)
