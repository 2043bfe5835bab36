"""SM-2 review scheduling over fixed-point ease factors.

Ease factors are integers scaled by ``EASE_FACTOR_SCALE`` (250 == a 2.50 multiplier) so that
scheduling stays deterministic across platforms. Every function here is pure; persistence is the
caller's responsibility.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

EASE_FACTOR_SCALE = 100
DEFAULT_EASE_FACTOR = 250
MIN_EASE_FACTOR = 130
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
PENDING_STATUS = "pending"


@dataclass(frozen=True)
class ScheduleRecord:
  """Spaced-repetition state for one (learner, principle) pair."""

  id: str
  learner_id: str
  principle_id: str
  topic_id: str
  due_at: datetime
  # Fixed-point multiplier scaled by EASE_FACTOR_SCALE.
  ease_factor: int = DEFAULT_EASE_FACTOR
  interval_days: int = FIRST_INTERVAL_DAYS
  repetitions: int = 0
  status: str = PENDING_STATUS


def validate_quality(quality: object) -> int:
  """Return ``quality`` when it is an integer grade in 0..5, otherwise raise ``ValueError``."""

  # bool is an int subclass; True must not pass as a grade of 1.
  if isinstance(quality, bool) or not isinstance(quality, int):
    raise ValueError("Quality must be an integer between 0 and 5.")
  if quality < MIN_QUALITY or quality > MAX_QUALITY:
    raise ValueError(f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}.")
  return quality


def _scale_interval(interval_days: int, ease_factor: int) -> int:
  # Integer round-half-up of interval * ease / 100.
  return (interval_days * ease_factor + EASE_FACTOR_SCALE // 2) // EASE_FACTOR_SCALE


def next_ease_factor(ease_factor: int, quality: int) -> int:
  """Apply the SM-2 ease adjustment for a passing grade, floored at ``MIN_EASE_FACTOR``."""

  miss = MAX_QUALITY - quality
  return max(MIN_EASE_FACTOR, ease_factor + (10 - miss * (8 + miss * 2)))


def grade(schedule: ScheduleRecord, quality: int, *, now: datetime) -> ScheduleRecord:
  """Return the schedule that follows grading ``schedule`` with ``quality`` at ``now``."""

  quality = validate_quality(quality)

  if quality < PASSING_QUALITY:
    # Failed recall restarts the interval ladder; ease only moves on success.
    repetitions = 0
    interval_days = FIRST_INTERVAL_DAYS
    ease_factor = max(schedule.ease_factor, MIN_EASE_FACTOR)
  else:
    repetitions = schedule.repetitions + 1
    if repetitions == 1:
      interval_days = FIRST_INTERVAL_DAYS
    elif repetitions == 2:
      interval_days = SECOND_INTERVAL_DAYS
    else:
      interval_days = _scale_interval(schedule.interval_days, schedule.ease_factor)
    ease_factor = next_ease_factor(schedule.ease_factor, quality)

  interval_days = max(interval_days, FIRST_INTERVAL_DAYS)
  return replace(schedule, repetitions=repetitions, interval_days=interval_days, ease_factor=ease_factor, due_at=now + timedelta(days=interval_days), status=PENDING_STATUS)


def bootstrap_schedule(*, schedule_id: str, learner_id: str, principle_id: str, topic_id: str, now: datetime) -> ScheduleRecord:
  """Seed the schedule created by the first graded interaction with a principle."""

  return ScheduleRecord(
    id=schedule_id,
    learner_id=learner_id,
    principle_id=principle_id,
    topic_id=topic_id,
    due_at=now + timedelta(days=FIRST_INTERVAL_DAYS),
    ease_factor=DEFAULT_EASE_FACTOR,
    interval_days=FIRST_INTERVAL_DAYS,
    repetitions=1,
  )


def next_review_hint(interval_days: int) -> str:
  if interval_days == 1:
    return "Next review in 1 day"
  return f"Next review in {interval_days} days"
