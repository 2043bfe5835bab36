"""Quiz answers, scheduled reviews and mastery analytics for a learner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi import HTTPException, status

from principia.learning.mastery import MasteryOverview, MasteryRecord, is_mastered, outcome_from_quality, summarize, weakest_first
from principia.learning.scheduler import ScheduleRecord, bootstrap_schedule, grade, next_review_hint, validate_quality
from principia.storage.content_repo import ContentRepository, PrincipleRecord
from principia.storage.learners_repo import LearnersRepository
from principia.storage.learning_repo import LearningRepository
from principia.utils.ids import generate_record_id

logger = logging.getLogger(__name__)

_REVIEW_NOT_FOUND_MSG = "Review not found."
_PRINCIPLE_NOT_FOUND_MSG = "Principle not found."


@dataclass(frozen=True)
class QuizAnswerOutcome:
  mastery: MasteryRecord
  schedule: ScheduleRecord
  schedule_created: bool


@dataclass(frozen=True)
class ReviewGradeOutcome:
  schedule: ScheduleRecord
  mastery: MasteryRecord
  next_review_in: int
  message: str


@dataclass(frozen=True)
class DueReview:
  schedule: ScheduleRecord
  principle: PrincipleRecord | None


@dataclass(frozen=True)
class ReviewStats:
  due_count: int
  total_tracked: int
  average_mastery: int
  mastered_count: int


@dataclass(frozen=True)
class WeakPrinciple:
  mastery: MasteryRecord
  principle: PrincipleRecord | None


def _utc_now() -> datetime:
  return datetime.now(UTC)


async def _apply_outcome(learning_repo: LearningRepository, *, learner_id: str, principle_id: str, topic_id: str, was_correct: bool, now: datetime) -> MasteryRecord:
  return await learning_repo.apply_outcome(record_id=generate_record_id(), learner_id=learner_id, principle_id=principle_id, topic_id=topic_id, was_correct=was_correct, now=now)


async def record_quiz_answer(
  *,
  learner_id: str,
  principle_id: str,
  was_correct: bool,
  content_repo: ContentRepository,
  learning_repo: LearningRepository,
  learners_repo: LearnersRepository,
  now: datetime | None = None,
) -> QuizAnswerOutcome:
  """Fold a quiz answer into mastery and seed the review schedule on first contact."""

  now = now or _utc_now()
  principle = await content_repo.get_principle(principle_id)
  if principle is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PRINCIPLE_NOT_FOUND_MSG)

  await learners_repo.ensure_learner(learner_id)
  mastery = await _apply_outcome(learning_repo, learner_id=learner_id, principle_id=principle.id, topic_id=principle.topic_id, was_correct=was_correct, now=now)

  schedule = await learning_repo.get_schedule_for_principle(learner_id, principle.id)
  created = False
  if schedule is None:
    seeded = bootstrap_schedule(schedule_id=generate_record_id(), learner_id=learner_id, principle_id=principle.id, topic_id=principle.topic_id, now=now)
    schedule = await learning_repo.save_schedule(seeded)
    created = True
    logger.info("Seeded review schedule %s for learner %s principle %s.", schedule.id, learner_id, principle.id)

  return QuizAnswerOutcome(mastery=mastery, schedule=schedule, schedule_created=created)


async def grade_review(*, learner_id: str, review_id: str, quality: int, learning_repo: LearningRepository, now: datetime | None = None) -> ReviewGradeOutcome:
  """Apply an SM-2 grade to one of the learner's schedules and record the outcome."""

  try:
    quality = validate_quality(quality)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

  now = now or _utc_now()
  schedule = await learning_repo.get_schedule(review_id)
  # Other learners' schedules are indistinguishable from missing ones.
  if schedule is None or schedule.learner_id != learner_id:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_REVIEW_NOT_FOUND_MSG)

  updated = await learning_repo.save_schedule(grade(schedule, quality, now=now))
  mastery = await _apply_outcome(learning_repo, learner_id=learner_id, principle_id=schedule.principle_id, topic_id=schedule.topic_id, was_correct=outcome_from_quality(quality), now=now)
  logger.info("Review %s graded %s; next in %s day(s).", review_id, quality, updated.interval_days)
  return ReviewGradeOutcome(schedule=updated, mastery=mastery, next_review_in=updated.interval_days, message=next_review_hint(updated.interval_days))


async def list_due_reviews(*, learner_id: str, learning_repo: LearningRepository, content_repo: ContentRepository, now: datetime | None = None, limit: int = 50) -> list[DueReview]:
  schedules = await learning_repo.list_due_schedules(learner_id, now=now or _utc_now(), limit=limit)
  return [DueReview(schedule=item, principle=await content_repo.get_principle(item.principle_id)) for item in schedules]


async def review_stats(*, learner_id: str, learning_repo: LearningRepository, now: datetime | None = None) -> ReviewStats:
  due_count = await learning_repo.count_due_schedules(learner_id, now=now or _utc_now())
  total_tracked = await learning_repo.count_schedules(learner_id)
  records = await learning_repo.list_mastery(learner_id)
  overview = summarize(records)
  return ReviewStats(due_count=due_count, total_tracked=total_tracked, average_mastery=overview.average_mastery, mastered_count=sum(1 for record in records if is_mastered(record)))


async def weak_principles(*, learner_id: str, learning_repo: LearningRepository, content_repo: ContentRepository, limit: int = 10) -> list[WeakPrinciple]:
  """Return the learner's weakest principles first, for the "what to study next" surface."""

  records = weakest_first(await learning_repo.list_mastery(learner_id))[:limit]
  return [WeakPrinciple(mastery=record, principle=await content_repo.get_principle(record.principle_id)) for record in records]


async def mastery_overview(*, learner_id: str, learning_repo: LearningRepository) -> MasteryOverview:
  return summarize(await learning_repo.list_mastery(learner_id))
