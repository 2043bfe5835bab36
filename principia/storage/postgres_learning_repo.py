"""Postgres-backed repository for mastery and review schedules."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import Insert, insert

from principia.core.database import get_session_factory
from principia.learning.mastery import MasteryRecord, mastery_score
from principia.learning.scheduler import ScheduleRecord
from principia.schema.learning import PrincipleMastery, ReviewSchedule
from principia.storage.learning_repo import LearningRepository


def mastery_outcome_upsert(*, record_id: str, learner_id: str, principle_id: str, topic_id: str, was_correct: bool, now: datetime) -> Insert:
  """Build the single-statement increment for one graded answer."""

  correct = 1 if was_correct else 0
  # Inside ON CONFLICT the column references read the stored row, so the counters grow in place.
  times_reviewed = PrincipleMastery.times_reviewed + 1
  times_correct = PrincipleMastery.times_correct + correct
  stmt = insert(PrincipleMastery).values(
    id=record_id,
    learner_id=learner_id,
    principle_id=principle_id,
    topic_id=topic_id,
    mastery_score=mastery_score(correct, 1),
    times_reviewed=1,
    times_correct=correct,
    last_reviewed_at=now,
  )
  return stmt.on_conflict_do_update(
    constraint="ux_principle_mastery_learner_principle",
    set_={
      "times_reviewed": times_reviewed,
      "times_correct": times_correct,
      # Same half-up rounding as mastery_score(), in integer SQL arithmetic.
      "mastery_score": (200 * times_correct + times_reviewed) // (2 * times_reviewed),
      "last_reviewed_at": now,
      "updated_at": func.now(),
    },
  ).returning(PrincipleMastery)


class PostgresLearningRepository(LearningRepository):
  """Persist learning state to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def apply_outcome(self, *, record_id: str, learner_id: str, principle_id: str, topic_id: str, was_correct: bool, now: datetime) -> MasteryRecord:
    async with self._session_factory() as session:
      stmt = mastery_outcome_upsert(record_id=record_id, learner_id=learner_id, principle_id=principle_id, topic_id=topic_id, was_correct=was_correct, now=now)
      row = (await session.execute(stmt)).scalar_one()
      await session.commit()
      return self._mastery_to_record(row)

  async def list_mastery(self, learner_id: str) -> list[MasteryRecord]:
    async with self._session_factory() as session:
      stmt = select(PrincipleMastery).where(PrincipleMastery.learner_id == learner_id).order_by(PrincipleMastery.mastery_score.asc())
      rows = (await session.execute(stmt)).scalars().all()
      return [self._mastery_to_record(row) for row in rows]

  async def get_schedule(self, schedule_id: str) -> ScheduleRecord | None:
    async with self._session_factory() as session:
      row = await session.get(ReviewSchedule, schedule_id)
      if row is None:
        return None
      return self._schedule_to_record(row)

  async def get_schedule_for_principle(self, learner_id: str, principle_id: str) -> ScheduleRecord | None:
    async with self._session_factory() as session:
      stmt = select(ReviewSchedule).where(ReviewSchedule.learner_id == learner_id, ReviewSchedule.principle_id == principle_id)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      return self._schedule_to_record(row)

  async def save_schedule(self, record: ScheduleRecord) -> ScheduleRecord:
    async with self._session_factory() as session:
      state = {"due_at": record.due_at, "ease_factor": record.ease_factor, "interval_days": record.interval_days, "repetitions": record.repetitions, "status": record.status}
      stmt = insert(ReviewSchedule).values(id=record.id, learner_id=record.learner_id, principle_id=record.principle_id, topic_id=record.topic_id, **state)
      stmt = stmt.on_conflict_do_update(constraint="ux_review_schedules_learner_principle", set_={**state, "updated_at": func.now()}).returning(ReviewSchedule)
      row = (await session.execute(stmt)).scalar_one()
      await session.commit()
      return self._schedule_to_record(row)

  async def list_due_schedules(self, learner_id: str, *, now: datetime, limit: int = 50) -> list[ScheduleRecord]:
    async with self._session_factory() as session:
      stmt = select(ReviewSchedule).where(ReviewSchedule.learner_id == learner_id, ReviewSchedule.due_at <= now).order_by(ReviewSchedule.due_at.asc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._schedule_to_record(row) for row in rows]

  async def count_due_schedules(self, learner_id: str, *, now: datetime) -> int:
    async with self._session_factory() as session:
      stmt = select(func.count()).select_from(ReviewSchedule).where(ReviewSchedule.learner_id == learner_id, ReviewSchedule.due_at <= now)
      return int((await session.execute(stmt)).scalar() or 0)

  async def count_schedules(self, learner_id: str) -> int:
    async with self._session_factory() as session:
      stmt = select(func.count()).select_from(ReviewSchedule).where(ReviewSchedule.learner_id == learner_id)
      return int((await session.execute(stmt)).scalar() or 0)

  def _mastery_to_record(self, row: PrincipleMastery) -> MasteryRecord:
    return MasteryRecord(
      id=row.id,
      learner_id=row.learner_id,
      principle_id=row.principle_id,
      topic_id=row.topic_id,
      mastery_score=row.mastery_score,
      times_reviewed=row.times_reviewed,
      times_correct=row.times_correct,
      last_reviewed_at=row.last_reviewed_at,
    )

  def _schedule_to_record(self, row: ReviewSchedule) -> ScheduleRecord:
    return ScheduleRecord(
      id=row.id,
      learner_id=row.learner_id,
      principle_id=row.principle_id,
      topic_id=row.topic_id,
      due_at=row.due_at,
      ease_factor=row.ease_factor,
      interval_days=row.interval_days,
      repetitions=row.repetitions,
      status=row.status,
    )
