"""Postgres-backed repository for learner usage counters."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert

from principia.core.database import get_session_factory
from principia.schema.learners import Learner
from principia.storage.learners_repo import LearnerRecord, LearnersRepository


class PostgresLearnersRepository(LearnersRepository):
  """Persist learner usage to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_learner(self, learner_id: str) -> LearnerRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Learner, learner_id)
      if row is None:
        return None
      return LearnerRecord(id=row.id, plan=row.plan, topics_used=row.topics_used)

  async def ensure_learner(self, learner_id: str) -> LearnerRecord:
    async with self._session_factory() as session:
      stmt = insert(Learner).values(id=learner_id).on_conflict_do_nothing(index_elements=["id"])
      await session.execute(stmt)
      await session.commit()
      row = await session.get(Learner, learner_id)
      return LearnerRecord(id=row.id, plan=row.plan, topics_used=row.topics_used)

  async def increment_topics_used(self, learner_id: str) -> int:
    async with self._session_factory() as session:
      # Single-statement increment so concurrent completions for one learner never lose a count.
      stmt = insert(Learner).values(id=learner_id, topics_used=1)
      stmt = stmt.on_conflict_do_update(index_elements=["id"], set_={"topics_used": Learner.topics_used + 1, "updated_at": func.now()}).returning(Learner.topics_used)
      total = (await session.execute(stmt)).scalar_one()
      await session.commit()
      return int(total)
