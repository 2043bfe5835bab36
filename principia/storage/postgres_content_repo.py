"""Postgres-backed repository for generated topics."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from principia.core.database import get_session_factory
from principia.schema.content import Principle, Topic
from principia.storage.content_repo import ContentRepository, DuplicateSlugError, PrincipleRecord, TopicRecord

logger = logging.getLogger(__name__)


class PostgresContentRepository(ContentRepository):
  """Persist topics and principles to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_topic_by_slug(self, slug: str) -> TopicRecord | None:
    async with self._session_factory() as session:
      row = (await session.execute(select(Topic).where(Topic.slug == slug))).scalar_one_or_none()
      if row is None:
        return None
      principles_stmt = select(Principle).where(Principle.topic_id == row.id).order_by(Principle.order_index.asc())
      principles = (await session.execute(principles_stmt)).scalars().all()
      return self._topic_to_record(row, [self._principle_to_record(item) for item in principles])

  async def create_topic(self, topic: TopicRecord) -> TopicRecord:
    async with self._session_factory() as session:
      session.add(
        Topic(
          id=topic.id,
          slug=topic.slug,
          title=topic.title,
          requester_id=topic.requester_id,
          description=topic.description,
          category=topic.category,
          difficulty=topic.difficulty,
          estimated_minutes=topic.estimated_minutes,
          is_public=topic.is_public,
          mind_map_json=topic.mind_map,
          confidence_score=topic.confidence_score,
          validation_json=topic.validation,
        )
      )
      # Flush the topic first so principle foreign keys resolve inside the same transaction.
      try:
        await session.flush()
      except IntegrityError as exc:
        await session.rollback()
        logger.info("Topic slug %s was persisted concurrently.", topic.slug)
        raise DuplicateSlugError(topic.slug) from exc

      for principle in topic.principles:
        session.add(
          Principle(
            id=principle.id,
            topic_id=topic.id,
            order_index=principle.order_index,
            title=principle.title,
            explanation=principle.explanation,
            analogy=principle.analogy,
            visual_type=principle.visual_type,
            visual_data=principle.visual_data,
            key_takeaways=list(principle.key_takeaways),
          )
        )
      await session.commit()

    stored = await self.get_topic_by_slug(topic.slug)
    return stored or topic

  async def get_principle(self, principle_id: str) -> PrincipleRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Principle, principle_id)
      if row is None:
        return None
      return self._principle_to_record(row)

  async def get_topic(self, topic_id: str) -> TopicRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Topic, topic_id)
      if row is None:
        return None
      principles_stmt = select(Principle).where(Principle.topic_id == row.id).order_by(Principle.order_index.asc())
      principles = (await session.execute(principles_stmt)).scalars().all()
      return self._topic_to_record(row, [self._principle_to_record(item) for item in principles])

  async def list_public_topics(self, *, limit: int, offset: int = 0) -> list[TopicRecord]:
    async with self._session_factory() as session:
      stmt = select(Topic).where(Topic.is_public.is_(True)).order_by(Topic.created_at.desc(), Topic.id.asc()).limit(limit).offset(offset)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._topic_to_record(row, []) for row in rows]

  def _principle_to_record(self, row: Principle) -> PrincipleRecord:
    return PrincipleRecord(
      id=row.id,
      topic_id=row.topic_id,
      order_index=row.order_index,
      title=row.title,
      explanation=row.explanation,
      analogy=row.analogy,
      visual_type=row.visual_type,
      visual_data=row.visual_data,
      key_takeaways=list(row.key_takeaways or []),
    )

  def _topic_to_record(self, row: Topic, principles: list[PrincipleRecord]) -> TopicRecord:
    return TopicRecord(
      id=row.id,
      slug=row.slug,
      title=row.title,
      requester_id=row.requester_id,
      description=row.description,
      category=row.category,
      difficulty=row.difficulty,
      estimated_minutes=row.estimated_minutes,
      is_public=row.is_public,
      mind_map=row.mind_map_json,
      confidence_score=row.confidence_score,
      validation=row.validation_json,
      principles=principles,
      created_at=row.created_at,
    )
