"""Storage interfaces for generated topics and principles."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


class DuplicateSlugError(Exception):
  """Raised when a topic with the same slug was persisted first."""

  def __init__(self, slug: str) -> None:
    super().__init__(f"Topic with slug '{slug}' already exists.")
    self.slug = slug


@dataclass(frozen=True)
class PrincipleRecord:
  id: str
  topic_id: str
  order_index: int
  title: str
  explanation: str
  analogy: str | None = None
  visual_type: str | None = None
  visual_data: dict[str, Any] | None = None
  key_takeaways: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TopicRecord:
  """A generated subject plus its ordered principles."""

  id: str
  slug: str
  title: str
  requester_id: str | None
  description: str | None
  category: str | None
  difficulty: str
  estimated_minutes: int
  is_public: bool = True
  mind_map: dict[str, Any] | None = None
  confidence_score: int | None = None
  validation: dict[str, Any] | None = None
  principles: list[PrincipleRecord] = field(default_factory=list)
  created_at: datetime | None = None

  def result_reference(self) -> dict[str, str]:
    """Return the job result payload pointing at this topic."""

    return {"topic_id": self.id, "slug": self.slug}


class ContentRepository(Protocol):
  """Repository contract for topic persistence."""

  async def get_topic_by_slug(self, slug: str) -> TopicRecord | None:
    """Fetch a topic and its principles by slug."""

  async def create_topic(self, topic: TopicRecord) -> TopicRecord:
    """Insert the topic and all of its principles atomically; raise ``DuplicateSlugError`` on slug collision."""

  async def get_principle(self, principle_id: str) -> PrincipleRecord | None:
    """Fetch one principle by identifier."""

  async def get_topic(self, topic_id: str) -> TopicRecord | None:
    """Fetch a topic and its principles by identifier."""

  async def list_public_topics(self, *, limit: int, offset: int = 0) -> list[TopicRecord]:
    """Return public topics newest first, without their principles."""
