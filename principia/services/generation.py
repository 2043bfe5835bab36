"""Request-path admission of topic generation work."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from fastapi import HTTPException, status

from principia.config import Settings
from principia.jobs.models import JobRecord
from principia.storage.content_repo import ContentRepository, TopicRecord
from principia.storage.jobs_repo import DuplicateActiveJobError, JobsRepository
from principia.storage.learners_repo import LearnersRepository
from principia.utils.ids import generate_job_id, slugify

logger = logging.getLogger(__name__)

QUOTA_METRIC = "topic.generate"


@dataclass(frozen=True)
class GenerationOutcome:
  """Either the topic that already exists or the job that will produce it."""

  status: Literal["exists", "queued"]
  slug: str
  topic: TopicRecord | None = None
  job: JobRecord | None = None


def normalize_title(title: str, settings: Settings) -> tuple[str, str]:
  """Return the trimmed title and its slug, rejecting input that cannot name a topic."""

  cleaned = " ".join(title.split())
  if len(cleaned) < settings.title_min_length or len(cleaned) > settings.title_max_length:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Title must be between {settings.title_min_length} and {settings.title_max_length} characters.")

  slug = slugify(cleaned)
  if not slug:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title must contain at least one letter or digit.")
  return cleaned, slug


async def _enforce_quota(requester_id: str, settings: Settings, learners_repo: LearnersRepository) -> None:
  learner = await learners_repo.get_learner(requester_id)
  topics_used = learner.topics_used if learner is not None else 0
  plan = learner.plan if learner is not None else "free"
  if plan == "free" and topics_used >= settings.free_topics_limit:
    logger.info("Learner %s reached the free topic limit (%s).", requester_id, settings.free_topics_limit)
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"error": "QUOTA_EXCEEDED", "metric": QUOTA_METRIC})


async def request_topic_generation(
  title: str,
  *,
  requester_id: str | None,
  settings: Settings,
  jobs_repo: JobsRepository,
  content_repo: ContentRepository,
  learners_repo: LearnersRepository,
) -> GenerationOutcome:
  """Short-circuit existing subjects, dedupe in-flight work, enforce quota, then enqueue."""

  cleaned, slug = normalize_title(title, settings)

  # Slug uniqueness is checked here, synchronously, so duplicate subjects never reach the queue.
  existing = await content_repo.get_topic_by_slug(slug)
  if existing is not None:
    return GenerationOutcome(status="exists", slug=slug, topic=existing)

  active = await jobs_repo.find_active_by_slug(slug)
  if active is not None:
    logger.info("Reusing active job %s for slug %s.", active.job_id, slug)
    return GenerationOutcome(status="queued", slug=slug, job=active)

  if requester_id is not None:
    await _enforce_quota(requester_id, settings, learners_repo)

  now = datetime.now(UTC)
  record = JobRecord(
    job_id=generate_job_id(),
    requester_id=requester_id,
    title=cleaned,
    slug=slug,
    status="queued",
    created_at=now,
    updated_at=now,
    next_attempt_at=now,
    max_attempts=settings.job_max_attempts,
    logs=["Job queued."],
  )
  try:
    await jobs_repo.create_job(record)
  except DuplicateActiveJobError:
    # A concurrent request enqueued the same slug between our check and insert.
    winner = await jobs_repo.find_active_by_slug(slug)
    if winner is not None:
      return GenerationOutcome(status="queued", slug=slug, job=winner)
    topic = await content_repo.get_topic_by_slug(slug)
    if topic is not None:
      return GenerationOutcome(status="exists", slug=slug, topic=topic)
    raise

  logger.info("Queued job %s for slug %s (requester=%s).", record.job_id, slug, requester_id or "anonymous")
  return GenerationOutcome(status="queued", slug=slug, job=record)


async def get_topic(slug: str, *, content_repo: ContentRepository) -> TopicRecord:
  topic = await content_repo.get_topic_by_slug(slug)
  if topic is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found.")
  return topic


async def list_public_topics(*, content_repo: ContentRepository, limit: int, offset: int = 0) -> list[TopicRecord]:
  """Return the public topic catalogue, newest first."""

  return await content_repo.list_public_topics(limit=limit, offset=offset)
