"""Background processor for queued topic generation jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import TypeVar

from principia.ai.content_service import ContentService, TopicContent, ValidationReport
from principia.config import Settings
from principia.jobs.models import JobRecord
from principia.jobs.progress import COMPLETE_PERCENT, JobProgressReporter, ProgressReporter
from principia.jobs.steps import GenerationContext, PipelineStep
from principia.storage.content_repo import ContentRepository, DuplicateSlugError, PrincipleRecord, TopicRecord
from principia.storage.jobs_repo import JobsRepository
from principia.storage.learners_repo import LearnersRepository
from principia.utils.ids import generate_record_id

T = TypeVar("T")

Clock = Callable[[], datetime]
ReporterFactory = Callable[[JobRecord], ProgressReporter]


def _utc_now() -> datetime:
  return datetime.now(UTC)


def _describe_error(exc: BaseException) -> str:
  message = str(exc).strip()
  if message:
    return f"{type(exc).__name__}: {message}"
  return type(exc).__name__


def build_topic_record(job: JobRecord, content: TopicContent, validation: ValidationReport | None) -> TopicRecord:
  """Map generated content onto the topic record persisted for ``job``."""

  topic_id = generate_record_id()
  principles = [
    PrincipleRecord(
      id=generate_record_id(),
      topic_id=topic_id,
      order_index=index,
      title=item.title,
      explanation=item.explanation,
      analogy=item.analogy,
      visual_type=item.visual_type,
      visual_data=item.visual_data,
      key_takeaways=list(item.key_takeaways),
    )
    for index, item in enumerate(content.principles)
  ]
  return TopicRecord(
    id=topic_id,
    slug=job.slug,
    title=job.title,
    requester_id=job.requester_id,
    description=content.description,
    category=content.category,
    difficulty=content.difficulty,
    estimated_minutes=content.estimated_minutes,
    mind_map=content.mind_map.model_dump(mode="json"),
    confidence_score=validation.overall_confidence if validation is not None else None,
    validation=validation.as_json() if validation is not None else None,
    principles=principles,
  )


class GenerationWorker:
  """Drives one claimed job through the generation steps and settles its outcome."""

  def __init__(
    self,
    *,
    jobs_repo: JobsRepository,
    content_repo: ContentRepository,
    learners_repo: LearnersRepository,
    content_service: ContentService,
    settings: Settings,
    clock: Clock | None = None,
    reporter_factory: ReporterFactory | None = None,
  ) -> None:
    self._jobs_repo = jobs_repo
    self._content_repo = content_repo
    self._learners_repo = learners_repo
    self._content_service = content_service
    self._settings = settings
    self._clock = clock or _utc_now
    self._lease = timedelta(seconds=settings.job_lease_seconds)
    self._reporter_factory = reporter_factory or self._default_reporter
    self._logger = logging.getLogger(__name__)
    self._steps = self._build_steps()

  @property
  def steps(self) -> tuple[PipelineStep, ...]:
    return self._steps

  def _build_steps(self) -> tuple[PipelineStep, ...]:
    return (
      PipelineStep(name="generate", handler=self._generate, progress=50.0),
      PipelineStep(name="validate", handler=self._validate, progress=70.0, best_effort=True),
      PipelineStep(name="persist", handler=self._persist, progress=90.0),
      # A lost usage increment must not regenerate content that already exists.
      PipelineStep(name="record_usage", handler=self._record_usage, progress=None, best_effort=True),
    )

  def _default_reporter(self, job: JobRecord) -> ProgressReporter:
    return JobProgressReporter(job_id=job.job_id, jobs_repo=self._jobs_repo, initial_progress=job.progress)

  async def run_once(self) -> JobRecord | None:
    """Claim the next due job and process it; return ``None`` when the queue is idle."""

    job = await self._jobs_repo.claim_next(now=self._clock(), lease=self._lease)
    if job is None:
      return None
    return await self.process(job)

  async def process(self, job: JobRecord) -> JobRecord | None:
    """Run every step for a claimed (running) job and persist the outcome."""

    self._logger.info("Processing job %s (%s) attempt %s/%s.", job.job_id, job.slug, job.attempt_count, job.max_attempts)
    reporter = self._reporter_factory(job)
    context = GenerationContext(job=job, logs=list(job.logs))
    context.add_log(f"Attempt {job.attempt_count} of {job.max_attempts} started.")
    await reporter.report(0.0)

    try:
      existing = await self._content_repo.get_topic_by_slug(job.slug)
      if existing is not None:
        # Another job already produced this subject; the desired end state holds.
        context.topic = existing
        context.reused_existing = True
        context.add_log(f"Topic '{job.slug}' already exists; skipping generation.")
        self._logger.info("Job %s found existing topic %s; completing without generation.", job.job_id, existing.id)
      else:
        await self._run_steps(context, reporter)
    except Exception as exc:  # noqa: BLE001
      return await self._handle_failure(context, exc)

    return await self._complete(context, reporter)

  async def _run_steps(self, context: GenerationContext, reporter: ProgressReporter) -> None:
    for step in self._steps:
      try:
        await step.handler(context)
        context.add_log(f"Step {step.name} finished.")
        self._logger.info("Job %s step %s finished.", context.job.job_id, step.name)
      except Exception as exc:  # noqa: BLE001
        if not step.best_effort:
          context.add_log(f"Step {step.name} failed: {_describe_error(exc)}")
          raise
        context.add_log(f"Step {step.name} skipped: {_describe_error(exc)}")
        self._logger.warning("Job %s best-effort step %s failed; continuing.", context.job.job_id, step.name, exc_info=True)
      if step.progress is not None:
        await reporter.report(step.progress)

  async def _call_ai(self, awaitable: Awaitable[T]) -> T:
    try:
      return await asyncio.wait_for(awaitable, timeout=self._settings.ai_timeout_seconds)
    except TimeoutError as exc:
      raise TimeoutError(f"AI call exceeded {self._settings.ai_timeout_seconds:g}s.") from exc

  async def _generate(self, context: GenerationContext) -> None:
    context.content = await self._call_ai(self._content_service.generate(context.job.title))

  async def _validate(self, context: GenerationContext) -> None:
    if context.content is None:
      raise RuntimeError("Validation requires generated content.")
    context.validation = await self._call_ai(self._content_service.validate(context.job.title, context.content))

  async def _persist(self, context: GenerationContext) -> None:
    if context.content is None:
      raise RuntimeError("Persistence requires generated content.")
    record = build_topic_record(context.job, context.content, context.validation)
    try:
      context.topic = await self._content_repo.create_topic(record)
    except DuplicateSlugError:
      # Lost a race against a concurrent job for the same slug; reuse the winner.
      winner = await self._content_repo.get_topic_by_slug(context.job.slug)
      if winner is None:
        raise
      context.topic = winner
      context.reused_existing = True
      context.add_log(f"Topic '{context.job.slug}' was created concurrently; reusing it.")
      self._logger.info("Job %s lost slug race for %s; reusing topic %s.", context.job.job_id, context.job.slug, winner.id)

  async def _record_usage(self, context: GenerationContext) -> None:
    requester_id = context.job.requester_id
    # Only the job that actually created the topic counts against the requester.
    if requester_id is None or context.reused_existing:
      return
    total = await self._learners_repo.increment_topics_used(requester_id)
    self._logger.info("Learner %s has generated %s topic(s).", requester_id, total)

  async def _complete(self, context: GenerationContext, reporter: ProgressReporter) -> JobRecord | None:
    topic = context.topic
    if topic is None:
      return await self._handle_failure(context, RuntimeError("Pipeline finished without a topic."))
    context.add_log("Job completed.")
    record = await self._jobs_repo.update_job(context.job.job_id, status="completed", progress=COMPLETE_PERCENT, result_json=topic.result_reference(), logs=context.logs, finished_at=self._clock(), claimed_attempt=context.job.attempt_count)
    if record is None:
      self._logger.warning("Job %s attempt %s was superseded before it could complete.", context.job.job_id, context.job.attempt_count)
      return None
    await reporter.report(COMPLETE_PERCENT)
    self._logger.info("Job %s completed with topic %s.", context.job.job_id, topic.id)
    return record

  async def _handle_failure(self, context: GenerationContext, exc: Exception) -> JobRecord | None:
    job = context.job
    error = _describe_error(exc)
    now = self._clock()

    if job.attempt_count >= job.max_attempts:
      context.add_log(f"Attempt {job.attempt_count} failed; no attempts left.")
      self._logger.error("Job %s failed permanently after %s attempt(s): %s", job.job_id, job.attempt_count, error, exc_info=exc)
      return await self._jobs_repo.update_job(job.job_id, status="failed", error_message=error, logs=context.logs, finished_at=now, claimed_attempt=job.attempt_count)

    delay = self.backoff_delay(job.attempt_count)
    context.add_log(f"Attempt {job.attempt_count} failed: {error}. Retrying in {delay.total_seconds():g}s.")
    self._logger.warning("Job %s attempt %s/%s failed (%s); retrying in %.1fs.", job.job_id, job.attempt_count, job.max_attempts, error, delay.total_seconds())
    return await self._jobs_repo.update_job(job.job_id, status="queued", next_attempt_at=now + delay, logs=context.logs, claimed_attempt=job.attempt_count)

  def backoff_delay(self, attempt: int) -> timedelta:
    """Return the wait before the attempt that follows ``attempt`` (1-based)."""

    return timedelta(seconds=self._settings.job_backoff_base_seconds * (2 ** max(attempt - 1, 0)))
