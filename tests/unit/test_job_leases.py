from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from principia.jobs.runner import WorkerLoop
from principia.jobs.worker import GenerationWorker
from principia.services.generation import request_topic_generation
from tests.conftest import build_settings
from tests.fakes import FakeContentService, InMemoryContentRepository, InMemoryJobsRepository, InMemoryLearnersRepository, make_job

NOW = datetime(2026, 1, 1, 12, 0)
LEASE = timedelta(seconds=60)


class _Clock:
  def __init__(self, start: datetime) -> None:
    self.now = start

  def __call__(self) -> datetime:
    return self.now


def _loop(jobs_repo: InMemoryJobsRepository, content_repo: InMemoryContentRepository, learners_repo: InMemoryLearnersRepository, clock: _Clock) -> WorkerLoop:
  worker = GenerationWorker(jobs_repo=jobs_repo, content_repo=content_repo, learners_repo=learners_repo, content_service=FakeContentService(), settings=build_settings(job_lease_seconds=LEASE.total_seconds()), clock=clock)
  return WorkerLoop(worker=worker, jobs_repo=jobs_repo, poll_interval_seconds=0.01)


async def _abandon(jobs_repo: InMemoryJobsRepository) -> None:
  # A worker claims the job and dies before settling it.
  claimed = await jobs_repo.claim_next(now=NOW, lease=LEASE)
  assert claimed is not None and claimed.status == "running"


@pytest.mark.anyio
async def test_claim_sets_a_lease(jobs_repo) -> None:
  jobs_repo.jobs["job-1"] = make_job(now=NOW)

  claimed = await jobs_repo.claim_next(now=NOW, lease=LEASE)

  assert claimed is not None
  assert claimed.lease_expires_at == NOW + LEASE


@pytest.mark.anyio
async def test_running_job_is_not_reclaimed_before_its_lease_expires(jobs_repo, content_repo, learners_repo) -> None:
  jobs_repo.jobs["job-1"] = make_job(now=NOW)
  await _abandon(jobs_repo)

  loop = _loop(jobs_repo, content_repo, learners_repo, _Clock(NOW + LEASE - timedelta(seconds=1)))

  assert await loop.tick() is False
  assert jobs_repo.jobs["job-1"].status == "running"
  assert jobs_repo.jobs["job-1"].attempt_count == 1


@pytest.mark.anyio
async def test_abandoned_job_is_reclaimed_after_its_lease_expires(jobs_repo, content_repo, learners_repo) -> None:
  jobs_repo.jobs["job-1"] = make_job(now=NOW)
  await _abandon(jobs_repo)

  loop = _loop(jobs_repo, content_repo, learners_repo, _Clock(NOW + LEASE + timedelta(seconds=1)))

  assert await loop.tick() is True
  job = jobs_repo.jobs["job-1"]
  assert job.status == "completed"
  assert job.attempt_count == 2
  assert job.lease_expires_at is None
  assert "quantum-computing" in content_repo.topics


@pytest.mark.anyio
async def test_abandoned_final_attempt_fails_and_frees_the_slug(settings, jobs_repo, content_repo, learners_repo) -> None:
  jobs_repo.jobs["job-1"] = make_job(now=NOW, max_attempts=1)
  await _abandon(jobs_repo)

  loop = _loop(jobs_repo, content_repo, learners_repo, _Clock(NOW + LEASE * 2))

  assert await loop.tick() is False
  job = jobs_repo.jobs["job-1"]
  assert job.status == "failed"
  assert job.attempt_count == 1
  assert job.error_message is not None and "attempt 1" in job.error_message
  assert job.finished_at == NOW + LEASE * 2

  outcome = await request_topic_generation("Quantum Computing", requester_id="learner-1", settings=settings, jobs_repo=jobs_repo, content_repo=content_repo, learners_repo=learners_repo)

  assert outcome.status == "queued"
  assert outcome.job is not None
  assert outcome.job.job_id != "job-1"


@pytest.mark.anyio
async def test_superseded_attempt_cannot_settle_the_job(jobs_repo, content_repo, learners_repo) -> None:
  jobs_repo.jobs["job-1"] = make_job(now=NOW)
  stale = await jobs_repo.claim_next(now=NOW, lease=LEASE)
  assert stale is not None
  reclaimed = await jobs_repo.claim_next(now=NOW + LEASE * 2, lease=LEASE)
  assert reclaimed is not None and reclaimed.attempt_count == 2

  worker = GenerationWorker(jobs_repo=jobs_repo, content_repo=content_repo, learners_repo=learners_repo, content_service=FakeContentService(), settings=build_settings(), clock=_Clock(NOW + LEASE * 2))
  result = await worker.process(stale)

  assert result is None
  job = jobs_repo.jobs["job-1"]
  assert job.status == "running"
  assert job.attempt_count == 2


class _FlakySettleJobsRepository(InMemoryJobsRepository):
  def __init__(self) -> None:
    super().__init__()
    self.settle_failures = 1

  async def update_job(self, job_id: str, **kwargs):
    if kwargs.get("status") == "completed" and self.settle_failures:
      self.settle_failures -= 1
      raise ConnectionError("database went away")
    return await super().update_job(job_id, **kwargs)


@pytest.mark.anyio
async def test_failed_settle_is_recovered_once_the_lease_expires(content_repo, learners_repo) -> None:
  jobs_repo = _FlakySettleJobsRepository()
  jobs_repo.jobs["job-1"] = make_job(now=NOW)
  clock = _Clock(NOW)
  loop = _loop(jobs_repo, content_repo, learners_repo, clock)

  assert await loop.tick() is False
  assert jobs_repo.jobs["job-1"].status == "running"

  clock.now = NOW + LEASE + timedelta(seconds=1)
  assert await loop.tick() is True

  job = jobs_repo.jobs["job-1"]
  assert job.status == "completed"
  assert job.attempt_count == 2
  # The topic from the first attempt is reused rather than generated twice.
  assert content_repo.create_calls == 1
