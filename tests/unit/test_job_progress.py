from __future__ import annotations

import pytest

from principia.jobs.progress import JobProgressReporter
from tests.fakes import InMemoryJobsRepository, make_job


@pytest.mark.anyio
async def test_reporter_never_moves_backward(jobs_repo: InMemoryJobsRepository) -> None:
  jobs_repo.jobs["job-1"] = make_job(status="running", attempt_count=1)
  reporter = JobProgressReporter(job_id="job-1", jobs_repo=jobs_repo)

  await reporter.report(50)
  await reporter.report(30)
  await reporter.report(70)

  assert jobs_repo.progress_writes == [50.0, 50.0, 70.0]
  assert jobs_repo.jobs["job-1"].progress == 70.0
  assert reporter.last_reported == 70.0


@pytest.mark.anyio
async def test_reporter_resumes_from_persisted_progress(jobs_repo: InMemoryJobsRepository) -> None:
  jobs_repo.jobs["job-1"] = make_job(status="running", attempt_count=2, progress=50.0)
  reporter = JobProgressReporter(job_id="job-1", jobs_repo=jobs_repo, initial_progress=50.0)

  await reporter.report(0)

  assert jobs_repo.jobs["job-1"].progress == 50.0
  assert reporter.last_reported == 50.0


@pytest.mark.anyio
async def test_reporter_leaves_completion_to_the_final_update(jobs_repo: InMemoryJobsRepository) -> None:
  jobs_repo.jobs["job-1"] = make_job(status="running", attempt_count=1)
  reporter = JobProgressReporter(job_id="job-1", jobs_repo=jobs_repo)

  await reporter.report(150)

  assert jobs_repo.progress_writes == []
  assert reporter.last_reported == 100.0
  assert jobs_repo.jobs["job-1"].status == "running"


@pytest.mark.anyio
async def test_reporter_tolerates_jobs_that_stopped_running(jobs_repo: InMemoryJobsRepository, caplog: pytest.LogCaptureFixture) -> None:
  jobs_repo.jobs["job-1"] = make_job(status="failed", attempt_count=3)
  reporter = JobProgressReporter(job_id="job-1", jobs_repo=jobs_repo)

  await reporter.report(40)

  assert jobs_repo.jobs["job-1"].progress == 0.0
  assert "was not recorded" in caplog.text
