from __future__ import annotations

import pytest
from fastapi import HTTPException

from principia.services.generation import normalize_title, request_topic_generation
from principia.storage.learners_repo import LearnerRecord
from tests.fakes import make_job, make_topic


async def _request(title: str, settings, jobs_repo, content_repo, learners_repo, *, requester_id: str | None = "learner-1"):
  return await request_topic_generation(title, requester_id=requester_id, settings=settings, jobs_repo=jobs_repo, content_repo=content_repo, learners_repo=learners_repo)


def test_normalize_title_collapses_whitespace(settings) -> None:
  assert normalize_title("  Quantum \n  Computing ", settings) == ("Quantum Computing", "quantum-computing")


@pytest.mark.parametrize("title", ["ab", "x" * 201, "!!!"])
def test_normalize_title_rejects_unusable_titles(settings, title: str) -> None:
  with pytest.raises(HTTPException) as exc_info:
    normalize_title(title, settings)
  assert exc_info.value.status_code == 400


@pytest.mark.anyio
async def test_existing_topic_is_returned_without_a_job(settings, jobs_repo, content_repo, learners_repo) -> None:
  topic = make_topic()
  content_repo.topics[topic.slug] = topic

  outcome = await _request("quantum computing", settings, jobs_repo, content_repo, learners_repo)

  assert outcome.status == "exists"
  assert outcome.topic is topic
  assert jobs_repo.jobs == {}


@pytest.mark.anyio
async def test_new_title_enqueues_a_job(settings, jobs_repo, content_repo, learners_repo) -> None:
  outcome = await _request("Quantum Computing", settings, jobs_repo, content_repo, learners_repo)

  assert outcome.status == "queued"
  job = jobs_repo.jobs[outcome.job.job_id]
  assert job.status == "queued"
  assert job.slug == "quantum-computing"
  assert job.requester_id == "learner-1"
  assert job.max_attempts == settings.job_max_attempts
  assert job.progress == 0.0


@pytest.mark.anyio
async def test_in_flight_job_is_reused(settings, jobs_repo, content_repo, learners_repo) -> None:
  first = await _request("Quantum Computing", settings, jobs_repo, content_repo, learners_repo)
  second = await _request("quantum  computing!", settings, jobs_repo, content_repo, learners_repo, requester_id="learner-2")

  assert second.job.job_id == first.job.job_id
  assert len(jobs_repo.jobs) == 1


@pytest.mark.anyio
async def test_failed_job_does_not_block_a_new_request(settings, jobs_repo, content_repo, learners_repo) -> None:
  jobs_repo.jobs["old"] = make_job("old", status="failed", error_message="boom")

  outcome = await _request("Quantum Computing", settings, jobs_repo, content_repo, learners_repo)

  assert outcome.job.job_id != "old"
  assert len(jobs_repo.jobs) == 2


@pytest.mark.anyio
async def test_free_plan_quota_is_enforced(settings, jobs_repo, content_repo, learners_repo) -> None:
  learners_repo.learners["learner-1"] = LearnerRecord(id="learner-1", topics_used=3)

  with pytest.raises(HTTPException) as exc_info:
    await _request("Quantum Computing", settings, jobs_repo, content_repo, learners_repo)

  assert exc_info.value.status_code == 403
  assert exc_info.value.detail == {"error": "QUOTA_EXCEEDED", "metric": "topic.generate"}
  assert jobs_repo.jobs == {}


@pytest.mark.anyio
async def test_quota_does_not_block_existing_topics_or_pro_plans(settings, jobs_repo, content_repo, learners_repo) -> None:
  learners_repo.learners["learner-1"] = LearnerRecord(id="learner-1", topics_used=3)
  learners_repo.learners["learner-2"] = LearnerRecord(id="learner-2", plan="pro", topics_used=50)
  content_repo.topics["existing-topic"] = make_topic("existing-topic")

  existing = await _request("Existing Topic", settings, jobs_repo, content_repo, learners_repo)
  pro = await _request("Quantum Computing", settings, jobs_repo, content_repo, learners_repo, requester_id="learner-2")

  assert existing.status == "exists"
  assert pro.status == "queued"


@pytest.mark.anyio
async def test_duplicate_insert_falls_back_to_the_winner(settings, jobs_repo, content_repo, learners_repo) -> None:
  winner = make_job("winner")
  calls = {"count": 0}
  original_find = jobs_repo.find_active_by_slug

  async def _find_after_race(slug: str):
    # The first lookup misses; the concurrent insert lands before ours.
    calls["count"] += 1
    if calls["count"] == 1:
      jobs_repo.jobs["winner"] = winner
      return None
    return await original_find(slug)

  jobs_repo.find_active_by_slug = _find_after_race

  outcome = await _request("Quantum Computing", settings, jobs_repo, content_repo, learners_repo)

  assert outcome.status == "queued"
  assert outcome.job.job_id == "winner"
  assert list(jobs_repo.jobs) == ["winner"]
