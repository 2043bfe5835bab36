from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException

from principia.learning.mastery import MasteryRecord
from principia.services import learning as learning_service
from tests.fakes import make_topic

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def seeded_content(content_repo):
  topic = make_topic(principle_count=3)
  content_repo.topics[topic.slug] = topic
  return topic


async def _answer(principle_id: str, was_correct: bool, content_repo, learning_repo, learners_repo, *, learner_id: str = "learner-1", now: datetime = NOW):
  return await learning_service.record_quiz_answer(learner_id=learner_id, principle_id=principle_id, was_correct=was_correct, content_repo=content_repo, learning_repo=learning_repo, learners_repo=learners_repo, now=now)


@pytest.mark.anyio
async def test_first_answer_seeds_mastery_and_schedule(seeded_content, content_repo, learning_repo, learners_repo) -> None:
  outcome = await _answer("topic-1-p0", True, content_repo, learning_repo, learners_repo)

  assert outcome.schedule_created is True
  assert outcome.mastery.mastery_score == 100
  assert outcome.mastery.topic_id == "topic-1"
  assert outcome.schedule.repetitions == 1
  assert outcome.schedule.due_at == NOW + timedelta(days=1)
  assert "learner-1" in learners_repo.learners


@pytest.mark.anyio
async def test_later_answers_update_mastery_only(seeded_content, content_repo, learning_repo, learners_repo) -> None:
  first = await _answer("topic-1-p0", True, content_repo, learning_repo, learners_repo)
  second = await _answer("topic-1-p0", False, content_repo, learning_repo, learners_repo)

  assert second.schedule_created is False
  assert second.schedule.id == first.schedule.id
  assert (second.mastery.times_reviewed, second.mastery.times_correct, second.mastery.mastery_score) == (2, 1, 50)


@pytest.mark.anyio
async def test_unknown_principle_is_404(content_repo, learning_repo, learners_repo) -> None:
  with pytest.raises(HTTPException) as exc_info:
    await _answer("missing", True, content_repo, learning_repo, learners_repo)
  assert exc_info.value.status_code == 404


@pytest.mark.anyio
async def test_grading_reschedules_and_updates_mastery(seeded_content, content_repo, learning_repo, learners_repo) -> None:
  seeded = await _answer("topic-1-p0", True, content_repo, learning_repo, learners_repo)
  later = NOW + timedelta(days=1)

  outcome = await learning_service.grade_review(learner_id="learner-1", review_id=seeded.schedule.id, quality=5, learning_repo=learning_repo, now=later)

  assert outcome.schedule.repetitions == 2
  assert outcome.next_review_in == 6
  assert outcome.message == "Next review in 6 days"
  assert outcome.schedule.due_at == later + timedelta(days=6)
  assert outcome.mastery.times_reviewed == 2


@pytest.mark.anyio
async def test_failed_grade_counts_as_incorrect(seeded_content, content_repo, learning_repo, learners_repo) -> None:
  seeded = await _answer("topic-1-p0", True, content_repo, learning_repo, learners_repo)

  outcome = await learning_service.grade_review(learner_id="learner-1", review_id=seeded.schedule.id, quality=1, learning_repo=learning_repo, now=NOW)

  assert outcome.schedule.repetitions == 0
  assert outcome.message == "Next review in 1 day"
  assert outcome.mastery.mastery_score == 50


@pytest.mark.anyio
async def test_grading_another_learners_review_is_404(seeded_content, content_repo, learning_repo, learners_repo) -> None:
  seeded = await _answer("topic-1-p0", True, content_repo, learning_repo, learners_repo)

  with pytest.raises(HTTPException) as exc_info:
    await learning_service.grade_review(learner_id="intruder", review_id=seeded.schedule.id, quality=4, learning_repo=learning_repo)
  assert exc_info.value.status_code == 404


@pytest.mark.anyio
@pytest.mark.parametrize("quality", [-1, 6, True])
async def test_invalid_quality_is_400(learning_repo, quality) -> None:
  with pytest.raises(HTTPException) as exc_info:
    await learning_service.grade_review(learner_id="learner-1", review_id="any", quality=quality, learning_repo=learning_repo)
  assert exc_info.value.status_code == 400


@pytest.mark.anyio
async def test_due_reviews_and_stats(seeded_content, content_repo, learning_repo, learners_repo) -> None:
  await _answer("topic-1-p0", True, content_repo, learning_repo, learners_repo, now=NOW - timedelta(days=3))
  await _answer("topic-1-p1", False, content_repo, learning_repo, learners_repo, now=NOW - timedelta(days=2))
  await _answer("topic-1-p2", True, content_repo, learning_repo, learners_repo, now=NOW)

  due = await learning_service.list_due_reviews(learner_id="learner-1", learning_repo=learning_repo, content_repo=content_repo, now=NOW)
  stats = await learning_service.review_stats(learner_id="learner-1", learning_repo=learning_repo, now=NOW)

  assert [item.schedule.principle_id for item in due] == ["topic-1-p0", "topic-1-p1"]
  assert due[0].principle.title == "Principle 1"
  assert stats.due_count == 2
  assert stats.total_tracked == 3
  assert stats.mastered_count == 2
  # (100 + 0 + 100) / 3 = 66.67
  assert stats.average_mastery == 67


@pytest.mark.anyio
async def test_weak_principles_and_overview(seeded_content, content_repo, learning_repo) -> None:
  for principle_id, score in (("topic-1-p0", 90), ("topic-1-p1", 20), ("topic-1-p2", 50)):
    learning_repo.mastery[("learner-1", principle_id)] = MasteryRecord(id=f"m-{principle_id}", learner_id="learner-1", principle_id=principle_id, topic_id="topic-1", mastery_score=score, times_reviewed=2, last_reviewed_at=NOW)

  weak = await learning_service.weak_principles(learner_id="learner-1", learning_repo=learning_repo, content_repo=content_repo)
  overview = await learning_service.mastery_overview(learner_id="learner-1", learning_repo=learning_repo)

  assert [item.mastery.principle_id for item in weak] == ["topic-1-p1", "topic-1-p2"]
  assert weak[0].principle.title == "Principle 2"
  assert overview.tracked == 3
  assert overview.principles_mastered == 1
  assert overview.weak_principles_count == 2
  assert overview.average_mastery == 53


class _InterleavingContentRepository:
  """Yields to the event loop on every lookup so concurrent answers interleave."""

  def __init__(self, inner) -> None:
    self._inner = inner

  async def get_principle(self, principle_id: str):
    await asyncio.sleep(0)
    return await self._inner.get_principle(principle_id)


@pytest.mark.anyio
async def test_concurrent_answers_are_all_counted(seeded_content, content_repo, learning_repo, learners_repo) -> None:
  interleaving = _InterleavingContentRepository(content_repo)

  await asyncio.gather(
    _answer("topic-1-p0", True, interleaving, learning_repo, learners_repo),
    _answer("topic-1-p0", False, interleaving, learning_repo, learners_repo),
    _answer("topic-1-p0", True, interleaving, learning_repo, learners_repo),
  )

  record = learning_repo.mastery[("learner-1", "topic-1-p0")]
  assert (record.times_reviewed, record.times_correct, record.mastery_score) == (3, 2, 67)
  assert len(learning_repo.schedules) == 1
