from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException

from principia.services import quizzes as quiz_service
from tests.conftest import build_settings
from tests.fakes import FakeContentService, make_topic, quiz_payload

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def topic(content_repo):
  record = make_topic(principle_count=3)
  content_repo.topics[record.slug] = record
  return record


async def _create(content_service, content_repo, quiz_repo, learners_repo, *, settings=None, slug: str = "quantum-computing", learner_id: str = "learner-1"):
  return await quiz_service.create_quiz(learner_id=learner_id, slug=slug, settings=settings or build_settings(), content_service=content_service, content_repo=content_repo, quiz_repo=quiz_repo, learners_repo=learners_repo)


async def _answer(quiz, index: int, answer: int, quiz_repo, content_repo, learning_repo, learners_repo, *, learner_id: str = "learner-1"):
  return await quiz_service.answer_question(learner_id=learner_id, quiz_id=quiz.id, question_id=quiz.questions[index].id, answer=answer, quiz_repo=quiz_repo, content_repo=content_repo, learning_repo=learning_repo, learners_repo=learners_repo, now=NOW)


async def _complete(quiz, quiz_repo, content_repo, progress_repo, *, now: datetime = NOW):
  return await quiz_service.complete_quiz(learner_id="learner-1", quiz_id=quiz.id, quiz_repo=quiz_repo, content_repo=content_repo, progress_repo=progress_repo, now=now)


@pytest.mark.anyio
async def test_create_quiz_maps_questions_to_principles(topic, content_repo, quiz_repo, learners_repo) -> None:
  service = FakeContentService(quiz=quiz_payload(3, principle_indexes=[2, None, 7]))

  quiz = await _create(service, content_repo, quiz_repo, learners_repo)

  assert quiz.total_questions == 3
  assert [item.order_index for item in quiz.questions] == [0, 1, 2]
  assert [item.principle_id for item in quiz.questions] == ["topic-1-p2", None, None]
  title, principles = service.quiz_calls[0]
  assert title == "Quantum Computing"
  assert [item.title for item in principles] == ["Principle 1", "Principle 2", "Principle 3"]
  assert quiz.id in quiz_repo.quizzes
  assert "learner-1" in learners_repo.learners


@pytest.mark.anyio
async def test_create_quiz_for_unknown_topic_is_404(content_repo, quiz_repo, learners_repo) -> None:
  with pytest.raises(HTTPException) as exc_info:
    await _create(FakeContentService(), content_repo, quiz_repo, learners_repo, slug="missing")
  assert exc_info.value.status_code == 404


@pytest.mark.anyio
async def test_topic_without_principles_is_400(content_repo, quiz_repo, learners_repo) -> None:
  empty = make_topic(principle_count=0)
  content_repo.topics[empty.slug] = empty
  with pytest.raises(HTTPException) as exc_info:
    await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  assert exc_info.value.status_code == 400


@pytest.mark.anyio
async def test_generation_failure_is_502_and_stores_nothing(topic, content_repo, quiz_repo, learners_repo) -> None:
  with pytest.raises(HTTPException) as exc_info:
    await _create(FakeContentService(quiz_error=RuntimeError("model unavailable")), content_repo, quiz_repo, learners_repo)
  assert exc_info.value.status_code == 502
  assert quiz_repo.quizzes == {}


@pytest.mark.anyio
async def test_generation_timeout_is_504(topic, content_repo, quiz_repo, learners_repo) -> None:
  with pytest.raises(HTTPException) as exc_info:
    await _create(FakeContentService(hang=True), content_repo, quiz_repo, learners_repo, settings=build_settings(ai_timeout_seconds=0.01))
  assert exc_info.value.status_code == 504


@pytest.mark.anyio
async def test_answers_are_graded_and_feed_mastery(topic, content_repo, quiz_repo, learning_repo, learners_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)

  right = await _answer(quiz, 1, 1, quiz_repo, content_repo, learning_repo, learners_repo)
  wrong = await _answer(quiz, 2, 0, quiz_repo, content_repo, learning_repo, learners_repo)

  assert right.question.is_correct is True
  assert right.mastery.mastery_score == 100
  assert wrong.question.is_correct is False
  assert wrong.question.user_answer == 0
  assert wrong.mastery.mastery_score == 0
  assert learning_repo.mastery[("learner-1", "topic-1-p1")].times_correct == 1


@pytest.mark.anyio
async def test_question_without_principle_skips_mastery(topic, content_repo, quiz_repo, learning_repo, learners_repo) -> None:
  quiz = await _create(FakeContentService(quiz=quiz_payload(1, principle_indexes=[None])), content_repo, quiz_repo, learners_repo)

  outcome = await _answer(quiz, 0, 0, quiz_repo, content_repo, learning_repo, learners_repo)

  assert outcome.question.is_correct is True
  assert outcome.mastery is None
  assert learning_repo.mastery == {}


@pytest.mark.anyio
async def test_second_answer_to_a_question_is_409(topic, content_repo, quiz_repo, learning_repo, learners_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  await _answer(quiz, 0, 3, quiz_repo, content_repo, learning_repo, learners_repo)

  with pytest.raises(HTTPException) as exc_info:
    await _answer(quiz, 0, 0, quiz_repo, content_repo, learning_repo, learners_repo)

  assert exc_info.value.status_code == 409
  stored = quiz_repo.quizzes[quiz.id].questions[0]
  assert (stored.user_answer, stored.is_correct) == (3, False)
  assert learning_repo.mastery[("learner-1", "topic-1-p0")].times_reviewed == 1


@pytest.mark.anyio
async def test_out_of_range_answer_is_400(topic, content_repo, quiz_repo, learning_repo, learners_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  with pytest.raises(HTTPException) as exc_info:
    await _answer(quiz, 0, 4, quiz_repo, content_repo, learning_repo, learners_repo)
  assert exc_info.value.status_code == 400


@pytest.mark.anyio
async def test_other_learners_quiz_is_404(topic, content_repo, quiz_repo, learning_repo, learners_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  with pytest.raises(HTTPException) as exc_info:
    await _answer(quiz, 0, 0, quiz_repo, content_repo, learning_repo, learners_repo, learner_id="learner-2")
  assert exc_info.value.status_code == 404


@pytest.mark.anyio
async def test_completion_scores_unanswered_as_wrong(topic, content_repo, quiz_repo, learning_repo, learners_repo, progress_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  await _answer(quiz, 0, 0, quiz_repo, content_repo, learning_repo, learners_repo)
  await _answer(quiz, 1, 1, quiz_repo, content_repo, learning_repo, learners_repo)

  outcome = await _complete(quiz, quiz_repo, content_repo, progress_repo)

  assert (outcome.quiz.correct_count, outcome.quiz.score) == (2, 67)
  assert outcome.passed is False
  assert outcome.progress.quizzes_taken == 1
  assert outcome.progress.best_score == 67
  assert outcome.progress.completed_at is None


@pytest.mark.anyio
async def test_passing_quiz_completes_the_topic(topic, content_repo, quiz_repo, learning_repo, learners_repo, progress_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  for index in range(3):
    await _answer(quiz, index, index, quiz_repo, content_repo, learning_repo, learners_repo)

  outcome = await _complete(quiz, quiz_repo, content_repo, progress_repo)

  assert outcome.quiz.score == 100
  assert outcome.passed is True
  assert outcome.progress.principles_completed == 3
  assert outcome.progress.completed_at == NOW


@pytest.mark.anyio
async def test_quiz_completes_only_once(topic, content_repo, quiz_repo, learning_repo, learners_repo, progress_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  await _complete(quiz, quiz_repo, content_repo, progress_repo)

  with pytest.raises(HTTPException) as exc_info:
    await _complete(quiz, quiz_repo, content_repo, progress_repo, now=NOW + timedelta(minutes=1))

  assert exc_info.value.status_code == 409
  assert progress_repo.progress[("learner-1", "topic-1")].quizzes_taken == 1


@pytest.mark.anyio
async def test_answers_after_completion_are_409(topic, content_repo, quiz_repo, learning_repo, learners_repo, progress_repo) -> None:
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)
  await _complete(quiz, quiz_repo, content_repo, progress_repo)

  with pytest.raises(HTTPException) as exc_info:
    await _answer(quiz, 0, 0, quiz_repo, content_repo, learning_repo, learners_repo)

  assert exc_info.value.status_code == 409
  assert learning_repo.mastery == {}


@pytest.mark.anyio
async def test_progress_failure_still_completes_the_quiz(topic, content_repo, quiz_repo, learners_repo, progress_repo) -> None:
  progress_repo.fail_writes = True
  quiz = await _create(FakeContentService(), content_repo, quiz_repo, learners_repo)

  outcome = await _complete(quiz, quiz_repo, content_repo, progress_repo)

  assert outcome.progress is None
  assert quiz_repo.quizzes[quiz.id].is_completed


@pytest.mark.anyio
async def test_reading_progress_is_clamped_to_the_topic(topic, content_repo, progress_repo, learners_repo) -> None:
  async def _read(count: int):
    return await quiz_service.record_reading(learner_id="learner-1", topic_id="topic-1", principles_completed=count, content_repo=content_repo, progress_repo=progress_repo, learners_repo=learners_repo, now=NOW)

  assert (await _read(2)).principles_completed == 2
  assert (await _read(1)).principles_completed == 2
  assert (await _read(10)).principles_completed == 3


@pytest.mark.anyio
async def test_reading_progress_for_unknown_topic_is_404(content_repo, progress_repo, learners_repo) -> None:
  with pytest.raises(HTTPException) as exc_info:
    await quiz_service.record_reading(learner_id="learner-1", topic_id="missing", principles_completed=1, content_repo=content_repo, progress_repo=progress_repo, learners_repo=learners_repo)
  assert exc_info.value.status_code == 404


@pytest.mark.anyio
async def test_missing_progress_is_404(progress_repo) -> None:
  with pytest.raises(HTTPException) as exc_info:
    await quiz_service.get_progress(learner_id="learner-1", topic_id="topic-1", progress_repo=progress_repo)
  assert exc_info.value.status_code == 404
