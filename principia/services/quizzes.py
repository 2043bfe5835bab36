"""Quiz generation, answering and completion, plus per-topic reading progress."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi import HTTPException, status

from principia.ai.content_service import ContentService, QuizContent, QuizPrinciple
from principia.config import Settings
from principia.learning.mastery import MasteryRecord
from principia.learning.progress import TopicProgressRecord, is_passing, quiz_score
from principia.services.learning import record_quiz_answer
from principia.storage.content_repo import ContentRepository, PrincipleRecord, TopicRecord
from principia.storage.learners_repo import LearnersRepository
from principia.storage.learning_repo import LearningRepository
from principia.storage.quiz_repo import ProgressRepository, QuizQuestionRecord, QuizRecord, QuizRepository
from principia.utils.ids import generate_record_id

logger = logging.getLogger(__name__)

_TOPIC_NOT_FOUND_MSG = "Topic not found."
_QUIZ_NOT_FOUND_MSG = "Quiz not found."
_QUESTION_NOT_FOUND_MSG = "Question not found."


@dataclass(frozen=True)
class AnswerOutcome:
  question: QuizQuestionRecord
  mastery: MasteryRecord | None


@dataclass(frozen=True)
class QuizCompletion:
  quiz: QuizRecord
  progress: TopicProgressRecord | None
  passed: bool


def _utc_now() -> datetime:
  return datetime.now(UTC)


def build_quiz_record(*, learner_id: str, topic: TopicRecord, principles: list[PrincipleRecord], content: QuizContent) -> QuizRecord:
  """Map generated questions onto a quiz, resolving each principle index to its stored principle."""

  quiz_id = generate_record_id()
  questions = []
  for index, item in enumerate(content.questions):
    principle_id = None
    # Indexes outside the principle list still make a valid question; it just doesn't feed mastery.
    if item.principle_index is not None and 0 <= item.principle_index < len(principles):
      principle_id = principles[item.principle_index].id
    questions.append(
      QuizQuestionRecord(
        id=generate_record_id(),
        quiz_id=quiz_id,
        order_index=index,
        question_text=item.question_text,
        options=list(item.options),
        correct_answer=item.correct_answer,
        principle_id=principle_id,
        explanation=item.explanation,
      )
    )
  return QuizRecord(id=quiz_id, topic_id=topic.id, learner_id=learner_id, total_questions=len(questions), questions=questions)


async def create_quiz(
  *,
  learner_id: str,
  slug: str,
  settings: Settings,
  content_service: ContentService,
  content_repo: ContentRepository,
  quiz_repo: QuizRepository,
  learners_repo: LearnersRepository,
) -> QuizRecord:
  """Generate and store a multiple-choice quiz over a topic's principles."""

  topic = await content_repo.get_topic_by_slug(slug)
  if topic is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_TOPIC_NOT_FOUND_MSG)
  principles = sorted(topic.principles, key=lambda item: item.order_index)
  if not principles:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Topic has no principles to quiz on.")

  sources = [QuizPrinciple(title=item.title, explanation=item.explanation) for item in principles]
  try:
    content = await asyncio.wait_for(content_service.generate_quiz(topic.title, sources), timeout=settings.ai_timeout_seconds)
  except TimeoutError as exc:
    logger.warning("Quiz generation for %s exceeded %.0fs.", slug, settings.ai_timeout_seconds)
    raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="Quiz generation timed out.") from exc
  except Exception as exc:  # noqa: BLE001
    logger.warning("Quiz generation for %s failed: %s", slug, exc, exc_info=True)
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Quiz generation failed.") from exc

  await learners_repo.ensure_learner(learner_id)
  quiz = await quiz_repo.create_quiz(build_quiz_record(learner_id=learner_id, topic=topic, principles=principles, content=content))
  logger.info("Created quiz %s with %s question(s) for learner %s on %s.", quiz.id, quiz.total_questions, learner_id, slug)
  return quiz


async def _owned_quiz(quiz_id: str, learner_id: str, quiz_repo: QuizRepository) -> QuizRecord:
  quiz = await quiz_repo.get_quiz(quiz_id)
  # Other learners' quizzes are indistinguishable from missing ones.
  if quiz is None or quiz.learner_id != learner_id:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_QUIZ_NOT_FOUND_MSG)
  return quiz


async def get_quiz(*, learner_id: str, quiz_id: str, quiz_repo: QuizRepository) -> QuizRecord:
  return await _owned_quiz(quiz_id, learner_id, quiz_repo)


async def answer_question(
  *,
  learner_id: str,
  quiz_id: str,
  question_id: str,
  answer: int,
  quiz_repo: QuizRepository,
  content_repo: ContentRepository,
  learning_repo: LearningRepository,
  learners_repo: LearnersRepository,
  now: datetime | None = None,
) -> AnswerOutcome:
  """Grade one answer, store it, and fold it into mastery when the question targets a principle."""

  now = now or _utc_now()
  quiz = await _owned_quiz(quiz_id, learner_id, quiz_repo)
  question = quiz.question(question_id)
  if question is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_QUESTION_NOT_FOUND_MSG)
  if answer < 0 or answer >= len(question.options):
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Answer must be between 0 and {len(question.options) - 1}.")

  is_correct = answer == question.correct_answer
  stored = await quiz_repo.record_answer(quiz_id=quiz_id, question_id=question_id, answer=answer, is_correct=is_correct, now=now)
  if stored is None:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Question was already answered or the quiz is completed.")

  mastery = None
  if stored.principle_id is not None:
    outcome = await record_quiz_answer(learner_id=learner_id, principle_id=stored.principle_id, was_correct=is_correct, content_repo=content_repo, learning_repo=learning_repo, learners_repo=learners_repo, now=now)
    mastery = outcome.mastery
  return AnswerOutcome(question=stored, mastery=mastery)


async def complete_quiz(
  *,
  learner_id: str,
  quiz_id: str,
  quiz_repo: QuizRepository,
  content_repo: ContentRepository,
  progress_repo: ProgressRepository,
  now: datetime | None = None,
) -> QuizCompletion:
  """Score a quiz once and roll the result into the learner's topic progress."""

  now = now or _utc_now()
  quiz = await _owned_quiz(quiz_id, learner_id, quiz_repo)
  if quiz.total_questions <= 0:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quiz has no questions.")

  # Unanswered questions count as wrong.
  correct_count = sum(1 for item in quiz.questions if item.is_correct)
  score = quiz_score(correct_count, quiz.total_questions)
  completed = await quiz_repo.complete_quiz(quiz_id=quiz_id, correct_count=correct_count, score=score, now=now)
  if completed is None:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Quiz is already completed.")

  topic = await content_repo.get_topic(quiz.topic_id)
  total_principles = len(topic.principles) if topic is not None else 0
  try:
    progress = await progress_repo.record_quiz_result(record_id=generate_record_id(), learner_id=learner_id, topic_id=quiz.topic_id, score=score, total_principles=total_principles, now=now)
  except Exception:  # noqa: BLE001
    # The score is already stored on the quiz; losing the progress roll-up must not fail the request.
    logger.warning("Progress update for quiz %s failed.", quiz_id, exc_info=True)
    progress = None

  logger.info("Quiz %s completed by learner %s with score %s.", quiz_id, learner_id, score)
  return QuizCompletion(quiz=completed, progress=progress, passed=is_passing(score))


async def list_progress(*, learner_id: str, progress_repo: ProgressRepository) -> list[TopicProgressRecord]:
  return await progress_repo.list_progress(learner_id)


async def get_progress(*, learner_id: str, topic_id: str, progress_repo: ProgressRepository) -> TopicProgressRecord:
  record = await progress_repo.get_progress(learner_id, topic_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No progress recorded for this topic.")
  return record


async def record_reading(
  *,
  learner_id: str,
  topic_id: str,
  principles_completed: int,
  content_repo: ContentRepository,
  progress_repo: ProgressRepository,
  learners_repo: LearnersRepository,
  now: datetime | None = None,
) -> TopicProgressRecord:
  """Record how many principles the learner has read; the count is clamped to the topic size."""

  topic = await content_repo.get_topic(topic_id)
  if topic is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_TOPIC_NOT_FOUND_MSG)
  await learners_repo.ensure_learner(learner_id)
  return await progress_repo.record_reading(record_id=generate_record_id(), learner_id=learner_id, topic_id=topic_id, principles_completed=principles_completed, total_principles=len(topic.principles), now=now or _utc_now())
