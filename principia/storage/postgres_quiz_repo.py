"""Postgres-backed repositories for quizzes and per-topic progress."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert

from principia.core.database import get_session_factory
from principia.learning.progress import TopicProgressRecord, is_passing
from principia.schema.quizzes import Quiz, QuizQuestion, TopicProgress
from principia.storage.quiz_repo import ProgressRepository, QuizQuestionRecord, QuizRecord, QuizRepository


class PostgresQuizRepository(QuizRepository):
  """Persist quizzes and answers to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_quiz(self, quiz: QuizRecord) -> QuizRecord:
    async with self._session_factory() as session:
      session.add(Quiz(id=quiz.id, topic_id=quiz.topic_id, learner_id=quiz.learner_id, total_questions=quiz.total_questions))
      # Flush the quiz first so question foreign keys resolve inside the same transaction.
      await session.flush()
      for question in quiz.questions:
        session.add(
          QuizQuestion(
            id=question.id,
            quiz_id=quiz.id,
            principle_id=question.principle_id,
            order_index=question.order_index,
            question_text=question.question_text,
            options=list(question.options),
            correct_answer=question.correct_answer,
            explanation=question.explanation,
          )
        )
      await session.commit()

    stored = await self.get_quiz(quiz.id)
    return stored or quiz

  async def get_quiz(self, quiz_id: str) -> QuizRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Quiz, quiz_id)
      if row is None:
        return None
      return self._quiz_to_record(row, await self._load_questions(session, quiz_id))

  async def record_answer(self, *, quiz_id: str, question_id: str, answer: int, is_correct: bool, now: datetime) -> QuizQuestionRecord | None:
    open_quiz = select(Quiz.id).where(Quiz.id == quiz_id, Quiz.completed_at.is_(None))
    async with self._session_factory() as session:
      # The IS NULL guard makes the first answer win; a repeat or a late answer to a closed quiz matches nothing.
      stmt = (
        update(QuizQuestion)
        .where(QuizQuestion.id == question_id, QuizQuestion.quiz_id.in_(open_quiz), QuizQuestion.user_answer.is_(None))
        .values(user_answer=answer, is_correct=is_correct, answered_at=now)
        .returning(QuizQuestion)
        .execution_options(synchronize_session=False)
      )
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        return None
      return self._question_to_record(row)

  async def complete_quiz(self, *, quiz_id: str, correct_count: int, score: int, now: datetime) -> QuizRecord | None:
    async with self._session_factory() as session:
      stmt = update(Quiz).where(Quiz.id == quiz_id, Quiz.completed_at.is_(None)).values(correct_count=correct_count, score=score, completed_at=now).returning(Quiz).execution_options(synchronize_session=False)
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        return None
      return self._quiz_to_record(row, await self._load_questions(session, quiz_id))

  async def _load_questions(self, session: Any, quiz_id: str) -> list[QuizQuestionRecord]:
    stmt = select(QuizQuestion).where(QuizQuestion.quiz_id == quiz_id).order_by(QuizQuestion.order_index.asc())
    rows = (await session.execute(stmt)).scalars().all()
    return [self._question_to_record(row) for row in rows]

  def _question_to_record(self, row: QuizQuestion) -> QuizQuestionRecord:
    return QuizQuestionRecord(
      id=row.id,
      quiz_id=row.quiz_id,
      order_index=row.order_index,
      question_text=row.question_text,
      options=list(row.options or []),
      correct_answer=row.correct_answer,
      principle_id=row.principle_id,
      explanation=row.explanation,
      user_answer=row.user_answer,
      is_correct=row.is_correct,
      answered_at=row.answered_at,
    )

  def _quiz_to_record(self, row: Quiz, questions: list[QuizQuestionRecord]) -> QuizRecord:
    return QuizRecord(
      id=row.id,
      topic_id=row.topic_id,
      learner_id=row.learner_id,
      total_questions=row.total_questions,
      correct_count=row.correct_count,
      score=row.score,
      completed_at=row.completed_at,
      created_at=row.created_at,
      questions=questions,
    )


class PostgresProgressRepository(ProgressRepository):
  """Persist per-topic progress to Postgres using single-statement upserts."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_progress(self, learner_id: str, topic_id: str) -> TopicProgressRecord | None:
    async with self._session_factory() as session:
      stmt = select(TopicProgress).where(TopicProgress.learner_id == learner_id, TopicProgress.topic_id == topic_id)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      return self._to_record(row)

  async def list_progress(self, learner_id: str) -> list[TopicProgressRecord]:
    async with self._session_factory() as session:
      stmt = select(TopicProgress).where(TopicProgress.learner_id == learner_id).order_by(TopicProgress.last_accessed_at.desc())
      rows = (await session.execute(stmt)).scalars().all()
      return [self._to_record(row) for row in rows]

  async def record_quiz_result(self, *, record_id: str, learner_id: str, topic_id: str, score: int, total_principles: int, now: datetime) -> TopicProgressRecord:
    passed = is_passing(score)
    stmt = insert(TopicProgress).values(
      id=record_id,
      learner_id=learner_id,
      topic_id=topic_id,
      principles_completed=total_principles if passed else 0,
      total_principles=total_principles,
      quizzes_taken=1,
      best_score=score,
      last_accessed_at=now,
      completed_at=now if passed else None,
    )
    changes: dict[str, Any] = {
      "quizzes_taken": TopicProgress.quizzes_taken + 1,
      # GREATEST skips NULL, so the first scored quiz sets best_score outright.
      "best_score": func.greatest(TopicProgress.best_score, score),
      "total_principles": total_principles,
      "principles_completed": total_principles if passed else func.least(TopicProgress.principles_completed, total_principles),
      "last_accessed_at": now,
    }
    if passed:
      changes["completed_at"] = func.coalesce(TopicProgress.completed_at, now)
    stmt = stmt.on_conflict_do_update(constraint="ux_topic_progress_learner_topic", set_=changes).returning(TopicProgress)
    return await self._upsert(stmt)

  async def record_reading(self, *, record_id: str, learner_id: str, topic_id: str, principles_completed: int, total_principles: int, now: datetime) -> TopicProgressRecord:
    stmt = insert(TopicProgress).values(id=record_id, learner_id=learner_id, topic_id=topic_id, principles_completed=min(principles_completed, total_principles), total_principles=total_principles, last_accessed_at=now)
    changes = {
      "principles_completed": func.least(func.greatest(TopicProgress.principles_completed, principles_completed), total_principles),
      "total_principles": total_principles,
      "last_accessed_at": now,
    }
    stmt = stmt.on_conflict_do_update(constraint="ux_topic_progress_learner_topic", set_=changes).returning(TopicProgress)
    return await self._upsert(stmt)

  async def _upsert(self, stmt: Any) -> TopicProgressRecord:
    async with self._session_factory() as session:
      row = (await session.execute(stmt)).scalar_one()
      await session.commit()
      return self._to_record(row)

  def _to_record(self, row: TopicProgress) -> TopicProgressRecord:
    return TopicProgressRecord(
      id=row.id,
      learner_id=row.learner_id,
      topic_id=row.topic_id,
      principles_completed=row.principles_completed,
      total_principles=row.total_principles,
      quizzes_taken=row.quizzes_taken,
      best_score=row.best_score,
      last_accessed_at=row.last_accessed_at,
      completed_at=row.completed_at,
    )
