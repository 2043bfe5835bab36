"""Storage interfaces for quizzes and per-topic progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from principia.learning.progress import TopicProgressRecord


@dataclass(frozen=True)
class QuizQuestionRecord:
  id: str
  quiz_id: str
  order_index: int
  question_text: str
  options: list[str]
  correct_answer: int
  principle_id: str | None = None
  explanation: str | None = None
  user_answer: int | None = None
  is_correct: bool | None = None
  answered_at: datetime | None = None

  @property
  def is_answered(self) -> bool:
    return self.user_answer is not None


@dataclass(frozen=True)
class QuizRecord:
  """A generated quiz owned by one learner, plus its ordered questions."""

  id: str
  topic_id: str
  learner_id: str
  total_questions: int
  correct_count: int | None = None
  score: int | None = None
  completed_at: datetime | None = None
  created_at: datetime | None = None
  questions: list[QuizQuestionRecord] = field(default_factory=list)

  @property
  def is_completed(self) -> bool:
    return self.completed_at is not None

  def question(self, question_id: str) -> QuizQuestionRecord | None:
    for item in self.questions:
      if item.id == question_id:
        return item
    return None


class QuizRepository(Protocol):
  """Repository contract for quizzes and their answers."""

  async def create_quiz(self, quiz: QuizRecord) -> QuizRecord:
    """Insert the quiz and all of its questions atomically."""

  async def get_quiz(self, quiz_id: str) -> QuizRecord | None:
    """Fetch a quiz and its ordered questions."""

  async def record_answer(self, *, quiz_id: str, question_id: str, answer: int, is_correct: bool, now: datetime) -> QuizQuestionRecord | None:
    """Store the first answer to an open question; return ``None`` when it was already answered or the quiz closed."""

  async def complete_quiz(self, *, quiz_id: str, correct_count: int, score: int, now: datetime) -> QuizRecord | None:
    """Close an open quiz with its score; return ``None`` when it was already completed."""


class ProgressRepository(Protocol):
  """Repository contract for per-topic progress keyed by (learner, topic)."""

  async def get_progress(self, learner_id: str, topic_id: str) -> TopicProgressRecord | None:
    """Fetch progress for one topic."""

  async def list_progress(self, learner_id: str) -> list[TopicProgressRecord]:
    """Return the learner's progress rows, most recently accessed first."""

  async def record_quiz_result(self, *, record_id: str, learner_id: str, topic_id: str, score: int, total_principles: int, now: datetime) -> TopicProgressRecord:
    """Atomically count a finished quiz for (learner, topic), creating the row with ``record_id`` if needed."""

  async def record_reading(self, *, record_id: str, learner_id: str, topic_id: str, principles_completed: int, total_principles: int, now: datetime) -> TopicProgressRecord:
    """Atomically raise the completed-principle count for (learner, topic)."""
