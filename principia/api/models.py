from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr

from principia.jobs.models import JobStatus
from principia.learning.mastery import MasteryOverview, MasteryRecord
from principia.learning.progress import TopicProgressRecord
from principia.learning.scheduler import ScheduleRecord
from principia.storage.content_repo import PrincipleRecord, TopicRecord
from principia.storage.quiz_repo import QuizQuestionRecord, QuizRecord


class GenerateTopicRequest(BaseModel):
  """Request payload for topic generation."""

  title: StrictStr = Field(min_length=1, max_length=1000, description="Subject to break into first principles.", examples=["Quantum Computing"])


class PrincipleResponse(BaseModel):
  id: StrictStr
  order_index: int
  title: StrictStr
  explanation: StrictStr
  analogy: StrictStr | None = None
  visual_type: StrictStr | None = None
  visual_data: dict[str, Any] | None = None
  key_takeaways: list[str] = Field(default_factory=list)

  @classmethod
  def from_record(cls, record: PrincipleRecord) -> PrincipleResponse:
    return cls(
      id=record.id,
      order_index=record.order_index,
      title=record.title,
      explanation=record.explanation,
      analogy=record.analogy,
      visual_type=record.visual_type,
      visual_data=record.visual_data,
      key_takeaways=list(record.key_takeaways),
    )


class TopicResponse(BaseModel):
  """A generated topic with its principles in teaching order."""

  id: StrictStr
  slug: StrictStr
  title: StrictStr
  description: StrictStr | None = None
  category: StrictStr | None = None
  difficulty: StrictStr
  estimated_minutes: int
  confidence_score: int | None = None
  mind_map: dict[str, Any] | None = None
  principles: list[PrincipleResponse] = Field(default_factory=list)

  @classmethod
  def from_record(cls, record: TopicRecord) -> TopicResponse:
    return cls(
      id=record.id,
      slug=record.slug,
      title=record.title,
      description=record.description,
      category=record.category,
      difficulty=record.difficulty,
      estimated_minutes=record.estimated_minutes,
      confidence_score=record.confidence_score,
      mind_map=record.mind_map,
      principles=[PrincipleResponse.from_record(item) for item in sorted(record.principles, key=lambda item: item.order_index)],
    )


class GenerateTopicResponse(BaseModel):
  """Either an existing topic or a job to poll."""

  status: Literal["exists", "queued"]
  slug: StrictStr
  topic: TopicResponse | None = None
  job_id: StrictStr | None = None
  poll_interval_seconds: int | None = None


class JobStatusResponse(BaseModel):
  """Status payload for a generation job."""

  job_id: StrictStr
  state: JobStatus
  progress: float = Field(ge=0, le=100)
  result: dict[str, Any] | None = None
  error: StrictStr | None = None
  model_config = ConfigDict(populate_by_name=True)


class ScheduleResponse(BaseModel):
  id: StrictStr
  principle_id: StrictStr
  topic_id: StrictStr
  due_at: datetime
  ease_factor: int = Field(description="Fixed-point multiplier scaled by 100 (250 == 2.50).")
  interval_days: int
  repetitions: int
  status: StrictStr

  @classmethod
  def from_record(cls, record: ScheduleRecord) -> ScheduleResponse:
    return cls(id=record.id, principle_id=record.principle_id, topic_id=record.topic_id, due_at=record.due_at, ease_factor=record.ease_factor, interval_days=record.interval_days, repetitions=record.repetitions, status=record.status)


class MasteryResponse(BaseModel):
  principle_id: StrictStr
  topic_id: StrictStr
  mastery_score: int = Field(ge=0, le=100)
  times_reviewed: int
  times_correct: int
  last_reviewed_at: datetime | None = None

  @classmethod
  def from_record(cls, record: MasteryRecord) -> MasteryResponse:
    return cls(principle_id=record.principle_id, topic_id=record.topic_id, mastery_score=record.mastery_score, times_reviewed=record.times_reviewed, times_correct=record.times_correct, last_reviewed_at=record.last_reviewed_at)


class GradeReviewRequest(BaseModel):
  quality: StrictInt = Field(ge=0, le=5, description="Recall quality from 0 (blackout) to 5 (perfect).")


class GradeReviewResponse(BaseModel):
  schedule: ScheduleResponse
  mastery: MasteryResponse
  next_review_in: int
  message: StrictStr


class DueReviewResponse(BaseModel):
  schedule: ScheduleResponse
  principle_title: StrictStr | None = None


class ReviewStatsResponse(BaseModel):
  due_count: int
  total_tracked: int
  average_mastery: int
  mastered_count: int


class QuizAnswerRequest(BaseModel):
  principle_id: StrictStr = Field(min_length=1)
  was_correct: StrictBool


class QuizAnswerResponse(BaseModel):
  mastery: MasteryResponse
  schedule: ScheduleResponse
  schedule_created: bool


class WeakPrincipleResponse(BaseModel):
  principle_id: StrictStr
  topic_id: StrictStr
  title: StrictStr | None = None
  mastery_score: int
  times_reviewed: int
  last_reviewed_at: datetime | None = None


class MasteryOverviewResponse(BaseModel):
  tracked: int
  principles_mastered: int
  weak_principles_count: int
  average_mastery: int

  @classmethod
  def from_overview(cls, overview: MasteryOverview) -> MasteryOverviewResponse:
    return cls(tracked=overview.tracked, principles_mastered=overview.principles_mastered, weak_principles_count=overview.weak_principles_count, average_mastery=overview.average_mastery)


class TopicSummaryResponse(BaseModel):
  """Catalogue entry for a public topic, without its principles."""

  id: StrictStr
  slug: StrictStr
  title: StrictStr
  description: StrictStr | None = None
  category: StrictStr | None = None
  difficulty: StrictStr
  estimated_minutes: int
  confidence_score: int | None = None
  created_at: datetime | None = None

  @classmethod
  def from_record(cls, record: TopicRecord) -> TopicSummaryResponse:
    return cls(
      id=record.id,
      slug=record.slug,
      title=record.title,
      description=record.description,
      category=record.category,
      difficulty=record.difficulty,
      estimated_minutes=record.estimated_minutes,
      confidence_score=record.confidence_score,
      created_at=record.created_at,
    )


class QuizQuestionResponse(BaseModel):
  """A quiz question; the answer key is withheld until the question is answered or the quiz is completed."""

  id: StrictStr
  order_index: int
  question_text: StrictStr
  options: list[str]
  principle_id: StrictStr | None = None
  user_answer: int | None = None
  is_correct: bool | None = None
  correct_answer: int | None = None
  explanation: StrictStr | None = None

  @classmethod
  def from_record(cls, record: QuizQuestionRecord, *, reveal: bool) -> QuizQuestionResponse:
    show = reveal or record.is_answered
    return cls(
      id=record.id,
      order_index=record.order_index,
      question_text=record.question_text,
      options=list(record.options),
      principle_id=record.principle_id,
      user_answer=record.user_answer,
      is_correct=record.is_correct,
      correct_answer=record.correct_answer if show else None,
      explanation=record.explanation if show else None,
    )


class QuizResponse(BaseModel):
  id: StrictStr
  topic_id: StrictStr
  total_questions: int
  correct_count: int | None = None
  score: int | None = None
  completed_at: datetime | None = None
  questions: list[QuizQuestionResponse] = Field(default_factory=list)

  @classmethod
  def from_record(cls, record: QuizRecord) -> QuizResponse:
    ordered = sorted(record.questions, key=lambda item: item.order_index)
    return cls(
      id=record.id,
      topic_id=record.topic_id,
      total_questions=record.total_questions,
      correct_count=record.correct_count,
      score=record.score,
      completed_at=record.completed_at,
      questions=[QuizQuestionResponse.from_record(item, reveal=record.is_completed) for item in ordered],
    )


class SubmitAnswerRequest(BaseModel):
  question_id: StrictStr = Field(min_length=1)
  answer: StrictInt = Field(ge=0, description="0-based index of the chosen option.")


class SubmitAnswerResponse(BaseModel):
  is_correct: bool
  correct_answer: int
  explanation: StrictStr | None = None
  mastery: MasteryResponse | None = None


class TopicProgressResponse(BaseModel):
  topic_id: StrictStr
  principles_completed: int
  total_principles: int
  quizzes_taken: int
  best_score: int | None = None
  last_accessed_at: datetime | None = None
  completed_at: datetime | None = None

  @classmethod
  def from_record(cls, record: TopicProgressRecord) -> TopicProgressResponse:
    return cls(
      topic_id=record.topic_id,
      principles_completed=record.principles_completed,
      total_principles=record.total_principles,
      quizzes_taken=record.quizzes_taken,
      best_score=record.best_score,
      last_accessed_at=record.last_accessed_at,
      completed_at=record.completed_at,
    )


class CompleteQuizResponse(BaseModel):
  score: int = Field(ge=0, le=100)
  correct_count: int
  total_questions: int
  passed: bool
  progress: TopicProgressResponse | None = None


class ReadingProgressRequest(BaseModel):
  principles_completed: StrictInt = Field(ge=0)
