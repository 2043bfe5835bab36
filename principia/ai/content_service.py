"""Contract between the generation worker and the generative content backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class ContentShapeError(RuntimeError):
  """Raised when a model response does not have the basic shape the pipeline needs."""


class MindMapNode(BaseModel):
  model_config = ConfigDict(extra="ignore")

  id: str = Field(min_length=1)
  label: str = Field(min_length=1)
  type: Literal["topic", "principle", "concept"] = "concept"
  summary: str | None = None


class MindMapEdge(BaseModel):
  model_config = ConfigDict(extra="ignore")

  source: str = Field(min_length=1)
  target: str = Field(min_length=1)
  label: str | None = None


class MindMap(BaseModel):
  nodes: list[MindMapNode] = Field(default_factory=list)
  edges: list[MindMapEdge] = Field(default_factory=list)


class GeneratedPrinciple(BaseModel):
  """One first principle, ordered by its position in the topic."""

  model_config = ConfigDict(extra="ignore", populate_by_name=True)

  title: str = Field(min_length=1)
  explanation: str = Field(min_length=1)
  analogy: str | None = None
  visual_type: str | None = Field(default=None, alias="visualType")
  visual_data: dict[str, Any] | None = Field(default=None, alias="visualData")
  key_takeaways: list[str] = Field(default_factory=list, alias="keyTakeaways")


class TopicContent(BaseModel):
  """Structured learning content for one subject."""

  model_config = ConfigDict(extra="ignore", populate_by_name=True)

  description: str = Field(min_length=1)
  category: str = Field(min_length=1)
  difficulty: Literal["beginner", "intermediate", "advanced"] = "beginner"
  estimated_minutes: int = Field(default=30, ge=1, le=600, alias="estimatedMinutes")
  principles: list[GeneratedPrinciple] = Field(min_length=1)
  mind_map: MindMap = Field(default_factory=MindMap, alias="mindMap")

  @field_validator("difficulty", mode="before")
  @classmethod
  def _normalize_difficulty(cls, value: Any) -> Any:
    if isinstance(value, str):
      return value.strip().lower()
    return value


class ValidationReport(BaseModel):
  """Fact-check report; the pipeline only relies on the confidence score."""

  model_config = ConfigDict(extra="allow", populate_by_name=True)

  overall_confidence: int = Field(ge=0, le=100, alias="overallConfidence")
  issues: list[str] = Field(default_factory=list)

  def as_json(self) -> dict[str, Any]:
    return self.model_dump(mode="json", by_alias=True)


QUIZ_OPTION_COUNT = 4


@dataclass(frozen=True)
class QuizPrinciple:
  """Principle text a quiz is written against, in topic order."""

  title: str
  explanation: str


class GeneratedQuestion(BaseModel):
  """One multiple-choice question; ``principle_index`` points into the principles the quiz was written for."""

  model_config = ConfigDict(extra="ignore", populate_by_name=True)

  principle_index: int | None = Field(default=None, alias="principleIndex")
  question_text: str = Field(min_length=1, alias="questionText")
  options: list[str] = Field(min_length=QUIZ_OPTION_COUNT, max_length=QUIZ_OPTION_COUNT)
  correct_answer: int = Field(ge=0, lt=QUIZ_OPTION_COUNT, alias="correctAnswer")
  explanation: str | None = None


class QuizContent(BaseModel):
  questions: list[GeneratedQuestion] = Field(min_length=1)

  @model_validator(mode="before")
  @classmethod
  def _accept_bare_list(cls, value: Any) -> Any:
    # JSON mode sometimes answers with the array itself instead of the wrapping object.
    if isinstance(value, list):
      return {"questions": value}
    return value


def parse_topic_content(payload: Any) -> TopicContent:
  """Validate a raw model payload into ``TopicContent``."""

  try:
    return TopicContent.model_validate(payload)
  except ValidationError as exc:
    raise ContentShapeError(f"Generated content failed shape checks: {exc.error_count()} error(s).") from exc


def parse_validation_report(payload: Any) -> ValidationReport:
  try:
    return ValidationReport.model_validate(payload)
  except ValidationError as exc:
    raise ContentShapeError(f"Validation report failed shape checks: {exc.error_count()} error(s).") from exc


def parse_quiz_content(payload: Any) -> QuizContent:
  try:
    return QuizContent.model_validate(payload)
  except ValidationError as exc:
    raise ContentShapeError(f"Generated quiz failed shape checks: {exc.error_count()} error(s).") from exc


class ContentService(Protocol):
  """Generative backend used by the worker and the quiz service. Every call may fail or hang."""

  async def generate(self, title: str) -> TopicContent:
    """Produce structured learning content for a subject title."""

  async def validate(self, title: str, content: TopicContent) -> ValidationReport:
    """Fact-check generated content and score confidence."""

  async def generate_quiz(self, title: str, principles: list[QuizPrinciple]) -> QuizContent:
    """Write multiple-choice questions covering ``principles``."""
