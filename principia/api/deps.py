"""Shared FastAPI dependencies for repositories and learner identity."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from principia.ai.content_service import ContentService
from principia.ai.factory import _get_content_service
from principia.config import Settings, get_settings
from principia.storage.content_repo import ContentRepository
from principia.storage.factory import _get_content_repo, _get_jobs_repo, _get_learners_repo, _get_learning_repo, _get_progress_repo, _get_quiz_repo
from principia.storage.jobs_repo import JobsRepository
from principia.storage.learners_repo import LearnersRepository
from principia.storage.learning_repo import LearningRepository
from principia.storage.quiz_repo import ProgressRepository, QuizRepository

MAX_LEARNER_ID_LENGTH = 128


def get_jobs_repo(settings: Settings = Depends(get_settings)) -> JobsRepository:  # noqa: B008
  return _get_jobs_repo(settings)


def get_content_repo(settings: Settings = Depends(get_settings)) -> ContentRepository:  # noqa: B008
  return _get_content_repo(settings)


def get_learning_repo(settings: Settings = Depends(get_settings)) -> LearningRepository:  # noqa: B008
  return _get_learning_repo(settings)


def get_learners_repo(settings: Settings = Depends(get_settings)) -> LearnersRepository:  # noqa: B008
  return _get_learners_repo(settings)


def get_optional_learner_id(x_learner_id: str | None = Header(default=None)) -> str | None:
  """Return the learner id forwarded by the auth layer, or ``None`` for anonymous callers."""
  if x_learner_id is None:
    return None
  learner_id = x_learner_id.strip()
  if learner_id == "":
    return None
  if len(learner_id) > MAX_LEARNER_ID_LENGTH:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed learner id.")
  return learner_id


def require_learner_id(learner_id: str | None = Depends(get_optional_learner_id)) -> str:  # noqa: B008
  if learner_id is None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Learner identity required.")
  return learner_id


def get_quiz_repo(settings: Settings = Depends(get_settings)) -> QuizRepository:  # noqa: B008
  return _get_quiz_repo(settings)


def get_progress_repo(settings: Settings = Depends(get_settings)) -> ProgressRepository:  # noqa: B008
  return _get_progress_repo(settings)


def get_content_service(settings: Settings = Depends(get_settings)) -> ContentService:  # noqa: B008
  try:
    return _get_content_service(settings)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Content generation is not configured.") from exc
