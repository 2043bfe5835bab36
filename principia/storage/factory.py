from principia.config import Settings
from principia.storage.content_repo import ContentRepository
from principia.storage.jobs_repo import JobsRepository
from principia.storage.learners_repo import LearnersRepository
from principia.storage.learning_repo import LearningRepository
from principia.storage.postgres_content_repo import PostgresContentRepository
from principia.storage.postgres_jobs_repo import PostgresJobsRepository
from principia.storage.postgres_learners_repo import PostgresLearnersRepository
from principia.storage.postgres_learning_repo import PostgresLearningRepository
from principia.storage.postgres_quiz_repo import PostgresProgressRepository, PostgresQuizRepository
from principia.storage.quiz_repo import ProgressRepository, QuizRepository


def _require_dsn(settings: Settings) -> None:
  # Enforce Postgres-backed storage everywhere.
  if not settings.pg_dsn:
    raise ValueError("PRINCIPIA_PG_DSN must be set to enable Postgres persistence.")


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the active jobs repository."""

  _require_dsn(settings)
  return PostgresJobsRepository()


def _get_content_repo(settings: Settings) -> ContentRepository:
  """Return the active topics repository."""

  _require_dsn(settings)
  return PostgresContentRepository()


def _get_learning_repo(settings: Settings) -> LearningRepository:
  _require_dsn(settings)
  return PostgresLearningRepository()


def _get_learners_repo(settings: Settings) -> LearnersRepository:
  _require_dsn(settings)
  return PostgresLearnersRepository()


def _get_quiz_repo(settings: Settings) -> QuizRepository:
  _require_dsn(settings)
  return PostgresQuizRepository()


def _get_progress_repo(settings: Settings) -> ProgressRepository:
  _require_dsn(settings)
  return PostgresProgressRepository()
