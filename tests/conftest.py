"""Shared fixtures: deterministic settings and in-memory repositories."""

from __future__ import annotations

import os

# Keep import-time settings independent of the developer's environment.
os.environ.setdefault("PRINCIPIA_ALLOWED_ORIGINS", "http://localhost")
os.environ.pop("PRINCIPIA_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)

import pytest  # noqa: E402

from principia.config import Settings, get_settings  # noqa: E402
from tests.fakes import InMemoryContentRepository, InMemoryJobsRepository, InMemoryLearnersRepository, InMemoryLearningRepository, InMemoryProgressRepository, InMemoryQuizRepository  # noqa: E402


def build_settings(**overrides: object) -> Settings:
  values: dict[str, object] = {
    "environment": "test",
    "debug": False,
    "allowed_origins": ("http://localhost",),
    "log_max_bytes": 1024,
    "log_backup_count": 1,
    "log_http_4xx": False,
    "pg_dsn": None,
    "pg_connect_timeout": 5,
    "gemini_api_key": None,
    "gemini_model": "gemini-test",
    "ai_timeout_seconds": 5.0,
    "job_max_attempts": 3,
    "job_backoff_base_seconds": 1.0,
    "job_lease_seconds": 60.0,
    "worker_poll_interval_seconds": 0.01,
    "jobs_auto_process": False,
    "completed_job_retention_hours": 24,
    "status_poll_interval_seconds": 2,
    "free_topics_limit": 3,
    "title_min_length": 3,
    "title_max_length": 200,
  }
  values.update(overrides)
  return Settings(**values)


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture(autouse=True)
def _reset_settings_cache():
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
  return build_settings()


@pytest.fixture
def jobs_repo() -> InMemoryJobsRepository:
  return InMemoryJobsRepository()


@pytest.fixture
def content_repo() -> InMemoryContentRepository:
  return InMemoryContentRepository()


@pytest.fixture
def learning_repo() -> InMemoryLearningRepository:
  return InMemoryLearningRepository()


@pytest.fixture
def learners_repo() -> InMemoryLearnersRepository:
  return InMemoryLearnersRepository()


@pytest.fixture
def quiz_repo() -> InMemoryQuizRepository:
  return InMemoryQuizRepository()


@pytest.fixture
def progress_repo() -> InMemoryProgressRepository:
  return InMemoryProgressRepository()
