"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from principia.utils.env import load_env_file

load_env_file()

_DEFAULT_ORIGINS = "http://localhost:5000"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the Principia service and its generation workers."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  gemini_api_key: str | None
  gemini_model: str
  ai_timeout_seconds: float
  job_max_attempts: int
  job_backoff_base_seconds: float
  job_lease_seconds: float
  worker_poll_interval_seconds: float
  jobs_auto_process: bool
  completed_job_retention_hours: int
  status_poll_interval_seconds: int
  free_topics_limit: int
  title_min_length: int
  title_max_length: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = [origin.strip() for origin in (raw or _DEFAULT_ORIGINS).split(",") if origin.strip()]

  if not origins:
    raise ValueError("PRINCIPIA_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("PRINCIPIA_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PRINCIPIA_ENV", "development").lower()
  debug = _parse_bool(os.getenv("PRINCIPIA_DEBUG"))

  log_max_bytes = _positive_int("PRINCIPIA_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("PRINCIPIA_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("PRINCIPIA_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # The attempt cap counts the first run, so 1 disables retries entirely.
  job_max_attempts = _positive_int("PRINCIPIA_JOB_MAX_ATTEMPTS", "3")

  # Zero keeps completed jobs forever; failed jobs are never purged.
  completed_job_retention_hours = int(os.getenv("PRINCIPIA_COMPLETED_JOB_RETENTION_HOURS", "24"))
  if completed_job_retention_hours < 0:
    raise ValueError("PRINCIPIA_COMPLETED_JOB_RETENTION_HOURS must be zero or a positive integer.")

  ai_timeout_seconds = _positive_float("PRINCIPIA_AI_TIMEOUT_SECONDS", "120")
  # A claim must outlive both AI calls or a healthy worker would see its job reclaimed mid-run.
  job_lease_seconds = _positive_float("PRINCIPIA_JOB_LEASE_SECONDS", "600")
  if job_lease_seconds <= 2 * ai_timeout_seconds:
    raise ValueError("PRINCIPIA_JOB_LEASE_SECONDS must exceed twice PRINCIPIA_AI_TIMEOUT_SECONDS.")

  free_topics_limit = int(os.getenv("PRINCIPIA_FREE_TOPICS_LIMIT", "3"))
  if free_topics_limit < 0:
    raise ValueError("PRINCIPIA_FREE_TOPICS_LIMIT must be zero or a positive integer.")

  title_min_length = _positive_int("PRINCIPIA_TITLE_MIN_LENGTH", "3")
  title_max_length = _positive_int("PRINCIPIA_TITLE_MAX_LENGTH", "200")
  if title_min_length > title_max_length:
    raise ValueError("PRINCIPIA_TITLE_MIN_LENGTH must not exceed PRINCIPIA_TITLE_MAX_LENGTH.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("PRINCIPIA_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("PRINCIPIA_LOG_HTTP_4XX")),
    pg_dsn=os.getenv("PRINCIPIA_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=_positive_int("PRINCIPIA_PG_CONNECT_TIMEOUT", "5"),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    gemini_model=os.getenv("PRINCIPIA_GEMINI_MODEL", "gemini-2.5-flash"),
    ai_timeout_seconds=ai_timeout_seconds,
    job_max_attempts=job_max_attempts,
    job_backoff_base_seconds=_positive_float("PRINCIPIA_JOB_BACKOFF_BASE_SECONDS", "1.0"),
    job_lease_seconds=job_lease_seconds,
    worker_poll_interval_seconds=_positive_float("PRINCIPIA_WORKER_POLL_INTERVAL_SECONDS", "2.0"),
    jobs_auto_process=_parse_bool(os.getenv("PRINCIPIA_JOBS_AUTO_PROCESS", "true")),
    completed_job_retention_hours=completed_job_retention_hours,
    status_poll_interval_seconds=_positive_int("PRINCIPIA_STATUS_POLL_INTERVAL_SECONDS", "2"),
    free_topics_limit=free_topics_limit,
    title_min_length=title_min_length,
    title_max_length=title_max_length,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations and the worker don't require unrelated env vars.
  debug = _parse_bool(os.getenv("PRINCIPIA_DEBUG"))
  pg_connect_timeout = _positive_int("PRINCIPIA_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = os.getenv("PRINCIPIA_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
