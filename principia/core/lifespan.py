import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from principia.config import Settings, get_settings
from principia.core import database
from principia.core.logging import initialize_logging

# Track the in-process worker so shutdown can stop it.
_WORKER_TASK: asyncio.Task[None] | None = None
_WORKER_STOP: asyncio.Event | None = None


def _log_worker_failure(task: asyncio.Task[None]) -> None:
  """Log unexpected failures from the background worker task."""
  logger = logging.getLogger("principia.core.lifespan")
  if task.cancelled():
    return
  exc = task.exception()
  if exc is not None:
    logger.error("Worker loop crashed: %s", exc, exc_info=exc)


def _start_worker(settings: Settings) -> None:
  """Start polling the shared queue in this process when enabled and configured."""
  global _WORKER_TASK, _WORKER_STOP
  logger = logging.getLogger("principia.core.lifespan")

  if _WORKER_TASK is not None or not settings.jobs_auto_process:
    return
  if not settings.pg_dsn:
    logger.warning("Worker loop disabled: PRINCIPIA_PG_DSN is not set.")
    return

  from principia.jobs.runner import build_worker_loop

  try:
    loop = build_worker_loop(settings)
  except (ValueError, RuntimeError) as exc:
    logger.warning("Worker loop disabled: %s", exc)
    return

  _WORKER_STOP = asyncio.Event()
  _WORKER_TASK = asyncio.get_running_loop().create_task(loop.run(_WORKER_STOP))
  _WORKER_TASK.add_done_callback(_log_worker_failure)


async def _stop_worker() -> None:
  """Signal the worker to finish its current job, then wait for it."""
  global _WORKER_TASK, _WORKER_STOP

  if _WORKER_TASK is None or _WORKER_STOP is None:
    return

  _WORKER_STOP.set()
  # A job interrupted here stays running until its lease expires and another worker reclaims it.
  try:
    await asyncio.wait_for(asyncio.shield(_WORKER_TASK), timeout=10.0)
  except TimeoutError:
    _WORKER_TASK.cancel()
  _WORKER_TASK = None
  _WORKER_STOP = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging after uvicorn starts, run the worker and release the engine on shutdown."""
  settings = get_settings()
  logger = logging.getLogger("principia.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified. environment=%s", settings.environment)
  except Exception:  # noqa: BLE001
    # Log initialization failures but allow the app to continue starting.
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  logger.info("Database DSN=%s", _redact_dsn(settings.pg_dsn))
  _start_worker(settings)

  yield

  await _stop_worker()
  if database.engine is not None:
    await database.engine.dispose()
    logger.info("Database engine disposed.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database_name = parsed.path.lstrip("/")
  path = f"/{database_name}" if database_name else ""
  return f"{parsed.scheme}://{netloc}{path}"
