from __future__ import annotations

import asyncio

import pytest

from principia.core import lifespan
from principia.jobs import runner
from tests.conftest import build_settings

DSN = "postgresql://app@db.internal:5432/principia"


class _IdleLoop:
  def __init__(self) -> None:
    self.started = asyncio.Event()
    self.stopped = False

  async def run(self, stop_event: asyncio.Event) -> None:
    self.started.set()
    await stop_event.wait()
    self.stopped = True


@pytest.fixture(autouse=True)
async def _no_leftover_worker():
  yield
  await lifespan._stop_worker()


@pytest.mark.anyio
@pytest.mark.parametrize("overrides", [{"jobs_auto_process": False, "pg_dsn": DSN}, {"jobs_auto_process": True, "pg_dsn": None}])
async def test_worker_is_not_started_without_opt_in_and_database(monkeypatch: pytest.MonkeyPatch, overrides: dict[str, object]) -> None:
  def _unexpected(settings):
    raise AssertionError("worker should not be built")

  monkeypatch.setattr(runner, "build_worker_loop", _unexpected)
  lifespan._start_worker(build_settings(**overrides))
  assert lifespan._WORKER_TASK is None


@pytest.mark.anyio
async def test_worker_build_failure_leaves_the_api_running(monkeypatch: pytest.MonkeyPatch) -> None:
  def _broken(settings):
    raise RuntimeError("Database not initialized")

  monkeypatch.setattr(runner, "build_worker_loop", _broken)
  lifespan._start_worker(build_settings(jobs_auto_process=True, pg_dsn=DSN))
  assert lifespan._WORKER_TASK is None


@pytest.mark.anyio
async def test_worker_starts_once_and_stops_on_shutdown(monkeypatch: pytest.MonkeyPatch) -> None:
  loop = _IdleLoop()
  built: list[object] = []

  def _build(settings):
    built.append(settings)
    return loop

  monkeypatch.setattr(runner, "build_worker_loop", _build)
  settings = build_settings(jobs_auto_process=True, pg_dsn=DSN)

  lifespan._start_worker(settings)
  lifespan._start_worker(settings)
  await asyncio.wait_for(loop.started.wait(), timeout=1.0)

  assert len(built) == 1
  await lifespan._stop_worker()
  assert loop.stopped is True
  assert lifespan._WORKER_TASK is None
