"""Run a topic generation worker against the shared Postgres queue."""

from __future__ import annotations

import asyncio
import logging
import signal

from principia.config import get_settings
from principia.core.logging import initialize_logging
from principia.jobs.runner import build_worker_loop

logger = logging.getLogger("principia.worker")


async def _run() -> None:
  loop = build_worker_loop(get_settings())

  stop_event = asyncio.Event()
  running_loop = asyncio.get_running_loop()
  for sig in (signal.SIGINT, signal.SIGTERM):
    # Finish the current job, then exit.
    running_loop.add_signal_handler(sig, stop_event.set)

  await loop.run(stop_event)


def main() -> None:
  initialize_logging()
  logger.info("Starting generation worker...")
  asyncio.run(_run())


if __name__ == "__main__":
  main()
