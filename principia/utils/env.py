"""Lightweight .env loader for local configuration."""

from __future__ import annotations

import os
from pathlib import Path

_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"


def load_env_file(path: Path = _ENV_PATH) -> None:
  """Load KEY=value lines from ``path``; variables already in the environment win."""

  if not path.is_file():
    return

  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
      continue
    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip().strip("'\"")
    if key:
      os.environ.setdefault(key, value)
