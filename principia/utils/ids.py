"""Identifier utilities."""

from __future__ import annotations

import re
import uuid

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def generate_job_id() -> str:
  """Return a new job identifier."""
  return str(uuid.uuid4())


def generate_record_id() -> str:
  """Return a new identifier for topics, principles and learning records."""
  return str(uuid.uuid4())


def slugify(title: str) -> str:
  """Normalize a subject title into the slug used as its idempotency key."""
  # Lowercase, collapse every run of non-alphanumerics to one dash, then trim edge dashes.
  return _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")
