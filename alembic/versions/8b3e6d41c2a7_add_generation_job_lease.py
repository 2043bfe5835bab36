"""Add claim leases to generation jobs.

Revision ID: 8b3e6d41c2a7
Revises: 5f1c2a9d7e10
Create Date: 2026-10-19 14:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "8b3e6d41c2a7"
down_revision = "5f1c2a9d7e10"
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.add_column("generation_jobs", sa.Column("lease_expires_at", sa.DateTime(timezone=True), nullable=True))
  op.create_index("ix_generation_jobs_lease", "generation_jobs", ["status", "lease_expires_at"])
  # Jobs already running have no live lease holder we can prove; make them reclaimable.
  op.execute("UPDATE generation_jobs SET lease_expires_at = now() WHERE status = 'running'")


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_generation_jobs_lease", table_name="generation_jobs")
  op.drop_column("generation_jobs", "lease_expires_at")
