"""Startup schema migrations.

Pending steps from :data:`survey_backend.migrations.versions.MIGRATIONS` are
applied in order inside one transaction. A failing step rolls back every
change made during the run and the error propagates to the caller.
"""
from __future__ import annotations

import logging
from typing import Sequence

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from survey_backend.migrations.versions import MIGRATIONS, MigrationStep

logger = logging.getLogger(__name__)


def apply_pending_migrations(
    connection: Connection, steps: Sequence[MigrationStep] = MIGRATIONS
) -> list[str]:
    """Apply the steps that report themselves as needed; return their versions."""
    context = MigrationContext.configure(connection)
    applied: list[str] = []

    with Operations.context(context):
        for step in steps:
            # Fresh inspector per step; earlier steps may have changed the schema
            inspector = sa.inspect(connection)
            if not step.is_needed(inspector):
                logger.debug(f"Migration {step.version} already applied")
                continue

            logger.info(f"Applying migration {step.version}: {step.description}")
            step.upgrade()
            applied.append(step.version)

    return applied


async def run_migrations(
    engine: AsyncEngine, steps: Sequence[MigrationStep] = MIGRATIONS
) -> list[str]:
    """Bring the database schema up to date. All-or-nothing."""
    try:
        async with engine.begin() as conn:
            applied = await conn.run_sync(apply_pending_migrations, steps)
    except Exception as e:
        logger.error(f"Schema migration failed and was rolled back: {e}")
        raise

    if applied:
        logger.info(f"Applied {len(applied)} migration(s): {', '.join(applied)}")
    else:
        logger.info("Database schema is up to date")
    return applied


__all__ = ["MIGRATIONS", "MigrationStep", "apply_pending_migrations", "run_migrations"]
