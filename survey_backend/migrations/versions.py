"""Ordered schema migration steps for the survey_responses table.

Each step declares when it is needed by inspecting the live schema, which
keeps every step idempotent: re-running the list against an up-to-date
database is a no-op.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import sqlalchemy as sa
from alembic import op
from pydantic.alias_generators import to_camel
from sqlalchemy.engine.reflection import Inspector

from survey_backend.migrations.util import (
    get_column_names,
    get_false_literal,
    get_json_integer_field,
    get_timestamp_default,
)
from survey_backend.models.survey_response import FEATURE_COLUMNS, QUESTIONNAIRE_COLUMNS

logger = logging.getLogger(__name__)

TABLE_NAME = "survey_responses"
SHADOW_TABLE_NAME = "survey_responses_new"

# First layout kept all ratings in one JSON object keyed by camelCase name
LEGACY_FEATURES_COLUMN = "features"


@dataclass(frozen=True)
class MigrationStep:
    """A single versioned schema change."""

    version: str
    description: str
    is_needed: Callable[[Inspector], bool]
    upgrade: Callable[[], None]


def survey_columns() -> list[sa.Column]:
    """Column set of the current survey_responses layout."""
    columns = [
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=get_timestamp_default(),
        ),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("other_role", sa.Text(), nullable=True),
        sa.Column("cms_usage", sa.Text(), nullable=False),
        sa.Column("other_cms_usage", sa.Text(), nullable=True),
    ]
    columns += [sa.Column(name, sa.Integer(), nullable=True) for name in FEATURE_COLUMNS]
    columns += [
        sa.Column("beta_interest", sa.Boolean(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
    ]
    columns += [sa.Column(name, sa.Text(), nullable=True) for name in QUESTIONNAIRE_COLUMNS]
    return columns


def _copy_expression(name: str, existing: set[str]) -> str | None:
    """SELECT expression that fills column ``name`` from the old table.

    Returns ``None`` for nullable columns the old table never had, leaving
    them unset.
    """
    if name == "id":
        return "CAST(id AS TEXT)"
    if name == "created_at":
        return "COALESCE(created_at, CURRENT_TIMESTAMP)" if name in existing else "CURRENT_TIMESTAMP"
    if name in ("role", "cms_usage"):
        return f"COALESCE({name}, '')" if name in existing else "''"
    if name in FEATURE_COLUMNS:
        if name in existing:
            return f"COALESCE({name}, 0)"
        if LEGACY_FEATURES_COLUMN in existing:
            legacy = get_json_integer_field(LEGACY_FEATURES_COLUMN, to_camel(name))
            return f"COALESCE({legacy}, 0)"
        return "0"
    if name == "beta_interest":
        false = get_false_literal()
        return f"COALESCE(beta_interest, {false})" if name in existing else false
    return name if name in existing else None


def rebuild_survey_table() -> None:
    """Move survey_responses onto the current layout through a shadow table.

    Every column the old table shares with the new layout is copied. Ratings
    held in the legacy JSON blob are unpacked into their own columns; ratings
    found nowhere become 0 and missing free-text columns stay NULL.
    """
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = get_column_names(inspector, TABLE_NAME)

    if inspector.has_table(SHADOW_TABLE_NAME):
        op.drop_table(SHADOW_TABLE_NAME)

    columns = survey_columns()
    op.create_table(SHADOW_TABLE_NAME, *columns)

    targets: list[str] = []
    expressions: list[str] = []
    for column in columns:
        expression = _copy_expression(column.name, existing)
        if expression is None:
            continue
        targets.append(column.name)
        expressions.append(expression)

    op.execute(
        f"INSERT INTO {SHADOW_TABLE_NAME} ({', '.join(targets)}) "
        f"SELECT {', '.join(expressions)} FROM {TABLE_NAME}"
    )
    op.drop_table(TABLE_NAME)
    op.rename_table(SHADOW_TABLE_NAME, TABLE_NAME)

    dropped = sorted(existing - {column.name for column in columns} - {LEGACY_FEATURES_COLUMN})
    if dropped:
        logger.warning(f"Columns not carried over by rebuild: {dropped}")


# ---------------------------------------------------------------------------
# 0001: initial table
# ---------------------------------------------------------------------------
def _needs_table(inspector: Inspector) -> bool:
    return not inspector.has_table(TABLE_NAME)


def create_survey_responses() -> None:
    op.create_table(TABLE_NAME, *survey_columns())


# ---------------------------------------------------------------------------
# 0002: feature ratings as individual integer columns
# ---------------------------------------------------------------------------
def _missing_feature_columns(inspector: Inspector) -> bool:
    existing = get_column_names(inspector, TABLE_NAME)
    return bool(existing) and not set(FEATURE_COLUMNS) <= existing


# ---------------------------------------------------------------------------
# 0003: extended questionnaire free-text columns
# ---------------------------------------------------------------------------
def _missing_questionnaire_columns(inspector: Inspector) -> bool:
    existing = get_column_names(inspector, TABLE_NAME)
    return bool(existing) and not set(QUESTIONNAIRE_COLUMNS) <= existing


MIGRATIONS: list[MigrationStep] = [
    MigrationStep(
        version="0001_create_survey_responses",
        description="create survey_responses table",
        is_needed=_needs_table,
        upgrade=create_survey_responses,
    ),
    MigrationStep(
        version="0002_feature_rating_columns",
        description="rebuild survey_responses with feature rating columns",
        is_needed=_missing_feature_columns,
        upgrade=rebuild_survey_table,
    ),
    MigrationStep(
        version="0003_questionnaire_columns",
        description="rebuild survey_responses with questionnaire columns",
        is_needed=_missing_questionnaire_columns,
        upgrade=rebuild_survey_table,
    ),
]
