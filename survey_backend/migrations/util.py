"""Utility functions for schema migrations."""
import sqlalchemy as sa
from alembic import op
from sqlalchemy.engine.reflection import Inspector


def get_timestamp_default():
    """Get the appropriate server default for timestamp columns.

    Returns:
        Server default compatible with the current database dialect:
        - PostgreSQL: NOW() function
        - SQLite: CURRENT_TIMESTAMP
    """
    bind = op.get_bind()
    dialect_name = bind.dialect.name
    if dialect_name == 'postgresql':
        return sa.text('NOW()')
    else:
        return sa.text('CURRENT_TIMESTAMP')


def get_false_literal() -> str:
    """SQL literal for boolean false usable inside COALESCE on every dialect."""
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        return 'FALSE'
    return '0'


def get_column_names(inspector: Inspector, table_name: str) -> set[str]:
    """Return the column names of ``table_name`` (empty when the table is absent)."""
    if not inspector.has_table(table_name):
        return set()
    return {column["name"] for column in inspector.get_columns(table_name)}


def get_json_integer_field(column: str, key: str) -> str:
    """SQL expression reading integer ``key`` out of JSON text ``column``.

    Rows whose value is not valid JSON yield NULL on SQLite.
    """
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        return f"CAST(CAST({column} AS jsonb) ->> '{key}' AS INTEGER)"
    return (
        f"CASE WHEN json_valid({column}) "
        f"THEN CAST(json_extract({column}, '$.{key}') AS INTEGER) END"
    )
