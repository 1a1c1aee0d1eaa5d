"""Idempotent single-row inserts.

``insert_if_absent`` never updates and never fails on an existing identity:
the insert simply does not happen. On PostgreSQL and SQLite this is a single
``INSERT ... ON CONFLICT DO NOTHING`` so concurrent uploads of the same
identity cannot race. Other dialects get an existence check followed by a
plain insert; two concurrent uploads can then both pass the check, and the
loser's constraint violation surfaces as a store error for that row.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import and_, insert, literal, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Base

CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def supports_conflict_insert(db: AsyncSession) -> bool:
    """True when the session's dialect has a native insert-if-absent."""
    return db.get_bind().dialect.name in CONFLICT_INSERTS


async def insert_if_absent(
    db: AsyncSession,
    model: type[Base],
    values: Mapping[str, Any],
    conflict_columns: Sequence[str],
) -> bool:
    """Insert one row unless a row with the same identity already exists.

    Does not commit; the caller owns the transaction.

    Args:
        db: Async database session.
        model: Mapped class of the target table.
        values: Column values for the new row.
        conflict_columns: Columns forming the identity (primary key or a
            unique constraint).

    Returns:
        True if a row was inserted, False if the identity was already present.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the store rejects the insert for
            any other reason.
    """
    dialect = db.get_bind().dialect.name
    conflict_insert = CONFLICT_INSERTS.get(dialect)

    if conflict_insert is not None:
        stmt = (
            conflict_insert(model)
            .values(**values)
            .on_conflict_do_nothing(index_elements=list(conflict_columns))
        )
        result = await db.execute(stmt)
        return bool(result.rowcount)

    identity = and_(*(getattr(model, column) == values[column] for column in conflict_columns))
    exists = await db.scalar(select(literal(1)).select_from(model).where(identity).limit(1))
    if exists is not None:
        return False
    await db.execute(insert(model).values(**values))
    return True
