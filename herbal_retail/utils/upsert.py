from typing import List, Sequence

from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def build_upsert(dialect_name: str, model, rows: List[dict], conflict_columns: Sequence[str],
                 update_columns: Sequence[str]):
    """
    Build one INSERT ... ON CONFLICT/ON DUPLICATE KEY statement for all rows.

    conflict_columns must be covered by a unique constraint on the table.
    """
    table = model.__table__
    if dialect_name == "mysql":
        stmt = mysql.insert(table).values(rows)
        return stmt.on_duplicate_key_update({col: stmt.inserted[col] for col in update_columns})
    if dialect_name == "postgresql":
        stmt = postgresql.insert(table).values(rows)
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(table).values(rows)
    else:
        raise ValueError(f"Upsert is not supported for dialect {dialect_name}")
    return stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={col: stmt.excluded[col] for col in update_columns},
    )


async def bulk_upsert(db: AsyncSession, model, rows: List[dict], conflict_columns: Sequence[str],
                      update_columns: Sequence[str]) -> int:
    """Execute the upsert in the session's current transaction; the caller commits."""
    if not rows:
        return 0
    stmt = build_upsert(db.get_bind().dialect.name, model, rows, conflict_columns, update_columns)
    await db.execute(stmt)
    return len(rows)
