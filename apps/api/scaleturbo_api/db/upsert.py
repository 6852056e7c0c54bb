"""Dialect-aware INSERT ... ON CONFLICT DO UPDATE.

PostgreSQL (production, Supabase) and SQLite (tests, local dev) both support
the ON CONFLICT clause; SQLAlchemy exposes it through dialect-specific
``insert()`` constructs.
"""

from typing import Any, Sequence

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def upsert(
    db: Session,
    model: type,
    values: dict[str, Any],
    *,
    conflict_columns: Sequence[str],
    update_columns: Sequence[str],
) -> None:
    """Insert ``values`` or overwrite ``update_columns`` on key conflict.

    Does not commit; the caller owns the transaction.

    Raises:
        NotImplementedError: For dialects without ON CONFLICT support
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values)
    else:
        raise NotImplementedError(f"upsert not supported for dialect {dialect!r}")

    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={column: stmt.excluded[column] for column in update_columns},
    )
    db.execute(stmt)
