"""
Atomic upsert keyed by a unique constraint.

Emits a single `INSERT ... ON CONFLICT (...) DO UPDATE` statement so two
concurrent writers for the same identity converge on one row, last write
wins on the updated columns. There is no read-then-write fallback.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert(
    db: Session,
    model: type,
    conflict_columns: Iterable[str],
    values: Mapping[str, Any],
    extra_updates: Mapping[str, Any] | None = None,
) -> None:
    """
    Insert `values` into `model`'s table or update the row that already
    holds the same `conflict_columns`. Every non-key column in `values`
    is overwritten; `extra_updates` adds update-only expressions such as
    `updated_at = now()`. Flushes nothing and does not commit.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Upsert is not supported on dialect {dialect!r}") from None

    keys = list(conflict_columns)
    stmt = insert(model).values(**values)
    set_ = {
        name: stmt.excluded[name]
        for name in values
        if name not in keys
    }
    if extra_updates:
        set_.update(extra_updates)
    stmt = stmt.on_conflict_do_update(index_elements=keys, set_=set_)
    db.execute(stmt)
