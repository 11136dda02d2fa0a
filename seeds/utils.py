from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Type

from sqlalchemy import select

from backup_console.extensions import db


def get_or_create(model: Type[db.Model], defaults: Optional[Dict[str, Any]] = None, **lookup: Any) -> Tuple[db.Model, bool]:
    """Return the row matching ``lookup``, staging a new one (flushed, not committed) when absent."""
    session = db.session()
    existing = session.execute(select(model).filter_by(**lookup)).scalars().first()
    if existing is not None:
        return existing, False

    created = model(**lookup, **(defaults or {}))
    session.add(created)
    session.flush()
    return created, True
