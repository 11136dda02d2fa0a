from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, Iterable, Mapping, NamedTuple

from backup_console.schemas import BackupFilter

DAY_MS = 24 * 60 * 60 * 1000


class Constraint(NamedTuple):
    field: str
    op: str
    value: Any


_OPERATORS = {
    "==": lambda left, right: left == right,
    ">=": lambda left, right: left >= right,
    "<": lambda left, right: left < right,
}


@dataclass(frozen=True)
class Predicate:
    """AND-only conjunction of field constraints over bundle documents."""

    constraints: tuple[Constraint, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.constraints)

    def matches(self, document: Mapping[str, Any]) -> bool:
        for constraint in self.constraints:
            value = document.get(constraint.field)
            if value is None:
                return False
            try:
                if not _OPERATORS[constraint.op](value, constraint.value):
                    return False
            except TypeError:
                return False
        return True


def day_bounds(day) -> tuple[int, int]:
    """Epoch-ms bounds ``[start, end)`` of the literal UTC day."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    start_ms = int(start.timestamp()) * 1000
    return start_ms, start_ms + DAY_MS


def build_predicate(criteria: BackupFilter | None) -> Predicate:
    if criteria is None:
        return Predicate()

    constraints: list[Constraint] = []
    if criteria.school_id:
        constraints.append(Constraint("schoolId", "==", criteria.school_id))
    if criteria.term:
        constraints.append(Constraint("term", "==", criteria.term))
    if criteria.academic_year:
        constraints.append(Constraint("academicYear", "==", criteria.academic_year))
    if criteria.date:
        start, end = day_bounds(criteria.date)
        constraints.append(Constraint("timestamp", ">=", start))
        constraints.append(Constraint("timestamp", "<", end))
    return Predicate(tuple(constraints))


def apply_predicate(query, predicate: Predicate, columns: Mapping[str, Any]):
    """Translate ``predicate`` into ``where`` clauses on a SQLAlchemy select."""
    for constraint in predicate.constraints:
        column = columns[constraint.field]
        if constraint.op == "==":
            query = query.where(column == constraint.value)
        elif constraint.op == ">=":
            query = query.where(column >= constraint.value)
        elif constraint.op == "<":
            query = query.where(column < constraint.value)
        else:
            raise ValueError(f"Unsupported operator {constraint.op!r}")
    return query


def filter_documents(documents: Iterable[Mapping[str, Any]], predicate: Predicate) -> list[Mapping[str, Any]]:
    return [doc for doc in documents if predicate.matches(doc)]
