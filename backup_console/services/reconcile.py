"""Rebuild per-student summaries from the raw collections of a backup bundle.

Everything here is a pure function of its inputs. Older bundles may lack
optional collections or carry malformed rows, so every helper degrades to a
placeholder instead of raising.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from backup_console.services.scoring import as_number, calculate_total_score

PLACEHOLDER = "-"
NO_REMARK = "N/A"

RECONCILED_COLLECTIONS = (
    "students",
    "attendanceRecords",
    "assessments",
    "studentRemarks",
    "classSubjects",
    "users",
)
PASS_THROUGH_COLLECTIONS = (
    "timetables",
    "notices",
    "adminNotifications",
    "activityLogs",
    "payments",
    "studentSkills",
    "adminRemarks",
)

# Earlier sources take precedence
SETTINGS_SOURCES = ("schoolSettings", "schoolConfig")
SETTINGS_FIELDS = ("academicYear", "currentTerm", "schoolReopenDate", "vacationDate", "nextTermBegins")

T = TypeVar("T")
A = TypeVar("A")
Scorer = Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class StudentSnapshot:
    student: Mapping[str, Any]
    present_days: int
    total_days: int
    attendance_rate: str
    avg_score: str
    remark: str


@dataclass(frozen=True)
class ScoreTally:
    total: float = 0
    count: int = 0

    def add(self, value: float) -> "ScoreTally":
        return ScoreTally(self.total + value, self.count + 1)


@dataclass(frozen=True)
class ClassSubjects:
    class_id: Any
    subjects: tuple[str, ...]


# -- collection access -------------------------------------------------------

def collection(raw: Any, name: str) -> list:
    """The named collection as a list; anything that is not a list is empty."""
    if not isinstance(raw, Mapping):
        return []
    value = raw.get(name)
    if not isinstance(value, (list, tuple)):
        return []
    return list(value)


def rows(raw: Any, name: str) -> list[Mapping[str, Any]]:
    return [row for row in collection(raw, name) if isinstance(row, Mapping)]


def field_key(value: Any) -> Any:
    """Usable dict key for a field value; unhashable values group by their repr."""
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


# -- generic folds -----------------------------------------------------------

def group_by(items: Iterable[T], key: Callable[[T], Any]) -> dict[Any, list[T]]:
    groups: dict[Any, list[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def aggregate(
    items: Iterable[T],
    key: Callable[[T], Any],
    value: Callable[[T], Any],
    initial: A,
    step: Callable[[A, Any], A],
) -> dict[Any, A]:
    acc: dict[Any, A] = {}
    for item in items:
        k = key(item)
        acc[k] = step(acc.get(k, initial), value(item))
    return acc


def fold_latest(
    items: Iterable[T],
    key: Callable[[T], Any],
    timestamp: Callable[[T], Optional[float]],
) -> dict[Any, T]:
    """Keep the newest item per key. Ties go to the later item; an item with an
    unparseable timestamp (None) is kept only when it comes first for its key
    and is never replaced afterwards."""
    best: dict[Any, tuple[T, Optional[float]]] = {}
    for item in items:
        k = key(item)
        candidate = timestamp(item)
        current = best.get(k)
        if current is None or _supersedes(candidate, current[1]):
            best[k] = (item, candidate)
    return {k: item for k, (item, _) in best.items()}


def _supersedes(candidate: Optional[float], kept: Optional[float]) -> bool:
    if candidate is None or kept is None:
        return False
    return candidate >= kept


# -- field parsing and formatting -------------------------------------------

def parse_timestamp(value: Any) -> Optional[float]:
    """Epoch milliseconds for a stored date, or None when it cannot be read."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, Mapping):
        seconds = as_number(value.get("seconds", value.get("_seconds")))
        if seconds is None:
            return None
        nanos = as_number(value.get("nanoseconds", value.get("_nanoseconds"))) or 0
        return seconds * 1000 + nanos / 1_000_000
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return as_number(value)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return dt.timestamp() * 1000
    except (OverflowError, ValueError):
        return None


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_rate(present_days: int, total_days: int) -> str:
    if not total_days:
        return PLACEHOLDER
    return f"{round_half_up(present_days / total_days * 100)}%"


def format_average(tally: Optional[ScoreTally]) -> str:
    if tally is None or not tally.count:
        return PLACEHOLDER
    try:
        mean = tally.total / tally.count
    except OverflowError:
        return PLACEHOLDER
    if not math.isfinite(mean):
        return PLACEHOLDER
    with localcontext() as ctx:
        ctx.prec = 400
        return str(Decimal(mean).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def remark_text(remark: Optional[Mapping[str, Any]]) -> str:
    if remark is None:
        return NO_REMARK
    text = remark.get("remark")
    if not text:
        return NO_REMARK
    return text if isinstance(text, str) else str(text)


# -- per-collection reductions ----------------------------------------------

def sessions_by_class(records: Iterable[Mapping[str, Any]]) -> dict[Any, list[Mapping[str, Any]]]:
    return group_by(records, key=lambda record: field_key(record.get("classId")))


def present_ids(record: Mapping[str, Any]):
    ids = record.get("presentStudentIds")
    if isinstance(ids, (list, tuple, set, frozenset)):
        return ids
    return ()


def resolve_total(assessment: Mapping[str, Any], scorer: Scorer = calculate_total_score) -> float:
    total = as_number(assessment.get("total"))
    if total is not None:
        return total
    computed = as_number(scorer(assessment))
    return computed if computed is not None else 0


def aggregate_totals(
    assessments: Iterable[Mapping[str, Any]],
    scorer: Scorer = calculate_total_score,
) -> dict[Any, ScoreTally]:
    return aggregate(
        assessments,
        key=lambda assessment: field_key(assessment.get("studentId")),
        value=lambda assessment: resolve_total(assessment, scorer),
        initial=ScoreTally(),
        step=ScoreTally.add,
    )


def latest_remarks(remarks: Iterable[Mapping[str, Any]]) -> dict[Any, Mapping[str, Any]]:
    return fold_latest(
        remarks,
        key=lambda remark: field_key(remark.get("studentId")),
        timestamp=lambda remark: parse_timestamp(remark.get("dateCreated")),
    )


# -- entry points ------------------------------------------------------------

def reconcile(raw: Any, scorer: Scorer = calculate_total_score) -> tuple[StudentSnapshot, ...]:
    """One snapshot per entry of ``students``, in the order they were captured."""
    by_class = sessions_by_class(rows(raw, "attendanceRecords"))
    tallies = aggregate_totals(rows(raw, "assessments"), scorer)
    remarks = latest_remarks(rows(raw, "studentRemarks"))

    snapshots = []
    for student in collection(raw, "students"):
        fields = student if isinstance(student, Mapping) else {}
        student_id = field_key(fields.get("id"))
        sessions = by_class.get(field_key(fields.get("classId")), [])
        present = sum(1 for record in sessions if _contains(present_ids(record), student_id))
        snapshots.append(
            StudentSnapshot(
                student=fields,
                present_days=present,
                total_days=len(sessions),
                attendance_rate=format_rate(present, len(sessions)),
                avg_score=format_average(tallies.get(student_id)),
                remark=remark_text(remarks.get(student_id)),
            )
        )
    return tuple(snapshots)


def _contains(ids, student_id) -> bool:
    if isinstance(ids, (set, frozenset)):
        return student_id in ids
    return any(entry == student_id for entry in ids)


def first_defined(*values: Any, default: Any = PLACEHOLDER) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return default


def resolve_school_settings(raw: Any) -> dict[str, str]:
    """Settings snapshot, field by field, from the first source that defines it."""
    sources = []
    if isinstance(raw, Mapping):
        sources = [raw[name] for name in SETTINGS_SOURCES if isinstance(raw.get(name), Mapping)]
    resolved = {}
    for name in SETTINGS_FIELDS:
        value = first_defined(*(source.get(name) for source in sources))
        resolved[name] = value if isinstance(value, str) else str(value)
    return resolved


def collection_counts(raw: Any) -> dict[str, int]:
    return {name: len(collection(raw, name)) for name in RECONCILED_COLLECTIONS + PASS_THROUGH_COLLECTIONS}


def class_subjects(raw: Any) -> tuple[ClassSubjects, ...]:
    mappings = []
    for row in rows(raw, "classSubjects"):
        subjects = row.get("subjects")
        if not isinstance(subjects, (list, tuple)):
            subjects = ()
        mappings.append(
            ClassSubjects(
                class_id=row.get("classId"),
                subjects=tuple(s for s in subjects if isinstance(s, str)),
            )
        )
    return tuple(mappings)
