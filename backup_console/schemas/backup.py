from __future__ import annotations

from datetime import date as date_type
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

TERMS = ("Term 1", "Term 2", "Term 3")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Bundle(_CamelModel):
    """A captured backup envelope; ``data`` is absent on metadata-only records."""

    id: str
    school_id: Optional[str] = None
    term: Optional[str] = None
    academic_year: Optional[str] = None
    timestamp: Optional[int] = None
    data: Optional[dict[str, Any]] = None

    @property
    def has_data(self) -> bool:
        return self.data is not None


class SchoolEntry(_CamelModel):
    id: str
    name: str = ""


class BackupFilter(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    school_id: Optional[str] = None
    term: Optional[str] = None
    academic_year: Optional[str] = None
    date: Optional[date_type] = None

    @field_validator("school_id", "term", "academic_year", "date", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def is_empty(self) -> bool:
        return not any((self.school_id, self.term, self.academic_year, self.date))


class BundleSummary(_CamelModel):
    id: str
    school_id: Optional[str] = None
    school_name: str
    term: Optional[str] = None
    academic_year: Optional[str] = None
    timestamp: Optional[int] = None
    has_data: bool = False
    user_count: Optional[int] = None


class SnapshotRowOut(_CamelModel):
    student: dict[str, Any]
    class_name: str
    class_level: str
    present_days: int
    total_days: int
    attendance_rate: str
    avg_score: str
    remark: str


class ClassSubjectsOut(_CamelModel):
    class_id: Optional[str] = None
    class_name: str
    class_level: str
    subjects: list[str]


class BackupDetailOut(_CamelModel):
    backup: BundleSummary
    students: list[SnapshotRowOut]
    class_subjects: list[ClassSubjectsOut]
    settings: dict[str, str]
    counts: dict[str, int]


class ListingOut(_CamelModel):
    school_label: str
    filter: BackupFilter
    backups: list[BundleSummary]
    pending_delete_id: Optional[str] = None
