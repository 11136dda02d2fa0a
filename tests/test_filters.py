from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import sqlite

from backup_console.models import BackupRecord
from backup_console.schemas import BackupFilter
from backup_console.services.filters import (
    Constraint,
    Predicate,
    apply_predicate,
    build_predicate,
    day_bounds,
    filter_documents,
)
from backup_console.services.repository import BACKUP_COLUMNS
from conftest import DAY, MARCH_5, sample_bundles


def test_empty_filter_is_unconstrained():
    predicate = build_predicate(BackupFilter())
    assert predicate.constraints == ()
    assert not predicate
    assert len(filter_documents(sample_bundles(), predicate)) == 5


def test_none_filter_is_unconstrained():
    assert build_predicate(None) == Predicate()


def test_blank_strings_count_as_omitted():
    criteria = BackupFilter.model_validate({"schoolId": "", "term": "  ", "academicYear": "", "date": ""})
    assert criteria.is_empty()
    assert build_predicate(criteria).constraints == ()


@pytest.mark.parametrize(
    "criteria, expected",
    [
        (BackupFilter(school_id="sch_b"), {"bk3", "bk4"}),
        (BackupFilter(term="Term 3"), {"bk5"}),
        (BackupFilter(academic_year="2023-2024"), {"bk1", "bk2", "bk3", "bk4"}),
    ],
)
def test_single_field_narrows_to_exact_matches(criteria, expected):
    matched = filter_documents(sample_bundles(), build_predicate(criteria))
    assert {doc["id"] for doc in matched} == expected


def test_fields_combine_as_conjunction():
    predicate = build_predicate(BackupFilter(school_id="sch_a", term="Term 1"))
    assert predicate.constraints == (
        Constraint("schoolId", "==", "sch_a"),
        Constraint("term", "==", "Term 1"),
    )
    assert [doc["id"] for doc in filter_documents(sample_bundles(), predicate)] == ["bk1"]


def test_date_covers_half_open_utc_day():
    assert day_bounds(date(2024, 3, 5)) == (MARCH_5, MARCH_5 + DAY)

    predicate = build_predicate(BackupFilter(date=date(2024, 3, 5)))
    assert predicate.constraints == (
        Constraint("timestamp", ">=", MARCH_5),
        Constraint("timestamp", "<", MARCH_5 + DAY),
    )
    # bk5 sits 1ms before midnight and bk4 exactly on the next midnight
    assert [doc["id"] for doc in filter_documents(sample_bundles(), predicate)] == ["bk3"]


def test_document_missing_constrained_field_never_matches():
    predicate = build_predicate(BackupFilter(date=date(2024, 3, 5)))
    assert not predicate.matches({"id": "x"})
    assert not predicate.matches({"id": "x", "timestamp": "yesterday"})


def test_apply_predicate_builds_where_clauses():
    predicate = build_predicate(BackupFilter(school_id="sch_a", date=date(2024, 3, 5)))
    query = apply_predicate(select(BackupRecord), predicate, BACKUP_COLUMNS)
    sql = str(query.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))
    assert "backups.school_id = 'sch_a'" in sql
    assert f"backups.timestamp >= {MARCH_5}" in sql
    assert f"backups.timestamp < {MARCH_5 + DAY}" in sql
