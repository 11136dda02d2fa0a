import json
import os

import pytest

from backup_console.errors import NoDataError
from backup_console.schemas import Bundle
from backup_console.services import exporter
from backup_console.services.exporter import export_filename, save_artifact, serialize_bundle


def _bundle(**overrides):
    fields = {
        "id": "bk1",
        "schoolId": "sch_a",
        "term": "Term 1",
        "academicYear": "2023-2024",
        "timestamp": 1700000000000,
        "data": {"students": [{"id": "s1", "name": "Adwoa Nyarko"}], "notices": []},
    }
    fields.update(overrides)
    return Bundle.model_validate(fields)


def test_export_filename():
    assert export_filename(_bundle()) == "backup_20232024_Term1_1700000000000.json"


def test_content_is_data_only_with_two_space_indent():
    artifact = serialize_bundle(_bundle())
    assert artifact.media_type == "application/json"
    assert json.loads(artifact.content) == {"students": [{"id": "s1", "name": "Adwoa Nyarko"}], "notices": []}
    assert artifact.content.startswith('{\n  "students": [\n    {\n      "id": "s1"')
    for envelope_key in ("schoolId", "academicYear", "timestamp", '"term"'):
        assert envelope_key not in artifact.content


def test_non_ascii_is_kept():
    artifact = serialize_bundle(_bundle(data={"students": [{"name": "Kɔfi"}]}))
    assert "Kɔfi" in artifact.content
    assert artifact.encode() == artifact.content.encode("utf-8")


def test_missing_data_raises_no_data_error():
    with pytest.raises(NoDataError):
        serialize_bundle(_bundle(data=None))


def test_empty_data_is_still_exported():
    assert serialize_bundle(_bundle(data={})).content == "{}"


def test_save_artifact_writes_file(tmp_path):
    artifact = serialize_bundle(_bundle())
    path = save_artifact(artifact, tmp_path / "exports")
    assert path.name == "backup_20232024_Term1_1700000000000.json"
    assert path.read_text(encoding="utf-8") == artifact.content
    assert [p.name for p in path.parent.iterdir()] == [path.name]


def test_save_artifact_cleans_up_on_failure(tmp_path, monkeypatch):
    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(exporter.os, "replace", failing_replace)
    with pytest.raises(OSError):
        save_artifact(serialize_bundle(_bundle()), tmp_path)
    assert os.listdir(tmp_path) == []


def test_non_finite_floats_are_written_as_null():
    data = {"assessments": [{"total": float("nan")}, {"total": float("inf")}], "rates": (1.5, float("-inf"))}
    artifact = serialize_bundle(_bundle(data=data))
    assert "NaN" not in artifact.content
    assert "Infinity" not in artifact.content
    assert json.loads(artifact.content) == {"assessments": [{"total": None}, {"total": None}], "rates": [1.5, None]}
