from __future__ import annotations

import io
import json
import logging
import math
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from backup_console.errors import NoDataError
from backup_console.schemas import Bundle

log = logging.getLogger(__name__)

EXPORT_MEDIA_TYPE = "application/json"


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content: str
    media_type: str = EXPORT_MEDIA_TYPE

    def encode(self) -> bytes:
        return self.content.encode("utf-8")


def export_filename(bundle: Bundle) -> str:
    """e.g. ``backup_20232024_Term1_1700000000000.json``"""
    year = (bundle.academic_year or "").replace("-", "", 1)
    term = (bundle.term or "").replace(" ", "", 1)
    return f"backup_{year}_{term}_{bundle.timestamp}.json"


def json_safe(value: Any) -> Any:
    """Copy of ``value`` with NaN and infinities replaced by None."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    return value


def serialize_bundle(bundle: Bundle) -> ExportArtifact:
    """Render only the bundle's ``data`` payload; the envelope stays out of the file."""
    if bundle.data is None:
        raise NoDataError()
    with io.StringIO() as buffer:
        json.dump(json_safe(bundle.data), buffer, indent=2, ensure_ascii=False, allow_nan=False)
        content = buffer.getvalue()
    return ExportArtifact(filename=export_filename(bundle), content=content)


def save_artifact(artifact: ExportArtifact, directory: str | os.PathLike) -> Path:
    """Write ``artifact`` into ``directory`` via a temp file and an atomic rename."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / artifact.filename

    tmp = tempfile.NamedTemporaryFile(
        mode="wb", dir=target_dir, prefix=".export-", suffix=".tmp", delete=False
    )
    try:
        with tmp:
            tmp.write(artifact.encode())
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, target)
    except BaseException:
        log.exception("Failed to write export %s", artifact.filename)
        try:
            os.unlink(tmp.name)
        except FileNotFoundError:
            pass
        raise
    log.info("Exported %s (%d bytes)", target, len(artifact.content))
    return target
