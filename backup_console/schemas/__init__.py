from .backup import (
    TERMS,
    BackupDetailOut,
    BackupFilter,
    Bundle,
    BundleSummary,
    ClassSubjectsOut,
    ListingOut,
    SchoolEntry,
    SnapshotRowOut,
)

__all__ = [
    "TERMS",
    "BackupDetailOut",
    "BackupFilter",
    "Bundle",
    "BundleSummary",
    "ClassSubjectsOut",
    "ListingOut",
    "SchoolEntry",
    "SnapshotRowOut",
]
