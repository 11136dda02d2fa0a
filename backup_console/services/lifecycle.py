"""Backup lifecycle: filtered listing, detail, export and two-phase delete.

The controller owns one immutable ``ConsoleState`` and replaces it through the
pure transition functions below. List and detail requests are tagged with
increasing generation numbers so a slow, older response never overwrites a
newer one.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Iterable, Mapping, Optional, TypeVar

from backup_console.errors import BackupConsoleError, NoDataError, NotFoundError, RepositoryUnavailable
from backup_console.schemas import BackupFilter, Bundle, SchoolEntry
from backup_console.services.exporter import ExportArtifact, serialize_bundle
from backup_console.services.filters import build_predicate
from backup_console.services.reconcile import (
    Scorer,
    StudentSnapshot,
    class_subjects,
    collection_counts,
    reconcile,
    resolve_school_settings,
)
from backup_console.services.repository import BackupRepository
from backup_console.services.scoring import calculate_total_score
from backup_console.services.taxonomy import ClassTaxonomy, default_taxonomy

log = logging.getLogger(__name__)

T = TypeVar("T")

ALL_SCHOOLS = "All Schools"
UNKNOWN_SCHOOL = "Unknown School"


@dataclass(frozen=True)
class SnapshotRow:
    snapshot: StudentSnapshot
    class_name: str
    class_level: str


@dataclass(frozen=True)
class ClassSubjectsRow:
    class_id: Any
    class_name: str
    class_level: str
    subjects: tuple[str, ...]


@dataclass(frozen=True)
class BackupDetail:
    bundle: Bundle
    rows: tuple[SnapshotRow, ...]
    class_subjects: tuple[ClassSubjectsRow, ...]
    settings: Mapping[str, str]
    counts: Mapping[str, int]


def build_detail(
    bundle: Bundle,
    taxonomy: ClassTaxonomy = default_taxonomy,
    scorer: Scorer = calculate_total_score,
) -> BackupDetail:
    raw = bundle.data or {}
    rows = tuple(
        SnapshotRow(
            snapshot=snapshot,
            class_name=taxonomy.display_name(snapshot.student.get("classId")),
            class_level=taxonomy.resolve(snapshot.student.get("classId")),
        )
        for snapshot in reconcile(raw, scorer)
    )
    subjects = tuple(
        ClassSubjectsRow(
            class_id=mapping.class_id,
            class_name=taxonomy.display_name(mapping.class_id),
            class_level=taxonomy.resolve(mapping.class_id),
            subjects=mapping.subjects,
        )
        for mapping in class_subjects(raw)
    )
    return BackupDetail(
        bundle=bundle,
        rows=rows,
        class_subjects=subjects,
        settings=resolve_school_settings(raw),
        counts=collection_counts(raw),
    )


@dataclass(frozen=True)
class ConsoleState:
    filter: BackupFilter = field(default_factory=BackupFilter)
    bundles: tuple[Bundle, ...] = ()
    schools: tuple[SchoolEntry, ...] = ()
    detail: Optional[BackupDetail] = None
    pending_delete_id: Optional[str] = None
    error: Optional[str] = None
    list_generation: int = 0
    detail_generation: int = 0


def sort_bundles(bundles: Iterable[Bundle]) -> tuple[Bundle, ...]:
    """Newest first; equal timestamps keep the store's order."""
    return tuple(sorted(bundles, key=lambda bundle: bundle.timestamp or 0, reverse=True))


def with_listing(state: ConsoleState, generation: int, criteria: BackupFilter, bundles: Iterable[Bundle]) -> ConsoleState:
    if generation <= state.list_generation:
        return state
    return replace(
        state,
        filter=criteria,
        bundles=sort_bundles(bundles),
        list_generation=generation,
        error=None,
    )


def with_detail(state: ConsoleState, generation: int, detail: BackupDetail) -> ConsoleState:
    if generation <= state.detail_generation:
        return state
    return replace(state, detail=detail, detail_generation=generation, error=None)


def without_detail(state: ConsoleState) -> ConsoleState:
    return replace(state, detail=None)


def with_schools(state: ConsoleState, schools: Iterable[SchoolEntry]) -> ConsoleState:
    return replace(state, schools=tuple(schools))


def with_pending_delete(state: ConsoleState, bundle_id: str) -> ConsoleState:
    return replace(state, pending_delete_id=bundle_id)


def without_pending_delete(state: ConsoleState) -> ConsoleState:
    return replace(state, pending_delete_id=None)


def after_delete(state: ConsoleState, bundle_id: str) -> ConsoleState:
    state = without_pending_delete(state)
    if state.detail is not None and state.detail.bundle.id == bundle_id:
        state = without_detail(state)
    return replace(state, error=None)


def with_error(state: ConsoleState, message: str) -> ConsoleState:
    return replace(state, error=message)


class BackupLifecycleController:
    """Per-session backup console. ``school_id`` scopes it to a single school."""

    def __init__(
        self,
        repository: BackupRepository,
        school_id: Optional[str] = None,
        taxonomy: ClassTaxonomy = default_taxonomy,
        scorer: Scorer = calculate_total_score,
    ):
        self.repository = repository
        self.school_id = school_id
        self.taxonomy = taxonomy
        self.scorer = scorer
        self.state = ConsoleState(filter=BackupFilter(school_id=school_id))
        self._list_generations = itertools.count(1)
        self._detail_generations = itertools.count(1)

    # -- listing -------------------------------------------------------------

    def scoped(self, criteria: Optional[BackupFilter]) -> BackupFilter:
        criteria = criteria if criteria is not None else BackupFilter()
        if self.school_id is not None and criteria.school_id != self.school_id:
            criteria = criteria.model_copy(update={"school_id": self.school_id})
        return criteria

    async def list_backups(self, criteria: Optional[BackupFilter] = None) -> tuple[Bundle, ...]:
        """Fetch bundles matching ``criteria`` (the current filter when omitted)."""
        criteria = self.scoped(criteria if criteria is not None else self.state.filter)
        generation = next(self._list_generations)
        bundles = await self._call("fetch backups", self.repository.list_bundles(build_predicate(criteria)))
        applied = with_listing(self.state, generation, criteria, bundles)
        if applied is self.state:
            log.debug("Discarding stale backup listing (generation %d)", generation)
        self.state = applied
        return self.state.bundles

    async def load_schools(self) -> tuple[SchoolEntry, ...]:
        schools = await self._call("fetch schools", self.repository.list_schools())
        self.state = with_schools(self.state, schools)
        return self.state.schools

    def school_name(self, school_id: Optional[str]) -> str:
        if not school_id:
            return UNKNOWN_SCHOOL
        for school in self.state.schools:
            if school.id == school_id:
                return school.name or school_id
        return school_id

    def filter_label(self) -> str:
        school_id = self.state.filter.school_id
        if school_id and any(school.id == school_id for school in self.state.schools):
            return self.school_name(school_id)
        return ALL_SCHOOLS

    # -- detail and export ---------------------------------------------------

    async def detail(self, bundle_id: str) -> BackupDetail:
        generation = next(self._detail_generations)
        bundle = await self._fetch_in_scope(bundle_id, "fetch backup details")
        detail = build_detail(bundle, self.taxonomy, self.scorer)
        self.state = with_detail(self.state, generation, detail)
        return detail

    def close_detail(self) -> None:
        self.state = without_detail(self.state)

    async def export(self, bundle_id: str) -> ExportArtifact:
        current = self.state.detail
        if current is not None and current.bundle.id == bundle_id:
            bundle = current.bundle
        else:
            bundle = (await self.detail(bundle_id)).bundle
        try:
            artifact = serialize_bundle(bundle)
        except NoDataError as exc:
            self.state = with_error(self.state, exc.message)
            raise
        log.info("Prepared export %s", artifact.filename)
        return artifact

    # -- deletion ------------------------------------------------------------

    def request_delete(self, bundle_id: str) -> None:
        self.state = with_pending_delete(self.state, bundle_id)

    def cancel_delete(self) -> None:
        self.state = without_pending_delete(self.state)

    async def confirm_delete(self) -> tuple[Bundle, ...]:
        """Delete the pending bundle, then re-fetch the listing with the current filter."""
        bundle_id = self.state.pending_delete_id
        if bundle_id is None:
            return self.state.bundles
        if self.school_id is not None:
            await self._fetch_in_scope(bundle_id, "delete backup")
        await self._call("delete backup", self.repository.delete_bundle(bundle_id))
        log.info("Deleted backup %s", bundle_id)
        self.state = after_delete(self.state, bundle_id)
        return await self.list_backups()

    # -- helpers -------------------------------------------------------------

    async def _fetch_in_scope(self, bundle_id: str, action: str) -> Bundle:
        bundle = await self._call(action, self.repository.get_bundle(bundle_id))
        if bundle is None or (self.school_id is not None and bundle.school_id != self.school_id):
            error = NotFoundError("Backup details not found.")
            self.state = with_error(self.state, error.message)
            raise error
        return bundle

    async def _call(self, action: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except BackupConsoleError as exc:
            self.state = with_error(self.state, exc.message)
            raise
        except Exception as exc:
            log.exception("Failed to %s", action)
            error = RepositoryUnavailable(f"Failed to {action}.")
            self.state = with_error(self.state, error.message)
            raise error from exc
