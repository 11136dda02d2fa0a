from __future__ import annotations

import asyncio
import copy
import logging
from contextlib import contextmanager
from typing import Any, Iterable, Mapping, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from backup_console.errors import NotFoundError, RepositoryUnavailable
from backup_console.extensions import Database
from backup_console.models import BackupRecord, School
from backup_console.schemas import Bundle, SchoolEntry
from backup_console.services.filters import Predicate, apply_predicate

log = logging.getLogger(__name__)


class BackupRepository(Protocol):
    """Store operations the backup console depends on."""

    async def list_bundles(self, predicate: Predicate) -> list[Bundle]: ...

    async def get_bundle(self, bundle_id: str) -> Optional[Bundle]: ...

    async def delete_bundle(self, bundle_id: str) -> None: ...

    async def list_schools(self) -> list[SchoolEntry]: ...


class InMemoryBackupRepository:
    """Document store held in a list, in insertion order."""

    def __init__(
        self,
        bundles: Iterable[Mapping[str, Any]] = (),
        schools: Iterable[Mapping[str, Any]] = (),
    ):
        self._documents: list[dict[str, Any]] = [copy.deepcopy(dict(doc)) for doc in bundles]
        self._schools: list[dict[str, Any]] = [dict(school) for school in schools]

    def add(self, document: Mapping[str, Any]) -> None:
        self._documents.append(copy.deepcopy(dict(document)))

    async def list_bundles(self, predicate: Predicate) -> list[Bundle]:
        return [Bundle.model_validate(copy.deepcopy(doc)) for doc in self._documents if predicate.matches(doc)]

    async def get_bundle(self, bundle_id: str) -> Optional[Bundle]:
        for doc in self._documents:
            if doc.get("id") == bundle_id:
                return Bundle.model_validate(copy.deepcopy(doc))
        return None

    async def delete_bundle(self, bundle_id: str) -> None:
        for index, doc in enumerate(self._documents):
            if doc.get("id") == bundle_id:
                del self._documents[index]
                return
        raise NotFoundError(f"Backup {bundle_id} not found.")

    async def list_schools(self) -> list[SchoolEntry]:
        return [SchoolEntry.model_validate(school) for school in self._schools]


BACKUP_COLUMNS = {
    "schoolId": BackupRecord.school_id,
    "term": BackupRecord.term,
    "academicYear": BackupRecord.academic_year,
    "timestamp": BackupRecord.timestamp,
}


class SqlBackupRepository:
    """SQLAlchemy-backed store; blocking session work runs in the thread pool."""

    def __init__(self, database: Database):
        self.database = database

    async def list_bundles(self, predicate: Predicate) -> list[Bundle]:
        return await asyncio.to_thread(self._list_bundles, predicate)

    async def get_bundle(self, bundle_id: str) -> Optional[Bundle]:
        return await asyncio.to_thread(self._get_bundle, bundle_id)

    async def delete_bundle(self, bundle_id: str) -> None:
        await asyncio.to_thread(self._delete_bundle, bundle_id)

    async def list_schools(self) -> list[SchoolEntry]:
        return await asyncio.to_thread(self._list_schools)

    def _list_bundles(self, predicate: Predicate) -> list[Bundle]:
        query = apply_predicate(select(BackupRecord), predicate, BACKUP_COLUMNS)
        with self._session() as session:
            records = session.execute(query).scalars().all()
            return [Bundle.model_validate(record.to_document()) for record in records]

    def _get_bundle(self, bundle_id: str) -> Optional[Bundle]:
        with self._session() as session:
            record = session.get(BackupRecord, bundle_id)
            if record is None:
                return None
            return Bundle.model_validate(record.to_document())

    def _delete_bundle(self, bundle_id: str) -> None:
        with self._session() as session:
            record = session.get(BackupRecord, bundle_id)
            if record is None:
                raise NotFoundError(f"Backup {bundle_id} not found.")
            session.delete(record)
            session.commit()
            log.info("Deleted backup %s", bundle_id)

    def _list_schools(self) -> list[SchoolEntry]:
        with self._session() as session:
            schools = session.execute(select(School).order_by(School.name)).scalars().all()
            return [SchoolEntry.model_validate(school.to_document()) for school in schools]

    @contextmanager
    def _session(self):
        session = self.database.session()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            log.exception("Backup store query failed")
            raise RepositoryUnavailable() from exc
        finally:
            self.database.remove_session()
