from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from backup_console.dependencies import get_controller
from backup_console.schemas import (
    BackupDetailOut,
    BackupFilter,
    Bundle,
    BundleSummary,
    ClassSubjectsOut,
    ListingOut,
    SnapshotRowOut,
)
from backup_console.services.lifecycle import BackupDetail, BackupLifecycleController
from backup_console.services.reconcile import collection


def _summary(controller: BackupLifecycleController, bundle: Bundle) -> BundleSummary:
    return BundleSummary(
        id=bundle.id,
        school_id=bundle.school_id,
        school_name=controller.school_name(bundle.school_id),
        term=bundle.term,
        academic_year=bundle.academic_year,
        timestamp=bundle.timestamp,
        has_data=bundle.has_data,
        user_count=len(collection(bundle.data, "users")) if bundle.has_data else None,
    )


def _listing(controller: BackupLifecycleController) -> ListingOut:
    state = controller.state
    return ListingOut(
        school_label=controller.filter_label(),
        filter=state.filter,
        backups=[_summary(controller, bundle) for bundle in state.bundles],
        pending_delete_id=state.pending_delete_id,
    )


def _detail(controller: BackupLifecycleController, detail: BackupDetail) -> BackupDetailOut:
    return BackupDetailOut(
        backup=_summary(controller, detail.bundle),
        students=[
            SnapshotRowOut(
                student=dict(row.snapshot.student),
                class_name=row.class_name,
                class_level=row.class_level,
                present_days=row.snapshot.present_days,
                total_days=row.snapshot.total_days,
                attendance_rate=row.snapshot.attendance_rate,
                avg_score=row.snapshot.avg_score,
                remark=row.snapshot.remark,
            )
            for row in detail.rows
        ],
        class_subjects=[
            ClassSubjectsOut(
                class_id=row.class_id if isinstance(row.class_id, str) else None,
                class_name=row.class_name,
                class_level=row.class_level,
                subjects=list(row.subjects),
            )
            for row in detail.class_subjects
        ],
        settings=dict(detail.settings),
        counts=dict(detail.counts),
    )


async def _ensure_schools(controller: BackupLifecycleController) -> None:
    if not controller.state.schools:
        await controller.load_schools()


def build_router(prefix: str, tags: list[str], name: str) -> APIRouter:
    """Backup routes mounted under ``prefix``; a ``{school_id}`` in it scopes the console."""
    router = APIRouter(prefix=prefix, tags=tags)

    @router.get("/", name=f"{name}.list_backups")
    async def list_backups(
        school: Optional[str] = Query(default=None, alias="schoolId"),
        term: Optional[str] = Query(default=None),
        academic_year: Optional[str] = Query(default=None, alias="academicYear"),
        day: Optional[date] = Query(default=None, alias="date"),
        controller: BackupLifecycleController = Depends(get_controller),
    ):
        criteria = BackupFilter(school_id=school, term=term, academic_year=academic_year, date=day)
        await _ensure_schools(controller)
        await controller.list_backups(criteria)
        return _listing(controller).model_dump(by_alias=True, mode="json")

    @router.post("/delete/confirm", name=f"{name}.confirm_delete")
    async def confirm_delete(controller: BackupLifecycleController = Depends(get_controller)):
        deleted = controller.state.pending_delete_id
        await controller.confirm_delete()
        payload = _listing(controller).model_dump(by_alias=True, mode="json")
        payload["deletedId"] = deleted
        return payload

    @router.post("/delete/cancel", name=f"{name}.cancel_delete")
    async def cancel_delete(controller: BackupLifecycleController = Depends(get_controller)):
        controller.cancel_delete()
        return {"ok": True, "pendingDeleteId": None}

    @router.get("/{backup_id}", name=f"{name}.backup_detail")
    async def backup_detail(backup_id: str, controller: BackupLifecycleController = Depends(get_controller)):
        await _ensure_schools(controller)
        detail = await controller.detail(backup_id)
        return _detail(controller, detail).model_dump(by_alias=True, mode="json")

    @router.get("/{backup_id}/export", name=f"{name}.export_backup")
    async def export_backup(backup_id: str, controller: BackupLifecycleController = Depends(get_controller)):
        artifact = await controller.export(backup_id)
        return Response(
            content=artifact.encode(),
            media_type=artifact.media_type,
            headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
        )

    @router.post("/{backup_id}/delete", name=f"{name}.request_delete")
    async def request_delete(backup_id: str, controller: BackupLifecycleController = Depends(get_controller)):
        controller.request_delete(backup_id)
        return {"ok": True, "pendingDeleteId": controller.state.pending_delete_id}

    return router


# Global console for super admins, plus the same routes scoped to one school.
router = build_router("/backups", ["backups"], "backups")
school_router = build_router("/schools/{school_id}/backups", ["school-backups"], "school_backups")

# School directory sits outside the backup id namespace.
schools_router = APIRouter(tags=["schools"])


@schools_router.get("/schools", name="schools.list_schools")
async def list_schools(controller: BackupLifecycleController = Depends(get_controller)):
    schools = await controller.load_schools()
    return [school.model_dump(by_alias=True) for school in schools]
