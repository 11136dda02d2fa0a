from collections import OrderedDict
from typing import Optional
from uuid import uuid4

from fastapi import Depends, Request

from .config import settings
from .extensions import db
from .services.lifecycle import BackupLifecycleController
from .services.repository import BackupRepository, SqlBackupRepository


class ConsoleRegistry:
    """Keeps one lifecycle controller per browser session and school scope."""

    def __init__(self, max_consoles: int = 512):
        self.max_consoles = max_consoles
        self._consoles: "OrderedDict[tuple[str, Optional[str]], BackupLifecycleController]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._consoles)

    def get(self, console_id: str, school_id: Optional[str], repository: BackupRepository) -> BackupLifecycleController:
        key = (console_id, school_id)
        controller = self._consoles.get(key)
        if controller is None:
            controller = BackupLifecycleController(repository, school_id=school_id)
            self._consoles[key] = controller
            # Drop the least recently used console once over capacity
            while len(self._consoles) > self.max_consoles:
                self._consoles.popitem(last=False)
        else:
            self._consoles.move_to_end(key)
        return controller


def get_repository() -> BackupRepository:
    """Dependency to provide the backup store."""
    return SqlBackupRepository(db)


def get_console_id(request: Request) -> str:
    console_id = request.session.get("console_id")
    if not console_id:
        console_id = uuid4().hex
        request.session["console_id"] = console_id
    return console_id


def get_controller(
    request: Request,
    console_id: str = Depends(get_console_id),
    repository: BackupRepository = Depends(get_repository),
) -> BackupLifecycleController:
    """The session's controller; routes under /schools/{school_id} get a scoped one."""
    registry: ConsoleRegistry = request.app.state.consoles
    return registry.get(console_id, request.path_params.get("school_id"), repository)


def new_registry() -> ConsoleRegistry:
    return ConsoleRegistry(max_consoles=settings.MAX_CONSOLES)
