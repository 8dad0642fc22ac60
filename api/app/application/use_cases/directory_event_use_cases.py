"""
Handlers de eventos de cambio del directorio (callbacks de WeCom).

Cada evento lanza un upsert supervisado en background y retorna de
inmediato: el callback nunca espera a Mingdao ni ve sus errores.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from app.application.services.background_tasks import BackgroundTaskRunner
from app.application.use_cases.directory_sync_use_cases import DirectorySyncUseCases
from app.domain.entities.directory import DirectoryChangeEvent, EntityKind


class DirectoryEventHandlers:
    """OnDepartmentChanged / OnStaffChanged."""

    def __init__(self, sync: DirectorySyncUseCases, runner: BackgroundTaskRunner) -> None:
        self._sync = sync
        self._runner = runner

    def on_department_changed(self, event: DirectoryChangeEvent) -> Optional[asyncio.Task]:
        return self._dispatch(event, EntityKind.DEPARTMENT)

    def on_staff_changed(self, event: DirectoryChangeEvent) -> Optional[asyncio.Task]:
        return self._dispatch(event, EntityKind.STAFF)

    def _dispatch(self, event: DirectoryChangeEvent, expected: EntityKind) -> Optional[asyncio.Task]:
        if event.kind is not expected:
            logger.warning(f"Evento {event.kind.value} recibido por el handler de {expected.value}; se ignora")
            return None
        if not self._sync.is_enabled:
            logger.debug(f"Sync de directorio deshabilitada; evento {event.kind.value} {event.external_id} ignorado")
            return None

        logger.info(f"Evento {event.action.value} de {event.kind.value} {event.external_id}")
        entity = event.to_entity()
        return self._runner.spawn(
            self._sync.sync_entity(entity, event.action),
            name=f"sync-{event.kind.value}-{event.external_id}",
        )
