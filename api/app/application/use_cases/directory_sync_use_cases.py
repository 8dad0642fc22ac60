"""
Casos de uso de sincronizacion del directorio (WeCom -> Mingdao).

- Full sync: todos los departamentos y todo el staff del tenant,
  ignorando el cursor. Para bootstrap o reconciliacion manual.
- Pasada incremental: solo entidades con updated_at > cursor. Recibe el
  cursor y devuelve el nuevo, avanzado al inicio de la pasada.
- Job programado: pasada incremental protegida por lock distribuido;
  si el lock esta ocupado no hace nada.

En cada pasada todos los departamentos terminan antes de empezar con
el staff, y entre upserts hay una pausa fija.
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Tuple

from loguru import logger

from app.application.services.identity_resolver import UpsertEngine
from app.application.services.retry_controller import RetryController, Sleep
from app.domain.entities.directory import (
    DirectoryEntity,
    EntityKind,
    PassSummary,
    SyncAction,
    SyncCursor,
    utc_now,
)
from app.infrastructure.kv.redis_store import DistributedLock, KeyValueStore
from app.infrastructure.repositories.sync_cursor_repository import SyncCursorRepository


INCREMENTAL_SYNC_LOCK_NAME = "MingdaoIncrementalSync"


class DirectorySource(Protocol):
    async def list_departments(self, tenant_id: str, updated_since: Optional[datetime] = None) -> List[DirectoryEntity]:
        ...

    async def list_staff(self, tenant_id: str, updated_since: Optional[datetime] = None) -> List[DirectoryEntity]:
        ...


class DirectorySyncUseCases:
    """Pasadas de sincronizacion sobre un UpsertEngine."""

    def __init__(
        self,
        engine: UpsertEngine,
        directory: DirectorySource,
        *,
        retry: Optional[RetryController] = None,
        throttle_seconds: float = 0.1,
        sleep: Optional[Sleep] = None,
        clock: Callable[[], datetime] = utc_now,
        enabled: bool = True,
    ) -> None:
        self._engine = engine
        self._directory = directory
        self._sleep = sleep or asyncio.sleep
        self._retry = retry or RetryController(sleep=self._sleep)
        self._throttle_seconds = throttle_seconds
        self._clock = clock
        self._enabled = enabled

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    async def sync_entity(self, entity: DirectoryEntity, action: SyncAction) -> Optional[str]:
        """
        Upsert de una entidad con reintentos. Nunca lanza.

        Returns:
            row id, o None si la sincronizacion fallo definitivamente
        """
        if not self._enabled:
            logger.debug(f"Sync de directorio deshabilitada; se ignora {entity.kind.value} {entity.external_id}")
            return None
        return await self._retry.run(
            lambda: self._engine.upsert(entity, action),
            kind=entity.kind.value,
            external_id=entity.external_id,
        )

    async def full_sync(self, tenant_id: str) -> PassSummary:
        """Sincroniza todo el directorio del tenant."""
        summary = PassSummary()
        if not self._enabled:
            logger.debug("Sync de directorio deshabilitada; full sync omitida")
            return summary

        started = time.monotonic()
        logger.info(f"Full sync de directorio para tenant {tenant_id}")
        departments = await self._directory.list_departments(tenant_id)
        await self._sync_batch(departments, summary)
        staff = await self._directory.list_staff(tenant_id)
        await self._sync_batch(staff, summary)

        logger.info(
            f"Full sync terminada para tenant {tenant_id} en {time.monotonic() - started:.1f}s: "
            f"departamentos {summary.department_success} ok / {summary.department_fail} fallidos, "
            f"staff {summary.staff_success} ok / {summary.staff_fail} fallidos"
        )
        return summary

    async def incremental_pass(self, cursor: SyncCursor) -> Tuple[SyncCursor, PassSummary]:
        """
        Sincroniza lo modificado desde el cursor.

        El nuevo cursor es el instante de inicio de la pasada: lo que cambie
        mientras corre se vuelve a leer en la siguiente.
        """
        summary = PassSummary()
        if not self._enabled:
            logger.debug("Sync de directorio deshabilitada; pasada incremental omitida")
            return cursor, summary

        pass_started_at = self._clock()
        since = cursor.last_synced_at
        departments = await self._directory.list_departments(cursor.tenant_id, since)
        staff = await self._directory.list_staff(cursor.tenant_id, since)

        if not departments and not staff:
            logger.debug(f"Nada que sincronizar para tenant {cursor.tenant_id} desde {since.isoformat()}")
        else:
            logger.info(
                f"Pasada incremental tenant {cursor.tenant_id}: {len(departments)} departamentos, "
                f"{len(staff)} staff modificados desde {since.isoformat()}"
            )
            await self._sync_batch(departments, summary)
            await self._sync_batch(staff, summary)
            logger.info(
                f"Pasada incremental terminada: {summary.department_success + summary.staff_success} ok, "
                f"{summary.department_fail + summary.staff_fail} fallidos"
            )

        return cursor.advance_to(pass_started_at), summary

    async def _sync_batch(self, entities: List[DirectoryEntity], summary: PassSummary) -> None:
        for index, entity in enumerate(entities):
            if index and self._throttle_seconds > 0:
                await self._sleep(self._throttle_seconds)
            row_id = await self.sync_entity(entity, SyncAction.UPDATE)
            ok = row_id is not None
            if entity.kind is EntityKind.DEPARTMENT:
                if ok:
                    summary.department_success += 1
                else:
                    summary.department_fail += 1
            else:
                if ok:
                    summary.staff_success += 1
                else:
                    summary.staff_fail += 1


class IncrementalSyncJob:
    """
    Entrada del scheduler: lock distribuido + cursor persistido.

    Los errores terminan aqui (se registran); nunca llegan al scheduler.
    """

    def __init__(
        self,
        sync: DirectorySyncUseCases,
        store: KeyValueStore,
        cursors: SyncCursorRepository,
        *,
        lock_seconds: int = 300,
    ) -> None:
        self._sync = sync
        self._store = store
        self._cursors = cursors
        self._lock_seconds = lock_seconds

    async def run(self, tenant_id: str) -> Optional[PassSummary]:
        if not self._sync.is_enabled:
            logger.debug("Sync de directorio deshabilitada; job incremental omitido")
            return None

        try:
            async with DistributedLock(
                self._store, INCREMENTAL_SYNC_LOCK_NAME, lease_seconds=self._lock_seconds
            ) as acquired:
                if not acquired:
                    logger.debug("Otra instancia esta ejecutando la sync incremental; se omite")
                    return None

                cursor = await self._cursors.load(tenant_id)
                new_cursor, summary = await self._sync.incremental_pass(cursor)
                await self._cursors.save(new_cursor)
                return summary
        except Exception:
            logger.exception(f"Job de sync incremental fallo para tenant {tenant_id}")
            return None
