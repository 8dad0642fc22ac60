"""
Persistencia del cursor de sincronizacion incremental.

Clave `mingdao_sync:last_time:{tenant}`, valor en segundos Unix. Si no
existe o esta corrupta se usa "ahora menos un intervalo".
"""
from datetime import datetime, timedelta, timezone

from loguru import logger

from app.domain.entities.directory import SyncCursor, ensure_utc, utc_now
from app.infrastructure.kv.redis_store import KeyValueStore


CURSOR_KEY_TEMPLATE = "mingdao_sync:last_time:{tenant}"


class SyncCursorRepository:
    """Lee y guarda el SyncCursor de cada tenant en el almacen clave-valor."""

    def __init__(self, store: KeyValueStore, *, default_lookback: timedelta = timedelta(minutes=10)):
        self._store = store
        self._default_lookback = default_lookback

    @staticmethod
    def key_for(tenant_id: str) -> str:
        return CURSOR_KEY_TEMPLATE.format(tenant=tenant_id)

    async def load(self, tenant_id: str) -> SyncCursor:
        raw = await self._store.get(self.key_for(tenant_id))
        if raw:
            try:
                last = datetime.fromtimestamp(int(raw), tz=timezone.utc)
                return SyncCursor(tenant_id=tenant_id, last_synced_at=last)
            except (TypeError, ValueError, OverflowError):
                logger.warning(f"Cursor corrupto para tenant {tenant_id}: {raw!r}; se usa el default")

        default = utc_now() - self._default_lookback
        logger.debug(f"Sin cursor para tenant {tenant_id}; se usa {default.isoformat()}")
        return SyncCursor(tenant_id=tenant_id, last_synced_at=default)

    async def save(self, cursor: SyncCursor) -> None:
        seconds = int(ensure_utc(cursor.last_synced_at).timestamp())
        await self._store.set(self.key_for(cursor.tenant_id), str(seconds))
        logger.debug(f"Cursor de tenant {cursor.tenant_id} guardado en {seconds}")
