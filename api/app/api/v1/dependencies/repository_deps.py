"""
Dependencias para inyección de repositorios y clientes externos.

Los clientes HTTP y el almacen clave-valor son compartidos por proceso.
"""
from datetime import timedelta
from functools import lru_cache

from app.core.config import settings
from app.infrastructure.external.mingdao.client import RecordStoreClient, build_record_store_client
from app.infrastructure.external.mingdao.errors import ConfigurationError
from app.infrastructure.external.wecom.wecom_client import WeComClient
from app.infrastructure.kv.redis_store import KeyValueStore, RedisKeyValueStore
from app.infrastructure.repositories.sync_cursor_repository import SyncCursorRepository
from app.shared.exceptions.domain import ExternalServiceException


@lru_cache
def _record_store_client() -> RecordStoreClient:
    return build_record_store_client(settings)


def get_record_store_client() -> RecordStoreClient:
    """
    Cliente de Mingdao compartido. Credenciales faltantes -> error
    estructurado en vez de un 500 generico.
    """
    try:
        return _record_store_client()
    except ConfigurationError as e:
        raise ExternalServiceException("Mingdao", str(e)) from e


@lru_cache
def get_wecom_client() -> WeComClient:
    return WeComClient()


@lru_cache
def get_kv_store() -> KeyValueStore:
    return RedisKeyValueStore(url=settings.REDIS_URL)


def get_sync_cursor_repository() -> SyncCursorRepository:
    return SyncCursorRepository(
        get_kv_store(),
        default_lookback=timedelta(minutes=settings.DIRECTORY_SYNC_INTERVAL_MINUTES),
    )


async def close_clients() -> None:
    """Cierra los clientes compartidos que se hayan creado."""
    if _record_store_client.cache_info().currsize:
        await _record_store_client().aclose()
        _record_store_client.cache_clear()
    if get_wecom_client.cache_info().currsize:
        await get_wecom_client().aclose()
        get_wecom_client.cache_clear()
    if get_kv_store.cache_info().currsize:
        await get_kv_store().close()
        get_kv_store.cache_clear()
