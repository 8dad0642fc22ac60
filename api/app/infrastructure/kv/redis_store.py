"""
Almacen clave-valor externo (Redis) y lock distribuido.

Es el unico estado mutable compartido entre tareas: el cursor de
sincronizacion y el lock del job programado. Solo get/set simples,
sin transacciones.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger
from redis import asyncio as aioredis

from app.core.config import settings


class KeyValueStore(ABC):
    """Contrato minimo get/set con TTL."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl_seconds: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        """Retorna False si only_if_absent y la clave ya existia."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class RedisKeyValueStore(KeyValueStore):
    """Implementacion sobre redis.asyncio."""

    def __init__(self, client: Optional[aioredis.Redis] = None, *, url: Optional[str] = None) -> None:
        self._client = client or aioredis.from_url(url or settings.REDIS_URL, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        value = await self._client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl_seconds: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        result = await self._client.set(key, value, ex=ttl_seconds, nx=only_if_absent)
        return bool(result)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()


class DistributedLock:
    """
    Lock con lease sobre el almacen clave-valor.

    Adquisicion: SET key token NX EX lease. Si el proceso muere, el lease
    expira solo. La liberacion borra la clave solo si el token sigue
    siendo el nuestro (si el lease expiro y otro lo tomo, no se toca).

    Uso:
        async with DistributedLock(store, "MingdaoIncrementalSync") as acquired:
            if not acquired:
                return
            ...
    """

    def __init__(self, store: KeyValueStore, name: str, *, lease_seconds: int = 300) -> None:
        self._store = store
        self._key = f"lock:{name}"
        self._lease_seconds = lease_seconds
        self._token = uuid.uuid4().hex
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    async def acquire(self) -> bool:
        self._held = await self._store.set(
            self._key,
            self._token,
            ttl_seconds=self._lease_seconds,
            only_if_absent=True,
        )
        return self._held

    async def release(self) -> None:
        if not self._held:
            return
        self._held = False
        current = await self._store.get(self._key)
        if current == self._token:
            await self._store.delete(self._key)
        else:
            logger.warning(f"Lock {self._key} expiro antes de liberarse; no se borra")

    async def __aenter__(self) -> bool:
        return await self.acquire()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
