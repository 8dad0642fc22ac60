"""
Almacen clave-valor (Redis) para estado compartido entre tareas.
"""
from app.infrastructure.kv.redis_store import DistributedLock, KeyValueStore, RedisKeyValueStore

__all__ = ["DistributedLock", "KeyValueStore", "RedisKeyValueStore"]
