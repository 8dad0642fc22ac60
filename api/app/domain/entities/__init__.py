"""
Entidades del dominio.
"""
from app.domain.entities.directory import (
    AddExternalContactEvent,
    DirectoryChangeEvent,
    DirectoryEntity,
    EntityKind,
    PassSummary,
    SyncAction,
    SyncCursor,
)

__all__ = [
    "AddExternalContactEvent",
    "DirectoryChangeEvent",
    "DirectoryEntity",
    "EntityKind",
    "PassSummary",
    "SyncAction",
    "SyncCursor",
]
