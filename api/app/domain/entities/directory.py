"""
Entidades del directorio (WeCom) y del estado de sincronizacion.

Se mantienen libres de I/O para poder testearlas facilmente.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class EntityKind(str, Enum):
    """Tipo de entidad del directorio."""
    STAFF = "staff"
    DEPARTMENT = "department"


class SyncAction(str, Enum):
    """Accion solicitada sobre la fila de Mingdao."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def ensure_utc(dt: datetime) -> datetime:
    """Normaliza datetime a UTC (aware)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DirectoryEntity:
    """
    Staff o departamento tal como lo ve el directorio.

    - external_id: userid del staff o id numerico (como string) del departamento
    - attributes: clave de proposito -> valor (ver DEPARTMENT_FIELDS / STAFF_FIELDS)
    """

    kind: EntityKind
    external_id: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    updated_at: Optional[datetime] = None
    tenant_id: str = ""

    @property
    def display_name(self) -> str:
        if self.kind is EntityKind.DEPARTMENT:
            return str(self.attributes.get("departmentName") or "")
        return str(self.attributes.get("wecomUsername") or "")


@dataclass(frozen=True)
class SyncCursor:
    """
    Marca de agua de la ultima pasada incremental de un tenant.

    Es un valor: la pasada lo recibe y devuelve uno nuevo, que se
    persiste explicitamente al terminar.
    """

    tenant_id: str
    last_synced_at: datetime

    def advance_to(self, pass_started_at: datetime) -> "SyncCursor":
        """Avanza al inicio de la pasada sin retroceder nunca."""
        new_value = max(ensure_utc(self.last_synced_at), ensure_utc(pass_started_at))
        return replace(self, last_synced_at=new_value)


@dataclass(frozen=True)
class DirectoryChangeEvent:
    """Evento de cambio del directorio (OnStaffChanged / OnDepartmentChanged)."""

    kind: EntityKind
    external_id: str
    action: SyncAction
    attributes: Dict[str, Any] = field(default_factory=dict)
    tenant_id: str = ""

    def to_entity(self) -> DirectoryEntity:
        return DirectoryEntity(
            kind=self.kind,
            external_id=self.external_id,
            attributes=dict(self.attributes),
            tenant_id=self.tenant_id,
        )


@dataclass(frozen=True)
class AddExternalContactEvent:
    """Callback "cliente agregado" de WeCom."""

    staff_id: str
    external_user_id: str
    state: str = ""
    tenant_id: str = ""


@dataclass
class PassSummary:
    """Contadores de una pasada de sincronizacion."""

    department_success: int = 0
    department_fail: int = 0
    staff_success: int = 0
    staff_fail: int = 0

    @property
    def total(self) -> int:
        return (
            self.department_success + self.department_fail
            + self.staff_success + self.staff_fail
        )
