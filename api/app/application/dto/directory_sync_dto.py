"""
DTOs de sincronizacion del directorio.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.domain.entities.directory import (
    DirectoryChangeEvent,
    EntityKind,
    PassSummary,
    SyncAction,
)


class DirectoryChangeEventDTO(BaseModel):
    """Evento de cambio de staff o departamento."""

    kind: EntityKind = Field(..., description="staff | department")
    external_id: str = Field(..., min_length=1, description="userid del staff o id del departamento")
    action: SyncAction = Field(..., description="create | update | delete")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Clave de proposito -> valor")
    tenant_id: str = Field("", description="Corp id de WeCom; vacio usa el configurado")

    def to_event(self, default_tenant: str) -> DirectoryChangeEvent:
        return DirectoryChangeEvent(
            kind=self.kind,
            external_id=self.external_id,
            action=self.action,
            attributes=dict(self.attributes),
            tenant_id=self.tenant_id or default_tenant,
        )


class SyncStartedDTO(BaseModel):
    """Respuesta inmediata de una sync lanzada en background."""

    accepted: bool
    message: str


class PassSummaryDTO(BaseModel):
    """Resultado de una pasada de sincronizacion."""

    executed: bool = Field(..., description="False si estaba deshabilitada o el lock ocupado")
    department_success: int = 0
    department_fail: int = 0
    staff_success: int = 0
    staff_fail: int = 0

    @classmethod
    def from_summary(cls, summary: Optional[PassSummary]) -> "PassSummaryDTO":
        if summary is None:
            return cls(executed=False)
        return cls(
            executed=True,
            department_success=summary.department_success,
            department_fail=summary.department_fail,
            staff_success=summary.staff_success,
            staff_fail=summary.staff_fail,
        )
