"""
Tipos y utilidades puras del cliente Mingdao.

Se mantienen libres de I/O para poder testearlos facilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class WorksheetKind(str, Enum):
    """Hojas de trabajo que maneja la sincronizacion."""
    STAFF = "staff"
    DEPARTMENT = "department"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class PlatformRow:
    """Fila de una hoja de Mingdao. row_id lo asigna la plataforma."""

    row_id: str
    worksheet: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def get(self, field_id: str, default: Any = None) -> Any:
        return self.fields.get(field_id, default)


@dataclass(frozen=True)
class RowPage:
    """Una pagina de resultados de una lectura filtrada."""

    rows: List[PlatformRow]
    total: int
    page_index: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return bool(self.rows) and self.page_index * self.page_size < self.total


@dataclass(frozen=True)
class FieldSchema:
    """Campo (control) de una hoja, tal como lo reporta la introspeccion."""

    field_id: str
    name: str
    type: Any = None
    alias: str = ""
    options: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class WorksheetSchema:
    worksheet: str
    name: str
    fields: List[FieldSchema]

    def has_field(self, field_ref: str) -> bool:
        """Acepta tanto el ID del campo como su alias."""
        return any(f.field_id == field_ref or (f.alias and f.alias == field_ref) for f in self.fields)


Transform = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMapping:
    """
    Mapea una clave de proposito a un campo de Mingdao.

    - purpose_key: nombre semantico del atributo (ej. "departmentName")
    - platform_field_id: ID o alias del campo en la hoja
    - transform: funcion opcional para convertir el valor; si devuelve None
      el campo se omite
    """

    purpose_key: str
    platform_field_id: str
    transform: Optional[Transform] = None


@dataclass(frozen=True)
class WorksheetConfig:
    """
    Config estatica de una hoja: alias + mapeos de campos.

    external_id_key es la clave de proposito que identifica la fila
    (la busqueda previa a escribir filtra por ese campo).
    """

    kind: WorksheetKind
    worksheet: str
    mappings: List[FieldMapping]
    external_id_key: Optional[str] = None

    def mapping_for(self, purpose_key: str) -> Optional[FieldMapping]:
        for m in self.mappings:
            if m.purpose_key == purpose_key:
                return m
        return None

    def field_id(self, purpose_key: str) -> str:
        """ID de plataforma para una clave de proposito conocida."""
        mapping = self.mapping_for(purpose_key)
        if mapping is None:
            raise KeyError(f"Campo sin mapeo en '{self.worksheet}': {purpose_key}")
        return mapping.platform_field_id

    @property
    def external_id_field(self) -> str:
        if not self.external_id_key:
            raise KeyError(f"La hoja '{self.worksheet}' no define campo de ID externo")
        return self.field_id(self.external_id_key)
