"""
Cliente de la plataforma Mingdao (HAP), usada como base de clientes.

Mingdao expone dos generaciones de protocolo incompatibles (v2 y v3).
Los llamadores trabajan siempre contra `RecordStoreClient`; la version
concreta se elige una sola vez al construir el cliente.

Objetivos de diseño:
- Un contrato estable: crear/leer-filtrado/actualizar/borrar fila y esquema.
- Errores estructurados: transporte (timeout/conexion) vs proveedor (codigo + mensaje).
- Sin reintentos en esta capa: los decide el llamador.
"""
from app.infrastructure.external.mingdao.client import RecordStoreClient, build_record_store_client
from app.infrastructure.external.mingdao.errors import (
    ConfigurationError,
    MappingError,
    ProviderError,
    RecordStoreError,
    TransportError,
)
from app.infrastructure.external.mingdao.types import (
    FieldMapping,
    PlatformRow,
    RowPage,
    WorksheetConfig,
    WorksheetKind,
    WorksheetSchema,
)

__all__ = [
    "ConfigurationError",
    "FieldMapping",
    "MappingError",
    "PlatformRow",
    "ProviderError",
    "RecordStoreClient",
    "RecordStoreError",
    "RowPage",
    "TransportError",
    "WorksheetConfig",
    "WorksheetKind",
    "WorksheetSchema",
    "build_record_store_client",
]
