"""
Errores estructurados del cliente Mingdao.

Taxonomia:
- ConfigurationError: credenciales faltantes. Falla inmediata, sin reintento.
- TransportError: timeout / conexion rechazada. Reintentable.
- ProviderError: la plataforma respondio con codigo + mensaje. Reintentable
  salvo que el codigo indique una condicion permanente.
- MappingError: el set de campos a escribir quedo vacio; no se llama a la red.
"""

from __future__ import annotations

from typing import Optional


# Codigos de Mingdao que no van a cambiar reintentando (firma/appKey invalidos,
# hoja inexistente, parametros o valores de control invalidos).
PERMANENT_ERROR_CODES = frozenset({10001, 10002, 10005, 10007, 10101, 10102})

# Estados HTTP que si vale la pena reintentar aunque sean 4xx.
RETRYABLE_HTTP_STATUSES = frozenset({408, 429})


class RecordStoreError(RuntimeError):
    """Error de integracion con Mingdao."""

    retryable: bool = False


class ConfigurationError(RecordStoreError):
    """Configuracion incompleta (APIBase/AppKey/Sign)."""

    retryable = False


class MappingError(RecordStoreError):
    """No quedaron campos validos que escribir."""

    retryable = False


class TransportError(RecordStoreError):
    """Timeout o error de conexion al hablar con Mingdao."""

    retryable = True


class ProviderError(RecordStoreError):
    """Mingdao devolvio success=false o un estado HTTP de error."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[int] = None,
        http_status: Optional[int] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(f"Mingdao API error: {message} (code: {code}, http: {http_status})")

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        if self.http_status is not None and 400 <= self.http_status < 500:
            return self.http_status in RETRYABLE_HTTP_STATUSES
        return self.code not in PERMANENT_ERROR_CODES
