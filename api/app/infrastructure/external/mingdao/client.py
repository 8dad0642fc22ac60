"""
Contrato del cliente de Mingdao y transporte HTTP compartido.

Cada generacion de protocolo (v2 / v3) implementa `RecordStoreClient`;
`build_record_store_client` elige una segun configuracion. Nunca se
ramifica por version dentro de una llamada.

Requisitos cubiertos:
- httpx async con timeout fijo por llamada
- errores estructurados (transporte vs proveedor)
- paginacion por pageIndex
- sin reintentos: los maneja el RetryController del llamador
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

import httpx
from loguru import logger

from .errors import ConfigurationError, MappingError, ProviderError, TransportError
from .filters import Filter
from .types import PlatformRow, RowPage, WorksheetSchema


DEFAULT_TIMEOUT_S = 30.0


class RecordStoreClient(ABC):
    """
    Cliente de hojas de Mingdao.

    Los valores de `fields` son semanticos (str, listas, dicts) y van
    indexados por ID o alias de campo; cada protocolo los serializa.
    """

    protocol_version: str = ""

    def __init__(
        self,
        *,
        api_base: str,
        app_key: str,
        sign: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not api_base or not app_key or not sign:
            raise ConfigurationError("Configuracion de Mingdao incompleta (api_base/app_key/sign)")
        self._api_base = api_base.rstrip("/")
        self._app_key = app_key
        self._sign = sign
        self._timeout_s = timeout_s
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "RecordStoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Contrato
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_row(self, worksheet: str, fields: Dict[str, Any]) -> str:
        """Crea una fila y retorna su row_id."""

    @abstractmethod
    async def get_row(self, worksheet: str, row_id: str) -> Optional[PlatformRow]:
        """Retorna la fila o None si no existe."""

    @abstractmethod
    async def find_rows(
        self,
        worksheet: str,
        predicate: Optional[Filter] = None,
        *,
        page_size: int = 50,
        page_index: int = 1,
    ) -> RowPage:
        """Lectura filtrada de una pagina (page_index empieza en 1)."""

    @abstractmethod
    async def update_row(self, worksheet: str, row_id: str, fields: Dict[str, Any]) -> None:
        """Actualiza solo los campos indicados."""

    @abstractmethod
    async def delete_row(self, worksheet: str, row_id: str) -> None:
        """Borrado fisico de la fila."""

    @abstractmethod
    async def get_worksheet_schema(self, worksheet: str) -> WorksheetSchema:
        """Introspeccion de campos de la hoja."""

    # ------------------------------------------------------------------
    # Helpers comunes
    # ------------------------------------------------------------------

    async def find_first(self, worksheet: str, predicate: Filter) -> Optional[PlatformRow]:
        page = await self.find_rows(worksheet, predicate, page_size=1, page_index=1)
        return page.rows[0] if page.rows else None

    async def iter_rows(
        self,
        worksheet: str,
        predicate: Optional[Filter] = None,
        *,
        page_size: int = 100,
    ) -> AsyncIterator[PlatformRow]:
        """Itera todas las filas que cumplen el predicado, pagina por pagina."""
        page_index = 1
        while True:
            page = await self.find_rows(worksheet, predicate, page_size=page_size, page_index=page_index)
            for row in page.rows:
                yield row
            if not page.has_more:
                break
            page_index += 1

    @staticmethod
    def _require_fields(fields: Dict[str, Any]) -> None:
        if not fields:
            raise MappingError("No hay campos validos para escribir")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Ejecuta la llamada y desempaqueta el sobre {success, error_code, error_msg, data}.

        - timeout / conexion -> TransportError
        - success=false o HTTP >= 400 -> ProviderError
        """
        url = f"{self._api_base}{path}"
        try:
            resp = await self._http.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=self._timeout_s,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout llamando a Mingdao {method} {path}") from e
        except httpx.TransportError as e:
            raise TransportError(f"Error de conexion con Mingdao {method} {path}: {e}") from e

        http_status = resp.status_code if resp.status_code >= 400 else None
        try:
            payload = resp.json()
        except ValueError as e:
            raise ProviderError(
                f"Respuesta no JSON: {resp.text[:200]}",
                http_status=resp.status_code,
            ) from e

        if not isinstance(payload, dict) or not payload.get("success"):
            body = payload if isinstance(payload, dict) else {}
            error = ProviderError(
                str(body.get("error_msg") or resp.reason_phrase or "respuesta sin exito"),
                code=body.get("error_code"),
                http_status=http_status,
            )
            logger.error(f"Mingdao API ({self.protocol_version}) devolvio error en {method} {path}: {error}")
            raise error

        return payload.get("data")


def build_record_store_client(
    config=None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> RecordStoreClient:
    """
    Constructor "oficial" del cliente leyendo la configuracion.

    La generacion de protocolo se fija aqui, una sola vez.
    """
    from app.core.config import settings as default_settings

    from .protocol_v2 import MingdaoV2Client
    from .protocol_v3 import MingdaoV3Client

    cfg = config or default_settings
    version = (cfg.MINGDAO_API_VERSION or "v2").strip().lower()
    client_cls = {"v2": MingdaoV2Client, "v3": MingdaoV3Client}.get(version)
    if client_cls is None:
        raise ConfigurationError(f"MINGDAO_API_VERSION no soportada: {cfg.MINGDAO_API_VERSION}")

    return client_cls(
        api_base=cfg.MINGDAO_API_BASE,
        app_key=cfg.MINGDAO_APP_KEY,
        sign=cfg.MINGDAO_SIGN,
        timeout_s=cfg.MINGDAO_TIMEOUT_SECONDS,
        http_client=http_client,
    )
