"""
Protocolo v3 de Mingdao (`/v3/app/worksheets/...`).

- Verbos REST (POST / GET / PATCH / DELETE).
- Autenticacion por headers HAP-Appkey / HAP-Sign.
- Valores JSON nativos (listas para desplegables, relaciones y adjuntos).
- Filtros como arbol group/condition.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from loguru import logger

from .client import RecordStoreClient
from .filters import Condition, Filter, FilterGroup, Operator, as_group
from .types import FieldSchema, PlatformRow, RowPage, WorksheetSchema


_OPERATORS = {
    Operator.EQ: "eq",
    Operator.CONTAINS: "contains",
    Operator.BETWEEN: "between",
    Operator.IN: "in",
}


def build_fields(fields: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [{"id": field_id, "value": value} for field_id, value in fields.items()]


def _translate_condition(condition: Condition) -> Dict[str, Any]:
    if condition.operator is Operator.BETWEEN:
        value: List[Any] = list(condition.value)
    elif condition.operator is Operator.IN:
        value = list(condition.value)
    else:
        value = [condition.value]
    return {
        "type": "condition",
        "field": condition.field_id,
        "operator": _OPERATORS[condition.operator],
        "value": value,
    }


def translate_filter(predicate: Optional[Filter]) -> Optional[Dict[str, Any]]:
    """Traduce el arbol canonico al formato v3. Sin condiciones -> None."""
    root = as_group(predicate)
    if not root.children:
        return None
    return _translate_group(root)


def _translate_group(group: FilterGroup) -> Dict[str, Any]:
    return {
        "type": "group",
        "logic": group.logic.value,
        "children": [
            _translate_group(child) if isinstance(child, FilterGroup) else _translate_condition(child)
            for child in group.children
        ],
    }


def _row_id_of(raw: Dict[str, Any]) -> str:
    return str(raw.get("rowid") or raw.get("_id") or raw.get("id") or "")


class MingdaoV3Client(RecordStoreClient):
    """Implementacion del contrato sobre `/v3/app/worksheets`."""

    protocol_version = "v3"

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "HAP-Appkey": self._app_key,
            "HAP-Sign": self._sign,
            "Content-Type": "application/json",
        }

    def _rows_path(self, worksheet: str) -> str:
        return f"/v3/app/worksheets/{worksheet}/rows"

    async def create_row(self, worksheet: str, fields: Dict[str, Any]) -> str:
        self._require_fields(fields)
        body = {"fields": build_fields(fields), "triggerWorkflow": True}
        logger.info(f"Mingdao v3 crear fila en '{worksheet}' ({len(fields)} campos)")
        data = await self._request("POST", self._rows_path(worksheet), json=body, headers=self._headers)
        if isinstance(data, dict):
            return _row_id_of(data)
        return str(data or "")

    async def get_row(self, worksheet: str, row_id: str) -> Optional[PlatformRow]:
        data = await self._request("GET", f"{self._rows_path(worksheet)}/{row_id}", headers=self._headers)
        if not data:
            return None
        return PlatformRow(row_id=_row_id_of(data) or row_id, worksheet=worksheet, fields=dict(data))

    async def find_rows(
        self,
        worksheet: str,
        predicate: Optional[Filter] = None,
        *,
        page_size: int = 50,
        page_index: int = 1,
    ) -> RowPage:
        body: Dict[str, Any] = {"pageSize": page_size, "pageIndex": page_index}
        translated = translate_filter(predicate)
        if translated is not None:
            body["filter"] = translated
        data = await self._request(
            "POST", f"{self._rows_path(worksheet)}/list", json=body, headers=self._headers
        ) or {}
        rows = [
            PlatformRow(row_id=_row_id_of(raw), worksheet=worksheet, fields=dict(raw))
            for raw in data.get("rows") or []
        ]
        return RowPage(
            rows=rows,
            total=int(data.get("total") or 0),
            page_index=page_index,
            page_size=page_size,
        )

    async def update_row(self, worksheet: str, row_id: str, fields: Dict[str, Any]) -> None:
        self._require_fields(fields)
        body = {"fields": build_fields(fields), "triggerWorkflow": True}
        logger.info(f"Mingdao v3 actualizar fila en '{worksheet}' rowId={row_id} ({len(fields)} campos)")
        await self._request("PATCH", f"{self._rows_path(worksheet)}/{row_id}", json=body, headers=self._headers)

    async def delete_row(self, worksheet: str, row_id: str) -> None:
        logger.info(f"Mingdao v3 borrar fila en '{worksheet}' rowId={row_id}")
        await self._request("DELETE", f"{self._rows_path(worksheet)}/{row_id}", headers=self._headers)

    async def get_worksheet_schema(self, worksheet: str) -> WorksheetSchema:
        data = await self._request("GET", f"/v3/app/worksheets/{worksheet}", headers=self._headers) or {}
        fields = [
            FieldSchema(
                field_id=str(f.get("id") or ""),
                name=str(f.get("name") or ""),
                type=f.get("type"),
                alias=str(f.get("alias") or ""),
                options=list(f.get("options") or []),
            )
            for f in data.get("fields") or []
        ]
        return WorksheetSchema(worksheet=worksheet, name=str(data.get("name") or ""), fields=fields)
