"""
Protocolo v2 de Mingdao (`/v2/open/worksheet/*`).

- Todas las llamadas son POST con appKey/sign dentro del body.
- Los valores de control viajan como string; listas y dicts se
  serializan a JSON.
- Los filtros son una lista plana de condiciones; la anidacion se
  expresa con isGroup/groupFilters.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from loguru import logger

from .client import RecordStoreClient
from .filters import Condition, Filter, FilterGroup, Logic, Operator, as_group
from .types import FieldSchema, PlatformRow, RowPage, WorksheetSchema


SPLICE_AND = 1
SPLICE_OR = 2

DATA_TYPE_TEXT = 2
DATA_TYPE_NUMBER = 6
DATA_TYPE_DATE = 15

# FilterType de getFilterRows v2, tal como lo acepta la API abierta de
# Mingdao: 1 igual, 11 rango, 13 contiene
FILTER_TYPE_EQ = 1
FILTER_TYPE_BETWEEN = 11
FILTER_TYPE_CONTAINS = 13

_SPLICE = {Logic.AND: SPLICE_AND, Logic.OR: SPLICE_OR}


def serialize_control_value(value: Any) -> str:
    """v2 solo acepta strings como valor de control."""
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def build_controls(fields: Dict[str, Any]) -> List[Dict[str, str]]:
    return [
        {"controlId": field_id, "value": serialize_control_value(value)}
        for field_id, value in fields.items()
    ]


def _data_type_for(value: Any) -> int:
    if isinstance(value, bool):
        return DATA_TYPE_TEXT
    if isinstance(value, (int, float)):
        return DATA_TYPE_NUMBER
    return DATA_TYPE_TEXT


def _translate_condition(condition: Condition, splice: int) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "controlId": condition.field_id,
        "spliceType": splice,
    }
    if condition.operator is Operator.EQ:
        item.update(
            dataType=_data_type_for(condition.value),
            filterType=FILTER_TYPE_EQ,
            value=serialize_control_value(condition.value),
        )
    elif condition.operator is Operator.CONTAINS:
        item.update(
            dataType=DATA_TYPE_TEXT,
            filterType=FILTER_TYPE_CONTAINS,
            value=serialize_control_value(condition.value),
        )
    elif condition.operator is Operator.BETWEEN:
        minimum, maximum = condition.value
        data_type = _data_type_for(minimum) if isinstance(minimum, (int, float)) else DATA_TYPE_DATE
        item.update(
            dataType=data_type,
            filterType=FILTER_TYPE_BETWEEN,
            minValue=serialize_control_value(minimum),
            maxValue=serialize_control_value(maximum),
        )
    elif condition.operator is Operator.IN:
        sample = condition.value[0] if condition.value else ""
        item.update(
            dataType=_data_type_for(sample),
            filterType=FILTER_TYPE_EQ,
            values=[serialize_control_value(v) for v in condition.value],
        )
    else:
        raise ValueError(f"Operador no soportado en v2: {condition.operator}")
    return item


def translate_filter(predicate: Optional[Filter]) -> List[Dict[str, Any]]:
    """
    Traduce el arbol canonico a la lista de filtros v2.

    Cada item se une al anterior segun su spliceType, que toma la logica
    del grupo que lo contiene.
    """
    root = as_group(predicate)
    return _translate_children(root)


def _translate_children(group: FilterGroup) -> List[Dict[str, Any]]:
    splice = _SPLICE[group.logic]
    items: List[Dict[str, Any]] = []
    for child in group.children:
        if isinstance(child, FilterGroup):
            items.append({
                "isGroup": True,
                "spliceType": splice,
                "groupFilters": _translate_children(child),
            })
        else:
            items.append(_translate_condition(child, splice))
    return items


def _parse_row(worksheet: str, raw: Dict[str, Any]) -> PlatformRow:
    return PlatformRow(row_id=str(raw.get("rowid") or ""), worksheet=worksheet, fields=dict(raw))


class MingdaoV2Client(RecordStoreClient):
    """Implementacion del contrato sobre `/v2/open/worksheet`."""

    protocol_version = "v2"

    def _body(self, worksheet: str, **extra: Any) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "appKey": self._app_key,
            "sign": self._sign,
            "worksheetId": worksheet,
        }
        body.update(extra)
        return body

    async def create_row(self, worksheet: str, fields: Dict[str, Any]) -> str:
        self._require_fields(fields)
        body = self._body(worksheet, controls=build_controls(fields), triggerWorkflow=True)
        logger.info(f"Mingdao v2 addRow en '{worksheet}' ({len(fields)} campos)")
        data = await self._request("POST", "/v2/open/worksheet/addRow", json=body)
        return str(data or "")

    async def get_row(self, worksheet: str, row_id: str) -> Optional[PlatformRow]:
        body = self._body(worksheet, rowId=row_id)
        data = await self._request("POST", "/v2/open/worksheet/getRowByIdPost", json=body)
        if not data:
            return None
        row = _parse_row(worksheet, data)
        if not row.row_id:
            row = PlatformRow(row_id=row_id, worksheet=worksheet, fields=row.fields)
        return row

    async def find_rows(
        self,
        worksheet: str,
        predicate: Optional[Filter] = None,
        *,
        page_size: int = 50,
        page_index: int = 1,
    ) -> RowPage:
        body = self._body(
            worksheet,
            pageSize=page_size,
            pageIndex=page_index,
            filters=translate_filter(predicate),
        )
        data = await self._request("POST", "/v2/open/worksheet/getFilterRows", json=body) or {}
        rows = [_parse_row(worksheet, raw) for raw in data.get("rows") or []]
        return RowPage(
            rows=rows,
            total=int(data.get("total") or 0),
            page_index=page_index,
            page_size=page_size,
        )

    async def update_row(self, worksheet: str, row_id: str, fields: Dict[str, Any]) -> None:
        self._require_fields(fields)
        body = self._body(
            worksheet,
            rowId=row_id,
            controls=build_controls(fields),
            triggerWorkflow=True,
        )
        logger.info(f"Mingdao v2 editRow en '{worksheet}' rowId={row_id} ({len(fields)} campos)")
        await self._request("POST", "/v2/open/worksheet/editRow", json=body)

    async def delete_row(self, worksheet: str, row_id: str) -> None:
        body = self._body(worksheet, rowId=row_id, triggerWorkflow=True)
        logger.info(f"Mingdao v2 deleteRow en '{worksheet}' rowId={row_id}")
        await self._request("POST", "/v2/open/worksheet/deleteRow", json=body)

    async def get_worksheet_schema(self, worksheet: str) -> WorksheetSchema:
        data = await self._request("POST", "/v2/open/worksheet/getWorksheetInfo", json=self._body(worksheet)) or {}
        fields = [
            FieldSchema(
                field_id=str(c.get("controlId") or ""),
                name=str(c.get("controlName") or ""),
                type=c.get("type"),
                alias=str(c.get("alias") or ""),
                options=list(c.get("options") or []),
            )
            for c in data.get("controls") or []
        ]
        return WorksheetSchema(worksheet=worksheet, name=str(data.get("name") or ""), fields=fields)
