"""
Configuración de fixtures para pytest.

Incluye dobles en memoria de Mingdao y del almacen clave-valor para
testear la sincronizacion sin red.
"""
from __future__ import annotations

import itertools
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.infrastructure.database.session import Base
from app.infrastructure.external.mingdao.client import RecordStoreClient
from app.infrastructure.external.mingdao.errors import ProviderError
from app.infrastructure.external.mingdao.filters import Filter, FilterGroup, Logic, Operator
from app.infrastructure.external.mingdao.types import FieldSchema, PlatformRow, RowPage, WorksheetSchema
from app.infrastructure.kv.redis_store import KeyValueStore


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture que proporciona una sesión de base de datos para tests.
    Crea una base de datos en memoria para cada test.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session

    await engine.dispose()


def _matches(predicate: Optional[Filter], fields: Dict[str, Any]) -> bool:
    """Evalua un predicado canonico contra los campos de una fila en memoria."""
    if predicate is None:
        return True
    if isinstance(predicate, FilterGroup):
        if not predicate.children:
            return True
        results = (_matches(child, fields) for child in predicate.children)
        return all(results) if predicate.logic is Logic.AND else any(results)

    actual = fields.get(predicate.field_id)
    if predicate.operator is Operator.EQ:
        return actual == predicate.value
    if predicate.operator is Operator.CONTAINS:
        return actual is not None and str(predicate.value) in str(actual)
    if predicate.operator is Operator.BETWEEN:
        minimum, maximum = predicate.value
        return actual is not None and minimum <= actual <= maximum
    if predicate.operator is Operator.IN:
        return actual in predicate.value
    raise ValueError(f"Operador no soportado: {predicate.operator}")


class InMemoryRecordStore(RecordStoreClient):
    """
    Doble de Mingdao: hojas como dicts y registro de todas las llamadas.

    `failures[metodo]` es una cola de excepciones que se lanzan antes de
    ejecutar las siguientes llamadas a ese metodo.
    """

    protocol_version = "memory"

    def __init__(self) -> None:
        self.sheets: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, str, Any]] = []
        self.failures: Dict[str, List[Exception]] = {}
        self.schemas: Dict[str, WorksheetSchema] = {}
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        return None

    def _maybe_fail(self, method: str) -> None:
        queue = self.failures.get(method)
        if queue:
            raise queue.pop(0)

    def calls_of(self, method: str, worksheet: Optional[str] = None) -> List[Tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] == method and (worksheet is None or c[1] == worksheet)]

    def add_row(self, worksheet: str, fields: Dict[str, Any], row_id: Optional[str] = None) -> str:
        row_id = row_id or f"row-{next(self._ids)}"
        self.sheets.setdefault(worksheet, {})[row_id] = dict(fields)
        return row_id

    async def create_row(self, worksheet: str, fields: Dict[str, Any]) -> str:
        self.calls.append(("create", worksheet, dict(fields)))
        self._maybe_fail("create")
        self._require_fields(fields)
        return self.add_row(worksheet, fields)

    async def get_row(self, worksheet: str, row_id: str) -> Optional[PlatformRow]:
        self.calls.append(("get", worksheet, row_id))
        self._maybe_fail("get")
        fields = self.sheets.get(worksheet, {}).get(row_id)
        if fields is None:
            return None
        return PlatformRow(row_id=row_id, worksheet=worksheet, fields=dict(fields))

    async def find_rows(
        self,
        worksheet: str,
        predicate: Optional[Filter] = None,
        *,
        page_size: int = 50,
        page_index: int = 1,
    ) -> RowPage:
        self.calls.append(("find", worksheet, predicate))
        self._maybe_fail("find")
        rows = [
            PlatformRow(row_id=rid, worksheet=worksheet, fields=dict(f))
            for rid, f in self.sheets.get(worksheet, {}).items()
            if _matches(predicate, f)
        ]
        start = (page_index - 1) * page_size
        return RowPage(
            rows=rows[start:start + page_size],
            total=len(rows),
            page_index=page_index,
            page_size=page_size,
        )

    async def update_row(self, worksheet: str, row_id: str, fields: Dict[str, Any]) -> None:
        self.calls.append(("update", worksheet, (row_id, dict(fields))))
        self._maybe_fail("update")
        self._require_fields(fields)
        sheet = self.sheets.get(worksheet, {})
        if row_id not in sheet:
            raise ProviderError("row not found", code=10007)
        sheet[row_id].update(fields)

    async def delete_row(self, worksheet: str, row_id: str) -> None:
        self.calls.append(("delete", worksheet, row_id))
        self._maybe_fail("delete")
        self.sheets.get(worksheet, {}).pop(row_id, None)

    async def get_worksheet_schema(self, worksheet: str) -> WorksheetSchema:
        self.calls.append(("schema", worksheet, None))
        self._maybe_fail("schema")
        if worksheet in self.schemas:
            return self.schemas[worksheet]
        ids = sorted({k for f in self.sheets.get(worksheet, {}).values() for k in f})
        return WorksheetSchema(worksheet=worksheet, name=worksheet, fields=[FieldSchema(i, i) for i in ids])


class InMemoryKeyValueStore(KeyValueStore):
    """Doble del almacen clave-valor (sin expiracion real)."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key, value, *, ttl_seconds=None, only_if_absent=False) -> bool:
        if only_if_absent and key in self.data:
            return False
        self.data[key] = value
        self.ttls[key] = ttl_seconds
        return True

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)
        self.ttls.pop(key, None)


class SleepRecorder:
    """Reemplazo de asyncio.sleep que solo anota las esperas."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
