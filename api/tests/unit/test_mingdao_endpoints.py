"""
Tests del contrato HTTP de los endpoints de Mingdao y de sincronizacion.

Los casos de uso se reemplazan via dependency_overrides.
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.v1.dependencies.use_case_deps import (
    get_customer_binding_use_cases,
    get_directory_event_handlers,
    get_directory_sync_use_cases,
    get_incremental_sync_job,
)
from app.domain.entities.directory import PassSummary
from app.infrastructure.external.mingdao.types import FieldSchema, PlatformRow, RowPage
from app.shared.exceptions.domain import ConflictException, EntityNotFoundException


@pytest.fixture
def binding() -> AsyncMock:
    uc = AsyncMock()
    uc.generate_contact_qrcode.return_value = {"qr_code": "https://qr", "config_id": "cfg", "state": "mdy:x"}
    uc.handle_add_customer_callback = MagicMock(return_value=True)
    return uc


@pytest.fixture
def job() -> AsyncMock:
    j = AsyncMock()
    j.run.return_value = PassSummary(department_success=2, staff_success=3)
    return j


@pytest.fixture
def handlers() -> MagicMock:
    return MagicMock()


@pytest.fixture
def app_with_mocks(binding, job, handlers):
    from main import create_application

    app = create_application()
    sync = MagicMock()
    sync.is_enabled = False
    app.dependency_overrides[get_customer_binding_use_cases] = lambda: binding
    app.dependency_overrides[get_incremental_sync_job] = lambda: job
    app.dependency_overrides[get_directory_event_handlers] = lambda: handlers
    app.dependency_overrides[get_directory_sync_use_cases] = lambda: sync
    yield app
    app.dependency_overrides.clear()


async def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_qrcode(app_with_mocks, binding) -> None:
    async with await _client(app_with_mocks) as client:
        response = await client.get("/api/v1/mingdao/qrcode", params={"staff_id": "zs", "user_no": "row"})

    assert response.status_code == 200
    assert response.json()["config_id"] == "cfg"
    binding.generate_contact_qrcode.assert_awaited_once_with("zs", "row")


@pytest.mark.asyncio
async def test_bind_conflict_is_409(app_with_mocks, binding) -> None:
    binding.bind_customer.side_effect = ConflictException("r1", "wmEXT")

    async with await _client(app_with_mocks) as client:
        response = await client.post(
            "/api/v1/mingdao/customers/r1/bind",
            json={"external_user_id": "wmEXT", "staff_id": "zs"},
        )

    assert response.status_code == 409
    assert response.json()["error"] == "CUSTOMER_ALREADY_BOUND"


@pytest.mark.asyncio
async def test_change_binding_passes_rows(app_with_mocks, binding) -> None:
    async with await _client(app_with_mocks) as client:
        response = await client.post(
            "/api/v1/mingdao/customers/new/change-binding",
            json={"old_row_id": "old", "external_user_id": "wmEXT"},
        )

    assert response.status_code == 200
    binding.change_binding.assert_awaited_once_with("old", "new", "wmEXT", "")


@pytest.mark.asyncio
async def test_match(app_with_mocks, binding) -> None:
    binding.find_customer_by_external_user_id.return_value = PlatformRow("r9", "starclientinfo", {"a": 1})

    async with await _client(app_with_mocks) as client:
        response = await client.get("/api/v1/mingdao/customers/match", params={"external_user_id": "wmEXT"})

    assert response.json() == {"matched": True, "row_id": "r9", "fields": {"a": 1}}


@pytest.mark.asyncio
async def test_customer_search(app_with_mocks, binding) -> None:
    binding.search_customers.return_value = RowPage(
        rows=[PlatformRow("r1", "starclientinfo", {"phone": "13800001111"})],
        total=11,
        page_index=2,
        page_size=5,
    )

    async with await _client(app_with_mocks) as client:
        response = await client.get(
            "/api/v1/mingdao/customers/search",
            params={"keyword": "1380", "page_size": 5, "page_index": 2},
        )

    assert response.status_code == 200
    assert response.json() == {
        "items": [{"row_id": "r1", "fields": {"phone": "13800001111"}}],
        "total": 11,
        "page_index": 2,
        "page_size": 5,
    }
    binding.search_customers.assert_awaited_once_with("1380", 5, 2)


@pytest.mark.asyncio
async def test_customer_search_without_keyword_is_422(app_with_mocks, binding) -> None:
    async with await _client(app_with_mocks) as client:
        response = await client.get("/api/v1/mingdao/customers/search")

    assert response.status_code == 422
    binding.search_customers.assert_not_awaited()


@pytest.mark.asyncio
async def test_customer_fields(app_with_mocks, binding) -> None:
    binding.list_customer_fields.return_value = [FieldSchema("f1", "Telefono", type=2)]

    async with await _client(app_with_mocks) as client:
        response = await client.get("/api/v1/mingdao/customers/fields")

    assert response.json() == [{"field_id": "f1", "name": "Telefono", "type": 2, "alias": "", "options": []}]
    binding.get_customer.assert_not_awaited()


@pytest.mark.asyncio
async def test_customer_detail(app_with_mocks, binding) -> None:
    binding.get_customer.return_value = PlatformRow("r3", "starclientinfo", {"name": "Ana"})

    async with await _client(app_with_mocks) as client:
        response = await client.get("/api/v1/mingdao/customers/r3")

    assert response.json() == {"row_id": "r3", "fields": {"name": "Ana"}}
    binding.get_customer.assert_awaited_once_with("r3")


@pytest.mark.asyncio
async def test_missing_customer_is_404(app_with_mocks, binding) -> None:
    binding.get_customer.side_effect = EntityNotFoundException("Cliente", "nope")

    async with await _client(app_with_mocks) as client:
        response = await client.get("/api/v1/mingdao/customers/nope")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_callback(app_with_mocks, binding) -> None:
    async with await _client(app_with_mocks) as client:
        response = await client.post(
            "/api/v1/mingdao/callbacks/add-external-contact",
            json={"staff_id": "zs", "external_user_id": "wmEXT", "state": "mdy:x"},
        )

    assert response.json() == {"handled": True}
    event = binding.handle_add_customer_callback.call_args.args[0]
    assert event.state == "mdy:x"


@pytest.mark.asyncio
async def test_incremental_sync_returns_summary(app_with_mocks) -> None:
    async with await _client(app_with_mocks) as client:
        response = await client.post("/api/v1/directory-sync/incremental")

    data = response.json()
    assert data["executed"] is True
    assert data["staff_success"] == 3


@pytest.mark.asyncio
async def test_full_sync_disabled(app_with_mocks) -> None:
    async with await _client(app_with_mocks) as client:
        response = await client.post("/api/v1/directory-sync/full")

    assert response.status_code == 202
    assert response.json()["accepted"] is False


@pytest.mark.asyncio
async def test_directory_event_dispatch(app_with_mocks, handlers) -> None:
    async with await _client(app_with_mocks) as client:
        response = await client.post(
            "/api/v1/directory-sync/events",
            json={"kind": "department", "external_id": "1001", "action": "delete"},
        )

    assert response.status_code == 202
    handlers.on_department_changed.assert_called_once()
    handlers.on_staff_changed.assert_not_called()
