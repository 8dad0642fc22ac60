"""
Tests de las dos generaciones de protocolo de Mingdao usando
httpx.MockTransport (sin red).
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from app.infrastructure.external.mingdao import filters as f
from app.infrastructure.external.mingdao.client import build_record_store_client
from app.infrastructure.external.mingdao.errors import (
    ConfigurationError,
    MappingError,
    ProviderError,
    TransportError,
)
from app.infrastructure.external.mingdao.protocol_v2 import MingdaoV2Client
from app.infrastructure.external.mingdao.protocol_v2 import translate_filter as translate_v2
from app.infrastructure.external.mingdao.protocol_v3 import MingdaoV3Client
from app.infrastructure.external.mingdao.protocol_v3 import translate_filter as translate_v3


BASE = "https://md.test"


def _client(cls, handler: Callable[[httpx.Request], httpx.Response]):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return cls(api_base=BASE, app_key="key", sign="sig", http_client=http)


def _ok(data: Any) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "error_code": 1, "data": data})


class _Recorder:
    def __init__(self, response: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []
        self._response = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._response(request)

    def body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


class TestClientConstruction:
    def test_missing_credentials_fail_fast(self) -> None:
        with pytest.raises(ConfigurationError):
            MingdaoV2Client(api_base=BASE, app_key="", sign="sig")

    def test_builder_picks_protocol_from_config(self) -> None:
        class _Cfg:
            MINGDAO_API_BASE = BASE
            MINGDAO_APP_KEY = "key"
            MINGDAO_SIGN = "sig"
            MINGDAO_TIMEOUT_SECONDS = 5.0
            MINGDAO_API_VERSION = "v3"

        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: _ok(None)))
        assert isinstance(build_record_store_client(_Cfg, http_client=http), MingdaoV3Client)

        _Cfg.MINGDAO_API_VERSION = "v2"
        assert isinstance(build_record_store_client(_Cfg, http_client=http), MingdaoV2Client)

        _Cfg.MINGDAO_API_VERSION = "v9"
        with pytest.raises(ConfigurationError):
            build_record_store_client(_Cfg, http_client=http)


class TestProtocolV2:
    @pytest.mark.asyncio
    async def test_create_row_sends_credentials_in_body_and_string_values(self) -> None:
        rec = _Recorder(lambda r: _ok("row-1"))
        client = _client(MingdaoV2Client, rec)

        row_id = await client.create_row("stardeptinfo", {"name": "Sales", "dep": ["r1", "r2"]})

        assert row_id == "row-1"
        request = rec.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v2/open/worksheet/addRow"
        body = rec.body()
        assert body["appKey"] == "key"
        assert body["sign"] == "sig"
        assert body["worksheetId"] == "stardeptinfo"
        assert body["controls"] == [
            {"controlId": "name", "value": "Sales"},
            {"controlId": "dep", "value": '["r1", "r2"]'},
        ]

    @pytest.mark.asyncio
    async def test_find_rows_translates_filter_and_paginates(self) -> None:
        rec = _Recorder(lambda r: _ok({"rows": [{"rowid": "a", "x": "1"}], "total": 3}))
        client = _client(MingdaoV2Client, rec)

        page = await client.find_rows("ws", f.eq("x", "1"), page_size=1, page_index=2)

        assert rec.requests[0].url.path == "/v2/open/worksheet/getFilterRows"
        body = rec.body()
        assert body["pageSize"] == 1
        assert body["pageIndex"] == 2
        assert body["filters"] == [
            {"controlId": "x", "spliceType": 1, "dataType": 2, "filterType": 1, "value": "1"}
        ]
        assert page.rows[0].row_id == "a"
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_provider_error_carries_code(self) -> None:
        client = _client(
            MingdaoV2Client,
            lambda r: httpx.Response(200, json={"success": False, "error_code": 10007, "error_msg": "bad"}),
        )

        with pytest.raises(ProviderError) as info:
            await client.update_row("ws", "row-1", {"a": "b"})

        assert info.value.code == 10007
        assert info.value.retryable is False

    @pytest.mark.asyncio
    async def test_transport_failure_is_retryable(self) -> None:
        def _boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(MingdaoV2Client, _boom)

        with pytest.raises(TransportError) as info:
            await client.delete_row("ws", "row-1")

        assert info.value.retryable is True

    @pytest.mark.asyncio
    async def test_empty_field_set_never_hits_network(self) -> None:
        rec = _Recorder(lambda r: _ok("x"))
        client = _client(MingdaoV2Client, rec)

        with pytest.raises(MappingError):
            await client.create_row("ws", {})

        assert rec.requests == []

    @pytest.mark.asyncio
    async def test_iter_rows_walks_all_pages(self) -> None:
        pages = {
            1: {"rows": [{"rowid": "a"}, {"rowid": "b"}], "total": 3},
            2: {"rows": [{"rowid": "c"}], "total": 3},
        }
        client = _client(MingdaoV2Client, lambda r: _ok(pages[json.loads(r.content)["pageIndex"]]))

        ids = [row.row_id async for row in client.iter_rows("ws", page_size=2)]

        assert ids == ["a", "b", "c"]

    def test_translate_nested_groups(self) -> None:
        predicate = f.and_(
            f.contains("name", "Sal"),
            f.or_(f.eq("n", 5), f.between("d", "2024-01-01", "2024-02-01")),
            f.in_("s", "a", "b"),
        )

        items = translate_v2(predicate)

        assert items[0]["filterType"] == 13
        assert items[1]["isGroup"] is True
        group = items[1]["groupFilters"]
        assert group[0]["spliceType"] == 2
        assert group[0]["dataType"] == 6
        assert group[0]["filterType"] == 1
        assert group[1]["filterType"] == 11
        assert group[1]["minValue"] == "2024-01-01"
        assert group[1]["dataType"] == 15
        assert items[2]["values"] == ["a", "b"]


class TestProtocolV3:
    @pytest.mark.asyncio
    async def test_create_row_uses_headers_and_native_values(self) -> None:
        rec = _Recorder(lambda r: _ok({"id": "row-9"}))
        client = _client(MingdaoV3Client, rec)

        row_id = await client.create_row("starstaffinfo", {"dep": ["r1"]})

        assert row_id == "row-9"
        request = rec.requests[0]
        assert request.url.path == "/v3/app/worksheets/starstaffinfo/rows"
        assert request.headers["HAP-Appkey"] == "key"
        assert request.headers["HAP-Sign"] == "sig"
        body = rec.body()
        assert "appKey" not in body
        assert body["fields"] == [{"id": "dep", "value": ["r1"]}]

    @pytest.mark.asyncio
    async def test_update_and_delete_use_rest_verbs(self) -> None:
        rec = _Recorder(lambda r: _ok(None))
        client = _client(MingdaoV3Client, rec)

        await client.update_row("ws", "r1", {"a": "b"})
        await client.delete_row("ws", "r1")

        assert [(r.method, r.url.path) for r in rec.requests] == [
            ("PATCH", "/v3/app/worksheets/ws/rows/r1"),
            ("DELETE", "/v3/app/worksheets/ws/rows/r1"),
        ]

    @pytest.mark.asyncio
    async def test_http_4xx_is_permanent(self) -> None:
        client = _client(
            MingdaoV3Client,
            lambda r: httpx.Response(400, json={"success": False, "error_code": 0, "error_msg": "invalid"}),
        )

        with pytest.raises(ProviderError) as info:
            await client.get_row("ws", "r1")

        assert info.value.http_status == 400
        assert info.value.retryable is False

    @pytest.mark.asyncio
    async def test_http_429_is_retryable(self) -> None:
        client = _client(MingdaoV3Client, lambda r: httpx.Response(429, json={"success": False}))

        with pytest.raises(ProviderError) as info:
            await client.find_rows("ws")

        assert info.value.retryable is True

    @pytest.mark.asyncio
    async def test_schema_introspection(self) -> None:
        data = {"name": "Staff", "fields": [{"id": "f1", "name": "Nombre", "type": 2, "alias": "wecom_username"}]}
        client = _client(MingdaoV3Client, lambda r: _ok(data))

        schema = await client.get_worksheet_schema("starstaffinfo")

        assert schema.has_field("f1")
        assert schema.has_field("wecom_username")
        assert not schema.has_field("missing")

    def test_translate_filter_tree(self) -> None:
        tree = translate_v3(f.or_(f.eq("a", 1), f.in_("b", "x", "y")))

        assert tree == {
            "type": "group",
            "logic": "OR",
            "children": [
                {"type": "condition", "field": "a", "operator": "eq", "value": [1]},
                {"type": "condition", "field": "b", "operator": "in", "value": ["x", "y"]},
            ],
        }
        assert translate_v3(None) is None
