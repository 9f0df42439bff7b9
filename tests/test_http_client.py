from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from pos_data_sdk.config import ClientConfig
from pos_data_sdk.exceptions import ConflictError, ServerError, SessionExpiredError, TransportError, ValidationError
from pos_data_sdk.http_client import HttpClient

BASE_URL = "https://pos.example.com"
API_ROOT = f"{BASE_URL}/api/v1"


@pytest.mark.asyncio
async def test_get_builds_versioned_url_with_params_and_auth(make_http) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1}], headers={"X-Trace-ID": "srv-1"})

    http = make_http(handler, token_provider=lambda: "jwt-token")

    payload = await http.get("/stores/simple", params={"status": "active", "page": "1", "limit": "10"})

    assert payload == [{"id": 1}]
    request = seen[0]
    assert str(request.url) == f"{API_ROOT}/stores/simple?status=active&page=1&limit=10"
    assert request.headers["Authorization"] == "Bearer jwt-token"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["X-Trace-ID"]
    assert http.trace.trace_id == "srv-1"
    assert http.trace.echoed_by_server is True
    assert http.last_operation.result == "success"


@pytest.mark.asyncio
async def test_write_sends_json_body(make_http) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"success": True, "data": {"id": 5}})

    http = make_http(handler)

    payload = await http.post("categories", {"name": "Cables"})

    assert payload == {"success": True, "data": {"id": 5}}
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/v1/categories"
    assert seen[0].headers["Content-Type"] == "application/json"
    assert json.loads(seen[0].content) == {"name": "Cables"}
    assert "Authorization" not in seen[0].headers


@pytest.mark.asyncio
async def test_empty_response_returns_none(make_http) -> None:
    http = make_http(lambda request: httpx.Response(204))

    assert await http.delete("/categories/5") is None


@pytest.mark.asyncio
async def test_non_2xx_raises_mapped_error(make_http) -> None:
    http = make_http(lambda request: httpx.Response(422, json={"message": "name required", "trace_id": "t-422"}))

    with pytest.raises(ValidationError) as exc_info:
        await http.post("/categories", {"name": ""})

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "name required"
    assert exc_info.value.trace_id == "t-422"


@pytest.mark.asyncio
async def test_plain_text_error_body(make_http) -> None:
    http = make_http(lambda request: httpx.Response(502, text="Bad gateway"))

    with pytest.raises(ServerError) as exc_info:
        await http.get("/sales")

    assert exc_info.value.message == "Bad gateway"


@pytest.mark.asyncio
async def test_auth_error_handler_runs_before_raise(make_http) -> None:
    expired: list[int] = []
    http = make_http(lambda request: httpx.Response(401, json={"message": "expired"}))
    http.register_auth_error_handler(lambda error: expired.append(error.status_code))

    with pytest.raises(SessionExpiredError):
        await http.get("/users")

    assert expired == [401]


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error(make_http) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    http = make_http(handler)

    with pytest.raises(TransportError) as exc_info:
        await http.get("/sales")

    assert exc_info.value.status_code == 0
    assert exc_info.value.code == "NETWORK_ERROR"
    assert exc_info.value.has_response is False


@pytest.mark.asyncio
async def test_timeout_raises_transport_error(make_http) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    http = make_http(handler)

    with pytest.raises(TransportError) as exc_info:
        await http.get("/sales")

    assert exc_info.value.code == "TIMEOUT_ERROR"


@pytest.mark.asyncio
async def test_get_retries_on_5xx_and_transport_errors(config) -> None:
    calls = {"count": 0}
    sleeps: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            raise httpx.ReadTimeout("timeout", request=request)
        if calls["count"] == 2:
            return httpx.Response(503, json={"message": "down"})
        return httpx.Response(200, json={"ok": True})

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    cfg = ClientConfig(env_name="test", api_base_url=BASE_URL, retries=2, retry_backoff_seconds=0.1)
    http = HttpClient(cfg, transport=httpx.MockTransport(handler), sleeper=_sleep)

    payload = await http.get("/health")

    assert payload == {"ok": True}
    assert calls["count"] == 3
    assert sleeps == [0.1, 0.2]


@pytest.mark.asyncio
async def test_writes_are_never_retried(config) -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(500, json={"message": "boom"})

    cfg = ClientConfig(env_name="test", api_base_url=BASE_URL, retries=3, retry_backoff_seconds=0)
    http = HttpClient(cfg, transport=httpx.MockTransport(handler))

    with pytest.raises(ServerError):
        await http.put("/products/1", {"price": 10})

    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_overlapping_requests_keep_their_own_trace_ids(make_http, until) -> None:
    sent: dict[str, str] = {}
    release_orders = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        sent[request.url.path] = request.headers["X-Trace-ID"]
        if request.url.path.endswith("/orders"):
            await release_orders.wait()
            return httpx.Response(500, json={"message": "db down"})
        return httpx.Response(200, json=[])

    http = make_http(handler)

    orders = asyncio.create_task(http.get("/orders"))
    await until(lambda: "/api/v1/orders" in sent)
    assert await http.get("/stores") == []
    release_orders.set()

    with pytest.raises(ServerError) as exc_info:
        await orders

    assert sent["/api/v1/orders"] != sent["/api/v1/stores"]
    assert exc_info.value.trace_id == sent["/api/v1/orders"]
    assert http.trace.issued_id == sent["/api/v1/orders"]
    assert http.trace.echoed_by_server is False


@pytest.mark.asyncio
async def test_payload_meta_trace_id_is_adopted(make_http) -> None:
    http = make_http(lambda request: httpx.Response(409, json={"message": "dup", "meta": {"traceId": "srv-9"}}))

    with pytest.raises(ConflictError) as exc_info:
        await http.post("/products", {"sku": "A-1"})

    assert exc_info.value.trace_id == "srv-9"
    assert http.trace.trace_id == "srv-9"


@pytest.mark.asyncio
async def test_non_json_success_body_is_treated_as_no_data(make_http) -> None:
    http = make_http(lambda request: httpx.Response(200, text="<html>ok</html>"))

    assert await http.get("/stores/simple") is None
    assert http.last_operation.result == "success"
