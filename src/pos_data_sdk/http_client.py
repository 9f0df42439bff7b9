from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import ApiError, TransportError
from .observability import log_event, sdk_logger
from .tracing import TRACE_HEADER, TraceContext, new_trace_id, trace_id_from_headers

TokenProvider = Callable[[], str | None]
AuthErrorHandler = Callable[[ApiError], None]

JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


@dataclass
class LastOperation:
    method: str
    path: str
    duration_ms: int
    result: str
    trace_id: str | None


class HttpClient:
    """Authenticated async transport shared by the query and mutation controllers.

    Non-2xx responses raise the ``ApiError`` subclass chosen by ``map_error``;
    failures with no HTTP response at all (connection errors, timeouts) raise
    ``TransportError`` with ``status_code == 0``. Only GET requests are retried.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        token_provider: TokenProvider | None = None,
        trace: TraceContext | None = None,
        logger: logging.Logger | None = None,
        sleeper: Callable[[float], Any] | None = None,
    ) -> None:
        self.config = config
        self.trace = trace or TraceContext()
        self.token_provider = token_provider
        self.logger = logger or sdk_logger("http")
        self.last_operation: LastOperation | None = None
        self._sleep = sleeper or asyncio.sleep
        self._auth_error_handler: AuthErrorHandler | None = None
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.api_root_url,
            timeout=httpx.Timeout(config.read_timeout_seconds, connect=config.connect_timeout_seconds),
            limits=httpx.Limits(max_connections=config.max_connections),
            verify=config.verify_ssl,
            transport=transport,
        )

    def register_auth_error_handler(self, handler: AuthErrorHandler | None) -> None:
        self._auth_error_handler = handler

    async def get(self, path: str, params: dict[str, str] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, json_body=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request("PUT", path, json_body=body)

    async def patch(self, path: str, body: Any = None) -> Any:
        return await self.request("PATCH", path, json_body=body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        normalized_method = method.upper()
        normalized_path = path if path.startswith("/") else f"/{path}"
        request_headers = dict(JSON_HEADERS)
        token = self.token_provider() if self.token_provider else None
        if token:
            request_headers["Authorization"] = f"Bearer {token}"
        if headers:
            request_headers.update(headers)
        issued_id = new_trace_id()
        request_headers[TRACE_HEADER] = issued_id

        attempts = self.config.retries + 1 if normalized_method == "GET" else 1
        started = time.monotonic()
        for attempt in range(attempts):
            last_attempt = attempt >= attempts - 1
            try:
                response = await self._client.request(
                    normalized_method,
                    normalized_path,
                    json=json_body,
                    params=params,
                    headers=request_headers,
                )
            except httpx.TransportError as exc:
                failure = _transport_failure(exc, issued_id)
                if last_attempt or not failure.retryable:
                    self._finish(
                        normalized_method, normalized_path, started, failure.code.lower(), issued_id, issued_id
                    )
                    raise failure from exc
            else:
                trace_id = trace_id_from_headers(response.headers) or issued_id
                if response.is_success:
                    self._finish(normalized_method, normalized_path, started, "success", issued_id, trace_id)
                    return _success_payload(response)
                payload = _safe_error_payload(response)
                error = map_error(response.status_code, payload, trace_id)
                if last_attempt or not error.retryable:
                    self._finish(normalized_method, normalized_path, started, "error", issued_id, error.trace_id)
                    if error.status_code == 401 and self._auth_error_handler:
                        self._auth_error_handler(error)
                    raise error
            await self._sleep(self.config.retry_backoff_seconds * (2**attempt))
        raise RuntimeError("HTTP request finished without a response")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _finish(
        self, method: str, path: str, started: float, result: str, issued_id: str, trace_id: str | None
    ) -> None:
        self.trace.record(issued_id, trace_id or issued_id)
        self.last_operation = LastOperation(
            method=method,
            path=path,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=trace_id,
        )
        log_event(
            self.logger,
            "http",
            f"{method} {path}",
            result,
            trace_id,
            level=logging.DEBUG,
            duration_ms=self.last_operation.duration_ms,
        )


def _safe_error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except (json.JSONDecodeError, ValueError):
        return {"message": response.text} if response.text else {}
    if isinstance(payload, dict):
        return payload
    return {"details": payload}


def _transport_failure(exc: httpx.TransportError, trace_id: str) -> TransportError:
    if isinstance(exc, httpx.TimeoutException):
        code, message = "TIMEOUT_ERROR", "The server took too long to respond"
    else:
        code, message = "NETWORK_ERROR", str(exc) or "Network error"
    return TransportError(
        code=code,
        message=message,
        status_code=0,
        details={"type": type(exc).__name__},
        trace_id=trace_id,
    )


def _success_payload(response: httpx.Response) -> Any:
    # An HTML fallback page or other non-JSON 2xx body counts as "no data".
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
