from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Mapping

QueryParams = Mapping[str, Any]

RESERVED_KEYS = ("page", "limit")


def clean_filters(filters: QueryParams | None) -> dict[str, Any]:
    return {key: value for key, value in (filters or {}).items() if value not in (None, "")}


def _to_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_params(filters: QueryParams | None, page: int, limit: int) -> dict[str, str]:
    params = {key: _to_param(value) for key, value in clean_filters(filters).items() if key not in RESERVED_KEYS}
    params["page"] = str(page)
    params["limit"] = str(limit)
    return params


def filters_key(filters: QueryParams | None) -> str:
    return json.dumps(clean_filters(filters), sort_keys=True, default=str)


def dependency_key(resource_path: str, filters: QueryParams | None, page: int, limit: int) -> str:
    return json.dumps(
        {"resource": resource_path, "filters": filters_key(filters), "page": page, "limit": limit},
        sort_keys=True,
    )


class Debouncer:
    """Runs the most recent callback after a quiet period; earlier ones are dropped."""

    def __init__(
        self,
        wait_ms: int = 500,
        sleeper: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self.wait_ms = max(0, wait_ms)
        self._sleep = sleeper or asyncio.sleep
        self._pending: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def call(self, callback: Callable[[], Any]) -> asyncio.Task[None]:
        self.cancel()
        self._pending = asyncio.create_task(self._run(callback))
        return self._pending

    async def _run(self, callback: Callable[[], Any]) -> None:
        if self.wait_ms:
            await self._sleep(self.wait_ms / 1000)
        result = callback()
        if asyncio.iscoroutine(result):
            await result

    async def wait(self) -> None:
        pending = self._pending
        if pending is None:
            return
        await asyncio.wait({pending})
        if not pending.cancelled():
            pending.result()

    def cancel(self) -> None:
        if self.pending:
            self._pending.cancel()
        self._pending = None
