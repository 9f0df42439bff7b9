from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel

from .http_client import HttpClient
from .models import ItemState
from .normalizers import unwrap_payload
from .observability import log_event, sdk_logger
from .ui_errors import ClassifiedError, classify

T = TypeVar("T")
Listener = Callable[[ItemState[Any]], None]


class SingleItemQueryController(Generic[T]):
    """Fetch-one counterpart of ``PaginatedQueryController``; fetches once per distinct path."""

    def __init__(
        self,
        http: HttpClient,
        resource_path: str,
        *,
        record_model: type[BaseModel] | None = None,
        logger: logging.Logger | None = None,
        locale: str | None = None,
    ) -> None:
        self.http = http
        self.resource_path = resource_path
        self.record_model = record_model
        self.logger = logger or sdk_logger("single_query")
        self.locale = locale or http.config.locale
        self._state: ItemState[T] = ItemState()
        self._epoch = 0
        self._fetched_path: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[Listener] = []
        self._closed = False

    @property
    def state(self) -> ItemState[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> ClassifiedError | None:
        return self._state.error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def start(self) -> asyncio.Task[None] | None:
        if self.resource_path == self._fetched_path:
            return None
        return self._dispatch()

    def set_resource_path(self, resource_path: str) -> asyncio.Task[None] | None:
        self.resource_path = resource_path
        return self.start()

    def refetch(self) -> asyncio.Task[None]:
        return self._dispatch()

    async def settle(self) -> None:
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        if self._task is not None and not self._task.cancelled():
            self._task.result()

    async def aclose(self) -> None:
        self._closed = True
        self._epoch += 1
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})
        self._state = dataclasses.replace(self._state, is_loading=False)
        self._listeners.clear()

    async def __aenter__(self) -> "SingleItemQueryController[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _dispatch(self) -> asyncio.Task[None]:
        if self._closed:
            raise RuntimeError("SingleItemQueryController is closed")
        self._fetched_path = self.resource_path
        self._epoch += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._update(is_loading=True, error=None)
        self._task = asyncio.create_task(self._fetch(self._epoch, self.resource_path))
        return self._task

    async def _fetch(self, epoch: int, path: str) -> None:
        outcome: dict[str, Any] = {}
        try:
            raw = await self.http.get(path)
            data = unwrap_payload(raw)
            if self.record_model is not None and data is not None:
                data = self.record_model.model_validate(data)
            outcome = {"data": data, "error": None}
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = classify(exc, locale=self.locale)
            outcome = {"data": None, "error": error}
            log_event(
                self.logger,
                "single_query",
                f"GET {path}",
                error.kind.value,
                error.trace_id,
                level=logging.WARNING,
                code=error.code,
            )
        finally:
            if epoch == self._epoch:
                self._update(is_loading=False, **outcome)

    def _update(self, **changes: Any) -> None:
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
