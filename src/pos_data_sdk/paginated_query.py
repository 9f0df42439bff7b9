from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from pydantic import BaseModel

from .filters import Debouncer, QueryParams, build_query_params, clean_filters, dependency_key, filters_key
from .http_client import HttpClient
from .models import PaginationMeta, QueryState
from .normalizers import normalize_envelope
from .observability import log_event, sdk_logger
from .ui_errors import ClassifiedError, classify

T = TypeVar("T")
Listener = Callable[[QueryState[Any]], None]


class PaginatedQueryController(Generic[T]):
    """Owns page/limit/filter state for one collection endpoint.

    Any change to the resource path, the cleaned filters, the page or the
    limit dispatches a fetch. Every fetch carries an epoch; only the latest
    epoch may write state, so a slow response for page 2 can never
    overwrite page 3. Superseded requests are also cancelled unless
    ``cancel_superseded`` is False.

    Must be driven from a running event loop.
    """

    def __init__(
        self,
        http: HttpClient,
        resource_path: str,
        filters: QueryParams | None = None,
        *,
        page: int = 1,
        limit: int | None = None,
        debounce_ms: int | None = None,
        cancel_superseded: bool = True,
        record_model: type[BaseModel] | None = None,
        logger: logging.Logger | None = None,
        locale: str | None = None,
        sleeper: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        config = http.config
        self.http = http
        self.resource_path = resource_path
        self.cancel_superseded = cancel_superseded
        self.record_model = record_model
        self.logger = logger or sdk_logger("paginated_query")
        self.locale = locale or config.locale
        self._filters = clean_filters(filters)
        self._page = max(1, int(page))
        self._limit = max(1, int(limit or config.default_page_size))
        self._debouncer = Debouncer(
            config.search_debounce_ms if debounce_ms is None else debounce_ms,
            sleeper=sleeper,
        )
        self._state: QueryState[T] = QueryState(page=self._page, limit=self._limit)
        self._epoch = 0
        self._last_key: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()
        self._listeners: list[Listener] = []
        self._closed = False

    @property
    def state(self) -> QueryState[T]:
        return self._state

    @property
    def records(self) -> Sequence[T]:
        return self._state.records

    @property
    def pagination(self) -> PaginationMeta | None:
        return self._state.pagination

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> ClassifiedError | None:
        return self._state.error

    @property
    def page(self) -> int:
        return self._page

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    @property
    def epoch(self) -> int:
        return self._epoch

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def start(self) -> asyncio.Task[None] | None:
        return self._maybe_fetch()

    def set_page(self, page: int) -> asyncio.Task[None] | None:
        self._page = max(1, int(page))
        return self._maybe_fetch()

    def next_page(self) -> asyncio.Task[None] | None:
        """Advance one page unless the last response says this is the last one."""
        meta = self._state.pagination
        if meta is not None and not meta.has_next:
            return None
        return self.set_page(self._page + 1)

    def prev_page(self) -> asyncio.Task[None] | None:
        return self.set_page(self._page - 1)

    def set_limit(self, limit: int) -> asyncio.Task[None] | None:
        """Change the page size; the page resets to 1 so it stays in range."""
        self._limit = max(1, int(limit))
        self._page = 1
        return self._maybe_fetch()

    def set_filters(self, filters: QueryParams | None, *, debounce: bool = False) -> asyncio.Task[Any] | None:
        """Replace the filters; free-text edits should pass ``debounce=True``."""
        if debounce:
            return self._debouncer.call(lambda: self._apply_filters(filters))
        self._debouncer.cancel()
        return self._apply_filters(filters)

    def set_resource_path(self, resource_path: str) -> asyncio.Task[None] | None:
        self.resource_path = resource_path
        return self._maybe_fetch()

    def refetch(self) -> asyncio.Task[None]:
        return self._dispatch()

    async def settle(self) -> None:
        """Wait until no debounced change or fetch is outstanding."""
        await self._debouncer.wait()
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        if self._task is not None and not self._task.cancelled():
            self._task.result()

    async def aclose(self) -> None:
        self._closed = True
        self._epoch += 1
        self._debouncer.cancel()
        pending = [task for task in self._inflight if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
        self._state = dataclasses.replace(self._state, is_loading=False)
        self._listeners.clear()

    async def __aenter__(self) -> "PaginatedQueryController[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _apply_filters(self, filters: QueryParams | None) -> asyncio.Task[None] | None:
        if filters_key(filters) != filters_key(self._filters):
            self._filters = clean_filters(filters)
        return self._maybe_fetch()

    def _current_key(self) -> str:
        return dependency_key(self.resource_path, self._filters, self._page, self._limit)

    def _maybe_fetch(self) -> asyncio.Task[None] | None:
        if self._current_key() == self._last_key:
            return None
        return self._dispatch()

    def _dispatch(self) -> asyncio.Task[None]:
        if self._closed:
            raise RuntimeError("PaginatedQueryController is closed")
        self._last_key = self._current_key()
        self._epoch += 1
        epoch = self._epoch
        if self.cancel_superseded:
            for task in self._inflight:
                if not task.done():
                    task.cancel()
        page, limit = self._page, self._limit
        params = build_query_params(self._filters, page, limit)
        self._update(is_loading=True, error=None, page=page, limit=limit)
        task = asyncio.create_task(self._fetch(epoch, self.resource_path, params, page, limit))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        self._task = task
        return task

    async def _fetch(self, epoch: int, path: str, params: dict[str, str], page: int, limit: int) -> None:
        outcome: dict[str, Any] = {}
        try:
            raw = await self.http.get(path, params=params)
            listing = normalize_envelope(raw, page=page, limit=limit)
            records = self._parse_records(listing.records)
            outcome = {"records": records, "pagination": listing.pagination, "error": None}
            log_event(
                self.logger,
                "paginated_query",
                f"GET {path}",
                "success",
                level=logging.DEBUG,
                epoch=epoch,
                shape=listing.shape,
            )
        except asyncio.CancelledError:
            log_event(self.logger, "paginated_query", f"GET {path}", "cancelled", level=logging.DEBUG, epoch=epoch)
            raise
        except Exception as exc:
            error = classify(exc, locale=self.locale)
            outcome = {"records": [], "pagination": None, "error": error}
            log_event(
                self.logger,
                "paginated_query",
                f"GET {path}",
                error.kind.value,
                error.trace_id,
                level=logging.WARNING,
                epoch=epoch,
                page=page,
                code=error.code,
            )
        finally:
            if epoch == self._epoch:
                self._update(is_loading=False, **outcome)
            elif outcome:
                log_event(self.logger, "paginated_query", f"GET {path}", "discarded", level=logging.DEBUG, epoch=epoch)

    def _parse_records(self, records: list[Any]) -> list[Any]:
        if self.record_model is None:
            return records
        return [self.record_model.model_validate(record) for record in records]

    def _update(self, **changes: Any) -> None:
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
