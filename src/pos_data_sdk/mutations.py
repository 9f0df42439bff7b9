from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Generator, Generic, Mapping, TypeVar
from urllib.parse import quote

from pydantic import BaseModel

from .http_client import HttpClient
from .models import MutationResult, MutationState
from .observability import log_event, sdk_logger
from .ui_errors import classify, rejected

T = TypeVar("T")


class MutationMethod(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    PATCH = "patch"
    DELETE = "delete"


HTTP_VERBS = {
    MutationMethod.CREATE: "POST",
    MutationMethod.UPDATE: "PUT",
    MutationMethod.PATCH: "PATCH",
    MutationMethod.DELETE: "DELETE",
}

_VERB_ALIASES = {
    "post": MutationMethod.CREATE,
    "put": MutationMethod.UPDATE,
}


def resolve_method(method: MutationMethod | str) -> MutationMethod:
    if isinstance(method, MutationMethod):
        return method
    if isinstance(method, str):
        key = method.strip().lower()
        if key in _VERB_ALIASES:
            return _VERB_ALIASES[key]
        try:
            return MutationMethod(key)
        except ValueError:
            pass
    raise ValueError(f"Unsupported mutation method: {method!r}")


def item_path(resource_path: str, item_id: str | int | None) -> str:
    if item_id is None:
        return resource_path
    return f"{resource_path.rstrip('/')}/{quote(str(item_id), safe='')}"


class MutationCall(Generic[T]):
    """One in-flight write. Await it for the ``MutationResult``."""

    def __init__(self, method: MutationMethod, path: str) -> None:
        self.method = method
        self.path = path
        self.state = MutationState()
        self._task: asyncio.Task[MutationResult[T]] | None = None

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()

    def __await__(self) -> Generator[Any, None, MutationResult[T]]:
        if self._task is None:
            raise RuntimeError("MutationCall was never started")
        return self._task.__await__()


class MutationExecutor:
    """Create/update/delete primitive shared by every form and row action.

    Each ``submit`` gets its own ``MutationState``; ``state`` reflects the most
    recently started call, the way a single form would observe it.
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        logger: logging.Logger | None = None,
        locale: str | None = None,
    ) -> None:
        self.http = http
        self.logger = logger or sdk_logger("mutations")
        self.locale = locale or http.config.locale
        self._latest: MutationCall[Any] | None = None

    @property
    def state(self) -> MutationState:
        if self._latest is None:
            return MutationState()
        return self._latest.state

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    def submit(
        self,
        resource_path: str,
        method: MutationMethod | str = MutationMethod.CREATE,
        body: Mapping[str, Any] | None = None,
        *,
        item_id: str | int | None = None,
        result_model: type[BaseModel] | None = None,
    ) -> MutationCall[Any]:
        resolved = resolve_method(method)
        call: MutationCall[Any] = MutationCall(resolved, item_path(resource_path, item_id))
        call.state = MutationState(is_loading=True)
        call._task = asyncio.create_task(self._execute(call, body, result_model))
        self._latest = call
        return call

    async def mutate(
        self,
        resource_path: str,
        method: MutationMethod | str = MutationMethod.CREATE,
        body: Mapping[str, Any] | None = None,
        *,
        item_id: str | int | None = None,
        result_model: type[BaseModel] | None = None,
    ) -> MutationResult[Any]:
        return await self.submit(resource_path, method, body, item_id=item_id, result_model=result_model)

    async def create(self, resource_path: str, body: Mapping[str, Any], **kwargs: Any) -> MutationResult[Any]:
        return await self.mutate(resource_path, MutationMethod.CREATE, body, **kwargs)

    async def update(
        self, resource_path: str, body: Mapping[str, Any], *, item_id: str | int | None = None, **kwargs: Any
    ) -> MutationResult[Any]:
        return await self.mutate(resource_path, MutationMethod.UPDATE, body, item_id=item_id, **kwargs)

    async def patch(
        self, resource_path: str, body: Mapping[str, Any], *, item_id: str | int | None = None, **kwargs: Any
    ) -> MutationResult[Any]:
        return await self.mutate(resource_path, MutationMethod.PATCH, body, item_id=item_id, **kwargs)

    async def delete(self, resource_path: str, *, item_id: str | int | None = None) -> MutationResult[bool]:
        return await self.mutate(resource_path, MutationMethod.DELETE, item_id=item_id)

    async def _execute(
        self,
        call: MutationCall[Any],
        body: Mapping[str, Any] | None,
        result_model: type[BaseModel] | None,
    ) -> MutationResult[Any]:
        verb = HTTP_VERBS[call.method]
        result: MutationResult[Any] = MutationResult()
        try:
            raw = await self.http.request(
                verb,
                call.path,
                json_body=dict(body) if body is not None else None,
            )
            result = self._unwrap(raw, call.method, result_model)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            result = MutationResult(error=classify(exc, mutation=True, locale=self.locale))
        finally:
            call.state = MutationState(is_loading=False, error=result.error)

        outcome = "success" if result.ok else result.error.kind.value
        log_event(
            self.logger,
            "mutations",
            f"{verb} {call.path}",
            outcome,
            result.error.trace_id if result.error else None,
            level=logging.INFO if result.ok else logging.WARNING,
            code=result.error.code if result.error else None,
        )
        return result

    def _unwrap(
        self,
        raw: Any,
        method: MutationMethod,
        result_model: type[BaseModel] | None,
    ) -> MutationResult[Any]:
        if isinstance(raw, dict) and raw.get("success") is False:
            return MutationResult(error=rejected(raw, locale=self.locale))
        if method is MutationMethod.DELETE:
            return MutationResult(data=True)
        data = raw.get("data") if isinstance(raw, dict) and "data" in raw else raw
        if result_model is not None and data is not None:
            data = result_model.model_validate(data)
        return MutationResult(data=data)
