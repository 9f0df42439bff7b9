from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import ClientConfig
from .filters import QueryParams
from .http_client import AuthErrorHandler, HttpClient
from .mutations import MutationExecutor
from .observability import SDK_LOGGER_NAME, get_logger
from .paginated_query import PaginatedQueryController
from .single_query import SingleItemQueryController
from .tracing import TraceContext


class ApiSession:
    """Wires one authenticated transport into any number of controllers."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        trace: TraceContext | None = None,
        on_auth_expired: AuthErrorHandler | None = None,
    ) -> None:
        self.config = config
        self.token = token
        self.logger = get_logger(SDK_LOGGER_NAME) if config.log_enabled else logging.getLogger(SDK_LOGGER_NAME)
        self.http = HttpClient(
            config,
            transport=transport,
            token_provider=lambda: self.token,
            trace=trace or TraceContext(),
        )
        self.http.register_auth_error_handler(on_auth_expired)

    def establish(self, token: str) -> None:
        self.token = token

    def clear(self) -> None:
        self.token = None

    def paginated(
        self, resource_path: str, filters: QueryParams | None = None, **kwargs: Any
    ) -> PaginatedQueryController[Any]:
        return PaginatedQueryController(self.http, resource_path, filters, **kwargs)

    def single(self, resource_path: str, **kwargs: Any) -> SingleItemQueryController[Any]:
        return SingleItemQueryController(self.http, resource_path, **kwargs)

    def mutations(self, **kwargs: Any) -> MutationExecutor:
        return MutationExecutor(self.http, **kwargs)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "ApiSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
