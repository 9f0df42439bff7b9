from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ApiError(Exception):
    """A dashboard API call that did not produce a usable response.

    ``status_code`` is 0 when the request never got an HTTP answer.
    """

    code: str
    message: str
    status_code: int
    details: Any = None
    trace_id: str | None = None
    raw_payload: dict[str, Any] = field(default_factory=dict, repr=False)

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"

    @property
    def has_response(self) -> bool:
        return self.status_code > 0

    @property
    def retryable(self) -> bool:
        return not self.has_response or self.status_code >= 500


class SessionExpiredError(ApiError):
    """401: the bearer token is missing, invalid or expired."""


class AccessDeniedError(ApiError):
    """403: signed in, but the role cannot reach this resource."""


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    """400/422: the backend rejected the submitted fields."""


class ConflictError(ApiError):
    pass


class RateLimitError(ApiError):
    pass


class ServerError(ApiError):
    pass


class TransportError(ApiError):
    """Connection, DNS or timeout failure; no HTTP response exists."""

    @property
    def timed_out(self) -> bool:
        return self.code == "TIMEOUT_ERROR"


STATUS_ERRORS: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: SessionExpiredError,
    403: AccessDeniedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}


def error_class_for(status_code: int) -> type[ApiError]:
    if status_code <= 0:
        return TransportError
    if status_code >= 500:
        return ServerError
    return STATUS_ERRORS.get(status_code, ApiError)
