from __future__ import annotations

from typing import Any, Mapping

from .exceptions import ApiError, error_class_for
from .tracing import trace_id_from_payload

MESSAGE_KEYS = ("message", "error")
# Field-level problems arrive under different keys depending on the route.
DETAIL_KEYS = ("details", "errors", "validation_errors", "detail")


def payload_message(payload: Mapping[str, Any] | None) -> str | None:
    """Server-provided message, read from ``message`` then ``error``."""
    if not payload:
        return None
    for key in MESSAGE_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def payload_details(payload: Mapping[str, Any]) -> Any:
    for key in DETAIL_KEYS:
        value = payload.get(key)
        if value:
            return value
    return None


def map_error(status_code: int, payload: Mapping[str, Any] | None, trace_id: str | None) -> ApiError:
    """Build the typed error for a non-2xx response.

    The payload's own ``code`` and ``trace_id`` win over the defaults; the
    fallback code is ``HTTP_<status>``.
    """
    body = dict(payload or {})
    return error_class_for(status_code)(
        code=str(body.get("code") or f"HTTP_{status_code}"),
        message=payload_message(body) or f"Request failed with status {status_code}",
        status_code=status_code,
        details=payload_details(body),
        trace_id=trace_id_from_payload(body) or trace_id,
        raw_payload=body,
    )
