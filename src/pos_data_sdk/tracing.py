from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Mapping

TRACE_HEADER = "X-Trace-ID"
# Checked in order; the dashboard backend echoes either form.
RESPONSE_TRACE_HEADERS = (TRACE_HEADER, "X-Request-ID")
PAYLOAD_TRACE_KEYS = ("trace_id", "traceId", "request_id")


def new_trace_id() -> str:
    return uuid.uuid4().hex


def trace_id_from_headers(headers: Mapping[str, str]) -> str | None:
    for name in RESPONSE_TRACE_HEADERS:
        echoed = headers.get(name)
        if echoed:
            return echoed
    return None


def trace_id_from_payload(payload: Mapping[str, Any] | None) -> str | None:
    if not payload:
        return None
    for source in (payload, payload.get("meta")):
        if not isinstance(source, Mapping):
            continue
        for key in PAYLOAD_TRACE_KEYS:
            echoed = source.get(key)
            if isinstance(echoed, str) and echoed:
                return echoed
    return None


@dataclass
class TraceContext:
    """Ids of the most recently completed request on a client.

    Requests resolve their own ids locally; this is only a read-only mirror
    for inspection, so overlapping requests never borrow each other's id.
    """

    trace_id: str | None = None
    issued_id: str | None = None

    def record(self, issued_id: str, resolved_id: str) -> None:
        self.issued_id = issued_id
        self.trace_id = resolved_id

    @property
    def echoed_by_server(self) -> bool:
        return self.trace_id is not None and self.trace_id != self.issued_id
