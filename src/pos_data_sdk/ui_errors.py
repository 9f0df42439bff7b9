from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

import httpx

from .error_mapper import payload_message
from .exceptions import ApiError


class ErrorKind(str, Enum):
    AUTH_EXPIRED = "auth_expired"
    FORBIDDEN = "forbidden"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    VALIDATION_ERROR = "validation_error"
    UNKNOWN = "unknown"


BUSINESS_RULE_REJECTED = "BUSINESS_RULE_REJECTED"

_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        ErrorKind.AUTH_EXPIRED: "Your session has expired. Please sign in again.",
        ErrorKind.FORBIDDEN: "You are not authorized to access this resource.",
        ErrorKind.SERVER_ERROR: "Server error. Please try again later.",
        ErrorKind.NETWORK_ERROR: "Unable to reach the server. Please check your connection.",
        ErrorKind.VALIDATION_ERROR: "The submitted data is invalid.",
        ErrorKind.UNKNOWN: "Request failed. Please try again.",
        BUSINESS_RULE_REJECTED: "Operation failed.",
    },
    "vi": {
        ErrorKind.AUTH_EXPIRED: "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại.",
        ErrorKind.FORBIDDEN: "Bạn không có quyền truy cập dữ liệu này.",
        ErrorKind.SERVER_ERROR: "Lỗi máy chủ. Vui lòng thử lại sau.",
        ErrorKind.NETWORK_ERROR: "Không thể tải dữ liệu. Vui lòng kiểm tra kết nối mạng.",
        ErrorKind.VALIDATION_ERROR: "Dữ liệu không hợp lệ.",
        ErrorKind.UNKNOWN: "Không thể tải dữ liệu. Vui lòng thử lại.",
        BUSINESS_RULE_REJECTED: "Có lỗi xảy ra.",
    },
}


def default_message(key: ErrorKind | str, locale: str = "en") -> str:
    catalog = _MESSAGES.get(locale, _MESSAGES["en"])
    return catalog[key]


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    code: str | None = None
    status_code: int | None = None
    details: object | None = None
    trace_id: str | None = None

    @property
    def requires_sign_in(self) -> bool:
        return self.kind is ErrorKind.AUTH_EXPIRED

    @property
    def technical_details(self) -> str | None:
        if self.code is None and self.status_code is None:
            return None
        details = f"{self.code or 'ERROR'} (HTTP {self.status_code or 0})"
        if self.details:
            details = f"{details}: {self.details}"
        return details


def classify_status(
    status_code: int | None,
    payload: Mapping[str, Any] | None = None,
    *,
    mutation: bool = False,
    locale: str = "en",
    code: str | None = None,
    details: object | None = None,
    trace_id: str | None = None,
) -> ClassifiedError:
    if not status_code:
        kind = ErrorKind.NETWORK_ERROR
    elif status_code == 401:
        kind = ErrorKind.AUTH_EXPIRED
    elif status_code == 403:
        kind = ErrorKind.FORBIDDEN
    elif status_code >= 500:
        kind = ErrorKind.SERVER_ERROR
    elif status_code == 422 and mutation:
        kind = ErrorKind.VALIDATION_ERROR
    else:
        kind = ErrorKind.UNKNOWN

    message = default_message(kind, locale)
    if kind is ErrorKind.VALIDATION_ERROR:
        message = payload_message(payload) or message
    return ClassifiedError(
        kind=kind,
        message=message,
        code=code,
        status_code=status_code or None,
        details=details,
        trace_id=trace_id,
    )


def classify(failure: BaseException, *, mutation: bool = False, locale: str = "en") -> ClassifiedError:
    """Map a failed call onto the closed ``ErrorKind`` taxonomy."""
    if isinstance(failure, ApiError):
        payload = failure.raw_payload if isinstance(failure.raw_payload, Mapping) else None
        return classify_status(
            failure.status_code,
            payload,
            mutation=mutation,
            locale=locale,
            code=failure.code,
            details=failure.details,
            trace_id=failure.trace_id,
        )
    if isinstance(failure, httpx.TransportError):
        return classify_status(None, locale=locale, code="NETWORK_ERROR", details=type(failure).__name__)
    return ClassifiedError(
        kind=ErrorKind.UNKNOWN,
        message=default_message(ErrorKind.UNKNOWN, locale),
        code=type(failure).__name__,
    )


def rejected(payload: Mapping[str, Any], *, locale: str = "en") -> ClassifiedError:
    """A 2xx write whose envelope reports ``success: false``."""
    return ClassifiedError(
        kind=ErrorKind.UNKNOWN,
        message=payload_message(payload) or default_message(BUSINESS_RULE_REJECTED, locale),
        code=BUSINESS_RULE_REJECTED,
        details=payload.get("details") or payload.get("errors"),
    )


def to_user_facing_error(error: ClassifiedError) -> str:
    if error.trace_id:
        return f"{error.message} (trace_id={error.trace_id})"
    return error.message
