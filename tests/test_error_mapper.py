from __future__ import annotations

from pos_data_sdk.error_mapper import map_error, payload_message
from pos_data_sdk.exceptions import (
    AccessDeniedError,
    ApiError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServerError,
    SessionExpiredError,
    TransportError,
    ValidationError,
    error_class_for,
)


def test_error_mapper_classes() -> None:
    err = map_error(401, {"code": "INVALID_TOKEN", "message": "bad"}, "trace")
    assert isinstance(err, SessionExpiredError)
    assert err.trace_id == "trace"
    assert isinstance(map_error(403, {"message": "no"}, None), AccessDeniedError)
    assert isinstance(map_error(404, {}, None), NotFoundError)
    assert isinstance(map_error(422, {"message": "name required"}, None), ValidationError)
    assert isinstance(map_error(409, {}, None), ConflictError)
    assert isinstance(map_error(429, {}, None), RateLimitError)
    assert isinstance(map_error(504, {}, None), ServerError)


def test_error_mapper_reads_error_field_and_details() -> None:
    err = map_error(
        422,
        {"success": False, "error": "Invalid category", "errors": {"name": ["required"]}, "trace_id": "t-9"},
        "trace-header",
    )

    assert err.message == "Invalid category"
    assert err.details == {"name": ["required"]}
    assert err.trace_id == "t-9"
    assert "trace_id=t-9" in str(err)


def test_payload_message_prefers_message_over_error() -> None:
    assert payload_message({"message": "  name required ", "error": "other"}) == "name required"
    assert payload_message({"message": "", "error": "fallback"}) == "fallback"
    assert payload_message({"message": 42}) is None
    assert payload_message(None) is None


def test_fallback_code_and_fastapi_detail_list() -> None:
    err = map_error(422, {"detail": [{"loc": ["body", "price"], "msg": "must be positive"}]}, None)

    assert err.code == "HTTP_422"
    assert err.message == "Request failed with status 422"
    assert err.details == [{"loc": ["body", "price"], "msg": "must be positive"}]


def test_unlisted_status_is_plain_api_error() -> None:
    err = map_error(418, None, "t-1")

    assert type(err) is ApiError
    assert err.raw_payload == {}
    assert err.trace_id == "t-1"


def test_retryable_only_for_missing_response_or_5xx() -> None:
    assert error_class_for(0) is TransportError
    assert map_error(503, {}, None).retryable is True
    assert map_error(409, {}, None).retryable is False
    assert TransportError(code="TIMEOUT_ERROR", message="slow", status_code=0).timed_out is True
