from __future__ import annotations

from typing import Any, Callable

from pydantic import ValidationError

from .models import NormalizedListing, PaginationMeta

# Each matcher returns (records, raw_meta) or None. Order is precedence.
ShapeMatcher = Callable[[Any], tuple[list[Any], Any] | None]


def _child(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    return None


def _double_nested_success(raw: Any) -> tuple[list[Any], Any] | None:
    outer = _child(raw, "data")
    if _child(outer, "success") is not True:
        return None
    inner = _child(outer, "data")
    records = _child(inner, "data")
    if not isinstance(records, list):
        return None
    return records, _child(inner, "pagination")


def _singly_nested(raw: Any) -> tuple[list[Any], Any] | None:
    outer = _child(raw, "data")
    records = _child(outer, "data")
    if not isinstance(records, list):
        return None
    return records, _child(outer, "pagination")


def _flat_nested(raw: Any) -> tuple[list[Any], Any] | None:
    records = _child(raw, "data")
    if not isinstance(records, list):
        return None
    return records, _child(raw, "pagination")


def _bare_list(raw: Any) -> tuple[list[Any], Any] | None:
    if not isinstance(raw, list):
        return None
    return raw, None


ENVELOPE_SHAPES: tuple[tuple[str, ShapeMatcher], ...] = (
    ("double_nested_success", _double_nested_success),
    ("singly_nested", _singly_nested),
    ("flat_nested", _flat_nested),
    ("bare_list", _bare_list),
)


def parse_pagination(raw_meta: Any, *, page: int | None = None, limit: int | None = None) -> PaginationMeta | None:
    if not isinstance(raw_meta, dict):
        return None
    candidate = dict(raw_meta)
    if page is not None and candidate.get("page") is None:
        candidate["page"] = page
    if limit is not None and not any(
        candidate.get(key) is not None for key in ("limit", "page_size", "pageSize", "per_page")
    ):
        candidate["limit"] = limit
    try:
        return PaginationMeta.model_validate(candidate)
    except ValidationError:
        return None


def normalize_envelope(raw: Any, *, page: int | None = None, limit: int | None = None) -> NormalizedListing:
    """Extract ``records`` and pagination from any GET response body.

    Never raises: a body matching none of the known envelope shapes is
    treated as an empty listing. ``page``/``limit`` only fill gaps in a
    partial pagination block.
    """
    for name, matcher in ENVELOPE_SHAPES:
        matched = matcher(raw)
        if matched is not None:
            records, raw_meta = matched
            return NormalizedListing(
                records=list(records),
                pagination=parse_pagination(raw_meta, page=page, limit=limit),
                shape=name,
            )
    return NormalizedListing()


def unwrap_payload(raw: Any) -> Any:
    if isinstance(raw, dict) and raw.get("success") is True and "data" in raw:
        return raw["data"]
    return raw
