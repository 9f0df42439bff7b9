from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Sequence, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from .ui_errors import ClassifiedError

T = TypeVar("T")


class PaginationMeta(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=1, validation_alias=AliasChoices("limit", "page_size", "pageSize", "per_page"))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class NormalizedListing:
    records: list[Any] = field(default_factory=list)
    pagination: PaginationMeta | None = None
    shape: str | None = None


@dataclass(frozen=True)
class QueryState(Generic[T]):
    records: Sequence[T] = field(default_factory=list)
    pagination: PaginationMeta | None = None
    is_loading: bool = False
    error: ClassifiedError | None = None
    page: int = 1
    limit: int = 10


@dataclass(frozen=True)
class ItemState(Generic[T]):
    data: T | None = None
    is_loading: bool = False
    error: ClassifiedError | None = None


@dataclass(frozen=True)
class MutationState:
    is_loading: bool = False
    error: ClassifiedError | None = None


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    data: T | None = None
    error: ClassifiedError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
