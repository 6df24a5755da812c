"""Domain model for subscriptions.

This module provides:
- Subscription: the persisted entity with its `MM-YYYY` date encoding
- SubFilter / SortColumn: the closed set of filters and sort columns accepted by listing
- ListOpts / RangeOpts: pagination and period options passed to the repository
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


_MONTH_RE = re.compile(r"(0[1-9]|1[0-2])-([0-9]{4})")


def parse_month(value: str) -> date:
    """Parse an `MM-YYYY` string into the first day of that month.

    Raises:
        ValueError: If value is not exactly `MM-YYYY` with a month in 01..12
    """
    match = _MONTH_RE.fullmatch(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"cannot parse {value!r} as MM-YYYY")
    year = int(match.group(2))
    if year < 1:
        raise ValueError(f"year out of range in {value!r}")
    return date(year, int(match.group(1)), 1)


def format_month(value: date) -> str:
    """Render a date or datetime as `MM-YYYY`."""
    return f"{value.month:02d}-{value.year:04d}"


class Subscription(BaseModel):
    """A user's subscription to a service.

    `start` is month precision (day is always 1). `expires` keeps the
    timestamp read from the store but is exchanged as `MM-YYYY` too.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(None, description="Surrogate key assigned by the store")
    name: str = Field(..., min_length=1, description="Subscribed service name")
    price: int = Field(..., ge=0, description="Monthly cost")
    uid: UUID = Field(..., description="User ID")
    start: date = Field(..., alias="start_date", description="Start month, MM-YYYY")
    expires: Optional[datetime] = Field(None, description="Expiry month, MM-YYYY")

    @field_validator("start", mode="before")
    @classmethod
    def _parse_start(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date().replace(day=1)
        if isinstance(value, date):
            return value.replace(day=1)
        try:
            return parse_month(value)
        except ValueError as e:
            raise ValueError(f"invalid start_date format: {e}") from e

    @field_validator("expires", mode="before")
    @classmethod
    def _parse_expires(cls, value: Any) -> Any:
        if value is None or isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        try:
            month = parse_month(value)
        except ValueError as e:
            raise ValueError(f"invalid expires format: {e}") from e
        return datetime(month.year, month.month, 1, tzinfo=timezone.utc)

    @field_serializer("start")
    def _serialize_start(self, value: date) -> str:
        return format_month(value)

    @field_serializer("expires")
    def _serialize_expires(self, value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        # The month is taken in UTC, whatever offset the store session used.
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return format_month(value)

    def to_json_dict(self) -> dict:
        """External representation: dates as MM-YYYY, unset id/expires omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SortColumn(str, Enum):
    """Columns a listing may be ordered by (ascending)."""

    ID = "id"
    NAME = "name"
    UID = "uid"
    PRICE = "price"
    START_DATE = "start_date"
    EXPIRES = "expires"

    @property
    def column(self) -> str:
        return _SORT_COLUMNS[self]


_SORT_COLUMNS = {
    SortColumn.ID: "id",
    SortColumn.NAME: "name",
    SortColumn.UID: "uid",
    SortColumn.PRICE: "cost",
    SortColumn.START_DATE: "created_at",
    SortColumn.EXPIRES: "expires",
}


@dataclass(frozen=True)
class SubFilter:
    """Exact-match filter; only fields that are set become predicates."""

    id: Optional[int] = None
    name: Optional[str] = None
    uid: Optional[UUID] = None

    def predicates(self) -> List[Tuple[str, Any]]:
        """Return (column, value) pairs in a fixed column order."""
        pairs = [("id", self.id), ("name", self.name), ("uid", self.uid)]
        return [(column, value) for column, value in pairs if value is not None]

    def is_empty(self) -> bool:
        return not self.predicates()


@dataclass
class ListOpts:
    """Pagination, filtering and ordering for listing.

    limit=0 means unlimited; offset is always applied; filter=None means no
    predicate; order=None leaves row order to the store.
    """

    limit: int = 0
    offset: int = 0
    filter: Optional[SubFilter] = None
    order: Optional[SortColumn] = None


@dataclass(frozen=True)
class RangeOpts:
    """Inclusive month bounds for the price sum."""

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_bounded(self) -> bool:
        # A half-open range is treated as no range at all.
        return self.start is not None and self.end is not None
