"""Pydantic models for store listings and grouped report pages."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Object store listings
# ---------------------------------------------------------------------------

class RawObject(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    last_modified: datetime | None = None


class ListPage(BaseModel):
    """One page of a raw store listing."""
    model_config = ConfigDict(frozen=True)

    items: list[RawObject] = []
    next_token: str | None = None
    truncated: bool = False


# ---------------------------------------------------------------------------
# Grouped reports
# ---------------------------------------------------------------------------

class DatedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    date: str                    # YYYY-MM-DD
    url: str


class ReportGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    month: int                   # 1-12
    items: list[DatedItem]


class ReportPage(BaseModel):
    """A page of year/month groups, serialised in the portal's JSON shape."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page: int
    months: int                  # groups per page
    has_prev: bool = Field(alias="hasPrev")
    has_next: bool = Field(alias="hasNext")
    groups: list[ReportGroup]
    total_groups: int = Field(alias="totalGroups")
    # Keys dropped for lacking a date; only filled when asked for
    skipped_keys: list[str] | None = Field(default=None, alias="skippedKeys")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
