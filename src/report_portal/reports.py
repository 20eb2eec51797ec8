"""Grouped, paginated report listings.

Pipeline per request
────────────────────
  1. list_all_objects   - raw keys under the prefix (or a cached listing)
  2. key_to_item        - keep keys carrying a YYYY-MM-DD date
  3. group_items        - year/month buckets, newest first
  4. paginate           - one page of buckets + prev/next flags

Every call recomputes steps 2-4 from the listing, so two calls over the
same bucket contents always return the same page.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import partial

from report_portal.cache import ListingCache
from report_portal.grouping import group_items, paginate
from report_portal.keys import KeyToUrl, build_public_url, key_to_item
from report_portal.models import DatedItem, ReportPage
from report_portal.storage import (
    DEFAULT_MAX_KEYS,
    DEFAULT_MAX_PAGES,
    ListPageFn,
    list_all_objects,
)

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Report scopes
# ═══════════════════════════════════════════════════════════════════════════

class ReportKind(str, Enum):
    DAILY_REPORT = "daily-report"
    WEEKLY_REPORT = "weekly-report"
    RESEARCH_REPORT = "research-report"
    AI_NEWS = "ai-news"


class FileType(str, Enum):
    PDF = "pdf"
    AUDIO = "audio"


def is_report_kind(value: object) -> bool:
    return isinstance(value, str) and value in {k.value for k in ReportKind}


def prefix_for_kind(kind: ReportKind | str, file_type: FileType | str = FileType.PDF) -> str:
    """Folder prefix for one report kind, e.g. ``daily-report/pdf/``."""
    return f"{ReportKind(kind).value}/{FileType(file_type).value}/"


# ═══════════════════════════════════════════════════════════════════════════
#  Listing pipeline
# ═══════════════════════════════════════════════════════════════════════════

async def list_grouped_reports(
    prefix: str,
    page: int,
    groups_per_page: int,
    *,
    list_page: ListPageFn,
    key_to_url: KeyToUrl,
    max_keys: int = DEFAULT_MAX_KEYS,
    max_pages: int = DEFAULT_MAX_PAGES,
    cache: ListingCache | None = None,
    cancel: asyncio.Event | None = None,
    include_skipped: bool = False,
) -> ReportPage:
    """List, date, group and paginate every object under ``prefix``.

    Keys without a date are left out of the groups. Pass ``include_skipped``
    to get them back on the page as ``skipped_keys``.

    Raises ListFailed or ListingCancelled; a failure never yields a partial page.
    """
    objects = cache.get(prefix) if cache is not None else None
    if objects is None:
        objects = await list_all_objects(
            list_page, prefix, max_keys=max_keys, max_pages=max_pages, cancel=cancel,
        )
        if cache is not None:
            cache.put(prefix, objects)

    items: list[DatedItem] = []
    skipped: list[str] = []
    for obj in objects:
        item = key_to_item(obj.key, key_to_url)
        if item is None:
            skipped.append(obj.key)
        else:
            items.append(item)

    if skipped:
        log.debug("Skipped %d undated key(s) under %r: %s", len(skipped), prefix, skipped[:10])

    groups = group_items(items)
    result = paginate(
        groups, page, groups_per_page,
        skipped_keys=sorted(skipped) if include_skipped else None,
    )
    log.info(
        "Listed %r: %d objects, %d dated, %d groups, page %d (%d per page)",
        prefix, len(objects), len(items), len(groups), result.page, result.months,
    )
    return result


class ReportLibrary:
    """The listing pipeline bound to one store, URL scheme and cache."""

    def __init__(
        self,
        list_page: ListPageFn,
        key_to_url: KeyToUrl,
        *,
        brief_prefix: str = "",
        max_keys: int = DEFAULT_MAX_KEYS,
        max_pages: int = DEFAULT_MAX_PAGES,
        cache: ListingCache | None = None,
    ):
        self._list_page = list_page
        self._key_to_url = key_to_url
        self.brief_prefix = brief_prefix
        self.max_keys = max_keys
        self.max_pages = max_pages
        self.cache = cache

    async def list_prefix(
        self,
        prefix: str,
        page: int,
        months: int,
        *,
        cancel: asyncio.Event | None = None,
        include_skipped: bool = False,
    ) -> ReportPage:
        return await list_grouped_reports(
            prefix, page, months,
            list_page=self._list_page,
            key_to_url=self._key_to_url,
            max_keys=self.max_keys,
            max_pages=self.max_pages,
            cache=self.cache,
            cancel=cancel,
            include_skipped=include_skipped,
        )

    async def list_reports(
        self,
        kind: ReportKind | str,
        page: int,
        months: int,
        file_type: FileType | str = FileType.PDF,
        **kwargs,
    ) -> ReportPage:
        return await self.list_prefix(prefix_for_kind(kind, file_type), page, months, **kwargs)

    async def list_briefs(self, page: int, months: int, **kwargs) -> ReportPage:
        return await self.list_prefix(self.brief_prefix, page, months, **kwargs)


_library: ReportLibrary | None = None


def get_report_library() -> ReportLibrary:
    """Get or create the shared ReportLibrary over the configured R2 bucket."""
    global _library
    if _library is None:
        from report_portal.config import get_config
        from report_portal.storage import get_r2_client

        config = get_config()
        client = get_r2_client()
        _library = ReportLibrary(
            client.list_page,
            partial(build_public_url, config.require("r2_public_base_url")),
            brief_prefix=config.brief_prefix,
            max_keys=config.list_max_keys,
            max_pages=config.list_max_pages,
            cache=ListingCache(config.listing_cache_ttl) if config.listing_cache_ttl > 0 else None,
        )
    return _library
