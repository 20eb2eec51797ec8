"""Year/month grouping of dated items and page slicing of the groups."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from report_portal.keys import year_month
from report_portal.models import DatedItem, ReportGroup, ReportPage


def group_items(items: Iterable[DatedItem]) -> list[ReportGroup]:
    """Bucket items by calendar month, newest month first.

    Inside a bucket items run newest date first. Store listings come back in
    no guaranteed order, so items sharing a date fall back to key order; the
    result is the same for any ordering of the same input.
    """
    buckets: dict[tuple[int, int], list[DatedItem]] = defaultdict(list)
    for item in items:
        buckets[year_month(item.date)].append(item)

    groups = []
    for (year, month) in sorted(buckets, reverse=True):
        # Two stable sorts: key ascending, then date descending on top
        ordered = sorted(buckets[(year, month)], key=lambda it: it.key)
        ordered.sort(key=lambda it: it.date, reverse=True)
        groups.append(ReportGroup(year=year, month=month, items=ordered))
    return groups


def paginate(
    groups: Sequence[ReportGroup],
    page: int,
    groups_per_page: int,
    skipped_keys: list[str] | None = None,
) -> ReportPage:
    """Slice ``groups`` into one page.

    ``page`` and ``groups_per_page`` below 1 are raised to 1 rather than
    rejected. Pages past the end come back empty with ``has_next`` false.
    """
    page = max(1, page)
    groups_per_page = max(1, groups_per_page)

    total = len(groups)
    offset = (page - 1) * groups_per_page
    return ReportPage(
        page=page,
        months=groups_per_page,
        has_prev=page > 1 and total > 0,
        has_next=offset + groups_per_page < total,
        groups=list(groups[offset:offset + groups_per_page]),
        total_groups=total,
        skipped_keys=skipped_keys,
    )
