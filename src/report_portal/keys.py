"""Date extraction and public URLs for object store keys."""

from __future__ import annotations

import re
from datetime import date
from typing import Callable
from urllib.parse import quote

from report_portal.models import DatedItem

# Any YYYY-MM-DD run inside a key, wherever it sits in the path or filename
DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_."
_URI_COMPONENT_SAFE = "!~*'()"

KeyToUrl = Callable[[str], str]


def parse_date(key: str) -> str | None:
    """Return the first real calendar date found in ``key`` as YYYY-MM-DD.

    Keys are not held to any filename template: "daily-report/pdf/a-2024-07-05.pdf"
    and "2024-07-05/summary.pdf" both qualify. When several dates appear, the
    first valid one in key order wins; digit runs such as "2024-13-40" are
    passed over. Returns None when the key carries no date.
    """
    for match in DATE_PATTERN.finditer(key):
        candidate = match.group(0)
        try:
            date.fromisoformat(candidate)
        except ValueError:
            continue
        return candidate
    return None


def year_month(date_str: str) -> tuple[int, int]:
    """Read (year, month) off a YYYY-MM-DD string."""
    return int(date_str[:4]), int(date_str[5:7])


def build_public_url(base_url: str, key: str) -> str:
    """Public URL for ``key``, encoded as a single path component."""
    return f"{base_url.rstrip('/')}/{quote(key, safe=_URI_COMPONENT_SAFE)}"


def key_to_item(key: str, key_to_url: KeyToUrl) -> DatedItem | None:
    parsed = parse_date(key)
    if parsed is None:
        return None
    return DatedItem(key=key, date=parsed, url=key_to_url(key))
