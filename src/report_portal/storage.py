"""Object store listing: the continuation-token loop and the R2 backend.

The loop in ``list_all_objects`` is the only place listing touches the
network. It takes the page primitive as an argument, so tests and other
stores can swap in any async ``list_page`` callable.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import boto3
from botocore.config import Config as BotoConfig

from report_portal.errors import ListFailed, ListingCancelled
from report_portal.models import ListPage, RawObject

log = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════════════

# R2/S3 never return more than 1000 keys per call
DEFAULT_MAX_KEYS = 1000

# Upper bound on page fetches per listing; guards against a store that keeps
# handing back continuation tokens
DEFAULT_MAX_PAGES = 100

R2_ENDPOINT = "https://{account_id}.r2.cloudflarestorage.com"

ListPageFn = Callable[[str, Optional[str], int], Awaitable[ListPage]]


# ═══════════════════════════════════════════════════════════════════════════
#  Pagination loop
# ═══════════════════════════════════════════════════════════════════════════

async def _fetch_page(
    list_page: ListPageFn,
    prefix: str,
    token: str | None,
    max_keys: int,
    cancel: asyncio.Event | None,
) -> ListPage:
    """Run one ``list_page`` call, aborting it if ``cancel`` fires first."""
    if cancel is None:
        return await list_page(prefix, token, max_keys)
    if cancel.is_set():
        raise ListingCancelled(prefix)

    fetch = asyncio.ensure_future(list_page(prefix, token, max_keys))
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({fetch, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not fetch.done():
            fetch.cancel()

    if cancel.is_set():
        if fetch.done() and not fetch.cancelled():
            # Retrieve so a failed fetch does not log "exception never retrieved"
            fetch.exception()
        raise ListingCancelled(prefix)
    return fetch.result()


async def list_all_objects(
    list_page: ListPageFn,
    prefix: str,
    *,
    max_keys: int = DEFAULT_MAX_KEYS,
    max_pages: int = DEFAULT_MAX_PAGES,
    cancel: asyncio.Event | None = None,
) -> list[RawObject]:
    """Collect every object under ``prefix`` by following continuation tokens.

    Calls run strictly one after another since each needs the previous token.
    Stops once the store reports the listing is no longer truncated, or hands
    back no token. After ``max_pages`` calls the loop gives up and returns what
    it has, so stores holding more than ``max_pages * max_keys`` objects are
    cut short (logged as a warning, not raised).

    Raises:
        ListFailed: a ``list_page`` call errored. Nothing accumulated is returned.
        ListingCancelled: ``cancel`` was set before the listing finished.
    """
    objects: list[RawObject] = []
    token: str | None = None
    fetches = 0

    while True:
        try:
            page = await _fetch_page(list_page, prefix, token, max_keys, cancel)
        except ListingCancelled:
            log.info("Listing %r cancelled after %d page(s)", prefix, fetches)
            raise
        except Exception as exc:
            log.warning("Listing %r failed on page %d: %s", prefix, fetches + 1, exc)
            raise ListFailed(prefix, exc) from exc

        fetches += 1
        objects.extend(page.items)

        token = page.next_token if page.truncated else None
        if not token:
            break
        if fetches >= max_pages:
            log.warning(
                "Listing %r stopped at the %d page limit with %d objects; "
                "later objects are missing",
                prefix, max_pages, len(objects),
            )
            break

    log.debug("Listed %d objects under %r in %d page(s)", len(objects), prefix, fetches)
    return objects


# ═══════════════════════════════════════════════════════════════════════════
#  Cloudflare R2 backend
# ═══════════════════════════════════════════════════════════════════════════

class R2Client:
    """``list_page`` implementation over R2's S3-compatible API.

    boto3 is blocking, so each call runs in a worker thread. Retries and
    timeouts are whatever the underlying boto3 client is configured with.
    """

    def __init__(self, bucket: str, s3_client: Any):
        self.bucket = bucket
        self._s3 = s3_client

    @classmethod
    def from_credentials(
        cls,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket: str,
    ) -> R2Client:
        s3 = boto3.client(
            "s3",
            region_name="auto",
            endpoint_url=R2_ENDPOINT.format(account_id=account_id),
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=BotoConfig(s3={"addressing_style": "path"}),
        )
        return cls(bucket, s3)

    def list_page_sync(self, prefix: str, token: str | None, max_keys: int) -> ListPage:
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "MaxKeys": max_keys,
        }
        if token:
            params["ContinuationToken"] = token

        resp = self._s3.list_objects_v2(**params)
        items = [
            RawObject(key=obj["Key"], last_modified=obj.get("LastModified"))
            for obj in resp.get("Contents") or []
            if obj.get("Key")
        ]
        return ListPage(
            items=items,
            next_token=resp.get("NextContinuationToken") or None,
            truncated=bool(resp.get("IsTruncated")),
        )

    async def list_page(self, prefix: str, token: str | None, max_keys: int) -> ListPage:
        return await asyncio.to_thread(self.list_page_sync, prefix, token, max_keys)


_client: R2Client | None = None


def get_r2_client() -> R2Client:
    """Get or create the shared R2Client singleton.

    Raises ValueError naming the missing variable when credentials are unset.
    """
    global _client
    if _client is None:
        from report_portal.config import get_config
        config = get_config()
        _client = R2Client.from_credentials(
            account_id=config.require("r2_account_id"),
            access_key_id=config.require("r2_access_key_id"),
            secret_access_key=config.require("r2_secret_access_key"),
            bucket=config.require("r2_bucket"),
        )
    return _client
