"""Tests for the continuation-token listing loop and the R2 backend."""

import asyncio
from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from report_portal import config as config_module
from report_portal import storage
from report_portal.config import Settings
from report_portal.errors import ListFailed, ListingCancelled
from report_portal.models import ListPage, RawObject
from report_portal.storage import R2Client, get_r2_client, list_all_objects


# --- Pagination loop ---


def test_follows_continuation_tokens(make_store):
    keys = [f"daily-report/pdf/r-{i:04d}.pdf" for i in range(1500)]
    store = make_store(keys)

    objects = asyncio.run(list_all_objects(store.list_page, "daily-report/pdf/", max_keys=1000))

    assert [o.key for o in objects] == keys
    assert store.calls == [
        ("daily-report/pdf/", None, 1000),
        ("daily-report/pdf/", "1000", 1000),
    ]


def test_single_page_listing(make_store):
    store = make_store(["p/2024-01-01.pdf", "p/2024-01-02.pdf"])
    objects = asyncio.run(list_all_objects(store.list_page, "p/"))
    assert len(objects) == 2
    assert len(store.calls) == 1


def test_empty_listing(make_store):
    store = make_store([])
    assert asyncio.run(list_all_objects(store.list_page, "p/")) == []


def test_stops_when_truncated_without_token():
    calls = []

    async def list_page(prefix, token, max_keys):
        calls.append(token)
        return ListPage(items=[RawObject(key="p/a.pdf")], next_token=None, truncated=True)

    objects = asyncio.run(list_all_objects(list_page, "p/"))
    assert [o.key for o in objects] == ["p/a.pdf"]
    assert calls == [None]


def test_ignores_token_when_not_truncated():
    calls = []

    async def list_page(prefix, token, max_keys):
        calls.append(token)
        return ListPage(items=[RawObject(key="p/a.pdf")], next_token="stale", truncated=False)

    asyncio.run(list_all_objects(list_page, "p/"))
    assert calls == [None]


def test_page_limit_returns_accumulated_objects():
    calls = []

    async def endless(prefix, token, max_keys):
        calls.append(token)
        n = len(calls)
        return ListPage(items=[RawObject(key=f"p/{n}.pdf")], next_token=f"t{n}", truncated=True)

    objects = asyncio.run(list_all_objects(endless, "p/", max_pages=5))
    assert len(calls) == 5
    assert [o.key for o in objects] == [f"p/{n}.pdf" for n in range(1, 6)]


def test_store_failure_raises_list_failed(make_store):
    store = make_store([f"p/{i}.pdf" for i in range(30)], fail_on_call=2)

    with pytest.raises(ListFailed) as info:
        asyncio.run(list_all_objects(store.list_page, "p/", max_keys=10))

    assert info.value.prefix == "p/"
    assert isinstance(info.value.cause, ConnectionError)
    assert info.value.__cause__ is info.value.cause
    assert len(store.calls) == 2


def test_cancel_before_start(make_store):
    store = make_store(["p/2024-01-01.pdf"])

    async def run():
        cancel = asyncio.Event()
        cancel.set()
        await list_all_objects(store.list_page, "p/", cancel=cancel)

    with pytest.raises(ListingCancelled):
        asyncio.run(run())
    assert store.calls == []


def test_cancel_aborts_in_flight_call():
    aborted = []

    async def run():
        cancel = asyncio.Event()
        started = asyncio.Event()

        async def hanging(prefix, token, max_keys):
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                aborted.append(prefix)
                raise

        task = asyncio.ensure_future(list_all_objects(hanging, "p/", cancel=cancel))
        await started.wait()
        cancel.set()
        with pytest.raises(ListingCancelled):
            await task
        await asyncio.sleep(0)

    asyncio.run(run())
    assert aborted == ["p/"]


def test_cancel_between_pages_discards_partial_listing():
    async def run():
        cancel = asyncio.Event()

        async def list_page(prefix, token, max_keys):
            if token is None:
                cancel.set()
                return ListPage(items=[RawObject(key="p/1.pdf")], next_token="t1", truncated=True)
            raise AssertionError("second page should not be requested")

        return await list_all_objects(list_page, "p/", cancel=cancel)

    with pytest.raises(ListingCancelled):
        asyncio.run(run())


def test_unset_cancel_event_lets_listing_finish(make_store):
    store = make_store([f"p/{i}.pdf" for i in range(25)])

    async def run():
        return await list_all_objects(store.list_page, "p/", max_keys=10, cancel=asyncio.Event())

    assert len(asyncio.run(run())) == 25
    assert len(store.calls) == 3


# --- R2 backend ---


def _stubbed_client():
    s3 = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )
    return R2Client("reports", s3), Stubber(s3)


def test_r2_list_page_maps_response():
    client, stubber = _stubbed_client()
    modified = datetime(2024, 7, 5, 8, 30, tzinfo=timezone.utc)
    stubber.add_response(
        "list_objects_v2",
        {
            "Contents": [
                {"Key": "daily-report/pdf/a-2024-07-05.pdf", "LastModified": modified},
                {"Key": "daily-report/pdf/b-2024-07-01.pdf"},
            ],
            "IsTruncated": True,
            "NextContinuationToken": "next-1",
        },
        {"Bucket": "reports", "Prefix": "daily-report/pdf/", "MaxKeys": 1000},
    )

    with stubber:
        page = client.list_page_sync("daily-report/pdf/", None, 1000)

    assert [o.key for o in page.items] == [
        "daily-report/pdf/a-2024-07-05.pdf",
        "daily-report/pdf/b-2024-07-01.pdf",
    ]
    assert page.items[0].last_modified == modified
    assert page.items[1].last_modified is None
    assert page.next_token == "next-1"
    assert page.truncated is True


def test_r2_list_page_sends_continuation_token():
    client, stubber = _stubbed_client()
    stubber.add_response(
        "list_objects_v2",
        {"IsTruncated": False},
        {"Bucket": "reports", "Prefix": "ai-news/audio/", "MaxKeys": 50, "ContinuationToken": "tok"},
    )

    with stubber:
        page = asyncio.run(client.list_page("ai-news/audio/", "tok", 50))

    assert page.items == []
    assert page.next_token is None
    assert page.truncated is False
    stubber.assert_no_pending_responses()


def test_r2_errors_surface_as_list_failed():
    client, stubber = _stubbed_client()
    stubber.add_client_error("list_objects_v2", service_error_code="AccessDenied", http_status_code=403)

    with stubber:
        with pytest.raises(ListFailed) as info:
            asyncio.run(list_all_objects(client.list_page, "daily-report/pdf/"))

    assert "AccessDenied" in str(info.value.cause)


def test_r2_client_endpoint():
    client = R2Client.from_credentials("acct123", "key", "secret", "reports")
    assert client.bucket == "reports"
    assert client._s3.meta.endpoint_url == "https://acct123.r2.cloudflarestorage.com"


def test_get_r2_client_requires_credentials(monkeypatch):
    monkeypatch.setattr(storage, "_client", None)
    monkeypatch.setattr(
        config_module, "_config",
        Settings(_env_file=None, r2_account_id="", r2_access_key_id="k",
                 r2_secret_access_key="s", r2_bucket="b"),
    )
    with pytest.raises(ValueError, match="R2_ACCOUNT_ID"):
        get_r2_client()
