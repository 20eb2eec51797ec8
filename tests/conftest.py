"""Shared fakes for the listing tests."""

import pytest

from report_portal.models import ListPage, RawObject


class FakeStore:
    """In-memory ``list_page`` that pages through a fixed key list.

    Continuation tokens are the string offset of the next page. Every call is
    recorded as ``(prefix, token, max_keys)``.
    """

    def __init__(self, keys, fail_on_call=None):
        self.keys = list(keys)
        self.calls = []
        self.fail_on_call = fail_on_call

    async def list_page(self, prefix, token, max_keys):
        self.calls.append((prefix, token, max_keys))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise ConnectionError("store unreachable")

        matching = [k for k in self.keys if k.startswith(prefix)]
        start = int(token) if token else 0
        chunk = matching[start:start + max_keys]
        end = start + len(chunk)
        truncated = end < len(matching)
        return ListPage(
            items=[RawObject(key=k) for k in chunk],
            next_token=str(end) if truncated else None,
            truncated=truncated,
        )


@pytest.fixture
def make_store():
    return FakeStore
