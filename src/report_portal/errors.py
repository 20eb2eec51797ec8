"""Failures raised by report listing."""

from __future__ import annotations


class ReportListingError(Exception):
    """Base class for listing failures. Callers treat any of these as "no data"."""

    def __init__(self, prefix: str, message: str):
        super().__init__(message)
        self.prefix = prefix


class ListFailed(ReportListingError):
    """A store listing call errored; the original exception is kept as ``cause``."""

    def __init__(self, prefix: str, cause: BaseException):
        super().__init__(prefix, f"Listing {prefix!r} failed: {cause}")
        self.cause = cause


class ListingCancelled(ReportListingError):
    """The listing was aborted through its cancel signal."""

    def __init__(self, prefix: str):
        super().__init__(prefix, f"Listing {prefix!r} was cancelled")
