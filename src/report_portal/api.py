"""HTTP endpoints serving grouped report listings as JSON.

Endpoints:
  GET /api/briefs                 - morning briefs at the bucket root
  GET /api/{kind}                 - daily-report, weekly-report, research-report, ai-news
  GET /health

Query parameters (all optional):
  page         1-based page of month groups (default 1)
  months       month groups per page (default from config, 6)
  type         pdf | audio (report kinds only, default pdf)
  diagnostics  true to include keys skipped for lacking a date

Run:  python -m report_portal.api
"""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from report_portal.config import get_config
from report_portal.errors import ListFailed, ListingCancelled
from report_portal.models import ReportPage
from report_portal.reports import FileType, ReportLibrary, get_report_library, is_report_kind

log = logging.getLogger(__name__)

app = FastAPI(title="Report Portal")

_NO_STORE = {"Cache-Control": "no-store"}
_TRUTHY = ("true", "1", "yes")


def get_library() -> ReportLibrary:
    """Shared library; missing R2 settings surface as a failed listing."""
    try:
        return get_report_library()
    except ValueError as exc:
        log.error("Report library unavailable: %s", exc)
        raise ListFailed("", exc) from exc


def _positive_int(raw: str | None, default: int) -> int:
    """Parse a query value leniently: junk falls back to the default, < 1 becomes 1."""
    if raw is None or not raw.strip():
        return max(1, default)
    try:
        value = int(float(raw))
    except (ValueError, OverflowError):
        return max(1, default)
    return max(1, value)


def _error(status: int, error: str, message: str | None = None) -> JSONResponse:
    body = {"error": error}
    if message is not None:
        body["message"] = message
    return JSONResponse(body, status_code=status, headers=_NO_STORE)


def _page_response(result: ReportPage) -> JSONResponse:
    return JSONResponse(result.to_payload(), headers=_NO_STORE)


@app.exception_handler(ListFailed)
async def _list_failed(request: Request, exc: ListFailed) -> JSONResponse:
    log.error("Failed to list %s: %s", request.url.path, exc.cause)
    return _error(500, "list_failed", str(exc.cause))


@app.exception_handler(ListingCancelled)
async def _listing_cancelled(request: Request, exc: ListingCancelled) -> JSONResponse:
    log.info("Listing for %s cancelled", request.url.path)
    return _error(503, "cancelled", str(exc))


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/briefs")
async def list_briefs(
    page: str | None = None,
    months: str | None = None,
    diagnostics: str = "",
    library: ReportLibrary = Depends(get_library),
):
    """Morning briefs grouped by month, newest first."""
    result = await library.list_briefs(
        _positive_int(page, 1),
        _positive_int(months, get_config().default_months_per_page),
        include_skipped=diagnostics.lower() in _TRUTHY,
    )
    return _page_response(result)


@app.get("/api/{kind}")
async def list_reports(
    kind: str,
    page: str | None = None,
    months: str | None = None,
    type: str = FileType.PDF.value,
    diagnostics: str = "",
    library: ReportLibrary = Depends(get_library),
):
    """Reports of one kind grouped by month, newest first."""
    if not is_report_kind(kind):
        return _error(404, "unknown_kind")
    if type not in {f.value for f in FileType}:
        return _error(400, "invalid_type")

    result = await library.list_reports(
        kind,
        _positive_int(page, 1),
        _positive_int(months, get_config().default_months_per_page),
        file_type=type,
        include_skipped=diagnostics.lower() in _TRUTHY,
    )
    return _page_response(result)


if __name__ == "__main__":
    import uvicorn

    port = get_config().port
    print(f"\n  Report Portal → http://localhost:{port}\n")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
