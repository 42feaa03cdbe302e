"""API endpoints for the paginated user metrics listing"""

import io
from typing import Literal

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from prefixfs.config import get_settings
from prefixfs.connections import gateway
from prefixfs.export import export_metrics
from prefixfs.models import MetricsPage, MetricsQuery
from prefixfs.pagination import metrics_pager

app_metrics = APIRouter(prefix="/metrics", tags=["metrics"])


def _query(q, sort, order, activity, include_overall) -> MetricsQuery:
    return MetricsQuery(q=q, sort=sort, order=order, activity=activity, include_overall=include_overall)


@app_metrics.get("")
async def metrics_page(
    cursor: str | None = Query(None, description="Opaque cursor from the previous page, missing for the first page"),
    limit: int | None = Query(None, ge=1, le=1000),
    q: str | None = Query(None),
    sort: str | None = Query(None),
    order: Literal["asc", "desc"] | None = Query(None),
    activity: Literal["all", "active", "inactive", "new"] | None = Query(None),
    include_overall: bool = Query(False),
) -> MetricsPage:
    """
    One page of user metrics. Paging is forward only: pass the next_cursor of a page to get the next one.
    """
    query = _query(q, sort, order, activity, include_overall)
    return await gateway().metrics_page(cursor, limit or get_settings().page_size, query)


@app_metrics.get("/export")
async def export(
    q: str | None = Query(None),
    sort: str | None = Query(None),
    order: Literal["asc", "desc"] | None = Query(None),
    activity: Literal["all", "active", "inactive", "new"] | None = Query(None),
):
    """
    Export the full metrics listing matching the filters as CSV.
    The complete set is collected before anything is sent, so a failure never results in a truncated file.
    """
    settings = get_settings()
    pager = metrics_pager(gateway(), page_size=settings.page_size, export_page_size=settings.export_page_size)
    out = io.StringIO()
    await export_metrics(pager, out, _query(q, sort, order, activity, False))
    return StreamingResponse(
        iter([out.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="user_metrics.csv"'},
    )
