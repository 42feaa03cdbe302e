"""
Export of the complete user metrics listing.
"""

import csv
import logging
from typing import IO, Iterable

from prefixfs.models import MetricsQuery, UserMetrics
from prefixfs.pagination import CancelToken, CursorPager, ProgressCallback

COLUMNS = [
    "id",
    "fullname",
    "email",
    "role",
    "created_at",
    "last_sign_in",
    "number_of_sign_ins",
    "documents_viewed",
    "time_spent",
    "days_inactive",
    "recent_docs",
]


def write_metrics_csv(rows: Iterable[UserMetrics], out: IO[str]) -> int:
    """Write metrics rows as CSV with a fixed column order, returning the number of rows written"""
    writer = csv.DictWriter(out, fieldnames=COLUMNS, extrasaction="ignore")
    writer.writeheader()
    n = 0
    for row in rows:
        record = row.model_dump(include=set(COLUMNS))
        record["recent_docs"] = ";".join(record.get("recent_docs") or [])
        writer.writerow(record)
        n += 1
    return n


async def export_metrics(
    pager: CursorPager[UserMetrics],
    out: IO[str],
    query: MetricsQuery | None = None,
    on_progress: ProgressCallback | None = None,
    cancel: CancelToken | None = None,
) -> int:
    """
    Collect the full metrics listing and write it as CSV.
    Nothing is written if collecting fails or is cancelled, so the output is never a silently truncated set.
    """
    rows = await pager.collect_all(query, on_progress=on_progress, cancel=cancel)
    if cancel is not None and cancel.cancelled:
        logging.info(f"Export cancelled after collecting {len(rows)} rows, nothing written")
        return 0
    n = write_metrics_csv(rows, out)
    logging.info(f"Exported {n} metrics rows")
    return n
