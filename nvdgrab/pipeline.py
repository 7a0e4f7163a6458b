"""Month-by-month export driver.

Walks every month bucket of a year range, streams each fetched page
through the row encoder into the output, and keeps a single row counter
for the whole run.  Only one page of records is held in memory at a time.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TextIO

from .buckets import MonthBucket, month_buckets
from .config import FetchConfig
from .downloaders import PageFetcher, requests_session
from .encoder import RowCounter, encode_header, encode_page
from .log import get_logger
from .schema import Schema

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, MonthBucket], None]


@dataclass
class BucketResult:
    """Outcome of one month bucket.

    Attributes:
        bucket: The month fetched.
        total_results: ``totalResults`` from the bucket's last page.
        rows_written: Data rows written for the bucket.
        pages: Pages fetched.
    """

    bucket: MonthBucket
    total_results: int = 0
    rows_written: int = 0
    pages: int = 0

    @property
    def complete(self) -> bool:
        return self.rows_written == self.total_results


@dataclass
class RunSummary:
    """Outcome of a whole export run.

    Attributes:
        buckets: Per-month results in chronological order.
        next_row: Value the row counter would hand out next.
    """

    buckets: list[BucketResult] = field(default_factory=list)
    next_row: int = 1

    @property
    def rows_written(self) -> int:
        return sum(b.rows_written for b in self.buckets)

    @property
    def incomplete_buckets(self) -> list[BucketResult]:
        return [b for b in self.buckets if not b.complete]


def export_bucket(
    fetcher: PageFetcher,
    bucket: MonthBucket,
    schema: Schema,
    counter: RowCounter,
    sink: TextIO,
) -> BucketResult:
    """Fetch every page of one bucket and append its rows to ``sink``.

    Each row is written with a single ``write`` call and the sink is
    flushed after every page, so an interrupted run leaves whole rows only.

    Args:
        fetcher: Page fetcher bound to an open session.
        bucket: Month to export.
        schema: Column schema.
        counter: Run-wide row counter.
        sink: Text stream receiving the rows.

    Returns:
        ``BucketResult`` for the month.

    Raises:
        EncodingError: If a page body is not a record collection.
        TransportError: If a page cannot be fetched.
    """
    result = BucketResult(bucket=bucket)
    for page in fetcher.iter_pages(bucket):
        rows = encode_page(page.payload, schema, counter)
        for row in rows:
            sink.write(row)
        sink.flush()
        result.pages += 1
        result.rows_written += len(rows)
        result.total_results = page.total_results

    if not result.complete:
        logger.warning(
            "%s: wrote %d rows but the API reported totalResults=%d",
            bucket,
            result.rows_written,
            result.total_results,
        )
    return result


def run(
    year_start: int,
    year_end: int,
    schema: Schema,
    sink: TextIO,
    config: FetchConfig,
    fetcher: PageFetcher | None = None,
    progress: ProgressCallback | None = None,
    counter: RowCounter | None = None,
    write_header: bool = True,
) -> RunSummary:
    """Export every month from ``year_start``-01 to ``year_end``-12.

    When no ``fetcher`` is given, one HTTP session is opened for the run
    and closed on every exit path, including a fatal encoding error.

    Args:
        year_start: First year (inclusive).
        year_end: Last year (inclusive).
        schema: Column schema.
        sink: Text stream receiving the CSV.
        config: Fetch configuration.
        fetcher: Pre-built fetcher (tests inject one with a fake session).
        progress: Called as ``progress(completed, total, bucket)`` after
            each bucket finishes.
        counter: Row counter; a new one starting at 1 by default.
        write_header: Whether to write the header row first.

    Returns:
        ``RunSummary`` with one entry per bucket.

    Raises:
        ArgumentError: If ``year_start > year_end``.
        EncodingError: If a page body is not a record collection.
        TransportError: If a page cannot be fetched.
    """
    buckets = month_buckets(year_start, year_end)
    if counter is None:
        counter = RowCounter()

    if fetcher is None:
        with requests_session(config) as session:
            return _run_buckets(PageFetcher(session, config), buckets, schema, sink, counter, progress, write_header)
    return _run_buckets(fetcher, buckets, schema, sink, counter, progress, write_header)


def _run_buckets(
    fetcher: PageFetcher,
    buckets: list[MonthBucket],
    schema: Schema,
    sink: TextIO,
    counter: RowCounter,
    progress: ProgressCallback | None,
    write_header: bool,
) -> RunSummary:
    summary = RunSummary(next_row=counter.value)
    if write_header:
        sink.write(encode_header(schema))
        sink.flush()

    total = len(buckets)
    for i, bucket in enumerate(buckets, start=1):
        logger.debug("Fetching %s (%d/%d)", bucket, i, total)
        summary.buckets.append(export_bucket(fetcher, bucket, schema, counter, sink))
        summary.next_row = counter.value
        if progress is not None:
            progress(i, total, bucket)
    return summary
