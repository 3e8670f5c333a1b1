"""CLI job that walks every upstream page and prints the aggregated registry."""

import argparse
import json
import logging
import sys
import time
from functools import partial
from typing import Callable, Iterator, Optional

from toilet_registry.core.config import ConfigError, Settings, get_settings
from toilet_registry.etl.aggregate import AggregateResult, aggregate
from toilet_registry.etl.normalize import normalize
from toilet_registry.models import CanonicalRecord, Page
from toilet_registry.vendors import seoul_openapi
from toilet_registry.vendors.seoul_openapi import UpstreamError

logger = logging.getLogger(__name__)

FetchPage = Callable[[int, int], Page]


def iter_pages(
    fetch_page: FetchPage,
    *,
    page_size: int,
    max_pages: int,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[Page]:
    """Yield pages from index 1 until a short page, an empty page or ``max_pages``."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    if max_pages < 1:
        raise ValueError("max_pages must be positive")

    start = 1
    fetched = 0
    while True:
        if fetched:
            sleep(delay)
        page = fetch_page(start, start + page_size - 1)
        fetched += 1
        yield page

        row_count = len(page.rows)
        if row_count == 0:
            break
        if row_count < page_size:
            break
        if fetched >= max_pages:
            logger.warning("Stopped paging after max_pages=%d; upstream may hold more rows", max_pages)
            break
        start += page_size


def collect_all(
    fetch_page: FetchPage,
    *,
    page_size: int,
    max_pages: int,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[CanonicalRecord]:
    for page in iter_pages(fetch_page, page_size=page_size, max_pages=max_pages, delay=delay, sleep=sleep):
        for raw_row in page.rows:
            yield normalize(raw_row)


def run_collection(
    settings: Settings,
    fetch_page: Optional[FetchPage] = None,
    sleep: Callable[[float], None] = time.sleep,
    *,
    page_size: Optional[int] = None,
    max_pages: Optional[int] = None,
    delay: Optional[float] = None,
) -> AggregateResult:
    """Full refresh: page through upstream, normalize and aggregate."""
    if fetch_page is None:
        fetch_page = partial(
            seoul_openapi.fetch_page,
            base_url=settings.upstream_base_url,
            timeout=settings.request_timeout,
        )

    started = time.monotonic()
    records = collect_all(
        fetch_page,
        page_size=settings.page_size if page_size is None else page_size,
        max_pages=settings.max_pages if max_pages is None else max_pages,
        delay=settings.page_delay_seconds if delay is None else delay,
        sleep=sleep,
    )
    result = aggregate(records)
    logger.info("Collection finished: rows=%d, elapsed=%.2fs", len(result), time.monotonic() - started)
    return result


def build_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    settings = settings or get_settings()
    parser = argparse.ArgumentParser(description="Collect the full Seoul public toilet registry")
    parser.add_argument("--page-size", dest="page_size", type=int, default=settings.page_size, help="Rows per upstream request")
    parser.add_argument("--max-pages", dest="max_pages", type=int, default=settings.max_pages, help="Upper bound on pages fetched")
    parser.add_argument(
        "--delay",
        dest="delay",
        type=float,
        default=settings.page_delay_seconds,
        help="Seconds to wait between page requests",
    )
    parser.add_argument("--output", dest="output", help="Write JSON here instead of stdout")
    return parser


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    args = build_parser(settings).parse_args(argv)

    try:
        rows = run_collection(settings, page_size=args.page_size, max_pages=args.max_pages, delay=args.delay)
    except UpstreamError as exc:
        logger.error("Collection failed: %s", exc)
        raise SystemExit(1) from exc

    payload = {"count": len(rows), "rows": [row.to_dict() for row in rows]}
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
        logger.info("Wrote %d rows to %s", len(rows), args.output)
    else:
        json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")


if __name__ == "__main__":
    main()
