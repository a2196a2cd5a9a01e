"""
Offset/limit pagination over listing endpoints.

collect_all() keeps requesting pages at offsets 0, page_size, 2*page_size...
until the server-reported total is covered or a record cap is reached.

Termination:
    Stop after a page when either
        offset + page_size >= total   (total read from the latest page), or
        collected >= max_records.
    The server total can change between pages while the data changes; the
    most recently reported value wins.

Failure:
    Any page failing fails the whole collection. No partial results are
    returned; the caller decides whether to retry from scratch.

Usage:
    async def fetch_page(offset, limit):
        data = await client.browse_label_releases(label_id, offset, limit)
        return Page(items=data["releases"], total=data["release-count"])

    releases = await collect_all(fetch_page, page_size=100, max_records=500)
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from labelscope.core.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class Page:
    """
    One page of a listing.

    Attributes:
        items: Records on this page.
        total: Total number of records the server reported for the listing.
    """
    items: list[Any] = field(default_factory=list)
    total: int = 0


FetchPage = Callable[[int, int], Awaitable[Page]]


async def collect_all(
    fetch_page: FetchPage,
    page_size: int = 100,
    max_records: int | None = None
) -> list[Any]:
    """
    Collect every record of a paginated listing.

    Args:
        fetch_page: Coroutine function taking (offset, limit) and returning a Page.
        page_size: Records requested per page.
        max_records: Optional cap on the number of records returned.

    Returns:
        The accumulated records, at most max_records long.

    Raises:
        Whatever fetch_page raises, on the first failing page.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")

    records: list[Any] = []
    offset = 0

    while True:
        page = await fetch_page(offset, page_size)
        records.extend(page.items)
        total = page.total

        logger.debug(
            f"Collected page at offset {offset}: {len(page.items)} item(s), "
            f"{len(records)}/{total} so far"
        )

        if offset + page_size >= total:
            break
        if max_records is not None and len(records) >= max_records:
            break
        # Some servers report a total but return nothing past a point
        if not page.items:
            logger.warning(f"Empty page at offset {offset} before reaching total {total}")
            break

        offset += page_size

    if max_records is not None:
        return records[:max_records]
    return records
