"""Lazy, restartable paginated collections."""

import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Generic, List, Optional, TypeVar

from ..core.compat import WireModel
from ..core.errors import MalformedResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PageMetadata(WireModel):
    """``metaData`` block of a REST collection response."""

    limit: Optional[int] = None
    more: bool = False
    next_page_link: Optional[str] = None


class RestPage(WireModel, Generic[T]):
    """One page of a REST collection: ``{"data": [...], "metaData": {...}}``."""

    data: List[T] = []
    meta_data: Optional[PageMetadata] = None


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    # None on the last page.
    next_cursor: Optional[str] = None

    @classmethod
    def from_rest(cls, page: RestPage) -> "Page":
        meta = page.meta_data
        cursor = meta.next_page_link if meta is not None and meta.more else None
        return cls(list(page.data), cursor or None)


FetchPage = Callable[[Optional[str]], Awaitable[Page]]


class PagedSequence(Generic[T]):
    """An async iterable over every item of a paginated collection.

    Each page is fetched by one call to ``fetch_page(cursor)``, starting with
    ``None``. Nothing is cached: every iteration starts again from the first
    page and observes the collection as it is at that time.
    """

    def __init__(self, fetch_page: FetchPage) -> None:
        self._fetch_page = fetch_page

    async def pages(self) -> AsyncIterator[Page]:
        cursor: Optional[str] = None
        seen = set()
        while True:
            page = await self._fetch_page(cursor)
            yield page
            if page.next_cursor is None:
                return
            if page.next_cursor in seen:
                raise MalformedResponse(f"Pagination cursor {page.next_cursor!r} repeated")
            seen.add(page.next_cursor)
            cursor = page.next_cursor
            logger.debug(f"Fetching next page ({cursor})")

    async def __aiter__(self) -> AsyncIterator[T]:
        async with aclosing(self.pages()) as pages:
            async for page in pages:
                for item in page.items:
                    yield item

    async def collect(self) -> List[T]:
        """Fetch every page and return all items."""
        return [item async for item in self]

    async def first(self) -> Optional[T]:
        """Return the first item, fetching no more pages than needed."""
        async with aclosing(self.__aiter__()) as items:
            async for item in items:
                return item
        return None
