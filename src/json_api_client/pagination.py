"""Lazy traversal of multi-page result sets.

A :class:`Paginator` is driven by two injected callables:

- ``fetch_page(cursor)`` fetches and decodes one page into a :class:`Page`
- ``advance(page, cursor)`` derives the next cursor, or ``None`` to stop

Two advance rules cover the common conventions: :func:`next_page_number`
for ``?page=N`` APIs and :func:`next_cursor` for APIs that embed an opaque
next-page token in the response.

Example:
    ```python
    async def fetch(page_number):
        data = await api.get_json(spec.with_param("page", page_number), auth)
        return Page(cursor=page_number, items=data["articles"], has_more=page_number * 20 < data["totalResults"])


    paginator = Paginator(fetch, next_page_number, initial_cursor=1, max_pages=5)
    async for article in paginator.items():
        print(article["title"])
    ```
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from json_api_client.decoding import JsonValue
from json_api_client.errors.exceptions import PaginationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page:
    """One page of results.

    Attributes:
        cursor: Page index or cursor this page was fetched with.
        items: Items on this page, in source order.
        has_more: Whether the source reports further pages.
        next_cursor: Cursor for the next page, for cursor-based APIs.
        data: The full decoded response, for callers that need extra fields.
    """

    cursor: Any
    items: Sequence[JsonValue] = ()
    has_more: bool = False
    next_cursor: Any = None
    data: JsonValue = field(default=None, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))


FetchPage = Callable[[Any], Awaitable[Page]]
AdvanceRule = Callable[[Page, Any], Any]


def next_page_number(page: Page, cursor: int) -> int | None:
    """Advance an integer page index while the page reports more results."""
    return cursor + 1 if page.has_more else None


def next_cursor(page: Page, cursor: Any) -> Any:
    """Follow the cursor embedded in the page while it reports more results."""
    return page.next_cursor if page.has_more else None


class Paginator:
    """Restartable, lazily evaluated sequence of pages.

    Every call to :meth:`pages` starts again from ``initial_cursor``. The
    sequence ends when a page reports ``has_more=False``, the advance rule
    returns ``None``, or ``max_pages`` pages were produced. A failed fetch
    ends it with :class:`PaginationError`, so an error can never be mistaken
    for a legitimate end.

    Args:
        fetch_page: Coroutine function returning the page for a cursor.
        advance: Rule deriving the next cursor from the page just fetched.
        initial_cursor: Cursor for the first page.
        max_pages: Optional upper bound on pages fetched per traversal.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        advance: AdvanceRule = next_page_number,
        initial_cursor: Any = 1,
        max_pages: int | None = None,
    ):
        if max_pages is not None and max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self._fetch_page = fetch_page
        self._advance = advance
        self._initial_cursor = initial_cursor
        self._max_pages = max_pages

    def __aiter__(self) -> AsyncIterator[Page]:
        return self.pages()

    async def pages(self) -> AsyncIterator[Page]:
        cursor = self._initial_cursor
        seen_cursors = {_cursor_key(cursor)}
        page_number = 0

        while True:
            page_number += 1
            try:
                page = await self._fetch_page(cursor)
            except PaginationError:
                raise
            except Exception as e:
                stage = getattr(e, "stage", type(e).__name__)
                raise PaginationError(
                    f"Fetching page {page_number} (cursor={cursor!r}) failed at stage {stage!r}: {e}",
                    underlying=e,
                    cursor=cursor,
                    page_number=page_number,
                ) from e

            logger.debug(f"Fetched page {page_number} (cursor={cursor!r}): {len(page.items)} items, has_more={page.has_more}")
            yield page

            if self._max_pages is not None and page_number >= self._max_pages:
                logger.debug(f"Stopping after max_pages={self._max_pages}")
                return

            following = self._advance(page, cursor)
            if following is None:
                return

            key = _cursor_key(following)
            if key in seen_cursors:
                raise PaginationError(
                    f"Cursor {following!r} was already visited; pagination is not advancing",
                    cursor=following,
                    page_number=page_number,
                )
            seen_cursors.add(key)
            cursor = following

    async def items(self) -> AsyncIterator[JsonValue]:
        """Items from every page, flattened in source order."""
        async for page in self.pages():
            for item in page.items:
                yield item

    async def collect(self) -> list[JsonValue]:
        return [item async for item in self.items()]


def _cursor_key(cursor: Any) -> Any:
    try:
        hash(cursor)
    except TypeError:
        return repr(cursor)
    return cursor
