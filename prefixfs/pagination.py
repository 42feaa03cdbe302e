"""
Forward and backward paging over a forward-only cursor endpoint.

The backend hands out an opaque cursor for the next page only. There is no reverse cursor, and the
cursor of a page cannot be recovered once the following page has been fetched. Going back one page
therefore replays the session from the first page, which costs one request per page between the
start and the target page. PageCachingPager trades memory for those requests by keeping visited pages.
"""

import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar

from prefixfs.models import MetricsQuery, PageNavigationState, PageWindow, UserMetrics
from prefixfs.objectstore.gateway import ObjectStoreGateway

logger = logging.getLogger("prefixfs.pagination")

T = TypeVar("T")

# (cursor, limit, params) -> page
PageFetcher = Callable[[str | None, int, Any], Awaitable[PageWindow[T]]]
ProgressCallback = Callable[[float | None, int], Any]


class PagerError(Exception):
    pass


class CancelToken:
    """Cooperative cancellation flag, checked by collect_all between pages"""

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class CursorPager(Generic[T]):
    def __init__(
        self,
        fetch_page: PageFetcher,
        item_id: Callable[[T], str],
        page_size: int = 20,
        export_page_size: int = 200,
    ):
        """
        :param fetch_page: coroutine function returning the page for a cursor (None for the first page)
        :param item_id: identifier of an item, used as the boundary marker of the page it starts
        :param page_size: items per page when navigating
        :param export_page_size: items per page for collect_all
        """
        self.fetch_page = fetch_page
        self.item_id = item_id
        self.page_size = page_size
        self.export_page_size = export_page_size
        self.state = PageNavigationState()
        self.current: PageWindow[T] | None = None

    @property
    def current_page(self) -> int:
        return self.state.current_page

    @property
    def has_next(self) -> bool:
        return self.state.next_cursor is not None

    @property
    def has_prev(self) -> bool:
        return self.state.current_page > 1

    def _marker(self, window: PageWindow[T] | None) -> str:
        if window is None or not window.items:
            return ""
        return self.item_id(window.items[0])

    def _land(self, window: PageWindow[T], stack: list[str]) -> PageWindow[T]:
        # state only changes after a successful fetch, so a failed call leaves the pager untouched
        self.state = PageNavigationState(
            current_page=len(stack) + 1, prev_cursor_stack=stack, next_cursor=window.next_cursor
        )
        self.current = window
        return window

    async def first_page(self, params: Any = None) -> PageWindow[T]:
        window = await self.fetch_page(None, self.page_size, params)
        return self._land(window, [])

    async def next_page(self, params: Any = None) -> PageWindow[T]:
        if self.state.next_cursor is None:
            raise PagerError("There is no next page")
        marker = self._marker(self.current)
        window = await self.fetch_page(self.state.next_cursor, self.page_size, params)
        return self._land(window, [*self.state.prev_cursor_stack, marker])

    async def prev_page(self, params: Any = None) -> PageWindow[T]:
        """
        Go back one page by replaying from the first page.

        The replay re-fetches every page up to the target and checks that each page still starts
        with the item recorded when it was first visited. If the data shifted in the meantime, or any
        fetch fails, an error is raised and the pager stays on the current page.
        """
        if not self.has_prev:
            raise PagerError("There is no previous page")
        target = self.state.prev_cursor_stack[:-1]
        logger.debug(f"Replaying {len(target) + 1} page(s) to return to page {len(target) + 1}")

        window = await self.fetch_page(None, self.page_size, params)
        replayed: list[str] = []
        while len(replayed) < len(target):
            if window.next_cursor is None:
                raise PagerError(f"Listing ended after {len(replayed) + 1} page(s) while replaying to page {len(target) + 1}")
            replayed.append(self._marker(window))
            window = await self.fetch_page(window.next_cursor, self.page_size, params)
        if replayed != target:
            raise PagerError("Listing changed since these pages were visited, start again from the first page")
        return self._land(window, replayed)

    async def collect_all(
        self,
        params: Any = None,
        on_progress: ProgressCallback | None = None,
        cancel: CancelToken | None = None,
        expected_total: int | None = None,
    ) -> list[T]:
        """
        Fetch the complete result set, page by page, using export_page_size.

        on_progress is called after every page with (fraction done, items so far); the fraction is None
        when the total is unknown. Cancellation is only checked between pages: a page that is in flight
        when cancel is requested completes and is dropped, and the items collected before it are returned.
        If any page fails, the error propagates and nothing is returned, so a partial set is never
        mistaken for the full one. The navigation state of the pager is not affected.
        """
        items: list[T] = []
        cursor: str | None = None
        while True:
            window = await self.fetch_page(cursor, self.export_page_size, params)
            if cancel is not None and cancel.cancelled:
                logger.info(f"Collection cancelled after {len(items)} items, dropping the last page")
                return items
            items.extend(window.items)
            if expected_total is None:
                expected_total = window.total
            if on_progress is not None:
                fraction = min(len(items) / expected_total, 1.0) if expected_total else None
                on_progress(fraction, len(items))
            cursor = window.next_cursor
            if cursor is None:
                return items
            if cancel is not None and cancel.cancelled:
                logger.info(f"Collection cancelled after {len(items)} items")
                return items


class PageCachingPager(CursorPager[T]):
    """
    A CursorPager that keeps every visited page for the duration of the session,
    so going back is a lookup instead of a replay.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pages: dict[int, tuple[PageWindow[T], list[str]]] = {}

    def _land(self, window: PageWindow[T], stack: list[str]) -> PageWindow[T]:
        window = super()._land(window, stack)
        self.pages[self.state.current_page] = (window, stack)
        return window

    async def first_page(self, params: Any = None) -> PageWindow[T]:
        self.pages = {}
        return await super().first_page(params)

    async def prev_page(self, params: Any = None) -> PageWindow[T]:
        if self.has_prev and (cached := self.pages.get(self.state.current_page - 1)):
            window, stack = cached
            return super()._land(window, stack)
        return await super().prev_page(params)


def metrics_fetcher(gateway: ObjectStoreGateway) -> PageFetcher:
    """Adapt the metrics endpoint of the gateway to a page fetcher. params should be a MetricsQuery (or None)"""

    async def fetch(cursor: str | None, limit: int, params: MetricsQuery | None) -> PageWindow[UserMetrics]:
        page = await gateway.metrics_page(cursor, limit, params)
        next_cursor = page.page_info.next_cursor if page.page_info.has_next_page else None
        return PageWindow(items=page.items, next_cursor=next_cursor, total=page.page_info.count)

    return fetch


def metrics_pager(gateway: ObjectStoreGateway, page_size: int = 20, export_page_size: int = 200, cache_pages=False):
    cls = PageCachingPager if cache_pages else CursorPager
    return cls(metrics_fetcher(gateway), item_id=lambda m: m.id, page_size=page_size, export_page_size=export_page_size)
