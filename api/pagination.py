"""
Pagination Walker
-----------------
Fetches numbered pages until the server reports there is no next page.
"""

from typing import AsyncIterator, Awaitable, Callable, Generic, List, Optional, TypeVar
import logging

from core.errors import PaginationError

from .models import Page

P = TypeVar("P", bound=Page)

FetchPage = Callable[[int], Awaitable[P]]


class PaginationWalker(Generic[P]):
    """
    Walks pages 1, 2, 3, ... of a paged call.

    Stops the first time a page has no next_page. Items keep server order
    within a page and fetch order across pages. Errors from any page
    propagate; nothing partial is returned.
    """

    def __init__(self, max_pages: Optional[int] = None, first_page: int = 1):
        self.max_pages = max_pages
        self.first_page = first_page
        self._logger = logging.getLogger("grocer.api.pagination")

    async def iter_pages(self, fetch_page: FetchPage) -> AsyncIterator[P]:
        page_number = self.first_page
        fetched = 0
        while True:
            if self.max_pages is not None and fetched >= self.max_pages:
                raise PaginationError(
                    f"Server still reports more pages after {fetched} pages"
                )
            page = await fetch_page(page_number)
            fetched += 1
            yield page
            if not page.has_next:
                self._logger.debug(f"Pagination finished after {fetched} page(s)")
                return
            page_number += 1

    async def walk(self, fetch_page: FetchPage) -> List:
        """Fetch every page and return all results in order."""
        items: List = []
        async for page in self.iter_pages(fetch_page):
            items.extend(page.results)
        return items
