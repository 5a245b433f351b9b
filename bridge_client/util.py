from collections.abc import Callable
from typing import Any, Generic, TypeVar

from loguru import logger

from bridge_client.exceptions import ExhaustedError, FetchError
from bridge_client.rate_limit import Limiter, RateLimiter
from bridge_client.types import Page

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 100
DEFAULT_RATE_LIMIT = 1.0

# consecutive empty pages fetched within one `next()` call
MAX_EMPTY_PAGES = 10


class Pagination:
    """
    Decides how the next page is located. Subclasses implement one of Bridge's
    pagination schemes.
    """

    def initial_param(self) -> Any:
        raise NotImplementedError

    def initial_items_consumed(self) -> int:
        return 0

    def has_more_pages(self, page: Page, items_consumed: int) -> bool:
        raise NotImplementedError

    def next_fetch_param(self, page: Page, items_consumed: int) -> Any:
        raise NotImplementedError


class OffsetPagination(Pagination):
    """
    Numeric offset plus a grand total reported with every page.
    """

    def __init__(self, offset: int = 0):
        if offset < 0:
            raise ValueError(f"offset must not be negative, got {offset}")

        self.offset = offset

    def initial_param(self) -> int:
        return self.offset

    def initial_items_consumed(self) -> int:
        return self.offset

    def has_more_pages(self, page: Page, items_consumed: int) -> bool:
        # An empty page means the collection shrank under us, nothing left to read.
        if page.total is None or not page.items:
            return False

        return items_consumed < page.total

    def next_fetch_param(self, page: Page, items_consumed: int) -> int:
        return items_consumed


class TokenPagination(Pagination):
    """
    Opaque continuation token, None on the last page.
    """

    def __init__(self, token: str | None = None):
        self.token = token

    def initial_param(self) -> str | None:
        return self.token

    def has_more_pages(self, page: Page, items_consumed: int) -> bool:
        return page.next_page_token is not None

    def next_fetch_param(self, page: Page, items_consumed: int) -> str | None:
        return page.next_page_token


class BridgeClientIterator(Generic[T]):
    """
    An iterator that hides Bridge's paginated API behind `has_more()` / `next()`.

    The first page is fetched while constructing the iterator. Every other page
    is fetched lazily, once, when the current page runs out. Every fetch goes
    through the rate limiter.

    A failed fetch raises `FetchError` and leaves the cursor where it was, so
    calling `next()` again retries the same page. The iterator never retries on
    its own, retry policy belongs to the caller.
    """

    def __init__(
        self,
        fetch_page: Callable[[Any, int], Page[T]],
        pagination: Pagination | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        rate_limit: float = DEFAULT_RATE_LIMIT,
        rate_limiter: Limiter | None = None,
    ):
        """
        :param fetch_page: called as `fetch_page(param, page_size)`, returns a Page
        :param pagination: pagination scheme (offset-counted from 0 if None)
        :param page_size: number of items to request per page
        :param rate_limit: maximum page fetches per second
        :param rate_limiter: limiter to use instead of creating one from `rate_limit`

        :raises FetchError: If the first page could not be fetched.
        """
        if not isinstance(page_size, int) or page_size <= 0:
            raise ValueError(f"page_size must be a positive integer, got {page_size}")

        self.__fetch_page = fetch_page
        self.__pagination = pagination if pagination is not None else OffsetPagination()
        self.__page_size = page_size
        self.__rate_limiter = (
            rate_limiter if rate_limiter is not None else RateLimiter(rate_limit)
        )

        self.__items_consumed = self.__pagination.initial_items_consumed()
        self.__index = 0
        self.__page = self.__fetch(self.__pagination.initial_param())

    def __fetch(self, param: Any) -> Page[T]:
        self.__rate_limiter.acquire()

        logger.debug(f"Fetching page at {param!r} (page size {self.__page_size})")

        try:
            return self.__fetch_page(param, self.__page_size)
        except Exception as e:
            raise FetchError(f"Error getting page at {param!r}: {e}") from e

    def __has_item_in_page(self) -> bool:
        return self.__index < len(self.__page.items)

    def __has_next_page(self) -> bool:
        return self.__pagination.has_more_pages(self.__page, self.__items_consumed)

    def __take(self) -> T:
        item = self.__page.items[self.__index]

        self.__index += 1
        self.__items_consumed += 1

        return item

    @property
    def page_size(self) -> int:
        return self.__page_size

    @property
    def items_consumed(self) -> int:
        """
        Number of items yielded so far (including the starting offset).
        """
        return self.__items_consumed

    @property
    def total(self) -> int | None:
        """
        Grand total reported by the last page, or None for token-based endpoints.
        """
        return self.__page.total

    def has_more(self) -> bool:
        """
        Returns True if `next()` has something to return. Never calls the server.
        """
        return self.__has_item_in_page() or self.__has_next_page()

    def next(self) -> T:
        """
        Returns the next item, fetching the next page if the current one is used up.

        :raises FetchError: If the next page could not be fetched. The iterator
            is left unchanged, calling `next()` again retries the fetch.
        :raises ExhaustedError: If there are no items left.
        """
        if self.__has_item_in_page():
            return self.__take()

        empty_pages = 0

        while self.__has_next_page():
            if empty_pages >= MAX_EMPTY_PAGES:
                raise FetchError(
                    f"Got {empty_pages} empty pages in a row, giving up for now"
                )

            param = self.__pagination.next_fetch_param(
                self.__page, self.__items_consumed
            )
            page = self.__fetch(param)

            self.__page = page
            self.__index = 0

            if self.__has_item_in_page():
                return self.__take()

            empty_pages += 1

        raise ExhaustedError("No more items left")

    def __iter__(self):
        return self

    def __next__(self) -> T:
        try:
            return self.next()
        except ExhaustedError:
            raise StopIteration from None


PaginatedFetchIterator = BridgeClientIterator
