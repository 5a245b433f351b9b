import pytest

from bridge_client.types import Page


class OffsetBackend:
    """
    Serves `items` through an offset-counted endpoint.

    `failures` maps an offset to the number of times a fetch at that offset
    fails before succeeding.
    """

    def __init__(self, items, failures=None, total=None):
        self.items = list(items)
        self.failures = dict(failures or {})
        self.total = len(self.items) if total is None else total
        self.calls = []

    def __call__(self, offset, page_size):
        self.calls.append(offset)

        if self.failures.get(offset, 0) > 0:
            self.failures[offset] -= 1
            raise ConnectionError(f"backend down at offset {offset}")

        return Page(items=self.items[offset : offset + page_size], total=self.total)


class TokenBackend:
    """
    Serves pre-split `pages` through a token-based endpoint.
    """

    def __init__(self, pages, failures=None):
        self.pages = [list(page) for page in pages]
        self.failures = dict(failures or {})
        self.calls = []

    @staticmethod
    def token(index):
        return f"page-{index}"

    def __call__(self, token, page_size):
        self.calls.append(token)

        if self.failures.get(token, 0) > 0:
            self.failures[token] -= 1
            raise ConnectionError(f"backend down at token {token}")

        index = 0 if token is None else int(token.removeprefix("page-"))
        next_token = self.token(index + 1) if index + 1 < len(self.pages) else None

        return Page(items=self.pages[index], next_page_token=next_token)


class CountingLimiter:
    def __init__(self):
        self.acquired = 0

    def acquire(self, permits=1):
        self.acquired += permits
        return 0.0


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def chunks(items, size):
    return [items[i : i + size] for i in range(0, len(items), size)] or [[]]


@pytest.fixture
def offset_backend():
    return OffsetBackend


@pytest.fixture
def token_backend():
    return TokenBackend


@pytest.fixture
def limiter():
    return CountingLimiter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def paged():
    return chunks
