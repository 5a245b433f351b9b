import json
import os
import time
from collections import Counter
from collections.abc import Callable
from typing import Any, TypeVar

from deepmerge import always_merger
from loguru import logger

from bridge_client.client import BridgeClient
from bridge_client.exceptions import ExhaustedError, FetchError
from bridge_client.rate_limit import RateLimiter
from bridge_client.util import BridgeClientIterator

T = TypeVar("T")


class Action:
    """
    Base Action class to be used as template for operator scripts.
    """

    class Options:
        """
        Options class that should handle loading all the options from the environment
        variables, falling back to the JSON config files listed in BRIDGE_CONFIG_FILE.
        """

        logger = logger

        def _load_config_files(self) -> dict:
            config: dict = {}

            for path in os.environ.get("BRIDGE_CONFIG_FILE", "").split(os.pathsep):
                if not path:
                    continue

                with open(path, "r") as f:
                    config = always_merger.merge(config, json.load(f))

            return config

        def _env(self, name: str, default: Any = None, required: bool = False) -> str:
            val = os.environ.get(name, self._config.get(name, default))
            if val is None and required:
                self.logger.error(f"Missing environment variable: {name}")
                exit(1)
            return val

        def __init__(self):
            self._config = self._load_config_files()

            self.SESSION_TOKEN = self._env("BRIDGE_SESSION_TOKEN", required=True)
            self.BRIDGE_URL = self._env(
                "BRIDGE_URL", "https://webservices.sagebridge.org"
            )

    options: Options
    logger = logger

    def __init__(self):
        self.options = self.Options()

        self.bridge_client = BridgeClient(
            self.options.SESSION_TOKEN, self.options.BRIDGE_URL
        )

    def run(self, *args, **kwargs) -> None:
        raise NotImplementedError


class ScanAction(Action):
    """
    Action that walks over every item of a paginated collection.

    Failed page fetches are retried by calling `next()` again until too many fail
    in a row. A failure while processing one item is logged and the scan goes on.
    """

    class Options(Action.Options):
        def __init__(self):
            super().__init__()

            self.APP_ID = self._env("BRIDGE_APP_ID", required=True)
            self.PAGE_SIZE = self._positive("BRIDGE_PAGE_SIZE", int, "100")
            self.RATE_LIMIT = self._positive("BRIDGE_RATE_LIMIT", float, "1.0")

            self.MAX_FETCH_FAILURES = self._positive(
                "BRIDGE_MAX_FETCH_FAILURES", int, "3", allow_zero=True
            )
            self.REPORTING_INTERVAL = self._positive(
                "BRIDGE_REPORTING_INTERVAL", int, "100"
            )

            self.ITEM_RATE_LIMIT = (
                self._positive("BRIDGE_ITEM_RATE_LIMIT", float)
                if self._env("BRIDGE_ITEM_RATE_LIMIT") is not None
                else None
            )

        def _positive(
            self,
            name: str,
            convert: Callable[[Any], int | float],
            default: Any = None,
            allow_zero: bool = False,
        ) -> Any:
            raw = self._env(name, default, required=True)
            try:
                val = convert(raw)
            except (TypeError, ValueError):
                val = None

            if val is None or val < 0 or (val == 0 and not allow_zero):
                self.logger.error(
                    f"{name} must be a {'non-negative' if allow_zero else 'positive'} number, got {raw!r}"
                )
                exit(1)
            return val

    options: Options  # type: ignore

    def scan(
        self,
        iterator: BridgeClientIterator[T],
        process: Callable[[T], str | None],
    ) -> Counter:
        """
        Processes every item of the iterator.

        :param iterator: items to process
        :param process: called for every item, may return a metric name to count

        :returns: metrics counted during the scan
        """
        metrics = Counter()
        item_limiter = (
            RateLimiter(self.options.ITEM_RATE_LIMIT)
            if self.options.ITEM_RATE_LIMIT is not None
            else None
        )

        num_items = 0
        fetch_failures = 0
        start = time.monotonic()

        while iterator.has_more():
            if item_limiter is not None:
                item_limiter.acquire()

            try:
                item = iterator.next()
            except FetchError:
                fetch_failures += 1
                metrics["fetch_error"] += 1
                self.logger.exception(
                    f"Error getting next item ({fetch_failures} in a row)"
                )

                if fetch_failures > self.options.MAX_FETCH_FAILURES:
                    self.logger.error(
                        f"Giving up after {fetch_failures} failed fetches in a row"
                    )
                    exit(1)

                continue
            except ExhaustedError:
                # last page turned out to be empty
                break

            fetch_failures = 0

            try:
                metric = process(item)
                if metric is not None:
                    metrics[metric] += 1
            except Exception:
                metrics["error"] += 1
                self.logger.exception(f"Error processing item {num_items}")

            num_items += 1
            if num_items % self.options.REPORTING_INTERVAL == 0:
                self.logger.info(
                    f"Processing in progress: {num_items} items in {time.monotonic() - start:.0f} seconds"
                )

        self.logger.info(
            f"Finished processing {num_items} items in {time.monotonic() - start:.0f} seconds"
        )

        for name, count in sorted(metrics.items()):
            self.logger.info(f"{name}={count}")

        return metrics


__all__ = ["Action", "ScanAction"]
