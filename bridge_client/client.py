import datetime
from sys import version as python_version

import requests
from loguru import logger

from bridge_client import __version__ as bridge_client_version
from bridge_client.exceptions import (
    BridgeConnectionError,
    NotAuthenticatedError,
    NotFoundError,
    ProtocolCorruptedError,
)
from bridge_client.util import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_RATE_LIMIT,
    BridgeClientIterator,
    OffsetPagination,
    TokenPagination,
)

from .types import AccountSummary, AccountSummaryList, Page, Upload, UploadList


class BridgeClient:
    def __init__(
        self,
        session_token: str,
        bridge_url: str = "https://webservices.sagebridge.org",
    ):
        """
        Initializes BridgeClient instance.

        :param session_token: Bridge session token of an already signed in worker account
        :param bridge_url: Bridge URL
        """
        self.session_token = session_token
        self.bridge_url = bridge_url.rstrip("/")

        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": f"bridge-client/{bridge_client_version} (Python {python_version})",
                "Bridge-Session": self.session_token,
            }
        )

    #
    # Helpers
    #

    _known_exceptions = {
        401: NotAuthenticatedError,
        403: NotAuthenticatedError,
        404: NotFoundError,
    }

    def _handle_exception(self, url: str, response: requests.Response) -> None:
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            detail: str = f"Failed to connect to Bridge ({self.bridge_url}{url})"
            try:
                details = response.json()
                if "message" in details:
                    detail = details["message"]
            except Exception:
                pass

            exception = self._known_exceptions.get(
                response.status_code, BridgeConnectionError
            )

            raise exception(detail) from e

    def _get(self, url: str, *args, **kwargs) -> requests.Response:
        response = self.session.get(self.bridge_url + url, *args, **kwargs)

        self._handle_exception(url, response)

        return response

    def _post(self, url: str, *args, **kwargs) -> requests.Response:
        response = self.session.post(self.bridge_url + url, *args, **kwargs)

        self._handle_exception(url, response)

        return response

    def _json(self, response: requests.Response):
        try:
            return response.json()
        except Exception as e:
            raise ProtocolCorruptedError(
                "Failed to parse response from Bridge",
                response.text,
            ) from e

    #
    # Account summaries
    #

    def search_account_summaries(
        self,
        app_id: str,
        offset: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[AccountSummary]:
        """
        Gets one page of account summaries in the app.

        :param app_id: app ID
        :param offset: number of accounts to skip
        :param page_size: number of accounts to return

        :raises BridgeConnectionError: If the connection to Bridge fails.
        :raises ProtocolCorruptedError: If the response could not be parsed.

        :returns: Page of account summaries with the total count
        """

        url = f"/v1/apps/{app_id}/participants/search"
        response = self._post(url, json={"offsetBy": offset, "pageSize": page_size})

        data = self._json(response)
        try:
            page = AccountSummaryList.model_validate(data).to_page()
        except Exception as e:
            raise ProtocolCorruptedError(
                "Failed to parse account summaries from Bridge",
                response.text,
            ) from e

        logger.debug(
            f"Got {len(page.items)} account summaries at offset {offset} of {page.total}"
        )

        return page

    def get_account_summaries(
        self,
        app_id: str,
        offset: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        rate_limit: float = DEFAULT_RATE_LIMIT,
    ) -> BridgeClientIterator[AccountSummary]:
        """
        Gets all account summaries in the app.

        The first page is requested right away, others as the iterator advances.

        :param app_id: app ID
        :param offset: offset of the first account to return
        :param page_size: number of accounts to fetch at once
        :param rate_limit: maximum number of page requests per second

        :raises FetchError: If the first page could not be fetched.

        :returns: Iterator of account summaries
        """

        def fetch_page(offset: int, page_size: int) -> Page[AccountSummary]:
            return self.search_account_summaries(app_id, offset, page_size)

        return BridgeClientIterator(
            fetch_page,
            OffsetPagination(offset),
            page_size=page_size,
            rate_limit=rate_limit,
        )

    #
    # Uploads
    #

    def list_uploads(
        self,
        app_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        offset_key: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[Upload]:
        """
        Gets one page of uploads in the app requested in the given time range.

        :param app_id: app ID
        :param start_time: start of the time range
        :param end_time: end of the time range
        :param offset_key: continuation token returned with the previous page (None for the first page)
        :param page_size: number of uploads to return

        :raises BridgeConnectionError: If the connection to Bridge fails.
        :raises ProtocolCorruptedError: If the response could not be parsed.

        :returns: Page of uploads with the continuation token
        """

        params = {
            "startTime": start_time.isoformat(),
            "endTime": end_time.isoformat(),
            "pageSize": page_size,
        }
        if offset_key is not None:
            params["offsetKey"] = offset_key

        response = self._get(f"/v1/apps/{app_id}/uploads", params=params)

        data = self._json(response)
        try:
            page = UploadList.model_validate(data).to_page()
        except Exception as e:
            raise ProtocolCorruptedError(
                "Failed to parse uploads from Bridge",
                response.text,
            ) from e

        logger.debug(
            f"Got {len(page.items)} uploads, next offset key {page.next_page_token!r}"
        )

        return page

    def get_uploads(
        self,
        app_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        page_size: int = DEFAULT_PAGE_SIZE,
        rate_limit: float = DEFAULT_RATE_LIMIT,
    ) -> BridgeClientIterator[Upload]:
        """
        Gets all uploads in the app requested in the given time range.

        The first page is requested right away, others as the iterator advances.

        :param app_id: app ID
        :param start_time: start of the time range
        :param end_time: end of the time range
        :param page_size: number of uploads to fetch at once
        :param rate_limit: maximum number of page requests per second

        :raises FetchError: If the first page could not be fetched.

        :returns: Iterator of uploads
        """

        def fetch_page(offset_key: str | None, page_size: int) -> Page[Upload]:
            return self.list_uploads(app_id, start_time, end_time, offset_key, page_size)

        return BridgeClientIterator(
            fetch_page,
            TokenPagination(),
            page_size=page_size,
            rate_limit=rate_limit,
        )
