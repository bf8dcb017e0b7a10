"""
Page Fetcher — async HTML retrieval with human-readable failures.
"""
import logging
from typing import Optional

import httpx

from seolens.core.config import settings

logger = logging.getLogger(__name__)


class PageFetchError(Exception):
    """Raised when a page cannot be retrieved. Message is safe to show users."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PageFetcher:
    """
    Thin wrapper around a shared httpx.AsyncClient.
    Redirects are followed and every request is bounded by FETCH_TIMEOUT_SECONDS.
    """

    def __init__(
        self,
        timeout: float = settings.FETCH_TIMEOUT_SECONDS,
        user_agent: str = settings.USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    async def fetch(self, url: str) -> str:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning(f"Fetch timed out for {url}: {e}")
            raise PageFetchError("Request timed out while fetching the page.") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise PageFetchError("The specified page was not found (404 error).", status) from e
            raise PageFetchError(
                f"The server returned an error: {status} {e.response.reason_phrase}", status
            ) from e
        except (httpx.ConnectError, httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            raise PageFetchError(
                "Unable to reach the specified URL. Please check that the URL is correct and accessible."
            ) from e
        except httpx.HTTPError as e:
            raise PageFetchError(f"Failed to fetch page: {e}") from e

        return response.text

    async def aclose(self) -> None:
        await self._client.aclose()
