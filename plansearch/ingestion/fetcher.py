"""
HTTP fetcher for provider feeds.
"""

from __future__ import annotations

from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from plansearch.errors import FetchError

USER_AGENT = "plansearch/0.1"


class FeedFetcher:
    """
    Downloads provider feeds with httpx.

    Transport failures (connect errors, timeouts) are retried with exponential
    backoff; HTTP error statuses are not.
    """

    def __init__(self, timeout: float = 15.0, client: Optional[httpx.Client] = None) -> None:
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    def fetch(self, url: str) -> bytes:
        """
        Return the raw feed body.

        Raises
        ------
        FetchError
            On an invalid URL, a non-2xx status, or repeated transport failures.
        """
        if not url or not url.startswith(("http://", "https://")):
            raise FetchError(f"Invalid provider URL: {url!r}")
        try:
            response = self._get(url)
        except httpx.TransportError as exc:
            raise FetchError(f"Failed to fetch {url}: {exc}") from exc
        if response.is_error:
            raise FetchError(f"Failed to fetch {url}: HTTP {response.status_code}")
        return response.content

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _get(self, url: str) -> httpx.Response:
        return self._client.get(url)

    def close(self) -> None:
        self._client.close()


__all__ = ["FeedFetcher"]
