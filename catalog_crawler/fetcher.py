# catalog_crawler/fetcher.py
import logging

import httpx

from .config import load_settings
from .utils import network_retry

logger = logging.getLogger("fetcher")
logger.setLevel(logging.INFO)


class FetchError(Exception):
    """Transport or HTTP failure while fetching a page."""

    def __init__(self, url, message, status_code=None):
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url
        self.status_code = status_code


class PageFetcher:
    """
    Download pages over HTTP with retries.

    fetch() returns the raw body. fetch_text() decodes it with the configured
    encoding and ignores the declared charset, which the catalog sometimes
    gets wrong.
    """

    def __init__(self, settings=None, client=None, backoff=(1, 10)):
        self.settings = settings or load_settings()
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.settings.user_agent},
        )
        self.backoff = backoff

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the HTTP client and release resources."""
        await self.client.aclose()

    async def _get(self, url):
        resp = await self.client.get(url)
        resp.raise_for_status()
        return resp.content

    async def fetch(self, url):
        """
        Fetch a page body.

        Args:
            url (str): Absolute URL

        Returns:
            bytes: Raw response body

        Raises:
            FetchError: When every attempt failed with a transport error or a
                non-2xx status

        Retry Behavior:
            - Maximum attempts: settings.retries
            - Exponential backoff bounded by self.backoff (seconds)
        """
        min_wait, max_wait = self.backoff
        try:
            async for attempt in network_retry(
                (httpx.HTTPError,),
                attempts=self.settings.retries,
                min_wait=min_wait,
                max_wait=max_wait,
            ):
                with attempt:
                    n = attempt.retry_state.attempt_number
                    if n > 1:
                        logger.warning(f"Retrying {url} (attempt {n}/{self.settings.retries})")
                    return await self._get(url)
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}", e.response.status_code) from e
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e

    async def fetch_text(self, url):
        """Fetch a page and decode it with settings.encoding; bad bytes become U+FFFD."""
        body = await self.fetch(url)
        return decode_body(body, self.settings.encoding)


def decode_body(body, encoding):
    return body.decode(encoding, errors="replace")

