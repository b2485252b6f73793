"""
Downloads original PDFs from blob storage over HTTP.
"""

import logging

import httpx

from .exceptions import DocumentFetchError

logger = logging.getLogger(__name__)


class DocumentFetcher:
    """
    Fetches raw document bytes from a URL.

    Retries are left to callers; a single request is made per call.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used to stub the network.
        """
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> bytes:
        """
        Download the content at url.

        Raises:
            DocumentFetchError: On invalid URLs, transport errors, non-2xx
                responses or an empty body.
        """
        logger.info("Fetching original document from %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Fetch of %s failed with HTTP %d", url, e.response.status_code)
            raise DocumentFetchError(
                f"Could not download document: HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Fetch of %s failed: %s", url, e)
            raise DocumentFetchError(f"Could not download document: {e}") from e

        if not response.content:
            raise DocumentFetchError(f"Downloaded document is empty: {url}")

        logger.info("Fetched %d bytes from %s", len(response.content), url)
        return response.content
