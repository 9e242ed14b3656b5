"""Download source videos into a render workspace."""

import logging
from pathlib import Path
from typing import Optional

import httpx

from src.config import get_settings
from src.exceptions import FetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class SourceFetcher:
    """Streams a remote video to a local path without buffering it in memory."""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout_s: Optional[float] = None,
        max_bytes: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.user_agent = user_agent or settings.fetch_user_agent
        self.timeout_s = timeout_s or settings.fetch_timeout_s
        self.max_bytes = max_bytes or settings.max_source_bytes
        self._transport = transport

    async def fetch(self, url: str, dest: Path) -> Path:
        """
        Stream ``url`` into ``dest``.

        Args:
            url: Source video URL
            dest: Local path to write (overwritten if present)

        Returns:
            dest

        Raises:
            FetchError: On transport errors, timeouts, non-2xx responses, or
                when the body exceeds the configured size limit
        """
        logger.info(f"[FETCH] Downloading {url}")
        written = 0

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise FetchError(
                            f"Source download failed: HTTP {response.status_code} for {url}"
                        )

                    content_length = response.headers.get("Content-Length")
                    if content_length and content_length.isdigit() and int(content_length) > self.max_bytes:
                        raise FetchError(
                            f"Source video is {content_length} bytes (max: {self.max_bytes})"
                        )

                    with open(dest, "wb") as f:
                        async for chunk in response.aiter_bytes(CHUNK_SIZE):
                            written += len(chunk)
                            if written > self.max_bytes:
                                raise FetchError(
                                    f"Source video exceeds {self.max_bytes} bytes"
                                )
                            f.write(chunk)
        except httpx.TimeoutException as e:
            raise FetchError(f"Source download timed out: {url}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Source download failed: {e}") from e

        logger.info(f"[FETCH] Downloaded {written} bytes to {dest}")
        return dest
