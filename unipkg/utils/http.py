"""
HTTP client utilities for unipkg.

This module provides an asynchronous HTTP client with retry logic,
rate limiting, and concurrency control, plus streamed downloads that
land in the package cache atomically.
"""

from __future__ import annotations

import os
import time
import httpx
import random
import asyncio
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from unipkg.utils.logger import get_logger
from unipkg.__version__ import __version__
from unipkg.exceptions import FileOperationError, NetworkError
from unipkg.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DOWNLOAD_CHUNK_SIZE,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class HTTPClient:
    """Asynchronous HTTP client with retries, rate limiting, and concurrency control.

    Args:
        timeout: Request timeout in seconds.
        max_retries: Maximum number of retry attempts.
        rate_limit_delay: Minimum delay (seconds) between requests.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        max_concurrency: Maximum number of concurrent requests.
        transport: Optional httpx transport (used by tests to stub the network).

    Example:
        >>> async with HTTPClient() as client:
        ...     releases = await client.get_json_list(
        ...         "https://api.github.com/repos/owner/repo/releases"
        ...     )
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rate_limit_delay: float = 0.0,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        max_concurrency: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.max_concurrency = max_concurrency
        self.transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_429_retries: int = 5

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        """Initialize the underlying httpx client if needed."""
        if self._client is None:
            options: Dict[str, Any] = {
                "timeout": httpx.Timeout(self.timeout),
                "verify": self.verify_ssl,
                "follow_redirects": True,
                "headers": {"User-Agent": self.user_agent},
            }
            if self.transport is not None:
                options["transport"] = self.transport
            else:
                options["http2"] = True
            self._client = httpx.AsyncClient(**options)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limit(self) -> None:
        """Enforce a minimum delay between outgoing requests."""
        if self.rate_limit_delay <= 0:
            return

        async with self._rate_limit_lock:
            now = time.time()
            elapsed = now - self._last_request_time

            if elapsed < self.rate_limit_delay:
                delay = self.rate_limit_delay - elapsed
                self._last_request_time = now + delay
                await asyncio.sleep(delay)
            else:
                self._last_request_time = now

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute an HTTP request with retry and backoff logic.

        Timeouts, transport errors, and 5xx responses are retried with
        exponential backoff; 429 responses honour ``Retry-After``; any
        other 4xx response raises :class:`NetworkError` immediately.
        """
        await self._ensure_client()
        assert self._client is not None

        clean_url = url.strip().strip("\"'")
        last_exc: Optional[Exception] = None
        retry_429_count = 0

        for attempt in range(self.max_retries + 1):
            try:
                await self._rate_limit()

                async with self._semaphore:
                    response = await self._client.request(method, clean_url, **kwargs)

                if response.status_code == 429:
                    retry_429_count += 1
                    if retry_429_count > self._max_429_retries:
                        raise NetworkError(
                            f"Rate limit exceeded after {self._max_429_retries} retries",
                            url=clean_url,
                            status_code=429,
                        )
                    retry_after = _retry_after_seconds(response)
                    logger.warning(
                        "Rate limited (429), retrying after %ds (%d/%d)",
                        retry_after,
                        retry_429_count,
                        self._max_429_retries,
                    )
                    await asyncio.sleep(retry_after)
                    continue

                if response.status_code >= 400:
                    response.raise_for_status()

                return response

            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.warning(
                    "Request timeout (%d/%d): %s",
                    attempt + 1,
                    self.max_retries + 1,
                    clean_url,
                )

            except httpx.NetworkError as exc:
                last_exc = exc
                logger.warning(
                    "Network error (%d/%d): %s",
                    attempt + 1,
                    self.max_retries + 1,
                    exc,
                )

            except httpx.HTTPStatusError as exc:
                if 400 <= exc.response.status_code < 500:
                    raise NetworkError(
                        f"HTTP {exc.response.status_code} error for {clean_url}",
                        url=clean_url,
                        status_code=exc.response.status_code,
                        response_body=exc.response.text,
                    ) from exc
                last_exc = exc
                logger.warning(
                    "HTTP %d error (%d/%d): %s",
                    exc.response.status_code,
                    attempt + 1,
                    self.max_retries + 1,
                    clean_url,
                )

            if attempt < self.max_retries:
                delay = (2**attempt) + random.uniform(0.0, 0.3)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)

        raise NetworkError(
            f"Request failed after {self.max_retries + 1} attempts: {clean_url}",
            url=clean_url,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a GET request with retry logic."""
        return await self._request_with_retry("GET", url, **kwargs)

    async def get_json_list(self, url: str, **kwargs: Any) -> List[Any]:
        """Fetch a URL and parse the response as a JSON array."""
        response = await self.get(url, **kwargs)
        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=response.text,
            ) from exc
        if not isinstance(data, list):
            raise NetworkError(f"Expected JSON array from {url}", url=url)
        return data

    async def download(
        self,
        url: str,
        destination: Union[str, Path],
        **kwargs: Any,
    ) -> Path:
        """Stream ``url`` into ``destination``.

        The body is written to a temporary sibling file that replaces
        ``destination`` only once the transfer completes, so readers never
        observe a partial file. Downloads are not retried.

        Returns:
            The destination path.
        """
        await self._ensure_client()
        assert self._client is not None

        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                dir=str(destination.parent),
                prefix=f".{destination.name}.",
                suffix=".part",
            )
            os.close(fd)
        except OSError as exc:
            raise FileOperationError(
                f"Cannot prepare download target: {exc}",
                file_path=str(destination),
                operation="write",
                original_error=exc,
            ) from exc

        temp_path = Path(temp_name)
        try:
            await self._rate_limit()
            async with self._semaphore:
                async with self._client.stream("GET", url, **kwargs) as response:
                    if response.status_code >= 400:
                        body = await response.aread()
                        raise NetworkError(
                            f"HTTP {response.status_code} error downloading {url}",
                            url=url,
                            status_code=response.status_code,
                            response_body=body.decode("utf-8", errors="replace"),
                        )
                    with open(temp_path, "wb") as fh:
                        async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                            fh.write(chunk)
            temp_path.replace(destination)
            logger.debug("Downloaded %s -> %s", url, destination)
            return destination

        except httpx.HTTPError as exc:
            raise NetworkError(f"Download failed: {url}: {exc}", url=url) from exc

        except OSError as exc:
            raise FileOperationError(
                f"Failed to write download: {exc}",
                file_path=str(destination),
                operation="write",
                original_error=exc,
            ) from exc

        finally:
            if temp_path.exists():
                temp_path.unlink()


def _retry_after_seconds(response: httpx.Response) -> int:
    try:
        return max(int(response.headers.get("Retry-After", "1")), 0)
    except ValueError:
        return 1
