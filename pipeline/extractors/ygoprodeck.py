"""
Client for the YGOProDeck card database API with retry logic.

This module provides:
- Exponential backoff retry logic for transient failures
- Rate limiting protection (HTTP 429 / Retry-After)
- Comprehensive error handling with custom exceptions
- Streaming image downloads to a local file
"""

import httpx
import asyncio
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import List, Dict, Any, Optional
from pydantic import ValidationError
from core.config import settings
from core.exceptions import (
    APIExtractionError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
    DataFormatError,
)
from schemas.version import DatabaseVersionInfo
import logging

logger = logging.getLogger(__name__)


class YGOProDeckClient:
    """
    Read-only access to the remote card database.

    Endpoints:
    - checkDBVer.php: current database version descriptor
    - cardinfo.php?misc=yes: the full card catalog in one response
    - archetypes.php: archetype names (tag generation)

    Use as an async context manager; the underlying httpx client is
    opened on enter and closed on exit.

    Attributes:
        base_url: API root, e.g. https://db.ygoprodeck.com/api/v7
        max_retries: Maximum number of attempts per request (default: 3)
        retry_delay: Initial retry delay in seconds (default: 1.0)
        timeout: Request timeout in seconds (default: 30.0)
        download_timeout: Timeout for image downloads (default: 120.0)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        download_timeout: Optional[float] = None
    ):
        self.base_url = (base_url or settings.YGOPRODECK_BASE_URL).rstrip("/")
        self.max_retries = max_retries or settings.MAX_RETRIES
        self.retry_delay = settings.RETRY_DELAY if retry_delay is None else retry_delay
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.download_timeout = download_timeout or settings.DOWNLOAD_TIMEOUT
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "YGOProDeckClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("YGOProDeckClient must be used as an async context manager")
        return self._client

    def _retry_after(self, response: httpx.Response, attempt: int) -> float:
        """
        Seconds to wait before retrying a 429.

        Retry-After may be delta-seconds or an HTTP-date; anything
        unparseable falls back to exponential backoff.
        """
        backoff = self.retry_delay * (2 ** attempt)
        header = response.headers.get("Retry-After")
        if header is None:
            return backoff

        try:
            seconds = float(header)
        except ValueError:
            seconds = None
        if seconds is not None:
            return max(0.0, seconds) if math.isfinite(seconds) else backoff

        try:
            retry_at = parsedate_to_datetime(header)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring unparseable Retry-After header: {header!r}")
            return backoff
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())

    async def _make_request_with_retry(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Make HTTP GET request with retry logic and exponential backoff.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            HTTP response

        Raises:
            AuthenticationError: On 401/403
            ResourceNotFoundError: On 404
            RateLimitError: When still rate limited after max retries
            NetworkError: For retryable errors after max retries
        """
        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")

                response = await self.client.get(url, params=params)

                if response.status_code in (401, 403):
                    raise AuthenticationError(
                        f"Authentication failed for {url}",
                        context={"status_code": response.status_code, "api_url": url}
                    )

                if response.status_code == 404:
                    raise ResourceNotFoundError(
                        f"Resource not found: {url}",
                        context={"status_code": 404, "api_url": url}
                    )

                if response.status_code == 429:
                    retry_after = self._retry_after(response, attempt)
                    logger.warning(f"Rate limited. Retrying after {retry_after} seconds")

                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(retry_after)
                        continue
                    raise RateLimitError(
                        f"Rate limit exceeded for {url}",
                        context={"status_code": 429, "api_url": url, "retry_count": attempt + 1},
                        retry_after=retry_after
                    )

                if response.status_code >= 500:
                    if attempt < self.max_retries - 1:
                        delay = self.retry_delay * (2 ** attempt)  # Exponential backoff
                        logger.warning(
                            f"Server error {response.status_code}. "
                            f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise NetworkError(
                        f"Server error after {self.max_retries} retries",
                        context={
                            "status_code": response.status_code,
                            "api_url": url,
                            "retry_count": attempt + 1,
                            "response_body": response.text[:500]  # Truncate
                        }
                    )

                response.raise_for_status()
                return response

            except (httpx.TimeoutException, httpx.TransportError) as e:
                if attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(f"{type(e).__name__} calling {url}. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Network error after {self.max_retries} retries",
                    context={"api_url": url, "timeout": self.timeout, "retry_count": attempt + 1},
                    original_exception=e
                )

            except httpx.HTTPStatusError as e:
                raise APIExtractionError(
                    f"Unexpected HTTP status {e.response.status_code}",
                    context={"api_url": url, "status_code": e.response.status_code},
                    original_exception=e
                )

        # Should never reach here, but just in case
        raise APIExtractionError("Max retries exceeded", context={"api_url": url})

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path}"
        response = await self._make_request_with_retry(url, params)
        try:
            return response.json()
        except ValueError as e:
            raise DataFormatError(
                "Failed to parse JSON response",
                context={"api_url": url, "response_body": response.text[:500]},
                original_exception=e
            )

    async def fetch_database_version(self) -> DatabaseVersionInfo:
        """
        Fetch the version the remote database currently declares.

        Raises:
            DataFormatError: If the response is not a non-empty list of descriptors
        """
        logger.info("Checking DB versions...")
        data = await self._get_json("checkDBVer.php")

        if not isinstance(data, list) or not data:
            raise DataFormatError(
                "Unexpected version response",
                context={"api_url": f"{self.base_url}/checkDBVer.php", "response_body": str(data)[:500]}
            )

        try:
            return DatabaseVersionInfo.model_validate(data[0])
        except ValidationError as e:
            raise DataFormatError(
                "Invalid version descriptor",
                context={"response_body": str(data[0])[:500]},
                original_exception=e
            )

    async def fetch_cards(self) -> List[Dict[str, Any]]:
        """
        Fetch the complete card catalog in a single request.

        Returns:
            Raw card payloads

        Raises:
            DataFormatError: If the response has no "data" list
        """
        logger.info("Fetching cards...")
        data = await self._get_json("cardinfo.php", params={"misc": "yes"})

        cards = data.get("data") if isinstance(data, dict) else None
        if not isinstance(cards, list):
            raise DataFormatError(
                "Card catalog response has no data list",
                context={"api_url": f"{self.base_url}/cardinfo.php", "response_body": str(data)[:500]}
            )

        logger.info(f"Fetched {len(cards)} cards")
        return cards

    async def fetch_archetypes(self) -> List[str]:
        """Fetch every archetype name"""
        logger.info("Fetching archetypes...")
        data = await self._get_json("archetypes.php")

        if not isinstance(data, list):
            raise DataFormatError(
                "Archetype response is not a list",
                context={"api_url": f"{self.base_url}/archetypes.php", "response_body": str(data)[:500]}
            )

        malformed = [item for item in data if not isinstance(item, dict)]
        if malformed:
            raise DataFormatError(
                "Archetype response contains non-object entries",
                context={"api_url": f"{self.base_url}/archetypes.php", "response_body": str(malformed)[:500]}
            )

        return [item["archetype_name"] for item in data if item.get("archetype_name")]

    async def download(self, url: str, destination: Path):
        """
        Stream a file to destination.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response
            httpx.TransportError: On connection failures
        """
        async with self.client.stream("GET", url, timeout=self.download_timeout) as response:
            response.raise_for_status()
            # File I/O runs in worker threads; concurrent downloads share the loop
            f = await asyncio.to_thread(open, destination, "wb")
            try:
                async for chunk in response.aiter_bytes(8192):
                    await asyncio.to_thread(f.write, chunk)
            finally:
                await asyncio.to_thread(f.close)
