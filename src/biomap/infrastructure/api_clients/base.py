"""
Async HTTP API client with request spacing and retry on 429/5xx.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

logger = logging.getLogger(__name__)


class APIError(Exception):
    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class APIClient:
    """Shared aiohttp session with a minimum interval between requests."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 30,
        request_interval: float = 1.0,
        *,
        user_agent: str = "BioMap/0.1",
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = ClientTimeout(total=timeout)
        self.request_interval = request_interval
        self.user_agent = user_agent
        self._last_request_time = 0.0
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"User-Agent": self.user_agent}
            if self.api_key:
                headers["x-api-key"] = self.api_key
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=headers)
        return self._session

    async def _wait_for_rate_limit(self) -> None:
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.request_interval:
            await asyncio.sleep(self.request_interval - elapsed)
        self._last_request_time = time.monotonic()

    @staticmethod
    def _backoff_delay(attempt: int, retry_after: Optional[str]) -> float:
        if retry_after:
            try:
                return min(float(retry_after), 30.0)
            except (TypeError, ValueError):
                pass
        delay = 2.0 * (2 ** attempt)
        jitter = delay * 0.25 * (2 * random.random() - 1)
        return max(1.0, delay + jitter)

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        max_retries: int = 3,
    ) -> Dict[str, Any]:
        """GET with exponential backoff on 429/5xx and timeouts; 404 yields ``{}``."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        last_status = 0

        for attempt in range(max_retries + 1):
            await self._wait_for_rate_limit()
            session = await self._get_session()

            try:
                async with session.get(url, params=params) as response:
                    last_status = response.status
                    if response.status == 200:
                        return await response.json()
                    if response.status == 404:
                        logger.warning("Resource not found: %s", url)
                        return {}
                    if response.status == 429 or response.status >= 500:
                        retry_after = response.headers.get("Retry-After")
                        await response.read()
                        if attempt >= max_retries:
                            break
                        delay = self._backoff_delay(attempt, retry_after)
                        logger.warning(
                            "HTTP %s for %s, retry %d/%d in %.1fs",
                            response.status, url, attempt + 1, max_retries, delay,
                        )
                        await asyncio.sleep(delay)
                        continue
                    text = await response.text()
                    logger.error("API error %s: %s", response.status, text[:200])
                    raise APIError(f"API error: {response.status}", status=response.status)
            except asyncio.TimeoutError:
                if attempt >= max_retries:
                    logger.error("Request timeout after %d attempts: %s", max_retries + 1, url)
                    raise
                delay = self._backoff_delay(attempt, None)
                logger.warning("Timeout for %s, retry %d/%d in %.1fs", url, attempt + 1, max_retries, delay)
                await asyncio.sleep(delay)

        raise APIError(f"HTTP {last_status} after {max_retries + 1} attempts: {url}", status=last_status)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
