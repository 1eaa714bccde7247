"""
Rate-limited HTTP fetcher with browser-like headers, rotating identity and
bounded retry with exponential backoff.
"""

import asyncio
import random
import time
from typing import Awaitable, Callable, Dict, Optional

import httpx
from loguru import logger

from .base import FetchOptions, RawFetchResult, utc_now_iso
from .errors import AcquisitionError, FetchTimeout, HttpError, InvalidUrl, NetworkError
from .utils import is_http_url

USER_AGENTS = (
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    # Firefox
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0",
    # Safari
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Safari/605.1.15",
    # Edge
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
    # Chrome on Linux
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

JITTER_RATIO = 0.3
MIN_JITTERED_DELAY_MS = 100

Sleep = Callable[[float], Awaitable[None]]


def pick_identity(rotate: bool = True, static: Optional[str] = None) -> str:
    if static:
        return static
    if rotate:
        return random.choice(USER_AGENTS)
    return USER_AGENTS[0]


def merge_headers(base: Dict[str, str], overrides: Dict[str, str]) -> Dict[str, str]:
    """Merge header maps; override keys win regardless of case."""
    merged = dict(base)
    for key, value in overrides.items():
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = value
    return merged


class RateLimiter:
    """
    Enforces a minimum spacing between consecutive requests issued through
    one fetcher instance, whatever host they target.

    A single lock serialises callers so concurrent workers sharing the
    fetcher still observe the spacing.
    """

    def __init__(
        self,
        min_delay_ms: int,
        jitter: bool = True,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Sleep] = None,
    ):
        self.min_delay_ms = min_delay_ms
        self.jitter = jitter
        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        self._last_request: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None

    def jittered(self, delay_ms: float) -> float:
        if not self.jitter:
            return delay_ms
        offset = random.uniform(-JITTER_RATIO, JITTER_RATIO) * delay_ms
        return max(MIN_JITTERED_DELAY_MS, delay_ms + offset)

    async def wait(self) -> None:
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._last_request is not None:
                elapsed_ms = (self._clock() - self._last_request) * 1000
                needed_ms = self.min_delay_ms - elapsed_ms
                if needed_ms > 0:
                    delay_ms = self.jittered(needed_ms)
                    logger.debug(f"Rate limit: waiting {delay_ms:.0f}ms before next request")
                    await self._sleep(delay_ms / 1000)
            self._last_request = self._clock()


class RateLimitedFetcher:
    def __init__(
        self,
        options: Optional[FetchOptions] = None,
        limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.options = options or FetchOptions()
        self.limiter = limiter or RateLimiter(self.options.min_delay_ms, jitter=self.options.jitter)
        self._transport = transport
        self._sleep = sleep or asyncio.sleep

    def identity(self) -> str:
        return pick_identity(self.options.rotate_identity, self.options.static_identity)

    def build_headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.identity(), **BROWSER_HEADERS}
        return merge_headers(headers, self.options.extra_headers)

    async def fetch(self, url: str) -> RawFetchResult:
        """
        Fetch a URL, retrying failed attempts with exponential backoff.

        Raises:
            InvalidUrl: url is not an absolute http(s) URL (no request is made)
            FetchTimeout: the last attempt exceeded timeout_ms
            HttpError: the last attempt got a non-2xx status
            NetworkError: the last attempt could not connect
        """
        if not is_http_url(url):
            raise InvalidUrl(url)

        attempts = max(1, self.options.max_retries)
        last_error: Optional[AcquisitionError] = None

        for attempt in range(attempts):
            await self.limiter.wait()
            try:
                return await self._attempt(url)
            except (FetchTimeout, HttpError, NetworkError) as e:
                last_error = e
                if attempt < attempts - 1:
                    wait_time = 2 ** attempt
                    logger.warning(f"Fetch attempt {attempt + 1}/{attempts} for {url} failed ({e.describe()}), retrying in {wait_time}s")
                    await self._sleep(wait_time)
                else:
                    logger.warning(f"Fetch attempt {attempt + 1}/{attempts} for {url} failed ({e.describe()}), giving up")

        raise last_error

    async def _attempt(self, url: str) -> RawFetchResult:
        timeout_sec = self.options.timeout_ms / 1000
        try:
            async with httpx.AsyncClient(
                timeout=timeout_sec,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await asyncio.wait_for(
                    client.get(url, headers=self.build_headers()), timeout=timeout_sec
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeout(f"Timeout after {self.options.timeout_ms}ms while fetching {url}") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to fetch {url}: {e}") from e

        if not response.is_success:
            raise HttpError(response.status_code, f"HTTP {response.status_code} for {url}")

        return RawFetchResult(
            url=url,
            final_url=str(response.url),
            html=response.text,
            status_code=response.status_code,
            headers=dict(response.headers),
            fetched_at=utc_now_iso(),
            content_kind="html",
        )
