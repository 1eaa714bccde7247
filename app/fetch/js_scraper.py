import asyncio
from typing import Iterable, Optional

import httpx
from loguru import logger

from app.core.config import settings
from .base import BaseStrategy, RawFetchResult, utc_now_iso
from .errors import Blocked, FetchTimeout, RateLimited, RemoteError, Unsupported
from .fetcher import pick_identity
from .utils import domain_matches, host_of, is_http_url

class RenderProxyStrategy(BaseStrategy):
    """
    Delegate JavaScript-heavy or blocking-prone pages to a remote rendering
    service (Jina reader style: GET <proxy>/<target url> returns rendered text).

    Only whitelisted domains are handled; anything else is Unsupported so the
    orchestrator moves on without any network activity.
    """

    name = "render_proxy"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        domains: Optional[Iterable[str]] = None,
        timeout_ms: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.RENDER_PROXY_URL
        self.api_key = api_key if api_key is not None else settings.RENDER_PROXY_API_KEY
        self.domains = tuple(domains if domains is not None else settings.RENDER_PROXY_DOMAINS)
        self.timeout_ms = timeout_ms or settings.RENDER_PROXY_TIMEOUT_MS
        self._transport = transport

    def supports(self, url: str) -> bool:
        return is_http_url(url) and domain_matches(host_of(url), self.domains)

    def proxy_url(self, url: str) -> str:
        return self.base_url.rstrip("/") + "/" + url.strip()

    async def attempt(self, url: str) -> RawFetchResult:
        if not self.supports(url):
            raise Unsupported(f"Render proxy is not enabled for {host_of(url) or url!r}")

        headers = {"User-Agent": pick_identity(), "Accept": "text/plain, text/markdown;q=0.9, */*;q=0.5"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        timeout_sec = self.timeout_ms / 1000
        try:
            async with httpx.AsyncClient(timeout=timeout_sec, transport=self._transport) as client:
                response = await asyncio.wait_for(
                    client.get(self.proxy_url(url), headers=headers), timeout=timeout_sec
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeout(f"Render proxy timed out after {self.timeout_ms}ms for {url}") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Render proxy request failed for {url}: {e}") from e

        status = response.status_code
        if status in (403, 451):
            raise Blocked(f"Render proxy was blocked by {host_of(url)} (HTTP {status})")
        if status == 429:
            raise RateLimited("Render proxy is rate limiting requests (HTTP 429)")
        if not response.is_success:
            raise RemoteError(f"Render proxy returned HTTP {status} for {url}")

        content = response.text
        if not content.strip():
            raise RemoteError(f"Render proxy returned an empty body for {url}")

        logger.debug(f"Render proxy returned {len(content)} chars for {url}")
        return RawFetchResult(
            url=url,
            final_url=url,
            html=content,
            status_code=status,
            headers=dict(response.headers),
            fetched_at=utc_now_iso(),
            content_kind="text",
        )
