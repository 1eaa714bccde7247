from typing import Optional

from loguru import logger

from app.core.config import settings
from .base import BaseStrategy, RawFetchResult
from .errors import Blocked, HttpError, RateLimited
from .fetcher import RateLimitedFetcher
from .html_analyzer import HtmlExtractor

BLOCKING_STATUSES = (403, 451)

class DirectStrategy(BaseStrategy):
    """Plain HTTP fetch through the rate-limited fetcher. Default for every domain."""

    name = "direct"

    def __init__(
        self,
        fetcher: RateLimitedFetcher,
        extractor: Optional[HtmlExtractor] = None,
        min_content_chars: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.extractor = extractor or HtmlExtractor()
        self.min_content_chars = settings.MIN_CONTENT_CHARS if min_content_chars is None else min_content_chars

    async def attempt(self, url: str) -> RawFetchResult:
        try:
            result = await self.fetcher.fetch(url)
        except HttpError as e:
            if e.status in BLOCKING_STATUSES:
                raise Blocked(f"{url} refused direct access (HTTP {e.status})") from e
            if e.status == 429:
                raise RateLimited(f"{url} is throttling requests (HTTP 429)") from e
            raise

        if not self.extractor.is_usable(result.html, self.min_content_chars):
            marker = self.extractor.detect_block(result.html)
            if marker:
                raise Blocked(f"{url} served a bot challenge page ({marker!r})")
            # Typically a JavaScript shell that needs rendering
            text_length = len(self.extractor.extract_text(result.html))
            raise Blocked(f"{url} returned too little content ({text_length} chars)")

        logger.debug(f"Direct fetch of {url} returned usable content")
        return result
