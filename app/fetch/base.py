import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, Optional

from app.core.config import settings


@dataclass(frozen=True)
class FetchOptions:
    timeout_ms: int = 30000
    max_retries: int = 3
    rotate_identity: bool = True
    min_delay_ms: int = 1000
    jitter: bool = True
    static_identity: Optional[str] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.min_delay_ms < 0:
            raise ValueError(f"min_delay_ms must be >= 0, got {self.min_delay_ms}")

    @classmethod
    def from_settings(cls, cfg=settings) -> "FetchOptions":
        return cls(
            timeout_ms=cfg.FETCH_TIMEOUT_MS,
            max_retries=cfg.FETCH_MAX_RETRIES,
            rotate_identity=cfg.FETCH_ROTATE_IDENTITY,
            min_delay_ms=cfg.FETCH_MIN_DELAY_MS,
            jitter=cfg.FETCH_JITTER,
            static_identity=cfg.USER_AGENT,
        )


@dataclass(frozen=True)
class RawFetchResult:
    url: str
    final_url: str
    html: str
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    fetched_at: str = ""  # ISO 8601
    # "html", "text" (render proxy) or "structured" (API payload)
    content_kind: str = "html"


def utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class BaseStrategy:
    name = "base"

    async def attempt(self, url: str) -> RawFetchResult:
        raise NotImplementedError
