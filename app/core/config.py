import os
from typing import Optional

def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")

def _csv(name: str, default: str) -> tuple:
    return tuple(part.strip().lower() for part in os.getenv(name, default).split(",") if part.strip())

class Settings:
    # Database
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/jobs.sqlite")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Fetching
    FETCH_TIMEOUT_MS: int = int(os.getenv("FETCH_TIMEOUT_MS", "30000"))
    FETCH_MAX_RETRIES: int = int(os.getenv("FETCH_MAX_RETRIES", "3"))
    FETCH_MIN_DELAY_MS: int = int(os.getenv("FETCH_MIN_DELAY_MS", "1000"))
    FETCH_JITTER: bool = _flag("FETCH_JITTER", "1")
    FETCH_ROTATE_IDENTITY: bool = _flag("FETCH_ROTATE_IDENTITY", "1")
    # Pins the identity when set
    USER_AGENT: Optional[str] = os.getenv("USER_AGENT") or None
    MIN_CONTENT_CHARS: int = int(os.getenv("MIN_CONTENT_CHARS", "100"))

    # Batches
    MAX_BATCH_SIZE: int = int(os.getenv("MAX_BATCH_SIZE", "10"))
    MAX_CONCURRENCY: int = int(os.getenv("MAX_CONCURRENCY", "3"))
    # 0 derives the deadline from fetch timeouts and retries
    BATCH_DEADLINE_SECONDS: float = float(os.getenv("BATCH_DEADLINE_SECONDS", "0"))

    # Render proxy (Jina reader)
    RENDER_PROXY_URL: str = os.getenv("RENDER_PROXY_URL", "https://r.jina.ai/")
    RENDER_PROXY_API_KEY: Optional[str] = os.getenv("RENDER_PROXY_API_KEY")
    RENDER_PROXY_TIMEOUT_MS: int = int(os.getenv("RENDER_PROXY_TIMEOUT_MS", "30000"))
    RENDER_PROXY_DOMAINS: tuple = _csv(
        "RENDER_PROXY_DOMAINS",
        "linkedin.com,indeed.com,glassdoor.com,ziprecruiter.com,wellfound.com,monster.com",
    )

    # LinkedIn job API (GhostGenius)
    GHOSTGENIUS_API_URL: str = os.getenv("GHOSTGENIUS_API_URL", "https://api.ghostgenius.fr/v2/job")
    GHOSTGENIUS_API_KEY: Optional[str] = os.getenv("GHOSTGENIUS_API_KEY")

    # Routing
    LINKEDIN_STRATEGY_ORDER: tuple = _csv("LINKEDIN_STRATEGY_ORDER", "specialized_api,render_proxy,direct")

settings = Settings()
