import sys
from typing import Optional

from loguru import logger

from app.core.config import settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def setup_logging(level: Optional[str] = None) -> None:
    """Replace loguru's default handler with one honouring LOG_LEVEL."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=(level or settings.LOG_LEVEL).upper())
