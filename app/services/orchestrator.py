"""
Per-URL acquisition: pick an ordered strategy list from the routing table and
try each strategy in turn until one produces content.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from app.core.config import settings
from app.fetch.base import BaseStrategy, RawFetchResult
from app.fetch.errors import AcquisitionError, ErrorKind, InvalidUrl
from app.fetch.utils import domain_matches, host_of, is_http_url

DEFAULT_STRATEGIES = ("direct",)


@dataclass
class StrategyOutcome:
    strategy: str
    success: bool
    result: Optional[RawFetchResult] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    elapsed_ms: float = 0.0


@dataclass
class AcquisitionResult:
    url: str
    success: bool
    content: Optional[RawFetchResult] = None
    strategy_used: Optional[str] = None
    attempts: List[StrategyOutcome] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    cached: bool = False


@dataclass(frozen=True)
class Route:
    name: str
    domains: Tuple[str, ...]
    strategies: Tuple[str, ...]

    def matches(self, url: str) -> bool:
        return domain_matches(host_of(url), self.domains)


class RoutingTable:
    """Domain pattern -> ordered strategy list. First matching route wins."""

    def __init__(self, routes: Sequence[Route] = (), default: Sequence[str] = DEFAULT_STRATEGIES):
        self.routes = tuple(routes)
        self.default = tuple(default)

    def strategies_for(self, url: str) -> Tuple[str, ...]:
        for route in self.routes:
            if route.matches(url):
                return route.strategies
        return self.default

    def route_name(self, url: str) -> str:
        for route in self.routes:
            if route.matches(url):
                return route.name
        return "default"

    def strategy_names(self) -> set:
        names = set(self.default)
        for route in self.routes:
            names.update(route.strategies)
        return names

    def longest_plan(self) -> int:
        return max([len(self.default)] + [len(route.strategies) for route in self.routes])

    @classmethod
    def from_settings(cls, cfg=settings) -> "RoutingTable":
        linkedin_domains = ("linkedin.com",)
        render_heavy = tuple(d for d in cfg.RENDER_PROXY_DOMAINS if not domain_matches(d, linkedin_domains))
        routes = [Route("linkedin", linkedin_domains, tuple(cfg.LINKEDIN_STRATEGY_ORDER))]
        if render_heavy:
            routes.append(Route("render_heavy", render_heavy, ("direct", "render_proxy")))
        return cls(routes)


class AcquisitionOrchestrator:
    def __init__(self, strategies: Dict[str, BaseStrategy], routing: Optional[RoutingTable] = None):
        self.strategies = dict(strategies)
        self.routing = routing or RoutingTable()

        missing = self.routing.strategy_names() - set(self.strategies)
        if missing:
            raise ValueError(f"Routing table references unknown strategies: {sorted(missing)}")

    async def acquire(self, url: str, attempts: Optional[List[StrategyOutcome]] = None) -> AcquisitionResult:
        """
        Try the routed strategies for url strictly in order.

        Strategy failures never escape: each one is recorded in attempts and the
        next strategy is tried. The returned result carries the full attempt list.
        Callers may pass their own attempts list to observe progress.
        """
        attempts = [] if attempts is None else attempts

        if not is_http_url(url):
            error = InvalidUrl(url)
            return AcquisitionResult(
                url=url, success=False, attempts=attempts, error=error.describe(), error_kind=error.kind
            )

        plan = self.routing.strategies_for(url)
        logger.info(f"Acquiring {url} via route '{self.routing.route_name(url)}': {' -> '.join(plan)}")

        last_kind: Optional[ErrorKind] = None
        last_message: Optional[str] = None

        for name in plan:
            strategy = self.strategies[name]
            started = time.monotonic()
            try:
                result = await strategy.attempt(url)
            except asyncio.CancelledError:
                # Batch deadline hit mid-attempt
                attempts.append(StrategyOutcome(
                    strategy=name,
                    success=False,
                    error=ErrorKind.TIMEOUT,
                    message="Cancelled at batch deadline",
                    elapsed_ms=(time.monotonic() - started) * 1000,
                ))
                raise
            except AcquisitionError as e:
                last_kind, last_message = e.kind, str(e)
            except Exception as e:
                logger.exception(f"Strategy '{name}' crashed on {url}")
                last_kind, last_message = ErrorKind.REMOTE_ERROR, f"{type(e).__name__}: {e}"
            else:
                attempts.append(StrategyOutcome(
                    strategy=name,
                    success=True,
                    result=result,
                    elapsed_ms=(time.monotonic() - started) * 1000,
                ))
                logger.info(f"Acquired {url} with '{name}' after {len(attempts)} attempt(s)")
                return AcquisitionResult(
                    url=url, success=True, content=result, strategy_used=name, attempts=attempts
                )

            attempts.append(StrategyOutcome(
                strategy=name,
                success=False,
                error=last_kind,
                message=last_message,
                elapsed_ms=(time.monotonic() - started) * 1000,
            ))
            if last_kind is ErrorKind.UNSUPPORTED:
                logger.debug(f"Strategy '{name}' skipped {url}: {last_message}")
            else:
                logger.warning(f"Strategy '{name}' failed for {url}: {last_kind.value}: {last_message}")

        return AcquisitionResult(
            url=url,
            success=False,
            attempts=attempts,
            error=f"{last_kind.value}: {last_message}" if last_kind else "No strategies configured",
            error_kind=last_kind,
        )
