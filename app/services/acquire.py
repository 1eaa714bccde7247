"""
Bulk acquisition of job-posting content.

1. Validate the batch (the only failures that reject a whole batch)
2. Resolve identity hashes against the repository; hits skip all strategies
3. Acquire the remaining unique URLs concurrently under a worker bound and
   a batch deadline
4. Persist fresh successes keyed by the same hash
5. Return one result per submitted URL plus a summary
"""

import asyncio
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from loguru import logger

from app.cache import db as cache_db
from app.core.config import settings
from app.fetch.base import FetchOptions, RawFetchResult
from app.fetch.errors import EmptyBatch, ErrorKind, InvalidInput, TooManyUrls
from app.fetch.fetcher import RateLimitedFetcher
from app.fetch.js_scraper import RenderProxyStrategy
from app.fetch.linkedin_api import LinkedInApiStrategy
from app.fetch.scraper import DirectStrategy
from app.fetch.utils import identity_key
from app.services.orchestrator import (
    AcquisitionOrchestrator,
    AcquisitionResult,
    RoutingTable,
    StrategyOutcome,
)


@dataclass
class BatchSummary:
    total: int = 0
    successful: int = 0
    failed: int = 0


@dataclass
class BatchResponse:
    results: List[AcquisitionResult] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)

    @classmethod
    def from_results(cls, results: List[AcquisitionResult]) -> "BatchResponse":
        successful = sum(1 for r in results if r.success)
        return cls(
            results=results,
            summary=BatchSummary(total=len(results), successful=successful, failed=len(results) - successful),
        )


def validate_batch(urls: Any, max_batch_size: int) -> List[str]:
    if not isinstance(urls, list):
        raise InvalidInput('"urls" must be a list of URL strings')
    if not urls:
        raise EmptyBatch("At least one URL is required")
    if len(urls) > max_batch_size:
        raise TooManyUrls(f"Maximum {max_batch_size} URLs allowed per request, got {len(urls)}")
    if not all(isinstance(url, str) for url in urls):
        raise InvalidInput("All URLs must be strings")
    return urls


def result_from_record(url: str, record: Dict[str, Any]) -> AcquisitionResult:
    content = RawFetchResult(
        url=record.get("url") or url,
        final_url=record.get("final_url") or record.get("url") or url,
        html=record["content"],
        status_code=record.get("status_code") or 200,
        headers=record.get("headers") or {},
        fetched_at=record.get("fetched_at") or "",
        content_kind=record.get("content_kind") or "html",
    )
    return AcquisitionResult(
        url=url, success=True, content=content, strategy_used=record.get("strategy"), cached=True
    )


def record_from_result(key: str, result: AcquisitionResult) -> Dict[str, Any]:
    content = result.content
    return {
        "id": key,
        "url": result.url,
        "final_url": content.final_url,
        "content": content.html,
        "content_kind": content.content_kind,
        "status_code": content.status_code,
        "headers": content.headers,
        "strategy": result.strategy_used,
        "fetched_at": content.fetched_at,
    }


class BulkCoordinator:
    def __init__(
        self,
        orchestrator: AcquisitionOrchestrator,
        repository=cache_db,
        max_batch_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
        fetch_options: Optional[FetchOptions] = None,
    ):
        self.orchestrator = orchestrator
        self.repository = repository
        self.max_batch_size = max_batch_size or settings.MAX_BATCH_SIZE
        self.max_concurrency = max(1, max_concurrency or settings.MAX_CONCURRENCY)
        self.deadline_seconds = settings.BATCH_DEADLINE_SECONDS if deadline_seconds is None else deadline_seconds
        self.fetch_options = fetch_options or FetchOptions.from_settings()

    def deadline_for(self, url_count: int) -> float:
        """Explicit deadline, or the worst case of every routed strategy exhausting its retries."""
        if self.deadline_seconds and self.deadline_seconds > 0:
            return self.deadline_seconds

        options = self.fetch_options
        tries = max(1, options.max_retries)
        backoff = sum(2 ** i for i in range(tries - 1))
        per_strategy = tries * options.timeout_ms / 1000 + backoff + options.min_delay_ms / 1000
        per_url = per_strategy * self.orchestrator.routing.longest_plan()
        waves = math.ceil(url_count / self.max_concurrency)
        return per_url * waves

    async def acquire(self, urls: Any) -> BatchResponse:
        urls = validate_batch(urls, self.max_batch_size)

        keys = [identity_key(url) for url in urls]
        unique: Dict[str, str] = {}
        for key, url in zip(keys, urls):
            unique.setdefault(key, url)

        logger.info(f"Starting acquisition for {len(urls)} URL(s), {len(unique)} unique")

        results_by_key: Dict[str, AcquisitionResult] = {}
        for key, record in self._lookup(list(unique)).items():
            logger.info(f"CACHE HIT for {unique[key]}")
            results_by_key[key] = result_from_record(unique[key], record)

        pending = {key: url for key, url in unique.items() if key not in results_by_key}
        fresh = await self._dispatch(pending)
        results_by_key.update(fresh)

        for key, result in fresh.items():
            if result.success:
                self._persist(key, result)

        results = [replace(results_by_key[key], url=url) for key, url in zip(keys, urls)]
        batch = BatchResponse.from_results(results)
        logger.info(
            f"Acquisition complete: {batch.summary.successful}/{batch.summary.total} succeeded, "
            f"{batch.summary.failed} failed"
        )
        return batch

    def _lookup(self, keys: List[str]) -> Dict[str, Dict[str, Any]]:
        try:
            records = self.repository.find_by_ids(keys)
        except Exception as e:
            logger.warning(f"Cache lookup failed, acquiring every URL: {e}")
            return {}
        return {record["id"]: record for record in records if record.get("id") in keys}

    def _persist(self, key: str, result: AcquisitionResult) -> None:
        try:
            self.repository.save(record_from_result(key, result))
        except Exception as e:
            logger.warning(f"Failed to store acquired content for {result.url}: {e}")

    async def _dispatch(self, pending: Dict[str, str]) -> Dict[str, AcquisitionResult]:
        if not pending:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrency)
        attempts: Dict[str, List[StrategyOutcome]] = {key: [] for key in pending}

        async def run(key: str, url: str) -> AcquisitionResult:
            async with semaphore:
                return await self.orchestrator.acquire(url, attempts=attempts[key])

        tasks = {key: asyncio.ensure_future(run(key, url)) for key, url in pending.items()}
        deadline = self.deadline_for(len(pending))
        _, not_done = await asyncio.wait(tasks.values(), timeout=deadline)

        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning(f"Batch deadline of {deadline:.1f}s exceeded, abandoning {len(not_done)} acquisition(s)")
            await asyncio.gather(*not_done, return_exceptions=True)

        results: Dict[str, AcquisitionResult] = {}
        for key, task in tasks.items():
            url = pending[key]
            if task in not_done or task.cancelled():
                results[key] = AcquisitionResult(
                    url=url,
                    success=False,
                    attempts=list(attempts[key]),
                    error=f"{ErrorKind.TIMEOUT.value}: batch deadline of {deadline:.1f}s exceeded",
                    error_kind=ErrorKind.TIMEOUT,
                )
            elif task.exception() is not None:
                e = task.exception()
                results[key] = AcquisitionResult(
                    url=url,
                    success=False,
                    attempts=list(attempts[key]),
                    error=f"{ErrorKind.REMOTE_ERROR.value}: {e}",
                    error_kind=ErrorKind.REMOTE_ERROR,
                )
            else:
                results[key] = task.result()
        return results


def build_coordinator(cfg=settings, repository=cache_db) -> BulkCoordinator:
    options = FetchOptions.from_settings(cfg)
    fetcher = RateLimitedFetcher(options)
    strategies = {
        DirectStrategy.name: DirectStrategy(fetcher, min_content_chars=cfg.MIN_CONTENT_CHARS),
        RenderProxyStrategy.name: RenderProxyStrategy(
            base_url=cfg.RENDER_PROXY_URL,
            api_key=cfg.RENDER_PROXY_API_KEY,
            domains=cfg.RENDER_PROXY_DOMAINS,
            timeout_ms=cfg.RENDER_PROXY_TIMEOUT_MS,
        ),
        LinkedInApiStrategy.name: LinkedInApiStrategy(
            api_key=cfg.GHOSTGENIUS_API_KEY,
            api_url=cfg.GHOSTGENIUS_API_URL,
            timeout_ms=cfg.FETCH_TIMEOUT_MS,
        ),
    }
    orchestrator = AcquisitionOrchestrator(strategies, RoutingTable.from_settings(cfg))
    return BulkCoordinator(
        orchestrator,
        repository=repository,
        max_batch_size=cfg.MAX_BATCH_SIZE,
        max_concurrency=cfg.MAX_CONCURRENCY,
        deadline_seconds=cfg.BATCH_DEADLINE_SECONDS,
        fetch_options=options,
    )


_coordinator: Optional[BulkCoordinator] = None


def get_coordinator() -> BulkCoordinator:
    """Shared coordinator, so one fetcher (and its rate limiter) serves every request."""
    global _coordinator
    if _coordinator is None:
        _coordinator = build_coordinator()
    return _coordinator


async def process_batch(urls: Any) -> BatchResponse:
    return await get_coordinator().acquire(urls)


async def acquire_single(url: str) -> AcquisitionResult:
    """Acquire one URL through the orchestrator, bypassing the cache."""
    return await get_coordinator().orchestrator.acquire(url)


def get_cache_stats() -> Dict[str, Any]:
    """Get repository statistics for debugging"""
    try:
        return cache_db.get_stats()
    except Exception as e:
        return {"error": str(e)}
