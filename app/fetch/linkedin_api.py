import asyncio
import json
from typing import Any, Dict, Iterable, Optional

import httpx
from loguru import logger

from app.core.config import settings
from .base import BaseStrategy, RawFetchResult, utc_now_iso
from .errors import FetchTimeout, RateLimited, RemoteError, Unsupported
from .utils import domain_matches, extract_linkedin_job_id, host_of, is_http_url

LINKEDIN_DOMAINS = ("linkedin.com",)

def canonical_job_url(job_id: str) -> str:
    return f"https://www.linkedin.com/jobs/view/{job_id}/"

def render_job_payload(job: Dict[str, Any]) -> str:
    """Render the API's job record as labelled text followed by the full JSON."""
    company = job.get("company") or {}
    apply = job.get("apply_method") or {}

    lines = [
        f"Job Title: {job.get('title') or ''}",
        f"Company: {company.get('full_name') or ''}",
        f"Location: {job.get('location') or ''}",
        f"Work Place: {job.get('work_place') or ''}",
        f"Remote Allowed: {'Yes' if job.get('work_remote_allowed') else 'No'}",
        f"Listed Date: {job.get('listed_at_date') or ''}",
        f"Job State: {job.get('state') or ''}",
        f"Closed: {'Yes' if job.get('closed') else 'No'}",
    ]
    if company.get("headline"):
        lines.append(f"Company Headline: {company['headline']}")
    if apply.get("company_apply_url"):
        lines.append(f"Apply URL: {apply['company_apply_url']}")
    if apply.get("easy_apply_url"):
        lines.append(f"Easy Apply URL: {apply['easy_apply_url']}")
    lines.append(f"Easy Apply: {'Yes' if apply.get('easy_apply_url') else 'No'}")

    return "\n".join(lines) + (
        f"\n\nDescription:\n{job.get('description') or ''}"
        f"\n\n---\nFull Data:\n{json.dumps(job, indent=2, ensure_ascii=False, sort_keys=True)}"
    )

class LinkedInApiStrategy(BaseStrategy):
    """
    Job metadata from the GhostGenius API, used only for LinkedIn URLs.
    The returned html field carries rendered structured data, not markup.
    """

    name = "specialized_api"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        domains: Iterable[str] = LINKEDIN_DOMAINS,
        timeout_ms: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GHOSTGENIUS_API_KEY
        self.api_url = api_url or settings.GHOSTGENIUS_API_URL
        self.domains = tuple(domains)
        self.timeout_ms = timeout_ms or settings.FETCH_TIMEOUT_MS
        self._transport = transport

    async def attempt(self, url: str) -> RawFetchResult:
        if not is_http_url(url) or not domain_matches(host_of(url), self.domains):
            raise Unsupported(f"LinkedIn API does not handle {host_of(url) or url!r}")

        job_id = extract_linkedin_job_id(url)
        if not job_id:
            raise Unsupported(f"No LinkedIn job id found in {url}")

        if not self.api_key:
            raise Unsupported("GHOSTGENIUS_API_KEY not configured")

        canonical = canonical_job_url(job_id)
        timeout_sec = self.timeout_ms / 1000
        try:
            async with httpx.AsyncClient(timeout=timeout_sec, transport=self._transport) as client:
                response = await asyncio.wait_for(
                    client.get(
                        self.api_url,
                        params={"url": canonical},
                        headers={"Authorization": f"Bearer {self.api_key}"},
                    ),
                    timeout=timeout_sec,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeout(f"LinkedIn API timed out after {self.timeout_ms}ms for job {job_id}") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"LinkedIn API request failed for job {job_id}: {e}") from e

        status = response.status_code
        if status == 404:
            raise RemoteError(f"LinkedIn job {job_id} not found")
        if status == 429:
            raise RateLimited("LinkedIn API is rate limiting requests (HTTP 429)")
        if not response.is_success:
            raise RemoteError(f"LinkedIn API returned status {status} for job {job_id}")

        try:
            job = response.json()
        except ValueError as e:
            raise RemoteError(f"LinkedIn API returned invalid JSON for job {job_id}") from e
        if not isinstance(job, dict):
            raise RemoteError(f"LinkedIn API returned an unexpected payload for job {job_id}")

        logger.info(f"LinkedIn API returned job {job_id}: {job.get('title')!r}")
        return RawFetchResult(
            url=url,
            final_url=job.get("url") or canonical,
            html=render_job_payload(job),
            status_code=status,
            headers=dict(response.headers),
            fetched_at=utc_now_iso(),
            content_kind="structured",
        )
