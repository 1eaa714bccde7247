from fastapi import APIRouter, HTTPException, status
from loguru import logger
from app.schemas import (
    AcquireRequest,
    AcquisitionResultOut,
    BatchResponseOut,
    DebugExtractRequest,
    DebugExtractResponse,
    ExtractedSignalsOut,
)
from app.cache import db as cache_db
from app.services import acquire as acquire_service
from app.fetch.errors import BatchValidationError
from app.fetch.html_analyzer import HtmlExtractor
from app.fetch.utils import identity_key

router = APIRouter()

@router.post("/acquire", response_model=BatchResponseOut)
async def acquire_jobs(request: AcquireRequest):
    """
    Acquire raw job-posting content for a batch of URLs.

    Per-URL failures are reported inside the response body. Only malformed or
    oversized batches are rejected with 400.
    """
    try:
        batch = await acquire_service.process_batch(request.urls)
    except BatchValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.describe()
        )
    except Exception as e:
        logger.exception("Batch acquisition failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error while acquiring jobs: {e}"
        )
    return BatchResponseOut.model_validate(batch)

@router.post("/debug/extract", response_model=DebugExtractResponse)
async def debug_extract(request: DebugExtractRequest):
    """Acquire one URL without the cache and show what the extractor sees"""
    try:
        result = await acquire_service.acquire_single(request.url)
    except Exception as e:
        logger.exception(f"Debug extraction failed for {request.url}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    response = DebugExtractResponse(result=AcquisitionResultOut.model_validate(result))
    if result.success and result.content.content_kind == "html":
        extractor = HtmlExtractor()
        signals = extractor.extract(result.content.html, base_url=result.content.final_url)
        response.signals = ExtractedSignalsOut.model_validate(signals)
        response.cleaned_text = extractor.clean_body_text(result.content.html)
    elif result.success:
        response.cleaned_text = result.content.html
    return response

@router.get("/cache/stats")
async def cache_statistics():
    """Get repository statistics for debugging"""
    return acquire_service.get_cache_stats()

@router.delete("/cache/clear")
async def clear_cache():
    """Clear all stored records"""
    try:
        cache_db.clear_all()
        return {"message": "Cache cleared successfully"}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear cache: {str(e)}"
        )

@router.delete("/cache/entry")
async def delete_cache_entry(url: str):
    """Drop the stored record for one URL so the next batch acquires it again"""
    if not cache_db.delete(identity_key(url)):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No stored content for {url}"
        )
    return {"message": "Cache entry deleted", "url": url}

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Job Content Acquirer"}
