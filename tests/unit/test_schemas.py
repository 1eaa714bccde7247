import pytest
from pydantic import ValidationError
from app.fetch.base import RawFetchResult
from app.fetch.errors import ErrorKind
from app.fetch.html_analyzer import ExtractedSignals
from app.schemas import AcquireRequest, AcquisitionResultOut, BatchResponseOut, ExtractedSignalsOut
from app.services.acquire import BatchResponse
from app.services.orchestrator import AcquisitionResult, StrategyOutcome

def sample_result():
    content = RawFetchResult(
        url="https://test.com/jobs/1",
        final_url="https://test.com/jobs/1",
        html="<html>job</html>",
        status_code=200,
        headers={"content-type": "text/html"},
        fetched_at="2025-01-01T00:00:00Z",
    )
    return AcquisitionResult(
        url="https://test.com/jobs/1",
        success=True,
        content=content,
        strategy_used="direct",
        attempts=[StrategyOutcome(strategy="direct", success=True, result=content, elapsed_ms=12.5)],
    )

class TestSchemaValidation:
    """Unit tests for Pydantic schema validation"""

    def test_acquire_request_requires_urls(self):
        with pytest.raises(ValidationError):
            AcquireRequest()

    def test_acquire_request_keeps_elements_as_given(self):
        request = AcquireRequest(urls=["https://test.com", 42])
        assert request.urls == ["https://test.com", 42]

    def test_result_from_dataclass(self):
        out = AcquisitionResultOut.model_validate(sample_result())

        assert out.success is True
        assert out.cached is False
        assert out.content.html == "<html>job</html>"
        assert out.content.content_kind == "html"
        assert out.attempts[0].strategy == "direct"
        assert out.attempts[0].elapsed_ms == 12.5
        assert out.error_kind is None

    def test_failed_result_serializes_error_kind(self):
        result = AcquisitionResult(
            url="https://test.com/jobs/2",
            success=False,
            attempts=[StrategyOutcome(strategy="direct", success=False, error=ErrorKind.BLOCKED, message="HTTP 403")],
            error="Blocked: HTTP 403",
            error_kind=ErrorKind.BLOCKED,
        )
        data = AcquisitionResultOut.model_validate(result).model_dump(mode="json")

        assert data["content"] is None
        assert data["error_kind"] == "Blocked"
        assert data["attempts"][0]["error"] == "Blocked"

    def test_batch_response_from_dataclass(self):
        batch = BatchResponse.from_results([sample_result()])
        out = BatchResponseOut.model_validate(batch)

        assert out.summary.total == 1
        assert out.summary.successful == 1
        assert out.summary.failed == 0
        assert out.results[0].url == "https://test.com/jobs/1"

    def test_signals_from_dataclass(self):
        signals = ExtractedSignals(
            text="Engineer",
            metadata={"title": "Engineer"},
            links=["https://test.com/apply"],
            structured_data=[{"@type": "JobPosting"}],
            tables=[[{"column_0": "a"}]],
        )
        out = ExtractedSignalsOut.model_validate(signals)
        assert out.metadata == {"title": "Engineer"}
        assert out.tables == [[{"column_0": "a"}]]
