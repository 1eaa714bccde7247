from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from app.fetch.errors import ErrorKind

class AcquireRequest(BaseModel):
    # Element types are checked by the coordinator so they surface as InvalidInput
    urls: List[Any] = Field(description="Job posting URLs to acquire")

class DebugExtractRequest(BaseModel):
    url: str

class RawContent(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    final_url: str
    html: str = Field(description="Markup, rendered text or serialized structured payload, see content_kind")
    content_kind: str = "html"
    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    fetched_at: str

class StrategyAttempt(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    strategy: str
    success: bool
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    elapsed_ms: float = 0.0

class AcquisitionResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    success: bool
    cached: bool = False
    strategy_used: Optional[str] = None
    content: Optional[RawContent] = None
    attempts: List[StrategyAttempt] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

class BatchSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    successful: int
    failed: int

class BatchResponseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    results: List[AcquisitionResultOut]
    summary: BatchSummaryOut

class ExtractedSignalsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    text: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    links: List[str] = Field(default_factory=list)
    structured_data: List[Any] = Field(default_factory=list)
    tables: List[List[Dict[str, str]]] = Field(default_factory=list)

class DebugExtractResponse(BaseModel):
    result: AcquisitionResultOut
    signals: Optional[ExtractedSignalsOut] = None
    cleaned_text: Optional[str] = None
