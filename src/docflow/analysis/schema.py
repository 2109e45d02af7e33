"""Canonical per-document analysis result."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator

STRUCTURED_KINDS = frozenset({"comprehensive", "summary", "keywords", "categorization", "sentiment"})

STRUCTURED_CONFIDENCE = 0.95
FALLBACK_CONFIDENCE = 0.80

ProcessingMethod = Literal["structured_analysis", "fallback_ai", "none"]


class AnalysisMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    chunks_used: int = 0
    total_chunks: int = 0
    strategy: str = "balanced"
    processing_method: ProcessingMethod = "none"
    analysis_id: Optional[str] = None


class AnalysisResult(BaseModel):
    """Outcome of analysing one document.

    A failed result carries an error and no payload; a successful one carries
    the raw payload and its rendered report.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    success: bool
    analysis_type: str
    model: str
    raw_data: Any = None
    formatted_text: Optional[str] = None
    processing_time_ms: float = 0.0
    confidence: float = 0.0
    metadata: AnalysisMetadata = AnalysisMetadata()
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_outcome(self) -> AnalysisResult:
        if not self.success:
            if not self.error:
                raise ValueError("failed analysis result requires an error message")
            if self.raw_data is not None or self.formatted_text is not None:
                raise ValueError("failed analysis result must not carry a payload")
        return self
