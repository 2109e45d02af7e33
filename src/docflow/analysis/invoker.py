"""Two-tier AI analysis: structured endpoint first, raw completion as fallback.

Each tier is a coroutine returning a ``TierOutcome``; ``analyze`` chains them
with ``TierOutcome.or_else`` and folds the winner (or the combined failure)
into one ``AnalysisResult``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ..connectors.base import (
    AnalysisOptions,
    AnalysisRequest,
    AnalysisService,
    CompletionRequest,
    CompletionService,
)
from ..documents.chunks import DocumentChunkSet
from ..errors import ServiceError
from ..workflow.schema import DEFAULT_SYSTEM_PROMPT, AIAgentConfig
from .formatter import format_analysis
from .schema import (
    FALLBACK_CONFIDENCE,
    STRUCTURED_CONFIDENCE,
    STRUCTURED_KINDS,
    AnalysisMetadata,
    AnalysisResult,
    ProcessingMethod,
)

logger = logging.getLogger(__name__)

CONTENT_PLACEHOLDER = "{DOCUMENT_CONTENT}"
PROBE_DOCUMENT = "This is a test document for configuration validation."
PROBE_MAX_TOKENS = 500


@dataclass(frozen=True)
class TierOutcome:
    """Result of one invocation tier."""

    ok: bool
    payload: Any = None
    error: str | None = None
    method: ProcessingMethod = "none"
    confidence: float = 0.0
    analysis_id: str | None = None

    @classmethod
    def failure(cls, error: str) -> TierOutcome:
        return cls(ok=False, error=error)

    async def or_else(self, tier: Callable[[], Awaitable[TierOutcome]]) -> TierOutcome:
        """Run ``tier`` only if this outcome failed; keep both errors if it fails too."""
        if self.ok:
            return self
        following = await tier()
        if following.ok or not self.error:
            return following
        return TierOutcome.failure(f"{self.error}; {following.error}")


def build_user_prompt(template: str, content: str) -> str:
    """Substitute the document text into the prompt template.

    Templates without the placeholder get the text appended after a blank line.
    """
    if CONTENT_PLACEHOLDER in template:
        return template.replace(CONTENT_PLACEHOLDER, content)
    return f"{template}\n\n{content}"


def _has_payload(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, dict, list)):
        return bool(value)
    return True


class AnalysisInvoker:
    """Stateless; every call is independent and safe to re-issue."""

    def __init__(self, analysis: AnalysisService, completion: CompletionService):
        self.analysis = analysis
        self.completion = completion

    async def analyze(self, chunk_set: DocumentChunkSet, config: AIAgentConfig) -> AnalysisResult:
        started = time.perf_counter()
        kind = config.analysis_type

        if kind in STRUCTURED_KINDS:
            outcome = await self.try_structured(chunk_set, config)
            outcome = await outcome.or_else(lambda: self.try_fallback(chunk_set, config))
        else:
            outcome = await self.try_fallback(chunk_set, config)

        elapsed_ms = (time.perf_counter() - started) * 1000
        meta = chunk_set.metadata
        metadata = AnalysisMetadata(
            chunks_used=meta.selected_chunks,
            total_chunks=meta.total_chunks,
            strategy=meta.chunking_strategy,
            processing_method=outcome.method,
            analysis_id=outcome.analysis_id,
        )

        if not outcome.ok:
            logger.error("Analysis of document %s failed: %s", chunk_set.document_id, outcome.error)
            return AnalysisResult(
                document_id=chunk_set.document_id,
                success=False,
                analysis_type=kind,
                model=config.model_type,
                processing_time_ms=elapsed_ms,
                metadata=metadata,
                error=outcome.error or "AI processing failed",
            )

        logger.info(
            "Document %s analysed via %s in %.0f ms", chunk_set.document_id, outcome.method, elapsed_ms
        )
        return AnalysisResult(
            document_id=chunk_set.document_id,
            success=True,
            analysis_type=kind,
            model=config.model_type,
            raw_data=outcome.payload,
            formatted_text=format_analysis(outcome.payload, kind),
            processing_time_ms=elapsed_ms,
            confidence=outcome.confidence,
            metadata=metadata,
        )

    async def try_structured(self, chunk_set: DocumentChunkSet, config: AIAgentConfig) -> TierOutcome:
        """Primary tier: server-side typed analysis for ``config.analysis_type``."""
        request = AnalysisRequest(
            document_id=chunk_set.document_id,
            document_content=chunk_set.content,
            options=AnalysisOptions(
                model_type=config.model_type,
                include_keywords=config.include_keywords,
                include_sentiment=config.include_sentiment,
                include_categorization=config.include_categorization,
                include_summary=config.include_summary,
            ),
        )
        try:
            response = await self.analysis.analyze(config.analysis_type, request)
        except ServiceError as e:
            if e.error_type == "auth_error":
                logger.error("Structured analysis rejected credentials for document %s", chunk_set.document_id)
            else:
                logger.warning("Structured analysis failed for document %s: %s", chunk_set.document_id, e)
            return TierOutcome.failure(f"Structured analysis failed: {e}")
        except Exception as e:
            logger.warning("Structured analysis raised for document %s: %r", chunk_set.document_id, e)
            return TierOutcome.failure(f"Structured analysis failed: {e}")

        if not response.success or not _has_payload(response.analysis):
            reason = response.error or "response carried no analysis payload"
            logger.warning("Structured analysis unusable for document %s: %s", chunk_set.document_id, reason)
            return TierOutcome.failure(f"Structured analysis failed: {reason}")

        return TierOutcome(
            ok=True,
            payload=response.analysis,
            method="structured_analysis",
            confidence=STRUCTURED_CONFIDENCE,
            analysis_id=response.analysis_id,
        )

    async def try_fallback(
        self,
        chunk_set: DocumentChunkSet,
        config: AIAgentConfig,
        *,
        max_tokens: int | None = None,
    ) -> TierOutcome:
        """Fallback tier: one raw completion over the chunked text."""
        request = CompletionRequest(
            system_prompt=config.system_prompt or DEFAULT_SYSTEM_PROMPT,
            user_prompt=build_user_prompt(config.user_prompt, chunk_set.content),
            model=config.model_type,
            temperature=config.temperature,
            max_tokens=max_tokens or config.max_tokens,
            output_format=config.output_format,
        )
        logger.info("Fallback completion for document %s with %s", chunk_set.document_id, config.model_type)
        try:
            response = await self.completion.complete(request)
        except Exception as e:
            return TierOutcome.failure(f"Fallback completion failed: {e}")

        if not response.success or not _has_payload(response.output):
            return TierOutcome.failure(f"Fallback completion failed: {response.error or 'AI processing failed'}")

        return TierOutcome(
            ok=True,
            payload=response.output,
            method="fallback_ai",
            confidence=FALLBACK_CONFIDENCE,
        )

    async def probe(self, config: AIAgentConfig) -> TierOutcome:
        """Check an agent configuration with one small completion call."""
        sample = DocumentChunkSet.model_validate(
            {
                "document_id": "config-probe",
                "content": PROBE_DOCUMENT,
                "metadata": {"chunking_strategy": "all", "total_chunks": 1, "selected_chunks": 1},
            }
        )
        return await self.try_fallback(
            sample, config, max_tokens=min(config.max_tokens, PROBE_MAX_TOKENS)
        )
