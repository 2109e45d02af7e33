"""Simulated chunk, analysis and completion backends.

They honour the same contracts as the HTTP connectors, so the engine cannot
tell them apart. Output is deterministic for a given input.
"""

from __future__ import annotations

import re
import uuid
from collections import Counter
from datetime import datetime

from ..connectors.base import (
    AnalysisRequest,
    AnalysisServiceResponse,
    Chunk,
    ChunkServiceResponse,
    ChunkStatsInfo,
    CompletionRequest,
    CompletionServiceResponse,
    ProcessingInfo,
)
from ..documents.chunking import chunk_stats, clean_chunk_content, count_words, select_chunks
from ..errors import ServiceError
from .failures import FailureConfig, FailureRule
from .state import ServiceCall, SimulatorState

_SECTION_MARKER = re.compile(r"\[Section \d+/\d+\]|^---$", re.MULTILINE)
_NON_WORD = re.compile(r"[^\w\s]")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")

POSITIVE_WORDS = {"good", "great", "excellent", "success", "improve", "improved", "benefit", "growth", "positive", "strong"}
NEGATIVE_WORDS = {"bad", "poor", "risk", "failure", "loss", "decline", "issue", "negative", "weak", "concern"}


def extract_keywords(text: str) -> dict:
    """Frequency-based keywords: words longer than three characters."""
    words = [w for w in _NON_WORD.sub(" ", text.lower()).split() if len(w) > 3]
    ranked = [word for word, _ in Counter(words).most_common(20)]
    return {
        "primary_keywords": ranked[:8],
        "secondary_keywords": ranked[8:15],
        "technical_terms": [],
        "extraction_method": "frequency",
    }


def _plain_text(document_content: str) -> str:
    return clean_chunk_content(_SECTION_MARKER.sub(" ", document_content))


def _summarize(text: str, sentences: int = 2) -> str:
    parts = [p for p in _SENTENCE_END.split(text) if p]
    return " ".join(parts[:sentences])


def _sentiment(text: str) -> dict:
    words = _NON_WORD.sub(" ", text.lower()).split()
    positives = sorted({w for w in words if w in POSITIVE_WORDS})
    negatives = sorted({w for w in words if w in NEGATIVE_WORDS})
    score = len(positives) - len(negatives)
    overall = "Positive" if score > 0 else "Negative" if score < 0 else "Neutral"
    result: dict = {
        "overall_sentiment": overall,
        "emotional_tone": "Professional",
        "confidence_score": 0.5 + min(abs(score), 5) * 0.1,
    }
    if positives:
        result["positive_aspects"] = positives
    if negatives:
        result["concerns_identified"] = negatives
    return result


def _categorization(keywords: dict) -> dict:
    primary = keywords["primary_keywords"]
    return {
        "primary_category": primary[0].title() if primary else "General",
        "secondary_categories": [k.title() for k in primary[1:3]],
        "document_type": "Document",
        "confidence_score": 0.6 if primary else 0.3,
    }


class BaseSimulatedService:
    """Shared init, failure injection and call logging."""

    service_name: str = ""

    def __init__(self, state: SimulatorState, failure_config: FailureConfig | None = None):
        self.state = state
        self.failure_config = failure_config

    def _log(self, operation: str, target: str, error: str | None = None) -> None:
        self.state.calls.append(
            ServiceCall(
                service=self.service_name,
                operation=operation,
                target=target,
                status="failed" if error else "success",
                error=error,
            )
        )

    def _injected(self, operation: str, target: str) -> FailureRule | None:
        if self.failure_config is None:
            return None
        rule = self.failure_config.should_fail(self.service_name, target)
        if rule is not None:
            self._log(operation, target, f"[{rule.error_type}] {rule.message}")
        return rule


class SimulatedChunkService(BaseSimulatedService):
    service_name = "chunks"

    async def fetch_chunks(
        self, document_id: str, *, strategy: str, max_chunks: int
    ) -> ChunkServiceResponse:
        rule = self._injected("fetch_chunks", document_id)
        if rule is not None:
            raise ServiceError(rule.message, rule.error_type)

        raw = self.state.documents.get(document_id)
        if raw is None:
            self._log("fetch_chunks", document_id, "not_found")
            return ChunkServiceResponse(success=False, error=f"Document not found: {document_id}")

        cleaned = [clean_chunk_content(c) for c in raw]
        selected = select_chunks(cleaned, strategy, max_chunks)
        stats = chunk_stats(selected)
        self._log("fetch_chunks", document_id)
        return ChunkServiceResponse(
            success=True,
            chunks=[Chunk(content=c) for c in selected],
            metadata={"blobSource": False, "chunkingStrategy": strategy, "maxChunks": max_chunks},
            processing_info=ProcessingInfo(
                selected_chunks=len(selected),
                total_chunks=len(cleaned),
                strategy=strategy,
                stats=ChunkStatsInfo(estimated_tokens=stats.estimated_tokens if stats else 0),
            ),
            original_content={
                "text": "\n\n".join(cleaned),
                "metadata": {"totalWords": sum(count_words(c) for c in cleaned)},
            },
        )


class SimulatedAnalysisService(BaseSimulatedService):
    service_name = "analysis"

    async def analyze(self, analysis_type: str, request: AnalysisRequest) -> AnalysisServiceResponse:
        rule = self._injected("analyze", analysis_type)
        if rule is not None:
            if rule.error_type == "malformed_response":
                return AnalysisServiceResponse(success=True, analysis=None)
            raise ServiceError(rule.message, rule.error_type)

        text = _plain_text(request.document_content)
        keywords = extract_keywords(text)
        options = request.options

        if analysis_type == "keywords":
            analysis: dict = {"keywords": keywords}
        elif analysis_type == "summary":
            analysis = {"summary": _summarize(text, sentences=3)}
        elif analysis_type == "categorization":
            analysis = {"categorization": _categorization(keywords)}
        elif analysis_type == "sentiment":
            analysis = {"sentiment": _sentiment(text)}
        elif analysis_type == "comprehensive":
            sentences = [p for p in _SENTENCE_END.split(text) if p]
            comprehensive: dict = {
                "content_analysis": {
                    "document_type": "Document",
                    "writing_style": "Formal",
                    "complexity_level": "Moderate" if count_words(text) > 200 else "Low",
                    "main_topics": keywords["primary_keywords"][:3],
                },
            }
            if options.include_summary:
                comprehensive["summary"] = {
                    "executive_summary": _summarize(text),
                    "key_points": sentences[:3],
                }
            results: dict = {"comprehensive": comprehensive}
            if options.include_keywords:
                results["keywords"] = keywords
            if options.include_categorization:
                results["categorization"] = _categorization(keywords)
            if options.include_sentiment:
                results["sentiment"] = _sentiment(text)
            analysis = {"results": results, "modelUsed": options.model_type}
        else:
            self._log("analyze", analysis_type, "unsupported")
            raise ServiceError(f"Unsupported analysis type: {analysis_type}", "not_found")

        self._log("analyze", analysis_type)
        return AnalysisServiceResponse(success=True, analysis=analysis, analysis_id=uuid.uuid4().hex[:12])


class SimulatedCompletionService(BaseSimulatedService):
    service_name = "completion"

    async def complete(self, request: CompletionRequest) -> CompletionServiceResponse:
        rule = self._injected("complete", "complete")
        if rule is not None:
            if rule.error_type == "unsuccessful":
                return CompletionServiceResponse(success=False, error=rule.message)
            raise ServiceError(rule.message, rule.error_type)

        text = _plain_text(request.user_prompt)
        keywords = extract_keywords(text)["primary_keywords"][:5]
        self._log("complete", "complete")

        if request.output_format == "json":
            return CompletionServiceResponse(
                success=True,
                data={
                    "summary": _summarize(text),
                    "keywords": {"primary_keywords": keywords},
                    "model": request.model,
                    "processedAt": datetime.now().isoformat(),
                },
            )
        return CompletionServiceResponse(
            success=True,
            response=(
                f"Analysis ({request.model}): {_summarize(text) or 'No content.'}\n"
                f"Key terms: {', '.join(keywords) or 'none'}"
            ),
        )
