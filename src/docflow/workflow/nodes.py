"""Per-node-type executors.

Each executor takes the node and a read-only view of the forwarded context and
returns a ``NodeOutcome``. Only the scheduler merges outcomes into the context.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from ..analysis.invoker import AnalysisInvoker
from ..analysis.schema import AnalysisMetadata, AnalysisResult
from ..documents.chunks import ChunkRetriever, DocumentChunkSet
from .schema import ActionNode, AIAgentConfig, AIAgentNode, TriggerNode

logger = logging.getLogger(__name__)

CHUNK_SETS_KEY = "document_chunk_sets"


@dataclass
class NodeOutcome:
    success: bool
    summary: str
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class NodeExecutor(Protocol):
    async def run(self, node: Any, ctx: Mapping[str, Any]) -> NodeOutcome: ...


class TriggerExecutor:
    """Resolves the selected documents into chunk sets."""

    def __init__(self, retriever: ChunkRetriever):
        self.retriever = retriever

    async def run(self, node: TriggerNode, ctx: Mapping[str, Any]) -> NodeOutcome:
        config = node.config
        now = datetime.now().isoformat()

        if not config.selected_document_ids:
            return NodeOutcome(
                success=True,
                summary=f"{node.name} triggered successfully",
                data={"trigger_type": config.trigger_type, "triggered_at": now},
            )

        chunk_sets: dict[str, DocumentChunkSet] = {}
        for document_id in config.selected_document_ids:
            chunk_sets[document_id] = await self.retriever.get_chunks(
                document_id, strategy=config.chunking_strategy, max_chunks=config.max_chunks
            )

        failed = sum(1 for s in chunk_sets.values() if s.is_error)
        summary = f"Processed {len(chunk_sets)} documents with chunked content"
        if failed:
            summary += f" ({failed} could not be retrieved)"

        return NodeOutcome(
            success=True,
            summary=summary,
            data={
                CHUNK_SETS_KEY: chunk_sets,
                "documents_processed": len(chunk_sets),
                "trigger_type": "documentUpload",
                "processed_at": now,
            },
        )


class AIAgentExecutor:
    """Analyses every forwarded chunk set, one document at a time."""

    def __init__(self, invoker: AnalysisInvoker):
        self.invoker = invoker

    async def run(self, node: AIAgentNode, ctx: Mapping[str, Any]) -> NodeOutcome:
        config = node.config
        chunk_sets: Mapping[str, DocumentChunkSet] = ctx.get(CHUNK_SETS_KEY) or {}

        if not chunk_sets:
            logger.warning("AI agent %s has no documents to analyse", node.id)
            return NodeOutcome(
                success=True,
                summary="No documents to process",
                data={
                    "ai_results": [],
                    "processed": 0,
                    "successful": 0,
                    "failed": 0,
                    "model": config.model_type,
                    "analysis_type": config.analysis_type,
                    "total_processing_time_ms": 0.0,
                    "message": "No documents were provided for analysis",
                },
            )

        results: list[AnalysisResult] = []
        for document_id, chunk_set in chunk_sets.items():
            if chunk_set.is_error:
                logger.warning("Skipping document %s: retrieval failed", document_id)
                results.append(
                    _failed_result(chunk_set, config, chunk_set.metadata.error or "Document processing failed")
                )
                continue
            try:
                results.append(await self.invoker.analyze(chunk_set, config))
            except Exception as e:
                logger.error("Analysis of document %s raised: %r", document_id, e)
                results.append(_failed_result(chunk_set, config, str(e) or type(e).__name__))

        successful = sum(1 for r in results if r.success)
        return NodeOutcome(
            success=True,
            summary=f"Analyzed {successful}/{len(results)} documents successfully",
            data={
                "ai_results": results,
                "processed": len(results),
                "successful": successful,
                "failed": len(results) - successful,
                "model": config.model_type,
                "analysis_type": config.analysis_type,
                "total_processing_time_ms": sum(r.processing_time_ms for r in results),
            },
        )


def _failed_result(chunk_set: DocumentChunkSet, config: AIAgentConfig, error: str) -> AnalysisResult:
    meta = chunk_set.metadata
    return AnalysisResult(
        document_id=chunk_set.document_id,
        success=False,
        analysis_type=config.analysis_type,
        model=config.model_type,
        metadata=AnalysisMetadata(
            chunks_used=meta.selected_chunks,
            total_chunks=meta.total_chunks,
            strategy=meta.chunking_strategy,
        ),
        error=error,
    )


class ActionExecutor:
    """Pass-through step: forwards the context tagged with the action kind."""

    async def run(self, node: ActionNode, ctx: Mapping[str, Any]) -> NodeOutcome:
        return NodeOutcome(
            success=True,
            summary=f"{node.name} action completed successfully",
            data={
                "action_type": node.config.action_type,
                "processed_data": dict(ctx),
                "executed_at": datetime.now().isoformat(),
            },
        )
