"""Token-bounded chunk acquisition for one document."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ..connectors.base import ChunkService
from .chunking import estimate_tokens, join_sections

logger = logging.getLogger(__name__)


class ChunkSetMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    chunking_strategy: str
    total_chunks: int = 0
    selected_chunks: int = 0
    estimated_tokens: Optional[int] = None
    source_is_error: bool = False
    error: Optional[str] = None


class DocumentChunkSet(BaseModel):
    """The AI-ready text of one document, or a flagged placeholder on failure."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    content: str
    metadata: ChunkSetMetadata
    original_content: Any = None

    @property
    def is_error(self) -> bool:
        return self.metadata.source_is_error


class ChunkRetriever:
    """Fetches chunks through a ``ChunkService`` and never raises."""

    def __init__(self, service: ChunkService):
        self.service = service

    async def get_chunks(
        self, document_id: str, *, strategy: str = "balanced", max_chunks: int = 10
    ) -> DocumentChunkSet:
        try:
            response = await self.service.fetch_chunks(
                document_id, strategy=strategy, max_chunks=max_chunks
            )
        except Exception as e:
            logger.error("Chunk retrieval for document %s failed: %s", document_id, e)
            return _error_set(document_id, strategy, str(e) or type(e).__name__)

        if not response.success:
            reason = response.error or "chunk service reported failure"
            logger.error("Chunk service could not process document %s: %s", document_id, reason)
            return _error_set(document_id, strategy, reason)

        bodies = [chunk.content for chunk in response.chunks]
        info = response.processing_info
        estimated = info.stats.estimated_tokens if info.stats else None
        chunk_set = DocumentChunkSet(
            document_id=document_id,
            content=join_sections(bodies),
            metadata=ChunkSetMetadata(
                chunking_strategy=info.strategy or strategy,
                total_chunks=info.total_chunks if info.total_chunks is not None else len(bodies),
                selected_chunks=info.selected_chunks if info.selected_chunks is not None else len(bodies),
                estimated_tokens=estimated if estimated is not None else estimate_tokens(bodies),
            ),
            original_content=response.original_content,
        )
        logger.info(
            "Document %s: %d/%d chunks, ~%s tokens",
            document_id,
            chunk_set.metadata.selected_chunks,
            chunk_set.metadata.total_chunks,
            chunk_set.metadata.estimated_tokens,
        )
        return chunk_set


def _error_set(document_id: str, strategy: str, reason: str) -> DocumentChunkSet:
    return DocumentChunkSet(
        document_id=document_id,
        content=f"Error: Could not retrieve document {document_id} - {reason}",
        metadata=ChunkSetMetadata(chunking_strategy=strategy, source_is_error=True, error=reason),
    )
