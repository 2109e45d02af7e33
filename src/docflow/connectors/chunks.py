"""Document chunk service connector."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .base import BaseConnector, ChunkServiceResponse

if TYPE_CHECKING:
    from ..config import Settings


class ChunkServiceConnector(BaseConnector):
    """``GET /documents/{id}/chunks`` on the document backend."""

    service_name = "chunk service"

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> ChunkServiceConnector:
        return cls(
            settings.chunk_service_url,
            http_client,
            settings.chunk_timeout_seconds,
            settings.api_token,
        )

    async def fetch_chunks(
        self, document_id: str, *, strategy: str, max_chunks: int
    ) -> ChunkServiceResponse:
        payload = await self._request(
            "GET",
            f"{self._base}/documents/{document_id}/chunks",
            params={"chunkingStrategy": strategy, "maxChunks": max_chunks},
        )
        return self._parse(ChunkServiceResponse, payload)
