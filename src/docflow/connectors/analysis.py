"""Structured analysis service connector."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .base import AnalysisRequest, AnalysisServiceResponse, BaseConnector

if TYPE_CHECKING:
    from ..config import Settings


class AnalysisServiceConnector(BaseConnector):
    """``POST /analysis/{analysisType}``: server-side typed analysis."""

    service_name = "analysis service"

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> AnalysisServiceConnector:
        return cls(
            settings.analysis_service_url,
            http_client,
            settings.analysis_timeout_seconds,
            settings.api_token,
        )

    async def analyze(self, analysis_type: str, request: AnalysisRequest) -> AnalysisServiceResponse:
        payload = await self._request(
            "POST",
            f"{self._base}/analysis/{analysis_type}",
            json=request.model_dump(by_alias=True),
        )
        return self._parse(AnalysisServiceResponse, payload)
