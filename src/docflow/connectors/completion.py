"""Raw prompt/response completion connector used by the fallback tier."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .base import BaseConnector, CompletionRequest, CompletionServiceResponse

if TYPE_CHECKING:
    from ..config import Settings


class CompletionConnector(BaseConnector):
    service_name = "completion service"

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> CompletionConnector:
        return cls(
            settings.completion_service_url,
            http_client,
            settings.completion_timeout_seconds,
            settings.api_token,
        )

    async def complete(self, request: CompletionRequest) -> CompletionServiceResponse:
        # The completion URL is the full endpoint, not a base
        payload = await self._request("POST", self._base, json=request.model_dump(by_alias=True))
        return self._parse(CompletionServiceResponse, payload)
