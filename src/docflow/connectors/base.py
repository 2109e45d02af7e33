"""Service contracts, normalized response models and the HTTP connector base.

Every external service has exactly one response model here. Connectors (and the
simulator) parse raw payloads into these once, so the engine never probes
optional keys on untyped dicts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import ServiceError

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class _ServiceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ----------------------------------------------------------------------
# Chunk service
# ----------------------------------------------------------------------


class Chunk(_ServiceModel):
    content: str = ""
    metadata: dict[str, Any] = {}


class ChunkStatsInfo(_ServiceModel):
    estimated_tokens: Optional[int] = None


class ProcessingInfo(_ServiceModel):
    selected_chunks: Optional[int] = None
    total_chunks: Optional[int] = None
    strategy: Optional[str] = None
    stats: Optional[ChunkStatsInfo] = None


class ChunkServiceResponse(_ServiceModel):
    success: bool
    chunks: list[Chunk] = []
    metadata: dict[str, Any] = {}
    processing_info: ProcessingInfo = Field(default_factory=ProcessingInfo)
    original_content: Any = None
    error: Optional[str] = None


# ----------------------------------------------------------------------
# Structured analysis service
# ----------------------------------------------------------------------


class AnalysisOptions(_ServiceModel):
    model_type: str
    include_keywords: bool = True
    include_sentiment: bool = True
    include_categorization: bool = True
    include_summary: bool = True


class AnalysisRequest(_ServiceModel):
    document_id: str
    document_content: str
    options: AnalysisOptions


class AnalysisServiceResponse(_ServiceModel):
    success: bool = False
    analysis: Any = None
    analysis_id: Optional[str] = None
    error: Optional[str] = None


# ----------------------------------------------------------------------
# Fallback completion service
# ----------------------------------------------------------------------


class CompletionRequest(_ServiceModel):
    system_prompt: str
    user_prompt: str
    model: str
    temperature: float = 0.7
    max_tokens: int = 2000
    output_format: str = "text"


class CompletionServiceResponse(_ServiceModel):
    success: bool = False
    data: Any = None
    response: Any = None
    error: Optional[str] = None

    @property
    def output(self) -> Any:
        """The completion payload, whichever key the service used."""
        return self.data if self.data is not None else self.response


# ----------------------------------------------------------------------
# Service contracts (implemented by connectors and by the simulator)
# ----------------------------------------------------------------------


class ChunkService(Protocol):
    async def fetch_chunks(
        self, document_id: str, *, strategy: str, max_chunks: int
    ) -> ChunkServiceResponse: ...


class AnalysisService(Protocol):
    async def analyze(self, analysis_type: str, request: AnalysisRequest) -> AnalysisServiceResponse: ...


class CompletionService(Protocol):
    async def complete(self, request: CompletionRequest) -> CompletionServiceResponse: ...


class BaseConnector(ABC):
    """Shared plumbing for the HTTP connectors.

    Subclasses call ``_request`` and hand the decoded JSON to ``_parse``; both
    raise ``ServiceError`` with a stable ``error_type`` so callers can branch on
    the failure kind without touching httpx exceptions.
    """

    service_name: str = ""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        timeout: float,
        api_token: str | None = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        self.http = http_client
        self._timeout = timeout
        self._headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if api_token:
            self._headers["Authorization"] = f"Bearer {api_token}"

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> BaseConnector:
        """Build the connector from application settings and a shared client."""
        ...

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            resp = await self.http.request(
                method, url, headers=self._headers, timeout=self._timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise ServiceError(f"{self.service_name} request timed out: {e}", "timeout") from e
        except httpx.HTTPError as e:
            raise ServiceError(f"{self.service_name} request failed: {e}", "transport_error") from e

        self._check_error(resp)
        try:
            return resp.json()
        except ValueError as e:
            raise ServiceError(f"{self.service_name} returned non-JSON body", "malformed_response") from e

    def _parse(self, model: type[BaseModel], payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise ServiceError(
                f"{self.service_name} returned an unexpected payload: {e.error_count()} validation error(s)",
                "malformed_response",
            ) from e

    def _check_error(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        detail = _error_detail(resp)
        if resp.status_code == 401:
            logger.error("%s rejected credentials (401); check API_TOKEN", self.service_name)
            raise ServiceError(f"{self.service_name} authentication failed{detail}", "auth_error")
        if resp.status_code == 403:
            raise ServiceError(f"{self.service_name} permission denied{detail}", "permission_denied")
        if resp.status_code == 404:
            raise ServiceError(f"{self.service_name} resource not found{detail}", "not_found")
        if resp.status_code == 429:
            raise ServiceError(f"{self.service_name} rate limit exceeded{detail}", "rate_limited")
        raise ServiceError(f"{self.service_name} error {resp.status_code}{detail}", "service_error")


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        text = resp.text[:300]
        return f": {text}" if text else ""
    if isinstance(body, dict) and body.get("error"):
        return f": {body['error']}"
    return ""
