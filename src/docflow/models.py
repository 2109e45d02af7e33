"""API models for DocFlow."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str = "DocFlow Engine"
    connector_mode: str


class NodeTypeInfo(BaseModel):
    """One entry of the node catalog shown in the builder palette."""

    type: str
    name: str
    description: str
    config_schema: dict[str, Any]


class AgentTestResponse(BaseModel):
    """Outcome of probing an AI agent configuration."""

    success: bool
    model: str
    response: Any = None
    error: Optional[str] = None
    max_tokens: int
    tested_at: datetime = Field(default_factory=datetime.now)


ExportFormat = Literal["json", "csv", "markdown"]
