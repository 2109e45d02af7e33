"""Pydantic models defining the workflow graph structure."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

AnalysisType = Literal["comprehensive", "summary", "keywords", "categorization", "sentiment", "custom"]
ChunkingStrategy = Literal["balanced", "first", "summary", "all"]

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant that analyzes documents."
DEFAULT_USER_PROMPT = "Please analyze the following content and provide insights.\n\n{DOCUMENT_CONTENT}"


class NodeConfig(BaseModel):
    """Base for per-node-type configuration. Unknown keys are dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class TriggerConfig(NodeConfig):
    trigger_type: str = "manual"
    selected_document_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selectedDocumentIds", "selectedDocuments", "selected_document_ids"),
    )
    chunking_strategy: ChunkingStrategy = "balanced"
    max_chunks: int = Field(10, ge=1)


class AIAgentConfig(NodeConfig):
    model_type: str = "gpt4o-mini"
    analysis_type: AnalysisType = "comprehensive"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    user_prompt: str = DEFAULT_USER_PROMPT
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(2000, ge=1)
    output_format: Literal["text", "json"] = "text"
    include_keywords: bool = True
    include_sentiment: bool = True
    include_categorization: bool = True
    include_summary: bool = True


class ActionConfig(NodeConfig):
    action_type: str = "unknown"


class _BaseNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""

    @model_validator(mode="before")
    @classmethod
    def _lift_builder_data(cls, value: Any) -> Any:
        # Builder UI nests label/config under "data"
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            data = value["data"]
            value = {k: v for k, v in value.items() if k != "data"}
            value.setdefault("label", data.get("label", ""))
            value.setdefault("config", data.get("config") or {})
        return value

    @property
    def name(self) -> str:
        return self.label or self.id


class TriggerNode(_BaseNode):
    type: Literal["trigger"] = "trigger"
    config: TriggerConfig = Field(default_factory=TriggerConfig)


class AIAgentNode(_BaseNode):
    type: Literal["aiAgent"] = "aiAgent"
    config: AIAgentConfig = Field(default_factory=AIAgentConfig)


class ActionNode(_BaseNode):
    type: Literal["action"] = "action"
    config: ActionConfig = Field(default_factory=ActionConfig)


WorkflowNode = Annotated[Union[TriggerNode, AIAgentNode, ActionNode], Field(discriminator="type")]
NodeType = Literal["trigger", "aiAgent", "action"]


class WorkflowEdge(BaseModel):
    """A dependency edge: target consumes source's output."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    source: str = Field(validation_alias=AliasChoices("source", "sourceNodeId", "source_node_id"))
    target: str = Field(validation_alias=AliasChoices("target", "targetNodeId", "target_node_id"))


class Workflow(BaseModel):
    """A complete workflow graph as submitted by a caller."""

    id: str = "adhoc"
    name: str = "Untitled workflow"
    nodes: list[WorkflowNode] = []
    edges: list[WorkflowEdge] = []
