"""Execution run model with JSON, CSV and markdown rendering."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

CSV_HEADERS = ["Node Name", "Type", "Status", "Duration (ms)", "Summary", "Error"]


class NodeResult(BaseModel):
    """Outcome of one attempted node."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    node_name: str
    node_type: str
    status: Literal["completed", "failed"]
    duration_ms: float
    timestamp: datetime = Field(default_factory=datetime.now)
    summary: str = ""
    data: dict[str, Any] = {}
    error: Optional[str] = None

    @model_validator(mode="after")
    def _failed_needs_error(self) -> NodeResult:
        if self.status == "failed" and not self.error:
            raise ValueError("failed node result requires an error message")
        return self


class ExecutionRun(BaseModel):
    """Complete record of one workflow execution, one entry per attempted node."""

    model_config = ConfigDict(frozen=True)

    results: tuple[NodeResult, ...] = ()
    started_at: datetime
    completed_at: datetime

    @computed_field
    @property
    def success(self) -> bool:
        return all(r.status == "completed" for r in self.results)

    @property
    def completed_count(self) -> int:
        return sum(1 for r in self.results if r.status == "completed")

    @computed_field
    @property
    def summary(self) -> str:
        return f"Workflow completed with {self.completed_count}/{len(self.results)} successful nodes"

    def result_for(self, node_id: str) -> NodeResult | None:
        return next((r for r in self.results if r.node_id == node_id), None)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for r in self.results:
            writer.writerow(
                [r.node_name, r.node_type, r.status, round(r.duration_ms), r.summary, r.error or ""]
            )
        return buffer.getvalue()

    def to_markdown(self) -> str:
        lines = [
            "# Workflow Execution Report",
            "",
            f"**Status:** {'Success' if self.success else 'Failed'}",
            f"**Summary:** {self.summary}",
            "",
            "## Nodes",
            "",
            "| # | Node | Type | Status | Duration | Detail |",
            "|---|------|------|--------|----------|--------|",
        ]

        for i, r in enumerate(self.results, 1):
            detail = r.error if r.status == "failed" else r.summary
            status_icon = {"completed": "OK", "failed": "FAIL"}[r.status]
            lines.append(
                f"| {i} | `{r.node_name}` | {r.node_type} | {status_icon} | {r.duration_ms:.0f} ms | {detail} |"
            )

        documents = [
            (r.node_name, doc)
            for r in self.results
            for doc in r.data.get("ai_results", [])
        ]
        if documents:
            lines += ["", "## Document Analyses", ""]
            for node_name, doc in documents:
                doc = doc if isinstance(doc, dict) else doc.model_dump()
                state = "OK" if doc.get("success") else f"FAIL: {doc.get('error')}"
                lines.append(f"### {doc.get('document_id')} ({node_name}) {state}")
                if doc.get("formatted_text"):
                    lines += ["", doc["formatted_text"].rstrip()]
                lines.append("")

        duration = (self.completed_at - self.started_at).total_seconds()
        lines += ["", f"**Duration:** {duration:.2f}s"]
        return "\n".join(lines)
