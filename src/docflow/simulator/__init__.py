"""DocFlow simulated document and AI services for offline workflow execution."""

from __future__ import annotations

import json
from pathlib import Path

from .failures import FailureConfig, FailureRule
from .services import SimulatedAnalysisService, SimulatedChunkService, SimulatedCompletionService
from .state import ServiceCall, SimulatorState

__all__ = [
    "FailureConfig",
    "FailureRule",
    "ServiceCall",
    "SimulatorState",
    "create_simulator",
    "load_documents",
]


def create_simulator(
    documents: dict[str, list[str]] | None = None,
    failure_config: FailureConfig | None = None,
) -> tuple[SimulatorState, SimulatedChunkService, SimulatedAnalysisService, SimulatedCompletionService]:
    """Create a fresh simulator with all services wired to one shared state."""
    state = SimulatorState(documents=documents or {})
    return (
        state,
        SimulatedChunkService(state, failure_config),
        SimulatedAnalysisService(state, failure_config),
        SimulatedCompletionService(state, failure_config),
    )


def load_documents(path: str | Path) -> dict[str, list[str]]:
    """Read ``{document_id: [chunk, ...]}`` (or ``{document_id: "text"}``) from JSON."""
    data = json.loads(Path(path).read_text())
    documents: dict[str, list[str]] = {}
    for doc_id, value in data.items():
        documents[str(doc_id)] = [value] if isinstance(value, str) else [str(v) for v in value]
    return documents
