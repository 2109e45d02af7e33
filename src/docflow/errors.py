"""Exception types shared across the engine, connectors and simulator."""

from __future__ import annotations


class ServiceError(Exception):
    """Raised when an external (or simulated) service call fails."""

    def __init__(self, message: str, error_type: str = "service_error"):
        self.error_type = error_type
        super().__init__(message)


class WorkflowGraphError(ValueError):
    """The node/edge set does not describe an executable graph."""


class CyclicGraphError(WorkflowGraphError):
    """The graph contains a dependency cycle."""

    def __init__(self, node_ids: list[str]):
        self.node_ids = node_ids
        super().__init__(f"Cycle detected in workflow graph involving nodes: {', '.join(node_ids)}")


class NodeExecutionError(Exception):
    """A node executor reported failure without raising."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        super().__init__(message)
