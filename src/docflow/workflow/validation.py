"""Static checks on a workflow graph before it is executed."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

from pydantic import BaseModel

from ..errors import CyclicGraphError, WorkflowGraphError
from .executor import topological_order
from .schema import WorkflowEdge, WorkflowNode

LARGE_WORKFLOW_NODES = 10


class ValidationReport(BaseModel):
    is_valid: bool = True
    errors: list[str] = []
    warnings: list[str] = []
    suggestions: list[str] = []


def validate_workflow(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> ValidationReport:
    """Collect errors (graph cannot run), warnings and suggestions."""
    report = ValidationReport()

    if not nodes:
        report.errors.append("Workflow must have at least one node")

    try:
        topological_order(nodes, edges)
    except CyclicGraphError as e:
        report.errors.append(f"Circular dependencies detected between: {', '.join(e.node_ids)}")
    except WorkflowGraphError as e:
        report.errors.append(str(e))

    connected = {end for edge in edges for end in (edge.source, edge.target)}
    disconnected = [node.id for node in nodes if node.id not in connected]
    if disconnected and len(nodes) > 1:
        report.warnings.append(f"{len(disconnected)} disconnected nodes found: {', '.join(disconnected)}")

    triggers = {node.id for node in nodes if node.type == "trigger"}
    if nodes and not triggers:
        report.warnings.append("No trigger nodes found - workflow cannot start automatically")

    upstream: dict[str, set[str]] = defaultdict(set)
    for edge in edges:
        upstream[edge.target].add(edge.source)
    for node in nodes:
        if node.type == "aiAgent" and triggers and not _reaches(node.id, triggers, upstream):
            report.warnings.append(f"AI agent {node.name} has no upstream trigger and will receive no documents")

    if len(nodes) > LARGE_WORKFLOW_NODES:
        report.suggestions.append("Consider breaking large workflows into smaller, reusable components")

    report.is_valid = not report.errors
    return report


def _reaches(node_id: str, targets: set[str], upstream: dict[str, set[str]]) -> bool:
    seen: set[str] = set()
    stack = list(upstream[node_id])
    while stack:
        current = stack.pop()
        if current in targets:
            return True
        if current not in seen:
            seen.add(current)
            stack.extend(upstream[current])
    return False
