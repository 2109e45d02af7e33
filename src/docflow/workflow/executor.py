"""Graph executor which runs a document workflow node by node."""

from __future__ import annotations

import logging
import time
from collections import Counter, defaultdict, deque
from collections.abc import Sequence
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ..analysis.invoker import AnalysisInvoker
from ..documents.chunks import ChunkRetriever
from ..errors import CyclicGraphError, NodeExecutionError, WorkflowGraphError
from .nodes import ActionExecutor, AIAgentExecutor, NodeExecutor, NodeOutcome, TriggerExecutor
from .report import ExecutionRun, NodeResult
from .schema import WorkflowEdge, WorkflowNode

if TYPE_CHECKING:
    from ..service_layer import ServiceLayer

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Executes a workflow graph in topological order, one node at a time.

    The forwarded context is owned by a single ``execute`` call: each completed
    node's ``data`` is shallow-merged into it (later keys win) and the merged
    view is handed to the next node. The first failing node aborts the run.
    """

    def __init__(self, services: ServiceLayer, executors: dict[str, NodeExecutor] | None = None):
        self.services = services
        self.executors: dict[str, NodeExecutor] = executors or {
            "trigger": TriggerExecutor(ChunkRetriever(services.chunks)),
            "aiAgent": AIAgentExecutor(AnalysisInvoker(services.analysis, services.completion)),
            "action": ActionExecutor(),
        }

    async def execute(self, nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> ExecutionRun:
        """Run every node in dependency order and return the full record."""
        started_at = datetime.now()
        node_map = {node.id: node for node in nodes}
        order = topological_order(nodes, edges)

        context: dict[str, Any] = {}
        results: list[NodeResult] = []

        for node_id in order:
            node = node_map[node_id]
            logger.info("Executing node %s (%s)", node.name, node.type)
            started = time.perf_counter()

            try:
                outcome = await self._dispatch(node, context)
                if not outcome.success:
                    raise NodeExecutionError(node.id, outcome.error or outcome.summary or "node reported failure")
            except Exception as e:
                duration_ms = (time.perf_counter() - started) * 1000
                logger.error("Node %s failed, aborting remaining nodes: %s", node.name, e)
                results.append(
                    NodeResult(
                        node_id=node.id,
                        node_name=node.name,
                        node_type=node.type,
                        status="failed",
                        duration_ms=duration_ms,
                        summary=f"{node.name} failed with error",
                        error=str(e) or type(e).__name__,
                    )
                )
                break

            duration_ms = (time.perf_counter() - started) * 1000
            context = {**context, **outcome.data}
            results.append(
                NodeResult(
                    node_id=node.id,
                    node_name=node.name,
                    node_type=node.type,
                    status="completed",
                    duration_ms=duration_ms,
                    summary=outcome.summary,
                    data=outcome.data,
                )
            )
            logger.info("Node %s completed in %.0f ms: %s", node.name, duration_ms, outcome.summary)

        run = ExecutionRun(results=tuple(results), started_at=started_at, completed_at=datetime.now())
        logger.info(run.summary)
        return run

    async def _dispatch(self, node: WorkflowNode, context: dict[str, Any]) -> NodeOutcome:
        executor = self.executors.get(node.type)
        if executor is None:
            raise WorkflowGraphError(f"No executor registered for node type {node.type}")
        return await executor.run(node, MappingProxyType(context))


def topological_order(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> list[str]:
    """Return node IDs in topological order (Kahn's algorithm).

    Ties are broken by declaration order. Raises ``WorkflowGraphError`` for
    duplicate ids or edges to unknown nodes and ``CyclicGraphError`` when some
    nodes can never become ready.
    """
    all_ids = [node.id for node in nodes]
    duplicates = sorted(nid for nid, count in Counter(all_ids).items() if count > 1)
    if duplicates:
        raise WorkflowGraphError(f"Duplicate node ids: {', '.join(duplicates)}")

    known = set(all_ids)
    in_degree: dict[str, int] = {nid: 0 for nid in all_ids}
    dependents: dict[str, list[str]] = defaultdict(list)

    for edge in edges:
        missing = [end for end in (edge.source, edge.target) if end not in known]
        if missing:
            raise WorkflowGraphError(
                f"Edge {edge.id or f'{edge.source}->{edge.target}'} references unknown node(s): {', '.join(missing)}"
            )
        dependents[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    queue: deque[str] = deque(nid for nid in all_ids if in_degree[nid] == 0)
    order: list[str] = []
    while queue:
        nid = queue.popleft()
        order.append(nid)
        for dependent in dependents[nid]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(all_ids):
        placed = set(order)
        raise CyclicGraphError([nid for nid in all_ids if nid not in placed])

    return order
