"""Wiring of the three service contracts to live connectors or the simulator.

Usage:
    from docflow.service_layer import create_service_layer

    services = create_service_layer(settings)
    try:
        run = await WorkflowExecutor(services).execute(nodes, edges)
    finally:
        await services.aclose()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from .connectors import AnalysisServiceConnector, ChunkServiceConnector, CompletionConnector
from .connectors.base import AnalysisService, ChunkService, CompletionService
from .simulator import FailureConfig, SimulatorState, create_simulator, load_documents

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ServiceLayer:
    chunks: ChunkService
    analysis: AnalysisService
    completion: CompletionService
    http_client: httpx.AsyncClient | None = None
    simulator_state: SimulatorState | None = None

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()


def create_service_layer(
    settings: Settings,
    failure_config: FailureConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ServiceLayer:
    """Build the service layer for ``settings.connector_mode``.

    "simulator": in-memory services, optionally seeded from
                  ``settings.simulator_documents_file``
    "live":      HTTP connectors sharing one AsyncClient
    """
    if settings.connector_mode == "simulator":
        documents = {}
        if settings.simulator_documents_file:
            documents = load_documents(settings.simulator_documents_file)
            logger.info("Simulator seeded with %d documents", len(documents))
        state, chunks, analysis, completion = create_simulator(documents, failure_config)
        return ServiceLayer(chunks, analysis, completion, simulator_state=state)

    client = http_client or httpx.AsyncClient()
    return ServiceLayer(
        chunks=ChunkServiceConnector.from_settings(settings, client),
        analysis=AnalysisServiceConnector.from_settings(settings, client),
        completion=CompletionConnector.from_settings(settings, client),
        http_client=client,
    )
