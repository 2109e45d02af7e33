"""HTTP connectors for the external document and AI services."""

from .analysis import AnalysisServiceConnector
from .base import AnalysisService, BaseConnector, ChunkService, CompletionService
from .chunks import ChunkServiceConnector
from .completion import CompletionConnector

__all__ = [
    "AnalysisService",
    "AnalysisServiceConnector",
    "BaseConnector",
    "ChunkService",
    "ChunkServiceConnector",
    "CompletionConnector",
    "CompletionService",
]
