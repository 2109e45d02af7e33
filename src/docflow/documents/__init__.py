from .chunks import ChunkRetriever, ChunkSetMetadata, DocumentChunkSet

__all__ = ["ChunkRetriever", "ChunkSetMetadata", "DocumentChunkSet"]
