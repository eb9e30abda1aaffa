"""Vector store package exports."""

from .qdrant_service import QdrantVectorService, chunk_point_id

__all__ = ["QdrantVectorService", "chunk_point_id"]
