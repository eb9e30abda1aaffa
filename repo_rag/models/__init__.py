"""Knowledge model exports."""

from .knowledge import (
    FileInfo,
    KnowledgeItem,
    KnowledgeMetadata,
    SearchResult,
)

__all__ = [
    "FileInfo",
    "KnowledgeItem",
    "KnowledgeMetadata",
    "SearchResult",
]
