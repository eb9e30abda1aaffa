"""repo_rag package exports."""

from .config import RAGServerConfig, ExtractionConfig, DEFAULT_EXTRACTION_CONFIG
from .core import RAGApplication
from .models import FileInfo, KnowledgeItem
from .services.knowledge_extraction import (
    ContentAnalyzer,
    ContentChunker,
    KnowledgeItemBuilder,
    PatternMatcher,
)

__all__ = [
    "RAGServerConfig",
    "ExtractionConfig",
    "DEFAULT_EXTRACTION_CONFIG",
    "RAGApplication",
    "FileInfo",
    "KnowledgeItem",
    "ContentAnalyzer",
    "ContentChunker",
    "KnowledgeItemBuilder",
    "PatternMatcher",
]
