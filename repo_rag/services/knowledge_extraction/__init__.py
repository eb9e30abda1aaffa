"""
Knowledge Extraction package for the RAG server.

File -> knowledge item -> chunks:
- Pattern matching of eligible paths
- Regex-based content analysis
- Knowledge item building (id, title, tags, content body)
- Line-based content chunking
"""

from .pattern_matcher import PatternMatcher, glob_to_regex
from .content_analyzer import ContentAnalyzer, ContentAnalysis
from .knowledge_builder import KnowledgeItemBuilder, generate_knowledge_id, get_file_type
from .content_chunker import ContentChunker

__all__ = [
    'PatternMatcher',
    'glob_to_regex',
    'ContentAnalyzer',
    'ContentAnalysis',
    'KnowledgeItemBuilder',
    'generate_knowledge_id',
    'get_file_type',
    'ContentChunker'
]
