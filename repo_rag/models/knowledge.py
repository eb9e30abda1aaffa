"""
Knowledge Models for the RAG server

This module defines the values passed between file sources, the
knowledge extraction pipeline and the vector store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class FileInfo:
    """A file handed to the extractor by a file source"""
    repository: str
    file_path: str
    content: str
    last_modified: datetime


@dataclass(frozen=True)
class KnowledgeMetadata:
    """Descriptive metadata stored alongside every chunk of an item"""
    repository: str
    file_path: str
    file_type: str
    last_modified: datetime
    content_hash: str
    tags: Tuple[str, ...] = ()
    language: Optional[str] = None
    framework: Optional[str] = None
    dependencies: Tuple[str, ...] = ()
    
    def to_payload(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary"""
        return {
            "repository": self.repository,
            "file_path": self.file_path,
            "file_type": self.file_type,
            "last_modified": self.last_modified.isoformat(),
            "content_hash": self.content_hash,
            "tags": list(self.tags),
            "language": self.language,
            "framework": self.framework,
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True)
class KnowledgeItem:
    """One extracted file, ready to be chunked and embedded"""
    id: str
    title: str
    content: str
    metadata: KnowledgeMetadata


@dataclass
class SearchResult:
    """A chunk returned by similarity search"""
    content: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)
