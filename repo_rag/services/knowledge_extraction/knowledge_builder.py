"""
Knowledge Item Builder

Turns a file into a KnowledgeItem: eligibility check, content hash, file
type, analysis, deterministic id, title, tags and the text body that is
chunked and embedded downstream.
"""

import os
import re
import hashlib
import logging
from typing import List, Optional

from repo_rag.config.extraction import ExtractionConfig, DEFAULT_EXTRACTION_CONFIG
from repo_rag.models.knowledge import FileInfo, KnowledgeItem, KnowledgeMetadata
from repo_rag.services.knowledge_extraction.pattern_matcher import PatternMatcher
from repo_rag.services.knowledge_extraction.content_analyzer import ContentAnalyzer, ContentAnalysis

UNKNOWN_FILE_TYPE = "unknown"

FILE_TYPES = {
    '.js': 'javascript',
    '.jsx': 'javascript',
    '.ts': 'typescript',
    '.tsx': 'typescript',
    '.py': 'python',
    '.java': 'java',
    '.go': 'go',
    '.rs': 'rust',
    '.cpp': 'cpp',
    '.c': 'c',
    '.php': 'php',
    '.rb': 'ruby',
    '.swift': 'swift',
    '.kt': 'kotlin',
    '.md': 'markdown',
    '.yaml': 'yaml',
    '.yml': 'yaml',
    '.json': 'json',
    '.sql': 'sql',
    '.sh': 'shell',
}

# (path substring, tag); case-sensitive
PATH_TAGS = (
    ('test', 'test'),
    ('api', 'api'),
    ('component', 'component'),
    ('util', 'utility'),
    ('config', 'configuration'),
    ('service', 'service'),
    ('model', 'model'),
    ('controller', 'controller'),
)

DEPENDENCY_TAGS = ('react', 'express', 'typescript')

COMPLEX_THRESHOLD = 10
SIMPLE_THRESHOLD = 3

_UNSAFE_ID_CHARS = re.compile(r'[^a-zA-Z0-9]')


def generate_knowledge_id(repository: str, file_path: str) -> str:
    """Deterministic id for a (repository, path) pair"""
    clean_repo = _UNSAFE_ID_CHARS.sub('_', repository)
    clean_path = _UNSAFE_ID_CHARS.sub('_', file_path)
    return f"{clean_repo}_{clean_path}"


def get_file_type(file_path: str) -> str:
    ext = os.path.splitext(file_path)[1].lower()
    return FILE_TYPES.get(ext, UNKNOWN_FILE_TYPE)


class KnowledgeItemBuilder:
    """Builds knowledge items from files"""
    
    def __init__(
        self,
        config: ExtractionConfig = DEFAULT_EXTRACTION_CONFIG,
        analyzer: Optional[ContentAnalyzer] = None
    ):
        """Initialize the builder
        
        Args:
            config: Extraction configuration shared with the pattern matcher
            analyzer: Content analyzer (a default one is created if omitted)
        """
        self.logger = logging.getLogger("repo_rag.services.knowledge_extraction.knowledge_builder")
        self.config = config
        self.matcher = PatternMatcher(config)
        self.analyzer = analyzer or ContentAnalyzer()
    
    def should_process_file(self, file_path: str) -> bool:
        return self.matcher.is_eligible(file_path)
    
    def build(self, file_info: FileInfo) -> Optional[KnowledgeItem]:
        """Extract a knowledge item from a file
        
        Args:
            file_info: File identity and content
            
        Returns:
            The knowledge item, or None if the path is not eligible
        """
        if not self.should_process_file(file_info.file_path):
            self.logger.debug(f"Skipping ineligible file {file_info.file_path}")
            return None
        
        content_hash = hashlib.sha256(
            file_info.content.encode('utf-8', errors='surrogatepass')
        ).hexdigest()
        file_type = get_file_type(file_info.file_path)
        analysis = self.analyzer.analyze(file_info.content, file_type)
        
        return KnowledgeItem(
            id=generate_knowledge_id(file_info.repository, file_info.file_path),
            title=self.generate_title(file_info.file_path, analysis),
            content=self.prepare_content(file_info.content, analysis, file_info.file_path),
            metadata=KnowledgeMetadata(
                repository=file_info.repository,
                file_path=file_info.file_path,
                file_type=file_type,
                last_modified=file_info.last_modified,
                content_hash=content_hash,
                tags=tuple(self.generate_tags(file_info.file_path, analysis)),
                language=analysis.language,
                framework=analysis.framework,
                dependencies=tuple(analysis.dependencies)
            )
        )
    
    def generate_title(self, file_path: str, analysis: ContentAnalysis) -> str:
        file_name = os.path.basename(file_path)
        
        if analysis.main_function:
            return f"{file_name} - {analysis.main_function}"
        
        if analysis.main_class:
            return f"{file_name} - {analysis.main_class}"
        
        if analysis.exports:
            return f"{file_name} - {', '.join(analysis.exports[:2])}"
        
        return file_name
    
    def generate_tags(self, file_path: str, analysis: ContentAnalysis) -> List[str]:
        """Derive search tags from the path, the language and the analysis
        
        Complexity in (3, 10] gets neither ``simple`` nor ``complex``.
        """
        tags = [tag for needle, tag in PATH_TAGS if needle in file_path]
        
        if analysis.language:
            tags.append(analysis.language)
        if analysis.framework:
            tags.append(analysis.framework)
        
        if analysis.functions:
            tags.append('functions')
        if analysis.classes:
            tags.append('classes')
        if analysis.complexity > COMPLEX_THRESHOLD:
            tags.append('complex')
        if analysis.complexity <= SIMPLE_THRESHOLD:
            tags.append('simple')
        
        for dependency in analysis.dependencies:
            for name in DEPENDENCY_TAGS:
                if name in dependency:
                    tags.append(name)
        
        return list(dict.fromkeys(tags))
    
    def prepare_content(self, content: str, analysis: ContentAnalysis, file_path: str) -> str:
        """Format the text body stored for retrieval"""
        dependencies = '\n'.join(f"- {dep}" for dep in analysis.dependencies)
        body = (
            f"File: {file_path}\n"
            f"Language: {analysis.language}\n"
            f"Framework: {analysis.framework or 'None'}\n"
            f"\n"
            f"Summary: {analysis.summary}\n"
            f"\n"
            f"Dependencies:\n"
            f"{dependencies}\n"
            f"\n"
            f"Functions: {', '.join(analysis.functions)}\n"
            f"Classes: {', '.join(analysis.classes)}\n"
            f"Complexity: {analysis.complexity}\n"
            f"\n"
            f"Content:\n"
            f"{content}\n"
        )
        return body.strip()
