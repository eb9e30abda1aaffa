"""
Content Chunker

Splits a knowledge item's text body into line-aligned chunks for
embedding. The size limit is a target: a single line longer than the
limit is kept whole in its own chunk.
"""

from typing import List

DEFAULT_MAX_CHUNK_SIZE = 1000


class ContentChunker:
    """Greedy line-based chunker"""
    
    def __init__(self, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE):
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        self.max_chunk_size = max_chunk_size
    
    def chunk(self, content: str) -> List[str]:
        """Split content into ordered chunks
        
        Args:
            content: Text to split
            
        Returns:
            Stripped chunks in document order; never empty
            
        Raises:
            ValueError: If content is not a string
        """
        if not isinstance(content, str):
            raise ValueError(f"content must be a string, got {type(content).__name__}")
        
        chunks = []
        current_chunk = ''
        
        for line in content.split('\n'):
            if len(current_chunk) + len(line) > self.max_chunk_size and current_chunk:
                chunks.append(current_chunk.strip())
                current_chunk = line
            else:
                current_chunk += ('\n' if current_chunk else '') + line
        
        if current_chunk.strip():
            chunks.append(current_chunk.strip())
        
        return chunks if chunks else [content]
