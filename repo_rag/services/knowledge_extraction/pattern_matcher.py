"""
Pattern Matcher

Decides whether a repository path is eligible for knowledge extraction
using simplified glob patterns:

- ``**`` matches any sequence of characters, including ``/``
  (a leading ``**/`` matches the start of the path or of any segment)
- ``*`` matches any sequence of characters except ``/``
- ``?`` matches exactly one character

Patterns are searched inside the candidate path rather than matched
against all of it, so ``**/*.js`` also accepts ``app.js.map``.
"""

import re
from typing import Pattern, Tuple

from repo_rag.config.extraction import ExtractionConfig, DEFAULT_EXTRACTION_CONFIG


def glob_to_regex(pattern: str) -> Pattern:
    """Compile a simplified glob pattern into a regular expression"""
    parts = []
    i = 0
    while i < len(pattern):
        if i == 0 and pattern.startswith('**/'):
            parts.append('(?:^|.*/)')
            i += 3
        elif pattern.startswith('**/', i):
            parts.append('(?:.*/)?')
            i += 3
        elif pattern.startswith('**', i):
            parts.append('.*')
            i += 2
        elif pattern[i] == '*':
            parts.append('[^/]*')
            i += 1
        elif pattern[i] == '?':
            parts.append('.')
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile(''.join(parts))


class PatternMatcher:
    """Include/exclude filter over repository paths"""
    
    def __init__(self, config: ExtractionConfig = DEFAULT_EXTRACTION_CONFIG):
        self.config = config
        self._include: Tuple[Pattern, ...] = tuple(
            glob_to_regex(p) for p in config.include_patterns
        )
        self._exclude: Tuple[Pattern, ...] = tuple(
            glob_to_regex(p) for p in config.exclude_patterns
        )
    
    def is_eligible(self, file_path: str) -> bool:
        """Return True if the path should be processed
        
        Exclusion is checked first and always wins; a path matching no
        include pattern is rejected.
        """
        for regex in self._exclude:
            if regex.search(file_path):
                return False
        
        for regex in self._include:
            if regex.search(file_path):
                return True
        
        return False