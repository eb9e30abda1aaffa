"""
Extraction configuration

Which repository files are eligible for knowledge extraction, and the
per-language metadata that travels with them. Built once at startup and
shared read-only by the pattern matcher and the analyzers.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class LanguageConfig:
    """Descriptive markers for a language (not branched on by the analyzer)"""
    extensions: Tuple[str, ...] = ()
    comment_patterns: Tuple[str, ...] = ()
    import_patterns: Tuple[str, ...] = ()
    function_patterns: Tuple[str, ...] = ()
    class_patterns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractionConfig:
    """Include/exclude globs plus language metadata; exclusion always wins"""
    include_patterns: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()
    language_configs: Dict[str, LanguageConfig] = field(default_factory=dict)


DEFAULT_INCLUDE_PATTERNS = (
    '**/*.js', '**/*.jsx', '**/*.ts', '**/*.tsx',
    '**/*.py', '**/*.java', '**/*.go', '**/*.rs',
    '**/*.cpp', '**/*.c', '**/*.h', '**/*.hpp',
    '**/*.php', '**/*.rb', '**/*.swift', '**/*.kt',
    '**/*.md', '**/*.yaml', '**/*.yml', '**/*.json',
    '**/*.sql', '**/*.sh', '**/*.dockerfile',
    '**/README*', '**/CHANGELOG*', '**/API*',
)

DEFAULT_EXCLUDE_PATTERNS = (
    '**/node_modules/**',
    '**/dist/**',
    '**/build/**',
    '**/.git/**',
    '**/coverage/**',
    '**/*.min.js',
    '**/*.bundle.js',
    '**/vendor/**',
    '**/third_party/**',
)

DEFAULT_LANGUAGE_CONFIGS = {
    "javascript": LanguageConfig(
        extensions=('.js', '.jsx'),
        comment_patterns=('//', '/*', '*/', '/**'),
        import_patterns=('import', 'require', 'from'),
        function_patterns=('function', '=>', 'async function'),
        class_patterns=('class', 'extends'),
    ),
    "typescript": LanguageConfig(
        extensions=('.ts', '.tsx'),
        comment_patterns=('//', '/*', '*/', '/**'),
        import_patterns=('import', 'require', 'from'),
        function_patterns=('function', '=>', 'async function'),
        class_patterns=('class', 'extends', 'interface', 'type'),
    ),
    "python": LanguageConfig(
        extensions=('.py',),
        comment_patterns=('#', '"""', "'''"),
        import_patterns=('import', 'from'),
        function_patterns=('def ', 'async def'),
        class_patterns=('class ',),
    ),
    "markdown": LanguageConfig(
        extensions=('.md',),
        comment_patterns=('<!--', '-->'),
    ),
}

DEFAULT_EXTRACTION_CONFIG = ExtractionConfig(
    include_patterns=DEFAULT_INCLUDE_PATTERNS,
    exclude_patterns=DEFAULT_EXCLUDE_PATTERNS,
    language_configs=DEFAULT_LANGUAGE_CONFIGS,
)
