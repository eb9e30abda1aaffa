"""
Content Analyzer

Regex-driven static analysis of source text. It does not parse code; it
scans for a handful of patterns that are good enough to describe a file
for retrieval: framework, dependencies, exported and declared names, a
short summary and a rough complexity score.

Every method is total: text that matches nothing yields empty
collections, never an exception.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

SUMMARY_MAX_LENGTH = 200

# Evaluated in order; the first framework with a matching signature wins.
FRAMEWORK_SIGNATURES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("React", ("import.*react", "from.*react", "useState", "useEffect")),
    ("Vue", ("import.*vue", "from.*vue", "createApp", "defineComponent")),
    ("Angular", ("@angular", "@Component", "@Injectable")),
    ("Express", ("express", "app.get", "app.post", "router")),
    ("Next.js", ("next/", "getServerSideProps", "getStaticProps")),
    ("Django", ("django", "models.Model", "views.")),
    ("Flask", ("flask", "app.route", "@app.route")),
    ("Spring", ("@SpringBootApplication", "@RestController", "@Service")),
)

ES_IMPORT_RE = re.compile(r"""import.*?from\s+['"`]([^'"`]+)['"`]""")
PYTHON_IMPORT_RE = re.compile(r"(?:from\s+(\S+)\s+import|import\s+(\S+))")
JAVA_IMPORT_RE = re.compile(r"import\s+([\w.]+);")

EXPORT_RE = re.compile(
    r"export\s+(?:default\s+)?(?:function\s+|class\s+|const\s+|let\s+|var\s+)?(\w+)"
)

JS_FUNCTION_RE = re.compile(
    r"(?:function\s+(\w+)"
    r"|(\w+)\s*=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*=>"
    r"|(\w+):\s*(?:async\s+)?\([^)]*\)\s*=>)"
)
PYTHON_FUNCTION_RE = re.compile(r"def\s+(\w+)\s*\(")

CLASS_RE = re.compile(r"class\s+(\w+)")

BLOCK_COMMENT_RE = re.compile(r"/\*\*?(.*?)\*/", re.DOTALL)
COMMENT_CONTINUATION_RE = re.compile(r"\n\s*\*")

COMPLEXITY_RES = (
    re.compile(r"if\s*\("),
    re.compile(r"for\s*\("),
    re.compile(r"while\s*\("),
    re.compile(r"switch\s*\("),
    re.compile(r"catch\s*\("),
    re.compile(r"&&|\|\|"),
)


@dataclass
class ContentAnalysis:
    """Result of analyzing one file's text"""
    language: str
    framework: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    main_function: Optional[str] = None
    main_class: Optional[str] = None
    summary: str = ""
    complexity: int = 0


class ContentAnalyzer:
    """Extracts lightweight structural metadata from file text"""
    
    def __init__(self):
        self.logger = logging.getLogger("repo_rag.services.knowledge_extraction.content_analyzer")
        self._framework_signatures = tuple(
            (name, tuple(re.compile(p, re.IGNORECASE) for p in patterns))
            for name, patterns in FRAMEWORK_SIGNATURES
        )
    
    def analyze(self, content: str, file_type: str) -> ContentAnalysis:
        """Analyze file content
        
        Args:
            content: Raw file text
            file_type: File type tag resolved from the extension
            
        Returns:
            Content analysis
        """
        dependencies = self.extract_dependencies(content)
        functions = self.extract_functions(content)
        classes = self.extract_classes(content)
        
        analysis = ContentAnalysis(
            language=self.get_language(file_type),
            framework=self.detect_framework(content),
            dependencies=dependencies,
            imports=list(dependencies),
            exports=self.extract_exports(content),
            functions=functions,
            classes=classes,
            main_function=functions[0] if functions else None,
            main_class=classes[0] if classes else None,
            summary=self.generate_summary(content),
            complexity=self.calculate_complexity(content)
        )
        
        self.logger.debug(
            f"Analyzed {file_type} content: {len(functions)} functions, "
            f"{len(classes)} classes, complexity {analysis.complexity}"
        )
        return analysis
    
    def get_language(self, file_type: str) -> str:
        return file_type
    
    def detect_framework(self, content: str) -> Optional[str]:
        for name, signatures in self._framework_signatures:
            for signature in signatures:
                if signature.search(content):
                    return name
        return None
    
    def extract_dependencies(self, content: str) -> List[str]:
        """Collect imported module names from ES, Python and Java syntax
        
        Returns:
            Distinct dependency names in order of first appearance
        """
        dependencies = []
        
        for match in ES_IMPORT_RE.finditer(content):
            dependencies.append(match.group(1))
        
        for match in PYTHON_IMPORT_RE.finditer(content):
            dependencies.append(match.group(1) or match.group(2))
        
        for match in JAVA_IMPORT_RE.finditer(content):
            dependencies.append(match.group(1))
        
        return list(dict.fromkeys(dependencies))
    
    def extract_exports(self, content: str) -> List[str]:
        return [match.group(1) for match in EXPORT_RE.finditer(content)]
    
    def extract_functions(self, content: str) -> List[str]:
        functions = []
        
        for match in JS_FUNCTION_RE.finditer(content):
            name = match.group(1) or match.group(2) or match.group(3)
            if name:
                functions.append(name)
        
        for match in PYTHON_FUNCTION_RE.finditer(content):
            functions.append(match.group(1))
        
        return functions
    
    def extract_classes(self, content: str) -> List[str]:
        """Collect class names
        
        The JS/TS pass and the Python pass use the same pattern, so a name
        appears once per pass. Both passes are kept so the output matches
        what previously indexed items contain.
        """
        classes = []
        
        # JavaScript/TypeScript
        for match in CLASS_RE.finditer(content):
            classes.append(match.group(1))
        
        # Python
        for match in CLASS_RE.finditer(content):
            classes.append(match.group(1))
        
        return classes
    
    def generate_summary(self, content: str) -> str:
        """Summarize a file from its leading comment or its first lines"""
        first_comment = self.extract_first_comment(content)
        if first_comment:
            return first_comment[:SUMMARY_MAX_LENGTH]
        
        non_empty_lines = [line for line in content.split('\n') if line.strip()]
        return ' '.join(non_empty_lines[:3])[:SUMMARY_MAX_LENGTH]
    
    def extract_first_comment(self, content: str) -> Optional[str]:
        """Return the first block comment, else the leading line comments"""
        block_match = BLOCK_COMMENT_RE.search(content)
        if block_match:
            return COMMENT_CONTINUATION_RE.sub('\n', block_match.group(1)).strip()
        
        comment_lines = []
        for line in content.split('\n'):
            stripped = line.strip()
            if stripped.startswith('//'):
                comment_lines.append(stripped[2:].strip())
            elif stripped.startswith('#'):
                comment_lines.append(stripped[1:].strip())
            elif stripped:
                break
        
        return ' '.join(comment_lines) if comment_lines else None
    
    def calculate_complexity(self, content: str) -> int:
        """Count branch and boolean-operator tokens as a rough complexity score"""
        return sum(len(regex.findall(content)) for regex in COMPLEXITY_RES)
