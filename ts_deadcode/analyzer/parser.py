"""Tree-sitter parser for TypeScript and JavaScript modules."""
from pathlib import Path
from typing import Dict, Optional, Tuple
from tree_sitter import Language, Node, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript

from .errors import ParseError


class LanguageParser:
    """Parser wrapper around the tree-sitter v0.22+ API."""

    SUPPORTED_LANGUAGES = {
        '.ts': 'typescript',
        '.mts': 'typescript',
        '.cts': 'typescript',
        '.tsx': 'tsx',
        '.js': 'javascript',
        '.jsx': 'javascript',
        '.mjs': 'javascript',
        '.cjs': 'javascript',
    }

    # Parsers are reused across files; Language objects are immutable.
    _instances: Dict[str, 'LanguageParser'] = {}

    def __init__(self, language: str):
        """Initialize parser for given language (typescript, tsx, javascript).

        Args:
            language: One of 'typescript', 'tsx', 'javascript'

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        """Factory method using the Parser(Language(capsule)) API.

        Returns:
            Configured Parser instance

        Raises:
            ValueError: If language is not supported
        """
        if self.language == 'javascript':
            lang = Language(tsjavascript.language())
        elif self.language == 'typescript':
            lang = Language(tstypescript.language_typescript())
        elif self.language == 'tsx':
            lang = Language(tstypescript.language_tsx())
        else:
            raise ValueError(f"Unsupported language: {self.language}")

        return Parser(lang)

    def parse_source(self, source_code: bytes) -> Tree:
        """Parse raw source bytes into a syntax tree."""
        return self.parser.parse(source_code)

    def parse_file(self, file_path: str | Path) -> Tuple[Tree, bytes]:
        """Read and parse a file.

        Args:
            file_path: Path to source file to parse

        Returns:
            (tree, source bytes)

        Raises:
            ParseError: If the file cannot be read
        """
        file_path = Path(file_path)
        try:
            with open(file_path, 'rb') as f:
                source_code = f.read()
        except OSError as exc:
            raise ParseError(file_path, f"cannot read file ({exc.strerror or exc})") from exc

        return self.parse_source(source_code), source_code

    @staticmethod
    def check_tree(tree: Tree, file_path: str | Path) -> None:
        """Raise ParseError if tree-sitter had to recover from syntax errors.

        Results from a partially parsed module would be unreliable in a way
        nobody could see, so the first ERROR or MISSING node is reported.
        """
        root = tree.root_node
        if not root.has_error:
            return

        bad = _first_error_node(root)
        if bad is None:
            raise ParseError(file_path, "syntax error")
        kind = f"missing '{bad.type}'" if bad.is_missing else "syntax error"
        raise ParseError(file_path, kind, line=bad.start_point[0] + 1)

    @classmethod
    def for_language(cls, language: str) -> 'LanguageParser':
        """Return the shared parser for a language."""
        parser = cls._instances.get(language)
        if parser is None:
            parser = cls(language)
            cls._instances[language] = parser
        return parser

    @classmethod
    def from_file_extension(cls, file_path: str | Path) -> Optional['LanguageParser']:
        """Create parser based on file extension.

        Args:
            file_path: Path to determine language from

        Returns:
            LanguageParser instance, or None if extension not supported
        """
        language = cls.language_for(file_path)
        if language:
            return cls.for_language(language)
        return None

    @classmethod
    def language_for(cls, file_path: str | Path) -> Optional[str]:
        return cls.SUPPORTED_LANGUAGES.get(Path(file_path).suffix.lower())


def _first_error_node(node: Node) -> Optional[Node]:
    """Depth-first search for the first ERROR or MISSING node."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == 'ERROR' or current.is_missing:
            return current
        if current.has_error:
            stack.extend(reversed(current.children))
    return None
