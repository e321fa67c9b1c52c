"""Tree-sitter parser for JavaScript and TypeScript component sources."""
import logging
from pathlib import Path
from typing import Optional
from tree_sitter import Language, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript

logger = logging.getLogger(__name__)


class LanguageParser:
    """Parser for component sources using the tree-sitter v0.22+ API."""

    SUPPORTED_LANGUAGES = {
        '.js': 'javascript',
        '.jsx': 'javascript',
        '.mjs': 'javascript',
        '.cjs': 'javascript',
        '.ts': 'typescript',
        '.tsx': 'tsx',
    }

    LANGUAGES = ('javascript', 'typescript', 'tsx')

    def __init__(self, language: str):
        """Initialize parser for given language (javascript, typescript, tsx).

        Args:
            language: One of 'javascript', 'typescript', 'tsx'

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        """Factory method using the Parser(Language(capsule)) syntax.

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
            # JSX plus type annotations (also accepts most Flow props types)
            lang = Language(tstypescript.language_tsx())
        else:
            raise ValueError(f"Unsupported language: {self.language}")

        return Parser(lang)

    def parse_source(self, source_code: bytes | str) -> Tree:
        """Parse in-memory source.

        Args:
            source_code: Source text or bytes

        Returns:
            Parsed Tree (tree-sitter always yields a tree, possibly with ERROR nodes)
        """
        if isinstance(source_code, str):
            source_code = source_code.encode('utf-8')
        tree = self.parser.parse(source_code)
        if tree.root_node.has_error:
            logger.debug("Parse errors in %s source; analyzing recoverable parts", self.language)
        return tree

    def parse_file(self, file_path: str | Path) -> Optional[Tree]:
        """Parse file and return tree-sitter Tree.

        Args:
            file_path: Path to source file to parse

        Returns:
            Parsed Tree object, or None if parsing failed
        """
        file_path = Path(file_path)

        if not file_path.exists():
            return None

        try:
            with open(file_path, 'rb') as f:
                source_code = f.read()
            return self.parse_source(source_code)
        except (UnicodeDecodeError, IOError) as exc:
            logger.warning("Skipping unreadable file %s: %s", file_path, exc)
            return None

    @classmethod
    def language_for(cls, file_path: str | Path) -> Optional[str]:
        return cls.SUPPORTED_LANGUAGES.get(Path(file_path).suffix.lower())

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
            return cls(language)
        return None
