"""Property path engine: Shape Resolver -> Usage Collector -> Differ.

One component at a time; a failure in one component never stops the file.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from tree_sitter import Tree

from ..config import AnalysisOptions
from .components import AnalysisError, ComponentFinder, ComponentRegistration, read_dependency_list
from .declarations import DeclarationIndex
from .differ import Finding, diff
from .parser import LanguageParser
from .paths import PathSet
from .shape_resolver import ShapeResolver
from .shapes import ShapeNode
from .syntax import SourceSpan
from .usage import UsageCollector

logger = logging.getLogger(__name__)


@dataclass
class ComponentReport:
    """Analysis result for one component.

    ``error`` is set (and the other results left empty) when the component
    was skipped.
    """
    name: str
    span: Optional[SourceSpan] = None
    used: PathSet = field(default_factory=PathSet)
    consumed: PathSet = field(default_factory=PathSet)
    shape: ShapeNode = field(default_factory=ShapeNode.unknown)
    findings: List[Finding] = field(default_factory=list)
    registered: bool = False
    error: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.error is not None


@dataclass
class FileReport:
    path: Optional[str]
    language: str
    components: List[ComponentReport] = field(default_factory=list)
    has_parse_errors: bool = False

    @property
    def findings(self) -> List[Finding]:
        return [finding for component in self.components for finding in component.findings]

    def component(self, name: str) -> Optional[ComponentReport]:
        return next((report for report in self.components if report.name == name), None)


class PropertyPathEngine:
    """Runs the analysis for components of one file."""

    def __init__(self, options: AnalysisOptions = None):
        self.options = options or AnalysisOptions()

    def analyze(self, registration: ComponentRegistration, index: DeclarationIndex,
                skip: Iterable = ()) -> ComponentReport:
        """Analyze one component.

        Args:
            registration: Component found by ComponentFinder
            index: Declarations of the component's file
            skip: node keys of nested components analyzed separately

        Returns:
            ComponentReport; skipped (``error`` set) when the component is malformed
        """
        try:
            dependencies = None
            if registration.dependency_list is not None:
                dependencies = read_dependency_list(registration.dependency_list)

            shape = ShapeResolver(index, self.options.custom_validators).resolve(registration.shape)
            collector = UsageCollector(shape, skip)
            used = collector.collect(registration.node)
            findings = diff(used, shape, dependencies, self.options)
        except (AnalysisError, RecursionError) as exc:
            logger.warning("Skipping component %s at %s: %s", registration.name, registration.span, exc)
            return self._skipped(registration, exc)
        except Exception as exc:
            logger.warning("Unexpected error analyzing component %s at %s",
                           registration.name, registration.span, exc_info=True)
            return self._skipped(registration, exc)

        return ComponentReport(
            name=registration.name,
            span=registration.span,
            used=used,
            consumed=collector.consumed,
            shape=shape,
            findings=findings,
            registered=dependencies is not None,
        )

    @staticmethod
    def _skipped(registration: ComponentRegistration, exc: Exception) -> ComponentReport:
        return ComponentReport(
            name=registration.name,
            span=registration.span,
            registered=registration.dependency_list is not None,
            error=str(exc) or type(exc).__name__,
        )

    def analyze_tree(self, tree: Tree, path: Optional[str] = None, language: str = 'tsx') -> FileReport:
        root = tree.root_node
        index = DeclarationIndex(root)
        registrations = ComponentFinder(root, index, self.options.registration_callee).find()
        keys = {registration.key for registration in registrations}

        report = FileReport(path=path, language=language, has_parse_errors=root.has_error)
        for registration in registrations:
            report.components.append(self.analyze(registration, index, skip=keys - {registration.key}))
        return report


def analyze_source(source: str | bytes, language: str = 'tsx',
                   options: AnalysisOptions = None) -> FileReport:
    """Analyze in-memory source.

    Args:
        source: Component source text
        language: 'javascript', 'typescript' or 'tsx'
        options: Analysis options (defaults apply when None)

    Returns:
        FileReport with one ComponentReport per component found
    """
    tree = LanguageParser(language).parse_source(source)
    return PropertyPathEngine(options).analyze_tree(tree, language=language)


def analyze_file(path: str | Path, options: AnalysisOptions = None,
                 language: Optional[str] = None) -> Optional[FileReport]:
    """Analyze a file; None when it is unsupported or unreadable."""
    path = Path(path)
    parser = LanguageParser(language) if language else LanguageParser.from_file_extension(path)
    if parser is None:
        logger.debug("Skipping %s: unsupported extension", path)
        return None
    tree = parser.parse_file(path)
    if tree is None:
        return None
    return PropertyPathEngine(options).analyze_tree(tree, path=str(path), language=parser.language)
