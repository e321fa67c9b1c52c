"""Differ: compare used paths with the dependency list and the declared shape.

Pure functions over already computed data; no syntax tree access.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..config import AnalysisOptions
from .paths import Element, Key, PathSet, PropPath
from .shapes import ShapeKind, ShapeNode
from .syntax import SourceSpan


class FindingKind(str, Enum):
    MISSING_DEPENDENCY = 'missingFromDependencyList'
    MISSING_DEPENDENCY_LEGACY = 'missingFromDependencyListLegacy'
    MISSING_FROM_SHAPE = 'missingFromDeclaredShape'
    UNUSED_DEPENDENCY = 'unusedDependency'


MESSAGES: Dict[FindingKind, str] = {
    FindingKind.MISSING_DEPENDENCY: "'{path}' is used but missing from the dependency list",
    FindingKind.MISSING_DEPENDENCY_LEGACY: "Dependency list is missing '{path}'",
    FindingKind.MISSING_FROM_SHAPE: "'{path}' is missing in props validation",
    FindingKind.UNUSED_DEPENDENCY: "'{path}' is listed as a dependency but never used",
}


@dataclass(frozen=True)
class DependencyEntry:
    """One literal entry of a dependency list."""
    path: PropPath
    location: Optional[SourceSpan] = None


@dataclass(frozen=True)
class Finding:
    kind: FindingKind
    path: str
    location: Optional[SourceSpan]
    message: str

    @classmethod
    def create(cls, kind: FindingKind, path: PropPath, location: Optional[SourceSpan]) -> 'Finding':
        text = path.render()
        return cls(kind, text, location, MESSAGES[kind].format(path=text))

    def to_dict(self) -> dict:
        return {
            'kind': self.kind.value,
            'path': self.path,
            'line': self.location.start_line if self.location else None,
            'column': self.location.start_column + 1 if self.location else None,
            'message': self.message,
        }


def diff(used: PathSet, shape: ShapeNode, dependencies: Optional[Sequence[DependencyEntry]],
         options: AnalysisOptions = None) -> List[Finding]:
    """Findings for one component.

    Args:
        used: Path Set collected from the component body
        shape: Declared shape (unknown when none was declared)
        dependencies: Declared dependency list, None when the component has none
        options: Analysis options

    Returns:
        Dependency findings (primary kind, then legacy kind), then shape
        findings, then unused dependency findings; each group in source order.
    """
    options = options or AnalysisOptions()
    ordered = _in_source_order(used)
    findings: List[Finding] = []

    if dependencies is not None:
        missing = [path for path in ordered
                   if not _ignored(path, options) and not is_covered(path, dependencies, options)]
        for kind in (FindingKind.MISSING_DEPENDENCY, FindingKind.MISSING_DEPENDENCY_LEGACY):
            findings.extend(Finding.create(kind, path, used.location_of(path)) for path in missing)

    if not shape.is_unknown:
        for path in ordered:
            if _ignored(path, options) or _custom_root(path, shape, options):
                continue
            if is_undeclared(path, shape, options.skip_undeclared):
                findings.append(Finding.create(FindingKind.MISSING_FROM_SHAPE, path, used.location_of(path)))

    if dependencies is not None and options.check_unused_dependencies:
        for entry in dependencies:
            if _ignored(entry.path, options) or is_builtin_entry(entry.path, shape):
                continue
            if not any(_related(entry.path, path, options) for path in used):
                findings.append(Finding.create(FindingKind.UNUSED_DEPENDENCY, entry.path, entry.location))

    return findings


def is_covered(path: PropPath, dependencies: Sequence[DependencyEntry],
               options: AnalysisOptions = None) -> bool:
    """True when some dependency entry covers ``path``."""
    options = options or AnalysisOptions()
    return any(_related(entry.path, path, options) for entry in dependencies)


def _related(entry: PropPath, path: PropPath, options: AnalysisOptions) -> bool:
    if entry == path:
        return True
    if not options.match_descendants:
        return False
    return path.startswith(entry) or entry.startswith(path)


def is_undeclared(path: PropPath, shape: ShapeNode, skip_undeclared: bool = False) -> bool:
    """True when an object along ``path`` lacks the next key.

    Primitives, opaque leaves, arrays (for key access) and unknown nodes end
    the walk without a finding.
    """
    node = shape
    for depth, segment in enumerate(path.segments):
        resolved = node.resolved()
        if isinstance(segment, Key):
            if resolved.kind not in (ShapeKind.OBJECT, ShapeKind.UNION):
                return False
            child = resolved.child(segment.name)
            if child is None:
                return not (depth == 0 and skip_undeclared)
            node = child
        elif isinstance(segment, Element):
            child = resolved.element_shape()
            if child is None:
                return False
            node = child
        else:
            return False
    return False


def is_builtin_entry(path: PropPath, shape: ShapeNode) -> bool:
    """True for entries such as ``arr.length`` whose receiver exempts the member."""
    last = path.last
    parent = path.parent
    if not isinstance(last, Key) or parent is None:
        return False
    receiver = shape.at(parent)
    return receiver is not None and receiver.exempts(last.name)


def _ignored(path: PropPath, options: AnalysisOptions) -> bool:
    return path.root_key in options.ignore


def _custom_root(path: PropPath, shape: ShapeNode, options: AnalysisOptions) -> bool:
    """Root key declared with a custom validator."""
    if path.root_key is None:
        return False
    child = shape.child(path.root_key)
    if child is None:
        return False
    resolved = child.resolved()
    return resolved.kind is ShapeKind.OPAQUE and (
        resolved.custom or resolved.validator in options.custom_validators)


def _in_source_order(used: PathSet) -> List[PropPath]:
    def key(path: PropPath):
        location = used.location_of(path)
        if location is None:
            return (1, 0, 0)
        return (0, location.start_line, location.start_column)
    return sorted(used, key=key)
