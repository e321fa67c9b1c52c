"""Tests for the differ (dependency list and declared shape comparison)."""

import pytest

from propdeps.analyzer.differ import (
    DependencyEntry, Finding, FindingKind, diff, is_builtin_entry, is_covered, is_undeclared,
)
from propdeps.analyzer.paths import PathSet, PropPath
from propdeps.analyzer.shapes import Primitive, ShapeNode
from propdeps.analyzer.syntax import SourceSpan
from propdeps.config import AnalysisOptions


def used_paths(*texts: str) -> PathSet:
    """PathSet whose locations follow argument order."""
    paths = PathSet()
    for line, value in enumerate(texts, start=1):
        paths.add(PropPath.parse(value), SourceSpan(line, 0, line, len(value)))
    return paths


def entries(*texts: str):
    return [DependencyEntry(PropPath.parse(value), SourceSpan(100, i, 100, i + 1))
            for i, value in enumerate(texts)]


@pytest.fixture
def shape():
    return ShapeNode.object({
        'name': ShapeNode.of_primitive(Primitive.STRING),
        'user': ShapeNode.object({'first': ShapeNode.of_primitive(Primitive.STRING)}),
        'arr': ShapeNode.array(),
        'custom': ShapeNode.opaque('customProp', custom=True),
    })


class TestCoverage:
    """is_covered in default and strict mode."""

    def test_exact_entry_covers(self):
        """An identical entry covers a path."""
        assert is_covered(PropPath.parse('a.b'), entries('a.b'))

    def test_ancestor_entry_covers_descendant(self):
        """An ancestor entry covers deeper reads."""
        assert is_covered(PropPath.parse('name.first'), entries('name'))

    def test_descendant_entry_covers_ancestor(self):
        """A descendant entry covers a read of its ancestor."""
        assert is_covered(PropPath.parse('user'), entries('user.name'))

    def test_sibling_does_not_cover(self):
        """A sibling entry does not cover."""
        assert not is_covered(PropPath.parse('names'), entries('name'))

    def test_strict_mode_requires_exact_entries(self):
        """Strict matching ignores ancestors and descendants."""
        strict = AnalysisOptions(match_descendants=False)
        assert not is_covered(PropPath.parse('name.first'), entries('name'), strict)
        assert is_covered(PropPath.parse('name'), entries('name'), strict)


class TestUndeclared:

    def test_missing_root_key(self, shape):
        """An undeclared root key is reported."""
        assert is_undeclared(PropPath.parse('title'), shape)

    def test_skip_undeclared_only_affects_root_keys(self, shape):
        """skip_undeclared still checks nested keys."""
        assert not is_undeclared(PropPath.parse('title'), shape, skip_undeclared=True)
        assert is_undeclared(PropPath.parse('user.last'), shape, skip_undeclared=True)

    def test_primitives_and_arrays_end_the_walk(self, shape):
        """Paths below primitives and plain arrays are declared."""
        assert not is_undeclared(PropPath.parse('name.whatever'), shape)
        assert not is_undeclared(PropPath.parse('arr[].x'), shape)

    def test_builtin_entries(self, shape):
        """Builtin members in entries are recognized."""
        assert is_builtin_entry(PropPath.parse('arr.length'), shape)
        assert not is_builtin_entry(PropPath.parse('user.first'), shape)


class TestDiff:
    """Ordering and grouping of findings."""

    def test_missing_paths_reported_under_both_kinds(self):
        """Each missing path gets both finding kinds."""
        findings = diff(used_paths('b', 'a'), ShapeNode.unknown(), entries())
        assert [(f.kind, f.path) for f in findings] == [
            (FindingKind.MISSING_DEPENDENCY, 'b'),
            (FindingKind.MISSING_DEPENDENCY, 'a'),
            (FindingKind.MISSING_DEPENDENCY_LEGACY, 'b'),
            (FindingKind.MISSING_DEPENDENCY_LEGACY, 'a'),
        ]

    def test_no_dependency_list_means_no_dependency_findings(self, shape):
        """Unregistered components get no dependency findings."""
        assert diff(used_paths('name'), shape, None) == []

    def test_unknown_shape_means_no_shape_findings(self):
        """An unknown shape produces no shape findings."""
        assert diff(used_paths('anything'), ShapeNode.unknown(), entries('anything')) == []

    def test_shape_findings_follow_dependency_findings(self, shape):
        """Shape findings come after dependency findings."""
        findings = diff(used_paths('title', 'name'), shape, entries('name'))
        assert [f.kind for f in findings] == [
            FindingKind.MISSING_DEPENDENCY,
            FindingKind.MISSING_DEPENDENCY_LEGACY,
            FindingKind.MISSING_FROM_SHAPE,
        ]
        assert {f.path for f in findings} == {'title'}

    def test_ignored_and_custom_roots_are_skipped(self, shape):
        """Ignored and custom validator roots are skipped."""
        options = AnalysisOptions(ignore=frozenset({'title'}))
        findings = diff(used_paths('title', 'custom.value'), shape, entries('custom'), options)
        assert findings == []

    def test_custom_validator_names_from_options(self):
        """Custom validator names come from the options."""
        shape = ShapeNode.object({'value': ShapeNode.opaque('myValidator')})
        options = AnalysisOptions(custom_validators=frozenset({'myValidator'}))
        assert diff(used_paths('value.inner'), shape, None, options) == []

    def test_unused_dependencies_only_when_enabled(self, shape):
        """Unused entries are reported only when enabled."""
        used = used_paths('name')
        deps = entries('name', 'user.first', 'arr.length')
        assert diff(used, shape, deps) == []

        options = AnalysisOptions(check_unused_dependencies=True)
        findings = diff(used, shape, deps, options)
        assert [(f.kind, f.path) for f in findings] == [(FindingKind.UNUSED_DEPENDENCY, 'user.first')]
        assert findings[0].location == SourceSpan(100, 1, 100, 2)

    def test_finding_to_dict(self):
        """Findings serialize with kind, path and location."""
        finding = Finding.create(FindingKind.MISSING_FROM_SHAPE, PropPath.parse('foo.baz'), SourceSpan(3, 4, 3, 11))
        assert finding.to_dict() == {
            'kind': 'missingFromDeclaredShape',
            'path': 'foo.baz',
            'line': 3,
            'column': 5,
            'message': "'foo.baz' is missing in props validation",
        }
