"""Tests for the property path model."""

import pytest

from propdeps.analyzer.paths import ELEMENT, REST, Key, PathSet, PropPath, extend, root_path


class TestRendering:
    """Canonical string form."""

    def test_keys_joined_with_dots(self):
        """Keys render joined with dots."""
        assert PropPath.of('a', 'b', 'c').render() == 'a.b.c'

    def test_element_appends_brackets_to_previous_key(self):
        """Elements render as [] after the key."""
        path = PropPath([Key('a'), ELEMENT, Key('c')])
        assert path.render() == 'a[].c'

    def test_nested_elements(self):
        """Nested elements render as repeated []."""
        path = PropPath([Key('grid'), ELEMENT, ELEMENT])
        assert str(path) == 'grid[][]'

    def test_rest_at_root_and_below(self):
        """Rest segments render as ``...``."""
        assert root_path(REST).render() == '...'
        assert PropPath.of('foo').rest().render() == 'foo...'

    def test_empty_path_rejected(self):
        """A path needs at least one segment."""
        with pytest.raises(ValueError):
            PropPath([])


class TestParsing:
    """PropPath.parse is the inverse of render for canonical strings."""

    @pytest.mark.parametrize('text', ['name', 'a.b.c', 'a[].c', 'people[].name.firstname', 'm[][].x', 'foo...'])
    def test_canonical_strings_parse_back(self, text):
        """Canonical strings parse back to the same path."""
        assert PropPath.parse(text).render() == text

    def test_parsed_segments(self):
        """Parsing splits keys, elements and rests."""
        path = PropPath.parse('a[].b')
        assert path.segments == (Key('a'), ELEMENT, Key('b'))
        assert path.root_key == 'a'
        assert path.last == Key('b')

    def test_empty_string_rejected(self):
        """The empty string is not a path."""
        with pytest.raises(ValueError):
            PropPath.parse('')


class TestPathOperations:

    def test_equality_follows_canonical_string(self):
        """Paths compare by their canonical string."""
        assert PropPath.parse('a[].c') == PropPath([Key('a'), ELEMENT, Key('c')])
        assert hash(PropPath.of('a', 'b')) == hash(PropPath.parse('a.b'))
        assert PropPath.of('a', 'b') != PropPath.of('a', 'c')

    def test_paths_are_immutable_when_extended(self):
        """Extending returns a new path."""
        base = PropPath.of('a')
        child = base.key('b')
        assert base.render() == 'a'
        assert child.render() == 'a.b'
        assert child.parent == base

    def test_without_trailing_elements(self):
        """Trailing element segments are stripped."""
        assert PropPath.parse('a.e[]').without_trailing_elements().render() == 'a.e'
        assert PropPath.parse('arr[][]').without_trailing_elements().render() == 'arr'
        assert PropPath.parse('a[].c').without_trailing_elements().render() == 'a[].c'

    def test_startswith_is_segment_based(self):
        """Prefix tests compare whole segments."""
        assert PropPath.parse('name.first').startswith(PropPath.of('name'))
        assert PropPath.parse('name').startswith(PropPath.of('name'))
        assert not PropPath.parse('names').startswith(PropPath.of('name'))

    def test_extend_from_root(self):
        """Extending the root starts a path."""
        assert extend(None, Key('x')).render() == 'x'
        assert extend(PropPath.of('x'), ELEMENT).render() == 'x[]'


class TestPathSet:

    def test_deduplicates_by_canonical_string(self):
        """A Path Set holds each path once."""
        paths = PathSet()
        assert paths.add(PropPath.parse('a[].c'), location='first')
        assert not paths.add(PropPath([Key('a'), ELEMENT, Key('c')]), location='second')
        assert len(paths) == 1
        assert paths.location_of(PropPath.parse('a[].c')) == 'first'

    def test_membership_accepts_strings(self):
        """Membership accepts canonical strings."""
        paths = PathSet()
        paths.add(PropPath.of('name'))
        assert 'name' in paths
        assert PropPath.of('name') in paths
        assert 'title' not in paths

    def test_equality_ignores_insertion_order(self):
        """Path Set equality ignores insertion order."""
        first, second = PathSet(), PathSet()
        for text in ('a', 'b.c'):
            first.add(PropPath.parse(text))
        for text in ('b.c', 'a'):
            second.add(PropPath.parse(text))
        assert first == second
        assert first.strings() == ['a', 'b.c']
