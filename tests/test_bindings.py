"""Tests for binding values and the scope chain."""

from propdeps.analyzer.bindings import (
    INSTANCE, OPAQUE, ROOT, PropsPath, RestOf, Scope, element, is_tracked, member,
)
from propdeps.analyzer.paths import PropPath


class TestValues:
    """member() / element() over each kind of value."""

    def test_member_of_root_starts_a_path(self):
        """Reading a member of the props root starts a path."""
        assert member(ROOT, 'name') == PropsPath(PropPath.of('name'))

    def test_member_extends_a_path(self):
        """A member of a path binding extends that path."""
        assert member(PropsPath(PropPath.of('user')), 'name') == PropsPath(PropPath.of('user', 'name'))

    def test_member_of_rest_skips_the_rest_object(self):
        """Members of a rest binding are paths of the object it came from."""
        rest = RestOf(PropPath.of('foo'), frozenset({'a'}))
        assert member(rest, 'b') == PropsPath(PropPath.of('foo', 'b'))
        assert member(RestOf(None), 'title') == PropsPath(PropPath.of('title'))

    def test_instance_props_is_root(self):
        """``this.props`` on an instance binding is the props root."""
        assert member(INSTANCE, 'props') is ROOT
        assert member(INSTANCE, 'state') is OPAQUE

    def test_opaque_stays_opaque(self):
        """Members of an untracked value stay untracked."""
        assert member(OPAQUE, 'x') is OPAQUE
        assert element(OPAQUE) is OPAQUE

    def test_element_below_root(self):
        """Indexing a path appends an element segment."""
        assert element(PropsPath(PropPath.of('a'))) == PropsPath(PropPath.parse('a[]'))

    def test_element_at_root_is_opaque(self):
        """Indexing the props root itself is untracked."""
        assert element(ROOT) is OPAQUE

    def test_tracked_values(self):
        """Only roots, paths and rests are tracked."""
        assert is_tracked(ROOT)
        assert is_tracked(RestOf(None))
        assert not is_tracked(OPAQUE)
        assert not is_tracked(INSTANCE)


class TestScope:
    """Lexical lookup and var hoisting targets."""

    def test_inner_declaration_shadows_outer(self):
        """An inner binding hides the outer one."""
        outer = Scope(Scope.FUNCTION)
        outer.declare('props', ROOT)
        inner = outer.child(Scope.BLOCK)
        inner.declare('props', OPAQUE)
        assert inner.lookup('props').value is OPAQUE
        assert outer.lookup('props').value is ROOT

    def test_lookup_walks_outward(self):
        """Unknown names are looked up in enclosing scopes."""
        outer = Scope(Scope.COMPONENT)
        outer.declare('this', INSTANCE)
        inner = outer.child(Scope.FUNCTION).child(Scope.BLOCK)
        assert inner.lookup('this').value is INSTANCE
        assert inner.lookup('missing') is None

    def test_function_scope_skips_blocks(self):
        """var declarations land in the nearest function scope."""
        function = Scope(Scope.COMPONENT).child(Scope.FUNCTION)
        block = function.child(Scope.BLOCK).child(Scope.BLOCK)
        assert block.function_scope() is function

    def test_root(self):
        """root() returns the outermost scope."""
        root = Scope(Scope.COMPONENT)
        assert root.child(Scope.FUNCTION).child(Scope.BLOCK).root() is root
