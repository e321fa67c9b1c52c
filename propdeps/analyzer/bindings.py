"""Binding values and the lexical scope chain.

A binding maps a local name to what it holds relative to the props object:

    RootProps          props itself
    PropsPath(p)       the value at path p
    RestOf(p, keys)    the object at p minus the keys named next to the rest
    Opaque             something we do not track (shadowing names included)
    ComponentInstance  ``this`` inside class / createReactClass members
"""
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional, Union

from tree_sitter import Node

from .paths import Key, PropPath, extend, root_path


class RootProps:
    def __repr__(self) -> str:
        return 'RootProps'


class Opaque:
    def __repr__(self) -> str:
        return 'Opaque'


class ComponentInstance:
    def __repr__(self) -> str:
        return 'ComponentInstance'


@dataclass(frozen=True)
class PropsPath:
    path: PropPath


@dataclass(frozen=True)
class RestOf:
    parent: Optional[PropPath]  # None for a rest taken directly from props
    excluded: FrozenSet[str] = frozenset()


ROOT = RootProps()
OPAQUE = Opaque()
INSTANCE = ComponentInstance()

Value = Union[RootProps, PropsPath, RestOf, Opaque, ComponentInstance]


def is_tracked(value: Optional[Value]) -> bool:
    """True for values that lead back to props."""
    return value is ROOT or isinstance(value, (PropsPath, RestOf))


def path_of(value: Value) -> Optional[PropPath]:
    """Path held by a value; None for the props root and untracked values."""
    if isinstance(value, PropsPath):
        return value.path
    return None


def member(value: Optional[Value], name: str) -> Value:
    """Value of ``value.name`` (or ``value['name']``)."""
    if value is ROOT:
        return PropsPath(root_path(Key(name)))
    if isinstance(value, PropsPath):
        return PropsPath(value.path.key(name))
    if isinstance(value, RestOf):
        # rest.x is the same data as parent.x
        return PropsPath(extend(value.parent, Key(name)))
    if value is INSTANCE and name == 'props':
        return ROOT
    return OPAQUE


def element(value: Optional[Value]) -> Value:
    """Value of ``value[expr]`` for a non string-literal ``expr``.

    At the root the key cannot be determined. Below it, any computed index
    is the array element idiom.
    """
    if isinstance(value, PropsPath):
        return PropsPath(value.path.element())
    if isinstance(value, RestOf) and value.parent is not None:
        return PropsPath(value.parent.element())
    return OPAQUE


@dataclass(eq=False)
class Binding:
    """One declared name.

    ``pending`` marks destructured / aliased paths: such a binding requires
    its own path when it is used whole or never dereferenced at all.
    """
    name: str
    value: Value
    node: Optional[Node] = None
    pending: bool = False
    dereferenced: bool = False
    used: bool = False


class Scope:
    """One frame of the lexical scope chain."""

    FUNCTION = 'function'
    BLOCK = 'block'
    CLASS = 'class'
    COMPONENT = 'component'

    def __init__(self, kind: str, parent: 'Scope' = None, node: Node = None):
        self.kind = kind
        self.parent = parent
        self.node = node
        self.bindings: Dict[str, Binding] = {}

    def child(self, kind: str, node: Node = None) -> 'Scope':
        return Scope(kind, self, node)

    def declare(self, name: str, value: Value, node: Node = None, pending: bool = False) -> Binding:
        binding = Binding(name, value, node, pending=pending)
        self.bindings[name] = binding
        return binding

    def lookup(self, name: str) -> Optional[Binding]:
        """Nearest binding for ``name``, walking outward."""
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        return None

    def enclosing(self, predicate: Callable[['Scope'], bool]) -> Optional['Scope']:
        """First scope, starting here and walking outward, matching ``predicate``."""
        scope = self
        while scope is not None:
            if predicate(scope):
                return scope
            scope = scope.parent
        return None

    def function_scope(self) -> 'Scope':
        """Target frame for hoisted ``var`` declarations."""
        scope = self.enclosing(lambda s: s.kind in (Scope.FUNCTION, Scope.COMPONENT))
        return scope if scope is not None else self.root()

    def root(self) -> 'Scope':
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope

    def __repr__(self) -> str:
        return f"Scope({self.kind}, names={sorted(self.bindings)!r})"
