"""Shape tree for declared props.

Both declaration dialects (PropTypes calls and type annotations) are turned
into ShapeNode trees by the shape resolver. Everything downstream only ever
sees ShapeNode.
"""
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from .paths import Element, Key, PropPath


class ShapeKind(Enum):
    PRIMITIVE = 'primitive'
    OPAQUE = 'opaque'  # primitive of unknown kind: instanceOf, node, custom validators
    ARRAY = 'array'
    OBJECT = 'object'
    UNION = 'union'
    UNKNOWN = 'unknown'
    LAZY = 'lazy'


class Primitive(Enum):
    STRING = 'string'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    FUNCTION = 'function'


# Members intrinsic to a value of the given kind. Reading them is not a
# distinct data dependency.
BUILTIN_MEMBERS: Dict[object, frozenset] = {
    'array': frozenset({
        'length', 'at', 'concat', 'copyWithin', 'entries', 'every', 'fill',
        'filter', 'find', 'findIndex', 'findLast', 'findLastIndex', 'flat',
        'flatMap', 'forEach', 'includes', 'indexOf', 'join', 'keys',
        'lastIndexOf', 'map', 'pop', 'push', 'reduce', 'reduceRight',
        'reverse', 'shift', 'slice', 'some', 'sort', 'splice',
        'toLocaleString', 'toReversed', 'toSorted', 'toSpliced', 'toString',
        'unshift', 'values', 'with',
    }),
    Primitive.STRING: frozenset({
        'length', 'at', 'charAt', 'charCodeAt', 'codePointAt', 'concat',
        'endsWith', 'includes', 'indexOf', 'lastIndexOf', 'localeCompare',
        'match', 'matchAll', 'normalize', 'padEnd', 'padStart', 'repeat',
        'replace', 'replaceAll', 'search', 'slice', 'split', 'startsWith',
        'substr', 'substring', 'toLocaleLowerCase', 'toLocaleUpperCase',
        'toLowerCase', 'toString', 'toUpperCase', 'trim', 'trimEnd',
        'trimStart', 'valueOf',
    }),
    Primitive.NUMBER: frozenset({
        'toExponential', 'toFixed', 'toLocaleString', 'toPrecision',
        'toString', 'valueOf',
    }),
    Primitive.BOOLEAN: frozenset({'toString', 'valueOf'}),
    Primitive.FUNCTION: frozenset({'apply', 'bind', 'call', 'length', 'name', 'toString'}),
}


# Alias-to-alias chains longer than this are treated as unresolvable
MAX_REFERENCE_HOPS = 64


class ShapeNode:
    """One node of the declared shape.

    OBJECT nodes hold named children, an optional index shape (objectOf,
    index signatures) and an ``open`` flag set when part of the object came
    from something unresolvable. LAZY nodes wrap a thunk producing the real
    node on first use, which keeps recursive type declarations finite.
    """

    __slots__ = ('kind', 'primitive', 'element', 'children', 'index', 'branches',
                 'open', 'validator', 'custom', '_thunk', '_target', '_expanding')

    def __init__(self, kind: ShapeKind, primitive: Optional[Primitive] = None,
                 element: 'ShapeNode' = None, children: Dict[str, 'ShapeNode'] = None,
                 index: 'ShapeNode' = None, branches: List['ShapeNode'] = None,
                 open: bool = False, validator: str = None, custom: bool = False,
                 thunk: Callable[[], 'ShapeNode'] = None):
        self.kind = kind
        self.primitive = primitive
        self.element = element
        self.children = children
        self.index = index
        self.branches = branches
        self.open = open
        self.validator = validator
        self.custom = custom
        self._thunk = thunk
        self._target = None
        self._expanding = False

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def unknown(cls) -> 'ShapeNode':
        return cls(ShapeKind.UNKNOWN)

    @classmethod
    def of_primitive(cls, primitive: Primitive) -> 'ShapeNode':
        return cls(ShapeKind.PRIMITIVE, primitive=primitive)

    @classmethod
    def opaque(cls, validator: str = None, custom: bool = False) -> 'ShapeNode':
        return cls(ShapeKind.OPAQUE, validator=validator, custom=custom)

    @classmethod
    def array(cls, element: 'ShapeNode' = None) -> 'ShapeNode':
        return cls(ShapeKind.ARRAY, element=element or cls.unknown())

    @classmethod
    def object(cls, children: Dict[str, 'ShapeNode'] = None, index: 'ShapeNode' = None,
               open: bool = False) -> 'ShapeNode':
        return cls(ShapeKind.OBJECT, children=dict(children or {}), index=index, open=open)

    @classmethod
    def union(cls, branches: Iterable['ShapeNode']) -> 'ShapeNode':
        branches = list(branches)
        if not branches:
            return cls.unknown()
        if len(branches) == 1:
            return branches[0]
        return cls(ShapeKind.UNION, branches=branches)

    @classmethod
    def lazy(cls, thunk: Callable[[], 'ShapeNode']) -> 'ShapeNode':
        return cls(ShapeKind.LAZY, thunk=thunk)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def resolved(self) -> 'ShapeNode':
        """Follow lazy references.

        A reference cycle, or a chain longer than MAX_REFERENCE_HOPS, resolves
        to unknown.
        """
        node = self
        visited = set()
        while node.kind is ShapeKind.LAZY:
            if id(node) in visited or len(visited) >= MAX_REFERENCE_HOPS:
                return ShapeNode.unknown()
            visited.add(id(node))
            if node._target is None:
                if node._expanding:
                    return ShapeNode.unknown()
                node._expanding = True
                try:
                    node._target = node._thunk()
                finally:
                    node._expanding = False
            node = node._target
        return node

    @property
    def is_unknown(self) -> bool:
        return self.resolved().kind is ShapeKind.UNKNOWN

    def child(self, name: str) -> Optional['ShapeNode']:
        """Shape of ``node.name``, or None when the key is not declared.

        Union branches are searched exhaustively: a key resolves when any
        branch defines it.
        """
        node = self.resolved()
        if node.kind is ShapeKind.OBJECT:
            if name in node.children:
                return node.children[name]
            if node.index is not None:
                return node.index
            return ShapeNode.unknown() if node.open else None
        if node.kind is ShapeKind.UNION:
            found = [branch.child(name) for branch in node.branches]
            found = [shape for shape in found if shape is not None]
            if not found:
                return None
            return found[0] if len(found) == 1 else ShapeNode.union(found)
        if node.kind is ShapeKind.UNKNOWN:
            return ShapeNode.unknown()
        return None

    def element_shape(self) -> Optional['ShapeNode']:
        node = self.resolved()
        if node.kind is ShapeKind.ARRAY:
            return node.element
        if node.kind is ShapeKind.OBJECT:
            if node.index is not None:
                return node.index
            return ShapeNode.unknown() if node.open else None
        if node.kind is ShapeKind.UNION:
            found = [branch.element_shape() for branch in node.branches]
            found = [shape for shape in found if shape is not None]
            return ShapeNode.union(found) if found else None
        if node.kind is ShapeKind.UNKNOWN:
            return ShapeNode.unknown()
        return None

    def known_keys(self) -> Optional[List[str]]:
        """Declared keys, or None when the node cannot enumerate its keys."""
        node = self.resolved()
        if node.kind is ShapeKind.OBJECT:
            if node.open:
                return None
            return list(node.children)
        if node.kind is ShapeKind.UNION:
            keys: List[str] = []
            for branch in node.branches:
                branch_keys = branch.known_keys()
                if branch_keys is None:
                    return None
                keys.extend(key for key in branch_keys if key not in keys)
            return keys
        return None

    def at(self, path: PropPath) -> Optional['ShapeNode']:
        """Walk a path from this node. None when some key along it is undeclared."""
        node: Optional[ShapeNode] = self
        for segment in path.segments:
            if node is None:
                return None
            if isinstance(segment, Key):
                node = node.child(segment.name)
            elif isinstance(segment, Element):
                node = node.element_shape()
            else:
                return ShapeNode.unknown()
        return node

    def has_structure(self) -> bool:
        """True for object shapes, or unions with an object branch."""
        node = self.resolved()
        if node.kind is ShapeKind.UNION:
            return any(branch.has_structure() for branch in node.branches)
        return node.kind is ShapeKind.OBJECT

    def exempts(self, member: str) -> bool:
        """True when ``member`` is a builtin of this bare primitive/array shape."""
        node = self.resolved()
        if node.kind is ShapeKind.PRIMITIVE:
            return member in BUILTIN_MEMBERS[node.primitive]
        if node.kind is ShapeKind.ARRAY:
            return not node.element.has_structure() and member in BUILTIN_MEMBERS['array']
        if node.kind is ShapeKind.UNION:
            if any(branch.resolved().kind in (ShapeKind.OBJECT, ShapeKind.UNKNOWN)
                   for branch in node.branches):
                return False
            return any(branch.exempts(member) for branch in node.branches)
        return False

    def describe(self) -> str:
        node = self.resolved()
        if node.kind is ShapeKind.PRIMITIVE:
            return node.primitive.value
        if node.kind is ShapeKind.ARRAY:
            return f"{node.element.describe()}[]"
        if node.kind is ShapeKind.OPAQUE:
            return node.validator or 'opaque'
        if node.kind is ShapeKind.UNION:
            return ' | '.join(branch.describe() for branch in node.branches)
        if node.kind is ShapeKind.OBJECT:
            return 'object'
        return 'unknown'

    def __repr__(self) -> str:
        node = self.resolved()
        if node.kind is ShapeKind.OBJECT:
            return f"ShapeNode(object, keys={sorted(node.children)!r}, open={node.open})"
        return f"ShapeNode({node.describe()})"


def merge_objects(shapes: Iterable[ShapeNode]) -> ShapeNode:
    """Merge member sets for intersections and ``extends``.

    Later shapes override same-named keys. A participant that is not an
    object (an unresolved reference, a primitive) makes the result open
    instead of discarding the keys that are known.
    """
    children: Dict[str, ShapeNode] = {}
    index = None
    open_ = False
    for shape in shapes:
        node = shape.resolved()
        if node.kind is ShapeKind.OBJECT:
            children.update(node.children)
            index = node.index if node.index is not None else index
            open_ = open_ or node.open
        elif node.kind is ShapeKind.UNION and node.known_keys() is not None:
            for key in node.known_keys():
                children[key] = node.child(key)
        else:
            open_ = True
    return ShapeNode.object(children, index=index, open=open_)
