"""Usage collector: one traversal of a component body recording props paths.

The traversal drives the binding scope chain as it goes. Member chains are
walked down to their base binding and evaluated bottom-up; what happens to
the resulting value depends on where the chain sits:

- terminal use (read, called, passed, rendered, operand): record the path
- declaration initializer / destructuring source: forward the value
- assignment target: nothing
"""
import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from tree_sitter import Node

from .bindings import (
    INSTANCE, OPAQUE, ROOT, Binding, PropsPath, RestOf, Scope, Value,
    element, is_tracked, member, path_of,
)
from .paths import REST, Key, PathSet, PropPath, extend
from .shapes import ShapeNode
from .syntax import (
    ACCESS_TYPES, CLASS_TYPES, FUNCTION_TYPES, WRAPPER_TYPES, SourceSpan,
    function_parameters, is_static, literal_key, named, node_key, split_parameter,
    string_value, text, unwrap,
)

logger = logging.getLogger(__name__)


class Mode(Enum):
    TERMINAL = 'terminal'
    FORWARD = 'forward'
    TARGET = 'target'


# Lifecycle methods whose first parameter is a props object
PROPS_LIFECYCLE = {
    'componentWillReceiveProps', 'UNSAFE_componentWillReceiveProps',
    'shouldComponentUpdate',
    'componentDidUpdate',
    'componentWillUpdate', 'UNSAFE_componentWillUpdate',
    'getSnapshotBeforeUpdate',
    'getDerivedStateFromProps',
}

# Subtrees holding types only
SKIPPED_TYPES = {
    'comment', 'type_annotation', 'type_arguments', 'type_parameters',
    'type_alias_declaration', 'interface_declaration', 'type_query',
    'enum_declaration', 'ambient_declaration', 'import_statement',
}

DECLARATION_KINDS = {'const', 'let', 'var'}


class UsageCollector:
    """Collects the Path Set of one component.

    Args:
        shape: Declared shape of the component's props (unknown when absent)
        skip: node_key() of nested components analyzed on their own
    """

    def __init__(self, shape: ShapeNode = None, skip: Iterable = ()):
        self.shape = shape if shape is not None else ShapeNode.unknown()
        self.skip = set(skip)
        self.used = PathSet()
        self.consumed = PathSet()
        self._pending: List[Binding] = []
        self._handlers = {
            'statement_block': self._block,
            'lexical_declaration': self._declaration,
            'variable_declaration': self._declaration,
            'member_expression': self._access,
            'subscript_expression': self._access,
            'identifier': self._identifier,
            'shorthand_property_identifier': self._identifier,
            'call_expression': self._call,
            'spread_element': self._spread,
            'assignment_expression': self._assignment,
            'augmented_assignment_expression': self._augmented_assignment,
            'for_in_statement': self._for_in,
            'for_statement': self._scoped,
            'catch_clause': self._catch,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def collect(self, node: Node) -> PathSet:
        """Walk a component (function, class or createReactClass object)."""
        scope = Scope(Scope.COMPONENT, node=node)
        if node.type in CLASS_TYPES:
            self._component_class(node, scope)
        elif node.type == 'object':
            self._component_object(node, scope)
        elif node.type in FUNCTION_TYPES:
            self._function(node, scope, seeds={0: ROOT})
        else:
            self.visit(node, scope)
        self._finish()
        return self.used

    def _component_class(self, node: Node, scope: Scope):
        scope.declare('this', INSTANCE)
        body = node.child_by_field_name('body')
        if body is None:
            return
        for item in named(body):
            if item.type == 'method_definition':
                name = literal_key(item.child_by_field_name('name'))
                seeds = {0: ROOT} if name in PROPS_LIFECYCLE else None
                this = OPAQUE if is_static(item) else INSTANCE
                self._function(item, scope, seeds=seeds, this=this)
            elif item.type in ('field_definition', 'public_field_definition'):
                value = item.child_by_field_name('value')
                if value is None:
                    continue
                if is_static(item):
                    static = scope.child(Scope.CLASS, item)
                    static.declare('this', OPAQUE)
                    self.visit(value, static)
                else:
                    # class field arrows keep the instance as `this`
                    self.visit(value, scope)
            else:
                static = scope.child(Scope.CLASS, item)
                static.declare('this', OPAQUE)
                self.visit(item, static)

    def _component_object(self, node: Node, scope: Scope):
        scope.declare('this', INSTANCE)
        for item in named(node):
            if item.type == 'method_definition':
                name = literal_key(item.child_by_field_name('name'))
                seeds = {0: ROOT} if name in PROPS_LIFECYCLE else None
                self._function(item, scope, seeds=seeds, this=INSTANCE)
            elif item.type == 'pair':
                name = literal_key(item.child_by_field_name('key'))
                value = unwrap(item.child_by_field_name('value'))
                if value is not None and value.type in FUNCTION_TYPES:
                    seeds = {0: ROOT} if name in PROPS_LIFECYCLE else None
                    self._function(value, scope, seeds=seeds, this=INSTANCE)
                else:
                    self.visit(value, scope)
            else:
                self.visit(item, scope)

    def _finish(self):
        """Destructured / aliased paths never dereferenced require themselves."""
        for binding in self._pending:
            if binding.dereferenced or binding.used:
                continue
            if isinstance(binding.value, PropsPath):
                self._record(binding.value.path, binding.node)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def visit(self, node: Optional[Node], scope: Scope):
        if node is None or node.type in SKIPPED_TYPES:
            return
        if node_key(node) in self.skip:
            logger.debug("Skipping nested component at %s", SourceSpan.from_node(node))
            return
        if node.type in FUNCTION_TYPES:
            self._function(node, scope)
            return
        if node.type in CLASS_TYPES:
            self._class(node, scope)
            return
        if node.type in WRAPPER_TYPES:
            inner = unwrap(node)
            if inner is not node:
                self.visit(inner, scope)
            return
        handler = self._handlers.get(node.type)
        if handler is not None:
            handler(node, scope)
            return
        for child in named(node):
            self.visit(child, scope)

    def _function(self, node: Node, scope: Scope, seeds: Dict[int, Value] = None, this: Value = None):
        inner = scope.child(Scope.FUNCTION, node)
        if this is not None:
            inner.declare('this', this)
        elif node.type != 'arrow_function':
            inner.declare('this', OPAQUE)

        if node.type in ('function_expression', 'function', 'generator_function'):
            name = node.child_by_field_name('name')
            if name is not None:
                inner.declare(text(name), OPAQUE, name)

        for position, param in enumerate(function_parameters(node)):
            pattern, default, _ = split_parameter(param)
            if default is not None:
                self.visit(default, inner)
            seed = seeds.get(position) if seeds else None
            self._bind(pattern, seed if seed is not None else OPAQUE, inner)

        body = node.child_by_field_name('body')
        if body is None:
            return
        if body.type == 'statement_block':
            self._statements(body, inner)
        else:
            self.visit(body, inner)

    def _class(self, node: Node, scope: Scope):
        inner = scope.child(Scope.CLASS, node)
        inner.declare('this', OPAQUE)
        for child in named(node):
            if child.type == 'identifier':
                continue
            self.visit(child, inner)

    def _block(self, node: Node, scope: Scope):
        self._statements(node, scope.child(Scope.BLOCK, node))

    def _statements(self, node: Node, scope: Scope):
        # function and class declarations are visible before their statement
        for child in named(node):
            if child.type in ('function_declaration', 'generator_function_declaration',
                              'class_declaration'):
                name = child.child_by_field_name('name')
                if name is not None:
                    scope.declare(text(name), OPAQUE, name)
        for child in named(node):
            self.visit(child, scope)

    def _scoped(self, node: Node, scope: Scope):
        inner = scope.child(Scope.BLOCK, node)
        for child in named(node):
            self.visit(child, inner)

    def _catch(self, node: Node, scope: Scope):
        inner = scope.child(Scope.BLOCK, node)
        param = node.child_by_field_name('parameter')
        if param is not None:
            self._bind(param, OPAQUE, inner)
        body = node.child_by_field_name('body')
        if body is not None:
            self._statements(body, inner)

    # ------------------------------------------------------------------
    # Declarations and bindings
    # ------------------------------------------------------------------

    def _declaration(self, node: Node, scope: Scope):
        target = scope.function_scope() if node.type == 'variable_declaration' else scope
        for declarator in named(node):
            if declarator.type != 'variable_declarator':
                continue
            pattern = declarator.child_by_field_name('name')
            value_node = declarator.child_by_field_name('value')
            value = self._evaluate(value_node, scope) if value_node is not None else OPAQUE
            self._bind(pattern, value, target)

    def _bind(self, pattern: Optional[Node], value: Value, scope: Scope):
        """Bind every name introduced by ``pattern`` to its part of ``value``."""
        if pattern is None:
            return
        kind = pattern.type

        if kind in ('identifier', 'shorthand_property_identifier_pattern'):
            pending = isinstance(value, PropsPath)
            binding = scope.declare(text(pattern), value, pattern, pending=pending)
            if pending:
                self._pending.append(binding)
        elif kind == 'object_pattern':
            self._bind_object(pattern, value, scope)
        elif kind == 'array_pattern':
            item = element(value) if isinstance(value, (PropsPath, RestOf)) else OPAQUE
            for child in named(pattern):
                if child.type == 'rest_pattern':
                    # the remaining elements are still the same array
                    rest = named(child)
                    self._bind(rest[0] if rest else None, value, scope)
                else:
                    self._bind(child, item, scope)
        elif kind in ('assignment_pattern', 'object_assignment_pattern'):
            self.visit(pattern.child_by_field_name('right'), scope)
            self._bind(pattern.child_by_field_name('left'), value, scope)
        elif kind == 'rest_pattern':
            inner = named(pattern)
            self._bind(inner[0] if inner else None, OPAQUE, scope)

    def _bind_object(self, pattern: Node, value: Value, scope: Scope):
        named_keys: List[str] = []
        for prop in named(pattern):
            if prop.type == 'shorthand_property_identifier_pattern':
                key = text(prop)
                named_keys.append(key)
                self._bind(prop, member(value, key), scope)
            elif prop.type == 'object_assignment_pattern':
                left = prop.child_by_field_name('left')
                self.visit(prop.child_by_field_name('right'), scope)
                if left is not None and left.type == 'shorthand_property_identifier_pattern':
                    key = text(left)
                    named_keys.append(key)
                    self._bind(left, member(value, key), scope)
                else:
                    self._bind(left, OPAQUE, scope)
            elif prop.type == 'pair_pattern':
                key_node = prop.child_by_field_name('key')
                key = literal_key(key_node)
                if key is None:
                    self.visit(key_node, scope)
                    child_value = element(value)
                else:
                    named_keys.append(key)
                    child_value = member(value, key)
                self._bind(prop.child_by_field_name('value'), child_value, scope)
            elif prop.type == 'rest_pattern':
                inner = named(prop)
                self._bind(inner[0] if inner else None, self._rest_of(value, named_keys), scope)

    def _rest_of(self, value: Value, named_keys: List[str]) -> Value:
        if value is ROOT:
            return RestOf(None, frozenset(named_keys))
        if isinstance(value, PropsPath):
            return RestOf(value.path, frozenset(named_keys))
        if isinstance(value, RestOf):
            return RestOf(value.parent, value.excluded | frozenset(named_keys))
        return OPAQUE

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _evaluate(self, node: Optional[Node], scope: Scope) -> Value:
        """Value of an expression whose result is forwarded rather than used."""
        node = unwrap(node)
        if node is None:
            return OPAQUE
        if node_key(node) in self.skip:
            return OPAQUE
        if node.type == 'identifier':
            binding = scope.lookup(text(node))
            if binding is None:
                return OPAQUE
            binding.dereferenced = True
            return binding.value
        if node.type == 'this':
            binding = scope.lookup('this')
            return binding.value if binding is not None else OPAQUE
        if node.type in ACCESS_TYPES:
            return self._chain(node, scope, Mode.FORWARD)
        self.visit(node, scope)
        return OPAQUE

    def _identifier(self, node: Node, scope: Scope):
        binding = scope.lookup(text(node))
        if binding is None:
            return
        binding.used = True
        self._use(binding.value, node)

    def _access(self, node: Node, scope: Scope):
        self._chain(node, scope, Mode.TERMINAL)

    def _chain(self, node: Node, scope: Scope, mode: Mode) -> Value:
        """Evaluate a member/subscript chain from its base outward."""
        links: List[Node] = []
        current = unwrap(node)
        while current is not None and current.type in ACCESS_TYPES:
            links.append(current)
            current = unwrap(current.child_by_field_name('object'))
        base = current

        for link in links:
            if link.type == 'subscript_expression':
                index = unwrap(link.child_by_field_name('index'))
                if index is not None and string_value(index) is None:
                    self.visit(index, scope)

        if base is None:
            value = OPAQUE
        elif base.type == 'identifier':
            binding = scope.lookup(text(base))
            value = binding.value if binding is not None else OPAQUE
            if binding is not None:
                binding.dereferenced = True
        else:
            value = self._evaluate(base, scope)

        for link in reversed(links):
            if link.type == 'member_expression':
                name = text(link.child_by_field_name('property'))
                if self._exempt(value, name):
                    value = OPAQUE
                    continue
                value = member(value, name)
                continue
            index = unwrap(link.child_by_field_name('index'))
            key = string_value(index)
            if key is not None:
                value = member(value, key)
            elif index is not None and index.type == 'number' and value is ROOT:
                value = member(value, text(index))
            else:
                value = element(value)

        if mode is Mode.TERMINAL:
            self._use(value, node)
        return value

    def _exempt(self, value: Value, name: str) -> bool:
        """Builtin member of a bare primitive or plain array."""
        if not isinstance(value, PropsPath):
            return False
        shape = self.shape.at(value.path)
        return shape is not None and shape.exempts(name)

    def _call(self, node: Node, scope: Scope):
        func = node.child_by_field_name('function')
        args = node.child_by_field_name('arguments')
        if self._is_set_state(func, scope) and args is not None:
            self.visit(func, scope)
            for position, arg in enumerate(named(args)):
                arg = unwrap(arg)
                if position == 0 and arg.type in FUNCTION_TYPES:
                    # this.setState((state, props) => ...)
                    self._function(arg, scope, seeds={1: ROOT})
                else:
                    self.visit(arg, scope)
            return
        self.visit(func, scope)
        self.visit(args, scope)

    def _is_set_state(self, func: Optional[Node], scope: Scope) -> bool:
        func = unwrap(func)
        if func is None or func.type != 'member_expression':
            return False
        if text(func.child_by_field_name('property')) != 'setState':
            return False
        receiver = unwrap(func.child_by_field_name('object'))
        if receiver is None:
            return False
        if receiver.type == 'this':
            binding = scope.lookup('this')
        elif receiver.type == 'identifier':
            binding = scope.lookup(text(receiver))
        else:
            return False
        return binding is not None and binding.value is INSTANCE

    def _spread(self, node: Node, scope: Scope):
        children = named(node)
        if not children:
            return
        source = children[0]
        value = self._evaluate(source, scope)
        parent = node.parent
        if parent is not None and parent.type in ('array', 'arguments'):
            # iterating a spread array reads the array itself
            self._use(value, source)
        elif isinstance(value, RestOf):
            self._expand_rest(value, source)
        elif is_tracked(value):
            self.consumed.add(extend(path_of(value), REST), SourceSpan.from_node(source))

    def _assignment(self, node: Node, scope: Scope):
        left = unwrap(node.child_by_field_name('left'))
        right = node.child_by_field_name('right')
        if left is None:
            self.visit(right, scope)
            return
        if left.type in ('object_pattern', 'array_pattern'):
            self._bind(left, self._evaluate(right, scope), scope.function_scope())
        elif left.type in ACCESS_TYPES:
            self._chain(left, scope, Mode.TARGET)
            self.visit(right, scope)
        elif left.type == 'identifier':
            value = self._evaluate(right, scope)
            binding = scope.lookup(text(left))
            if binding is not None:
                binding.value = value
        else:
            self.visit(left, scope)
            self.visit(right, scope)

    def _augmented_assignment(self, node: Node, scope: Scope):
        # rest.className += '...' writes to a local copy
        left = unwrap(node.child_by_field_name('left'))
        if left is not None and left.type in ACCESS_TYPES:
            self._chain(left, scope, Mode.TARGET)
        else:
            self.visit(left, scope)
        self.visit(node.child_by_field_name('right'), scope)

    def _for_in(self, node: Node, scope: Scope):
        loop = scope.child(Scope.BLOCK, node)
        left = node.child_by_field_name('left')
        right = node.child_by_field_name('right')
        tokens = {child.type for child in node.children}
        declares = bool(tokens & DECLARATION_KINDS)
        target = loop.function_scope() if 'var' in tokens else loop

        if 'of' in tokens:
            value = self._evaluate(right, loop)
            item = element(value) if isinstance(value, (PropsPath, RestOf)) else OPAQUE
        else:
            # for (key in obj): keys are dynamic, the object itself is read
            self.visit(right, loop)
            item = OPAQUE

        if declares:
            self._bind(left, item, target)
        else:
            self.visit(left, loop)
        self.visit(node.child_by_field_name('body'), loop)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _use(self, value: Value, node: Node):
        """Terminal use of a value."""
        if isinstance(value, PropsPath):
            self._record(value.path, node)
        elif isinstance(value, RestOf):
            self._expand_rest(value, node)
        elif value is ROOT:
            self.consumed.add(PropPath((REST,)), SourceSpan.from_node(node))

    def _record(self, path: PropPath, node: Optional[Node]):
        path = path.without_trailing_elements()
        if path is None:
            return
        location = SourceSpan.from_node(node) if node is not None else None
        if self.used.add(path, location):
            logger.debug("Recorded %s at %s", path, location)

    def _expand_rest(self, rest: RestOf, node: Node):
        """A rest object used whole requires every declared sibling key."""
        self.consumed.add(extend(rest.parent, REST), SourceSpan.from_node(node))
        shape = self.shape.at(rest.parent) if rest.parent is not None else self.shape
        keys = shape.known_keys() if shape is not None else None
        if keys is None:
            return
        for key in keys:
            if key not in rest.excluded:
                self._record(extend(rest.parent, Key(key)), node)
