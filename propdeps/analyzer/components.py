"""Component discovery: which nodes are components, what they declare.

Produces one ComponentRegistration per component found in a file:

- class components (``extends React.Component`` / ``PureComponent``)
- ``createReactClass({...})`` objects
- capitalized functions rendering JSX, and whatever ``memo(...)`` wraps

Each registration carries the declared shape sources (propTypes and type
annotations) and the dependency list passed as
``memo(Component, shouldSkipUpdate([...]))``.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from ..config import DEFAULT_REGISTRATION_CALLEE
from .declarations import DeclarationIndex
from .differ import DependencyEntry
from .paths import PropPath
from .shape_resolver import ShapeDeclaration
from .syntax import (
    CLASS_TYPES, FUNCTION_TYPES, WRAPPER_TYPES, SourceSpan, call_arguments,
    callee_name, contains_jsx, function_parameters, is_getter, is_static,
    literal_key, named, node_key, split_parameter, string_value, text, unwrap, walk,
)

logger = logging.getLogger(__name__)


class AnalysisError(ValueError):
    """A component cannot be analyzed."""


class DependencyListError(AnalysisError):
    """The dependency list is not an array of string literals."""


COMPONENT_BASES = {'Component', 'PureComponent'}
CREATE_CLASS_CALLEES = {'createReactClass', 'createClass'}
# Calls whose result is the component passed to them
COMPONENT_WRAPPERS = {'memo', 'forwardRef', 'observer'} | CREATE_CLASS_CALLEES
FUNCTION_COMPONENT_TYPES = {'function_declaration', 'function_expression', 'function', 'arrow_function'}
FC_TYPES = {'FC', 'FunctionComponent', 'SFC', 'StatelessComponent', 'VFC', 'VoidFunctionComponent'}


@dataclass
class ComponentRegistration:
    """One component found in a file.

    Attributes:
        name: Binding name (``Hello``, ``Greetings.Hello``, ``default``)
        kind: 'function', 'class' or 'createClass'
        node: Function, class or createReactClass object node
        shape: Declared shape sources
        dependency_list: Argument of the registration callee, if registered
        span: Location of ``node``
    """
    name: str
    kind: str
    node: Node
    shape: ShapeDeclaration = field(default_factory=ShapeDeclaration)
    dependency_list: Optional[Node] = None
    span: Optional[SourceSpan] = None

    @property
    def key(self) -> Tuple[int, int, str]:
        return node_key(self.node)


def read_dependency_list(node: Optional[Node]) -> List[DependencyEntry]:
    """Literal entries of a dependency list.

    Args:
        node: The array passed to the registration callee

    Returns:
        Entries in source order

    Raises:
        DependencyListError: If the list is not an array of non-empty string literals
    """
    array = unwrap(node)
    if array is None or array.type != 'array':
        kind = array.type if array is not None else 'nothing'
        where = f" at {SourceSpan.from_node(array)}" if array is not None else ''
        raise DependencyListError(f"Dependency list must be an array literal, got {kind}{where}")

    entries = []
    for item in named(array):
        value = string_value(unwrap(item))
        if not value:
            raise DependencyListError(
                f"Dependency list entries must be non-empty string literals: "
                f"{text(item)!r} at {SourceSpan.from_node(item)}"
            )
        entries.append(DependencyEntry(PropPath.parse(value), SourceSpan.from_node(item)))
    return entries


class ComponentFinder:
    """Scans one syntax tree for components."""

    def __init__(self, root: Node, index: DeclarationIndex = None,
                 registration_callee: str = DEFAULT_REGISTRATION_CALLEE):
        self.root = root
        self.index = index or DeclarationIndex(root)
        self.registration_callee = registration_callee
        # ('Hello', 'propTypes') -> right-hand sides of `Hello.propTypes = ...`
        self.assignments: Dict[Tuple[str, ...], List[Node]] = {}
        for node in walk(root):
            if node.type == 'assignment_expression':
                chain = member_chain(node.child_by_field_name('left'))
                if chain is not None and len(chain) > 1:
                    self.assignments.setdefault(chain, []).append(node.child_by_field_name('right'))

    def find(self) -> List[ComponentRegistration]:
        """All components in source order."""
        found: Dict[Tuple[int, int, str], ComponentRegistration] = {}
        memo_calls: List[Node] = []

        for node in walk(self.root):
            if node.type in CLASS_TYPES:
                if self._is_component_class(node):
                    self._register(found, node, 'class')
            elif node.type == 'call_expression':
                name = callee_name(node)
                if name in CREATE_CLASS_CALLEES:
                    members = self._create_class_object(node)
                    if members is not None:
                        self._register(found, members, 'createClass')
                elif name == 'memo':
                    memo_calls.append(node)
            elif node.type in FUNCTION_COMPONENT_TYPES and self._is_function_component(node):
                self._register(found, node, 'function')

        for call in memo_calls:
            self._attach_dependency_list(call, found)

        registrations = sorted(found.values(), key=lambda r: r.node.start_byte)
        for registration in registrations:
            registration.shape = self.shape_declaration(registration)
            logger.debug("Found %s component %s at %s", registration.kind, registration.name, registration.span)
        return registrations

    def _register(self, found, node: Node, kind: str) -> ComponentRegistration:
        key = node_key(node)
        if key not in found:
            found[key] = ComponentRegistration(
                name=self.component_name(node),
                kind=kind,
                node=node,
                span=SourceSpan.from_node(node),
            )
        return found[key]

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def _is_component_class(self, node: Node) -> bool:
        base, _ = class_heritage(node)
        if base is not None:
            name = text(base.child_by_field_name('property')) if base.type == 'member_expression' else text(base)
            if name in COMPONENT_BASES:
                return True
        # /** @extends React.Component */ on a class extending something else
        anchor = node.parent if node.parent is not None and node.parent.type == 'export_statement' else node
        comment = anchor.prev_named_sibling
        return (base is not None and comment is not None and comment.type == 'comment'
                and '@extends' in text(comment) and 'Component' in text(comment))

    def _is_function_component(self, node: Node) -> bool:
        name = self.component_name(node)
        last = name.split('.')[-1]
        if name != 'default' and not (last and last[0].isupper()):
            return False
        body = node.child_by_field_name('body')
        return body is not None and contains_jsx(body)

    def _create_class_object(self, call: Node) -> Optional[Node]:
        args = call_arguments(call)
        members = unwrap(args[0]) if args else None
        return members if members is not None and members.type == 'object' else None

    # ------------------------------------------------------------------
    # Registration calls
    # ------------------------------------------------------------------

    def _attach_dependency_list(self, call: Node, found):
        args = call_arguments(call)
        if len(args) < 2:
            return
        comparator = unwrap(args[1])
        if comparator.type != 'call_expression' or callee_name(comparator) != self.registration_callee:
            return
        list_args = call_arguments(comparator)
        dependency_list = list_args[0] if list_args else comparator

        targets = self._memo_targets(args[0], found, set())
        if not targets:
            logger.debug("memo() target at %s is not resolvable in this file", SourceSpan.from_node(call))
            return
        for target in targets:
            kind = 'class' if target.type in CLASS_TYPES else 'createClass' if target.type == 'object' else 'function'
            self._register(found, target, kind).dependency_list = dependency_list

    def _memo_targets(self, expr: Optional[Node], found, seen: set) -> List[Node]:
        """Component nodes denoted by the first argument of ``memo``."""
        expr = unwrap(expr)
        if expr is None:
            return []
        if expr.type in FUNCTION_TYPES or expr.type in CLASS_TYPES:
            return [expr]

        if expr.type == 'call_expression':
            name = callee_name(expr)
            if name in CREATE_CLASS_CALLEES:
                members = self._create_class_object(expr)
                return [members] if members is not None else []
            func = unwrap(expr.child_by_field_name('function'))
            if func is not None and func.type == 'identifier' and name not in COMPONENT_WRAPPERS:
                # memo(makeComponent()): components defined inside the factory
                factory = self.index.definition_of(text(func))
                if factory is None:
                    return []
                return [registration.node for registration in found.values()
                        if factory.start_byte <= registration.node.start_byte
                        and registration.node.end_byte <= factory.end_byte
                        and registration.key != node_key(factory)]
            for arg in call_arguments(expr):
                targets = self._memo_targets(arg, found, seen)
                if targets:
                    return targets
            return []

        if expr.type in ('identifier', 'member_expression'):
            chain = member_chain(expr)
            if chain is None or chain in seen:
                return []
            seen = seen | {chain}
            if len(chain) == 1:
                definition = self.index.definition_of(chain[0])
            else:
                definition = self._member_value(chain)
            if definition is None:
                return []
            if definition.type in ('function_declaration', 'class_declaration', 'abstract_class_declaration'):
                return [definition]
            return self._memo_targets(definition, found, seen)
        return []

    def _member_value(self, chain: Tuple[str, ...]) -> Optional[Node]:
        """Value of ``Greetings.Hello`` from an assignment or an object literal."""
        values = self.assignments.get(chain)
        if values:
            return values[-1]
        holder = unwrap(self.index.value_of(chain[0]))
        for key in chain[1:]:
            if holder is None or holder.type != 'object':
                return None
            holder = unwrap(next((pair.child_by_field_name('value') for pair in named(holder)
                                  if pair.type == 'pair'
                                  and literal_key(pair.child_by_field_name('key')) == key), None))
        return holder

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def binding_site(self, node: Node) -> Optional[Node]:
        """Declarator, assignment, pair or export holding ``node``, seen through wrappers."""
        parent = node.parent
        while parent is not None:
            if parent.type in WRAPPER_TYPES:
                parent = parent.parent
            elif parent.type == 'arguments' and parent.parent is not None \
                    and callee_name(parent.parent) in COMPONENT_WRAPPERS:
                parent = parent.parent.parent
            else:
                return parent
        return None

    def component_name(self, node: Node) -> str:
        own = node.child_by_field_name('name')
        if node.type in ('function_declaration', 'class_declaration', 'abstract_class_declaration') and own is not None:
            return text(own)

        site = self.binding_site(node)
        if site is not None:
            if site.type == 'variable_declarator':
                return text(site.child_by_field_name('name'))
            if site.type == 'assignment_expression':
                chain = member_chain(site.child_by_field_name('left'))
                if chain is not None:
                    return '.'.join(chain)
            if site.type == 'pair':
                key = literal_key(site.child_by_field_name('key')) or 'anonymous'
                holder = site.parent.parent if site.parent is not None else None
                if holder is not None and holder.type == 'variable_declarator':
                    return f"{text(holder.child_by_field_name('name'))}.{key}"
                return key
            if site.type == 'export_statement' and own is None:
                return 'default'
        return text(own) if own is not None else 'anonymous'

    # ------------------------------------------------------------------
    # Declared shape
    # ------------------------------------------------------------------

    def shape_declaration(self, registration: ComponentRegistration) -> ShapeDeclaration:
        """Collect propTypes and type annotations declared for a component."""
        declaration = ShapeDeclaration()
        prefix = tuple(registration.name.split('.')) + ('propTypes',)
        for chain, values in self.assignments.items():
            if chain == prefix:
                declaration.schemas.extend(values)
            elif chain[:len(prefix)] == prefix:
                declaration.additions.extend((chain[len(prefix):], value) for value in values)

        node = registration.node
        if registration.kind == 'class':
            self._class_shape(node, declaration)
        elif registration.kind == 'createClass':
            for pair in named(node):
                if pair.type == 'pair' and literal_key(pair.child_by_field_name('key')) == 'propTypes':
                    declaration.schemas.append(pair.child_by_field_name('value'))
        else:
            self._function_shape(node, declaration)
        return declaration

    def _class_shape(self, node: Node, declaration: ShapeDeclaration):
        body = node.child_by_field_name('body')
        for item in named(body) if body is not None else []:
            if item.type in ('field_definition', 'public_field_definition'):
                key = literal_key(item.child_by_field_name('property') or item.child_by_field_name('name'))
                if key == 'propTypes' and is_static(item) and item.child_by_field_name('value') is not None:
                    declaration.schemas.append(item.child_by_field_name('value'))
                elif key == 'props' and not is_static(item) and item.child_by_field_name('type') is not None:
                    declaration.types.append(item.child_by_field_name('type'))
            elif item.type == 'method_definition' and is_static(item) and is_getter(item):
                if literal_key(item.child_by_field_name('name')) == 'propTypes':
                    returned = returned_expression(item)
                    if returned is not None:
                        declaration.schemas.append(returned)

        _, type_arguments = class_heritage(node)
        if type_arguments is not None and named(type_arguments):
            declaration.types.append(named(type_arguments)[0])

    def _function_shape(self, node: Node, declaration: ShapeDeclaration):
        params = function_parameters(node)
        if params:
            _, _, annotation = split_parameter(params[0])
            if annotation is not None:
                declaration.types.append(annotation)
                return

        site = self.binding_site(node)
        if site is None or site.type != 'variable_declarator':
            return
        annotation = site.child_by_field_name('type')
        generic = named(annotation)[0] if annotation is not None and named(annotation) else None
        if generic is None or generic.type != 'generic_type':
            return
        name = generic.child_by_field_name('name')
        last = text(name).split('.')[-1]
        args = generic.child_by_field_name('type_arguments')
        if last in FC_TYPES and args is not None and named(args):
            declaration.types.append(named(args)[0])


def member_chain(node: Optional[Node]) -> Optional[Tuple[str, ...]]:
    """Static name chain of ``a.b['c'].d`` -> ('a', 'b', 'c', 'd'); None when dynamic."""
    names: List[str] = []
    current = unwrap(node)
    while current is not None:
        if current.type == 'identifier':
            names.append(text(current))
            return tuple(reversed(names))
        if current.type == 'member_expression':
            names.append(text(current.child_by_field_name('property')))
        elif current.type == 'subscript_expression':
            key = string_value(unwrap(current.child_by_field_name('index')))
            if key is None:
                return None
            names.append(key)
        else:
            return None
        current = unwrap(current.child_by_field_name('object'))
    return None


def class_heritage(node: Node) -> Tuple[Optional[Node], Optional[Node]]:
    """(base class expression, type arguments) of a class node."""
    for child in node.children:
        if child.type != 'class_heritage':
            continue
        for part in named(child):
            if part.type == 'extends_clause':
                return unwrap(part.child_by_field_name('value')), part.child_by_field_name('type_arguments')
            if part.type != 'implements_clause':
                return unwrap(part), None
    return None, None


def returned_expression(func: Node) -> Optional[Node]:
    """Expression of the last top-level ``return`` in a function body."""
    body = func.child_by_field_name('body')
    if body is None:
        return None
    if body.type != 'statement_block':
        return body
    returned = None
    for statement in named(body):
        if statement.type == 'return_statement' and named(statement):
            returned = named(statement)[0]
    return returned
