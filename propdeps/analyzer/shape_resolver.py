"""Shape resolver: declared props -> ShapeNode tree.

Two dialect adapters feed one shape model:

- SchemaShapeAdapter reads PropTypes builder calls
  (``PropTypes.shape({...})``, ``arrayOf(x)``, ``oneOfType([...])``...).
- TypeShapeAdapter reads type annotations (object types, interfaces with
  ``extends``, intersections, unions, generics, utility types).

Anything that cannot be resolved locally degrades to an unknown node instead
of failing.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from tree_sitter import Node

from .declarations import DeclarationIndex
from .shapes import Primitive, ShapeKind, ShapeNode, merge_objects
from .syntax import FUNCTION_TYPES, call_arguments, callee_name, literal_key, named, string_value, text, unwrap

logger = logging.getLogger(__name__)


@dataclass
class ShapeDeclaration:
    """Everything a component says about its props.

    Attributes:
        schemas: PropTypes object expressions (``Hello.propTypes = {...}``)
        additions: Incremental entries (``Hello.propTypes.a.b = PropTypes.x``)
            as (key path, validator expression)
        types: Type nodes from annotations (``(props: Props)``, ``React.FC<Props>``)
    """
    schemas: List[Node] = field(default_factory=list)
    additions: List[Tuple[Tuple[str, ...], Node]] = field(default_factory=list)
    types: List[Node] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.schemas or self.additions or self.types)


class ShapeResolver:
    """Builds the shape tree for one component declaration."""

    def __init__(self, index: DeclarationIndex, custom_validators: FrozenSet[str] = frozenset()):
        self.schema = SchemaShapeAdapter(index, custom_validators)
        self.types = TypeShapeAdapter(index)

    def resolve(self, declaration: Optional[ShapeDeclaration]) -> ShapeNode:
        """Resolve a declaration, or return an unknown root when there is none."""
        if declaration is None or declaration.is_empty:
            return ShapeNode.unknown()

        parts = [self.schema.from_object_expression(node) for node in declaration.schemas]
        parts.extend(self.types.resolve(node) for node in declaration.types)

        if not parts:
            shape = ShapeNode.object()
        elif len(parts) == 1:
            shape = parts[0]
        else:
            shape = merge_objects(parts)

        if declaration.additions:
            shape = self.schema.apply_additions(shape, declaration.additions)
        return shape


class SchemaShapeAdapter:
    """PropTypes (schema builder) dialect."""

    PRIMITIVES = {
        'string': Primitive.STRING,
        'number': Primitive.NUMBER,
        'bool': Primitive.BOOLEAN,
        'func': Primitive.FUNCTION,
    }
    UNSTRUCTURED = {'object', 'any'}
    OPAQUE = {'node', 'element', 'elementType', 'symbol'}
    MODIFIERS = {'isRequired'}

    def __init__(self, index: DeclarationIndex, custom_validators: FrozenSet[str] = frozenset()):
        self.index = index
        self.custom_validators = frozenset(custom_validators)

    def from_object_expression(self, node: Optional[Node], seen: Set[str] = None) -> ShapeNode:
        """Shape of a propTypes object (``{ name: PropTypes.string, ...other }``)."""
        seen = set() if seen is None else seen
        node = unwrap(node)
        if node is None:
            return ShapeNode.unknown()

        if node.type == 'identifier':
            name = text(node)
            value = self.index.value_of(name)
            if value is None or name in seen:
                logger.debug("propTypes reference %s is not resolvable locally", name)
                return ShapeNode.unknown()
            return self.from_object_expression(value, seen | {name})

        if node.type != 'object':
            # externalPropTypes.shared, RcSlider.propTypes, function calls...
            return ShapeNode.unknown()

        children: Dict[str, ShapeNode] = {}
        for member in named(node):
            if member.type == 'pair':
                key = literal_key(member.child_by_field_name('key'))
                if key is not None:
                    children[key] = self.validator(member.child_by_field_name('value'), seen)
            elif member.type == 'shorthand_property_identifier':
                children[text(member)] = self.validator(member, seen)
            elif member.type == 'spread_element':
                source = self.from_object_expression(named(member)[0], seen) if named(member) else None
                source = source.resolved() if source is not None else None
                # An unresolved spread adds no keys but keeps the local ones
                if source is not None and source.kind is ShapeKind.OBJECT:
                    children.update(source.children)
        return ShapeNode.object(children)

    def validator(self, node: Optional[Node], seen: Set[str] = None) -> ShapeNode:
        """Shape described by one validator expression."""
        seen = set() if seen is None else seen
        node = unwrap(node)
        if node is None:
            return ShapeNode.unknown()

        # PropTypes.string.isRequired -> PropTypes.string
        while (node.type == 'member_expression'
               and text(node.child_by_field_name('property')) in self.MODIFIERS):
            node = unwrap(node.child_by_field_name('object'))

        if node.type in ('identifier', 'shorthand_property_identifier', 'member_expression'):
            if node.type == 'member_expression':
                name = text(node.child_by_field_name('property'))
            else:
                name = text(node)
            shape = self._named_validator(name)
            if shape is not None:
                return shape
            if node.type != 'member_expression' and name not in seen:
                value = self.index.value_of(name)
                if value is not None:
                    return self.validator(value, seen | {name})
            return ShapeNode.opaque(name)

        if node.type == 'call_expression':
            return self._call_validator(node, seen)

        if node.type in FUNCTION_TYPES:
            return ShapeNode.opaque('custom validator')

        return ShapeNode.unknown()

    def _named_validator(self, name: str) -> Optional[ShapeNode]:
        if name in self.custom_validators:
            return ShapeNode.opaque(name, custom=True)
        if name in self.PRIMITIVES:
            return ShapeNode.of_primitive(self.PRIMITIVES[name])
        if name == 'array':
            return ShapeNode.array()
        if name in self.UNSTRUCTURED:
            return ShapeNode.unknown()
        if name in self.OPAQUE:
            return ShapeNode.opaque(name)
        return None

    def _call_validator(self, node: Node, seen: Set[str]) -> ShapeNode:
        name = callee_name(node) or ''
        args = call_arguments(node)
        if name in self.custom_validators:
            return ShapeNode.opaque(name, custom=True)
        if name in ('shape', 'exact'):
            return self.from_object_expression(args[0], seen) if args else ShapeNode.object()
        if name == 'arrayOf':
            return ShapeNode.array(self.validator(args[0], seen) if args else None)
        if name == 'objectOf':
            return ShapeNode.object(index=self.validator(args[0], seen) if args else ShapeNode.unknown())
        if name == 'oneOfType':
            options = unwrap(args[0]) if args else None
            if options is None or options.type != 'array':
                return ShapeNode.unknown()
            return ShapeNode.union(self.validator(option, seen) for option in named(options))
        # oneOf, instanceOf and custom validator factories
        return ShapeNode.opaque(name or 'custom validator')

    def apply_additions(self, shape: ShapeNode, additions: List[Tuple[Tuple[str, ...], Node]]) -> ShapeNode:
        """Merge ``Hello.propTypes.a.b = validator`` statements into ``shape``."""
        root = shape.resolved()
        if root.kind is not ShapeKind.OBJECT:
            return shape
        for keys, validator in additions:
            target = root
            for key in keys[:-1]:
                child = target.children.get(key)
                child = child.resolved() if child is not None else None
                if child is None or child.kind is not ShapeKind.OBJECT:
                    child = ShapeNode.object()
                    target.children[key] = child
                target = child
            target.children[keys[-1]] = self.validator(validator)
        return root


class TypeShapeAdapter:
    """Type annotation dialect (TypeScript, and Flow props the TS grammar accepts)."""

    PREDEFINED = {
        'string': Primitive.STRING,
        'number': Primitive.NUMBER,
        'bigint': Primitive.NUMBER,
        'boolean': Primitive.BOOLEAN,
    }
    UNSTRUCTURED = {'any', 'unknown', 'object', 'Object'}
    NULLISH = {'null', 'undefined', 'void', 'never'}
    WRAPPERS = {'Partial', 'Required', 'Readonly', 'NonNullable', '$ReadOnly', '$Exact'}
    ARRAYS = {'Array', 'ReadonlyArray', '$ReadOnlyArray'}

    def __init__(self, index: DeclarationIndex):
        self.index = index
        # (name, argument shapes) -> the one LAZY node standing for that reference
        self._references: Dict[Tuple[str, Tuple[int, ...]], ShapeNode] = {}

    def resolve(self, node: Optional[Node], env: Dict[str, ShapeNode] = None) -> ShapeNode:
        env = env or {}
        if node is None:
            return ShapeNode.unknown()
        kind = node.type

        if kind in ('type_annotation', 'opting_type_annotation', 'omitting_type_annotation',
                    'parenthesized_type', 'readonly_type', 'optional_type', 'rest_type'):
            children = named(node)
            return self.resolve(children[0], env) if children else ShapeNode.unknown()

        if kind == 'predefined_type':
            return self._predefined(text(node))
        if kind == 'literal_type':
            return self._literal(node)
        if kind == 'template_literal_type':
            return ShapeNode.of_primitive(Primitive.STRING)
        if kind in ('object_type', 'interface_body'):
            return self._members(node, env)
        if kind == 'array_type':
            children = named(node)
            return ShapeNode.array(self.resolve(children[0], env) if children else None)
        if kind == 'tuple_type':
            return ShapeNode.array(ShapeNode.union(self.resolve(child, env) for child in named(node)))
        if kind == 'union_type':
            return self._union(node, env)
        if kind == 'intersection_type':
            return merge_objects(self.resolve(child, env) for child in named(node))
        if kind in ('function_type', 'constructor_type'):
            return ShapeNode.of_primitive(Primitive.FUNCTION)
        if kind == 'type_identifier':
            name = text(node)
            if name in env:
                return env[name]
            return self._generic(name, [], env)
        if kind == 'generic_type':
            name_node = node.child_by_field_name('name')
            args_node = node.child_by_field_name('type_arguments')
            args = named(args_node) if args_node is not None else []
            if name_node is None or name_node.type != 'type_identifier':
                # React.HTMLAttributes<...> and other namespaced generics
                return ShapeNode.unknown()
            return self._generic(text(name_node), args, env)

        # nested_type_identifier, type_query, lookup_type, conditional types...
        return ShapeNode.unknown()

    def _predefined(self, name: str) -> ShapeNode:
        if name in self.PREDEFINED:
            return ShapeNode.of_primitive(self.PREDEFINED[name])
        if name in self.UNSTRUCTURED:
            return ShapeNode.unknown()
        return ShapeNode.opaque(name)

    def _literal(self, node: Node) -> ShapeNode:
        children = named(node)
        value = children[0] if children else node
        if value.type in ('string', 'template_string'):
            return ShapeNode.of_primitive(Primitive.STRING)
        if value.type in ('number', 'unary_expression'):
            return ShapeNode.of_primitive(Primitive.NUMBER)
        if value.type in ('true', 'false'):
            return ShapeNode.of_primitive(Primitive.BOOLEAN)
        return ShapeNode.opaque(text(value))

    def _union(self, node: Node, env: Dict[str, ShapeNode]) -> ShapeNode:
        branches = [self.resolve(child, env) for child in named(node)]
        flat: List[ShapeNode] = []
        for branch in branches:
            resolved = branch.resolved()
            if resolved.kind is ShapeKind.UNION:
                flat.extend(resolved.branches)
            else:
                flat.append(branch)
        present = [branch for branch in flat if not self._is_nullish(branch)]
        return ShapeNode.union(present or flat)

    def _is_nullish(self, shape: ShapeNode) -> bool:
        resolved = shape.resolved()
        return resolved.kind is ShapeKind.OPAQUE and resolved.validator in self.NULLISH

    def _members(self, body: Optional[Node], env: Dict[str, ShapeNode]) -> ShapeNode:
        if body is None:
            return ShapeNode.object()
        children: Dict[str, ShapeNode] = {}
        index = None
        for member in named(body):
            if member.type == 'property_signature':
                key = literal_key(member.child_by_field_name('name'))
                if key is not None:
                    children[key] = self.resolve(member.child_by_field_name('type'), env)
            elif member.type == 'method_signature':
                key = literal_key(member.child_by_field_name('name'))
                if key is not None:
                    children[key] = ShapeNode.of_primitive(Primitive.FUNCTION)
            elif member.type == 'index_signature':
                index = self.resolve(member.child_by_field_name('type'), env)
        return ShapeNode.object(children, index=index)

    def _generic(self, name: str, args: List[Node], env: Dict[str, ShapeNode]) -> ShapeNode:
        if name in self.WRAPPERS and args:
            return self.resolve(args[0], env)
        if name in self.ARRAYS:
            return ShapeNode.array(self.resolve(args[0], env) if args else None)
        if name in ('Pick', 'Omit') and len(args) == 2:
            return self._filter_keys(name, self.resolve(args[0], env), self._literal_keys(args[1]))
        if name == 'Record' and len(args) == 2:
            value = self.resolve(args[1], env)
            keys = self._literal_keys(args[0])
            if keys is None:
                return ShapeNode.object(index=value)
            return ShapeNode.object({key: value for key in keys})
        if name == 'ReturnType' and args:
            return self._return_type(args[0], env)
        return self._reference(name, args, env)

    def _reference(self, name: str, args: List[Node], env: Dict[str, ShapeNode]) -> ShapeNode:
        declarations = self.index.type_declarations(name)
        if not declarations:
            logger.debug("Type %s is not declared locally; treating as unknown", name)
            return ShapeNode.unknown()
        arg_shapes = [self.resolve(arg, env) for arg in args]
        key = (name, tuple(id(shape) for shape in arg_shapes))
        if key not in self._references:
            self._references[key] = ShapeNode.lazy(lambda: self._expand(declarations, arg_shapes))
        return self._references[key]

    def _expand(self, declarations: List[Node], arg_shapes: List[ShapeNode]) -> ShapeNode:
        parts: List[ShapeNode] = []
        for declaration in declarations:
            env = self._bind_type_parameters(declaration, arg_shapes)
            if declaration.type == 'type_alias_declaration':
                parts.append(self.resolve(declaration.child_by_field_name('value'), env))
                continue
            for child in named(declaration):
                if child.type in ('extends_type_clause', 'extends_clause'):
                    parts.extend(self.resolve(base, env) for base in named(child))
            parts.append(self._members(declaration.child_by_field_name('body'), env))
        if len(parts) == 1:
            return parts[0]
        return merge_objects(parts)

    def _bind_type_parameters(self, declaration: Node, arg_shapes: List[ShapeNode]) -> Dict[str, ShapeNode]:
        params = declaration.child_by_field_name('type_parameters')
        if params is None:
            return {}
        env: Dict[str, ShapeNode] = {}
        for position, param in enumerate(p for p in named(params) if p.type == 'type_parameter'):
            name = text(param.child_by_field_name('name'))
            if position < len(arg_shapes):
                env[name] = arg_shapes[position]
                continue
            default = param.child_by_field_name('value')
            default_type = named(default)[0] if default is not None and named(default) else None
            env[name] = self.resolve(default_type, env) if default_type is not None else ShapeNode.unknown()
        return env

    def _literal_keys(self, node: Node) -> Optional[List[str]]:
        if node.type == 'literal_type':
            children = named(node)
            value = string_value(children[0]) if children else None
            return [value] if value is not None else None
        if node.type == 'union_type':
            keys: List[str] = []
            for child in named(node):
                child_keys = self._literal_keys(child)
                if child_keys is None:
                    return None
                keys.extend(child_keys)
            return keys
        return None

    def _filter_keys(self, utility: str, base: ShapeNode, keys: Optional[List[str]]) -> ShapeNode:
        resolved = base.resolved()
        if keys is None or resolved.kind is not ShapeKind.OBJECT:
            return base
        if utility == 'Pick':
            children = {key: resolved.children.get(key, ShapeNode.unknown()) for key in keys}
            return ShapeNode.object(children, open=False)
        children = {key: shape for key, shape in resolved.children.items() if key not in keys}
        return ShapeNode.object(children, index=resolved.index, open=resolved.open)

    def _return_type(self, node: Node, env: Dict[str, ShapeNode]) -> ShapeNode:
        """One level of ``ReturnType<typeof fn>`` for a function declared in this file."""
        if node.type != 'type_query':
            return ShapeNode.unknown()
        target = named(node)[0] if named(node) else None
        if target is None or target.type != 'identifier':
            return ShapeNode.unknown()
        func = unwrap(self.index.definition_of(text(target)))
        if func is None or func.type not in FUNCTION_TYPES:
            return ShapeNode.unknown()

        annotation = func.child_by_field_name('return_type')
        if annotation is not None:
            return self.resolve(annotation, env)

        body = func.child_by_field_name('body')
        returned = unwrap(body)
        if body is not None and body.type == 'statement_block':
            returned = None
            for statement in named(body):
                if statement.type == 'return_statement' and named(statement):
                    returned = unwrap(named(statement)[0])
        if returned is None or returned.type != 'object':
            return ShapeNode.unknown()
        return self._object_literal(returned)

    def _object_literal(self, node: Node) -> ShapeNode:
        children: Dict[str, ShapeNode] = {}
        for member in named(node):
            if member.type == 'pair':
                key = literal_key(member.child_by_field_name('key'))
                if key is not None:
                    children[key] = ShapeNode.unknown()
            elif member.type == 'shorthand_property_identifier':
                children[text(member)] = ShapeNode.unknown()
            elif member.type == 'method_definition':
                key = literal_key(member.child_by_field_name('name'))
                if key is not None:
                    children[key] = ShapeNode.of_primitive(Primitive.FUNCTION)
        return ShapeNode.object(children)
