"""Small helpers over tree-sitter nodes shared by the analyzer modules."""
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from tree_sitter import Node


FUNCTION_TYPES = {
    'function_declaration', 'function_expression', 'function', 'arrow_function',
    'generator_function_declaration', 'generator_function', 'method_definition',
}

CLASS_TYPES = {'class_declaration', 'class', 'abstract_class_declaration'}

# Expression wrappers that do not change the value (TS casts, parentheses)
WRAPPER_TYPES = {
    'parenthesized_expression', 'as_expression', 'satisfies_expression',
    'non_null_expression', 'type_assertion',
}

ACCESS_TYPES = {'member_expression', 'subscript_expression'}

JSX_TYPES = {'jsx_element', 'jsx_self_closing_element', 'jsx_fragment'}


@dataclass(frozen=True)
class SourceSpan:
    """Source location of a node: 1-based lines, 0-based columns."""
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @classmethod
    def from_node(cls, node: Node) -> 'SourceSpan':
        return cls(
            start_line=node.start_point[0] + 1,
            start_column=node.start_point[1],
            end_line=node.end_point[0] + 1,
            end_column=node.end_point[1],
        )

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_column + 1}"


def text(node: Optional[Node]) -> str:
    if node is None:
        return ''
    return node.text.decode('utf-8', errors='replace')


def node_key(node: Node) -> Tuple[int, int, str]:
    """Stable identity for a node within one tree."""
    return (node.start_byte, node.end_byte, node.type)


def named(node: Node) -> List[Node]:
    """Named children without comments."""
    return [child for child in node.named_children if child.type != 'comment']


def unwrap(node: Optional[Node]) -> Optional[Node]:
    """Strip parentheses and type assertions around an expression."""
    while node is not None and node.type in WRAPPER_TYPES:
        children = named(node)
        if not children:
            return node
        # `<T>expr` puts the type first, `expr as T` puts it last
        node = children[-1] if node.type == 'type_assertion' else children[0]
    return node


def string_value(node: Optional[Node]) -> Optional[str]:
    """Value of a string literal or a template string without substitutions."""
    if node is None:
        return None
    if node.type == 'string':
        return text(node)[1:-1]
    if node.type == 'template_string':
        if any(child.type == 'template_substitution' for child in node.named_children):
            return None
        return text(node)[1:-1]
    return None


def literal_key(node: Optional[Node]) -> Optional[str]:
    """Statically known property name of a key node, or None when computed."""
    if node is None:
        return None
    if node.type in ('property_identifier', 'identifier', 'private_property_identifier',
                     'shorthand_property_identifier', 'shorthand_property_identifier_pattern',
                     'type_identifier'):
        return text(node)
    if node.type == 'number':
        return text(node)
    if node.type == 'computed_property_name':
        children = named(node)
        if len(children) == 1 and children[0].type in ('string', 'template_string', 'number'):
            inner = children[0]
            return text(inner) if inner.type == 'number' else string_value(inner)
        return None
    return string_value(node)


def function_parameters(func: Node) -> List[Node]:
    """Parameter nodes of any function-like node."""
    single = func.child_by_field_name('parameter')
    if single is not None:
        return [single]
    params = func.child_by_field_name('parameters')
    if params is None:
        return []
    return named(params)


def split_parameter(param: Node) -> Tuple[Optional[Node], Optional[Node], Optional[Node]]:
    """Return (pattern, default value, type annotation) of one parameter."""
    if param.type in ('required_parameter', 'optional_parameter'):
        pattern = param.child_by_field_name('pattern')
        return pattern, param.child_by_field_name('value'), param.child_by_field_name('type')
    if param.type == 'assignment_pattern':
        return param.child_by_field_name('left'), param.child_by_field_name('right'), None
    return param, None, None


def call_arguments(call: Node) -> List[Node]:
    args = call.child_by_field_name('arguments')
    if args is None or args.type != 'arguments':
        return []
    return named(args)


def callee_name(call: Node) -> Optional[str]:
    """Last name of a call's callee: memo(...) -> memo, React.memo(...) -> memo."""
    func = unwrap(call.child_by_field_name('function'))
    if func is None:
        return None
    if func.type == 'identifier':
        return text(func)
    if func.type == 'member_expression':
        return text(func.child_by_field_name('property'))
    return None


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal over named nodes."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(named(current)))


def contains_jsx(node: Node) -> bool:
    for current in walk(node):
        if current.type in JSX_TYPES:
            return True
        if current.type == 'call_expression' and callee_name(current) == 'createElement':
            return True
    return False


def is_static(node: Node) -> bool:
    """True when a class member carries the ``static`` modifier."""
    return any(child.type in ('static', 'static get') for child in node.children)


def is_getter(node: Node) -> bool:
    return any(child.type in ('get', 'static get') for child in node.children)
