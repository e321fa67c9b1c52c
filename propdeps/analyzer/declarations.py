"""Per-file index of named declarations.

The shape resolver needs to follow `type Props = ...`, `interface Props`,
`const sharedPropTypes = {...}`; component discovery needs to follow the
identifier passed to `memo(Hello, ...)`. Both look names up here.
"""
from typing import Dict, List, Optional

from tree_sitter import Node

from .syntax import CLASS_TYPES, text, walk


class DeclarationIndex:
    """Name -> declaration node maps built from one syntax tree (read-only)."""

    def __init__(self, root: Node):
        self.root = root
        # type name -> type_alias_declaration / interface_declaration nodes
        self.types: Dict[str, List[Node]] = {}
        # variable name -> variable_declarator node
        self.declarators: Dict[str, Node] = {}
        # function / class name -> declaration node
        self.functions: Dict[str, Node] = {}
        self.classes: Dict[str, Node] = {}
        self._build()

    def _build(self):
        for node in walk(self.root):
            if node.type in ('type_alias_declaration', 'interface_declaration'):
                name = text(node.child_by_field_name('name'))
                if name:
                    self.types.setdefault(name, []).append(node)
            elif node.type == 'variable_declarator':
                name_node = node.child_by_field_name('name')
                if name_node is not None and name_node.type == 'identifier':
                    self.declarators.setdefault(text(name_node), node)
            elif node.type in ('function_declaration', 'generator_function_declaration'):
                name = text(node.child_by_field_name('name'))
                if name:
                    self.functions.setdefault(name, node)
            elif node.type in CLASS_TYPES and node.type != 'class':
                name = text(node.child_by_field_name('name'))
                if name:
                    self.classes.setdefault(name, node)

    def type_declarations(self, name: str) -> List[Node]:
        return self.types.get(name, [])

    def value_of(self, name: str) -> Optional[Node]:
        """Initializer expression of ``const name = ...``."""
        declarator = self.declarators.get(name)
        if declarator is None:
            return None
        return declarator.child_by_field_name('value')

    def definition_of(self, name: str) -> Optional[Node]:
        """Function, class or initializer bound to ``name``."""
        if name in self.functions:
            return self.functions[name]
        if name in self.classes:
            return self.classes[name]
        return self.value_of(name)
