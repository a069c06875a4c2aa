"""
PHP language adapter for tree-sitter.

Besides the usual adapter plumbing (parsing, file listing, byte/line
conversion) this adapter produces a ``FileOutline``: every class-like and
function-like declaration of a file, with class names resolved against the
namespace and ``use`` imports in effect where they appear.
"""
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import tree_sitter
import tree_sitter_php

from .types import (
    ClassLikeInfo, FileOutline, FunctionLikeDecl, FunctionLikeNode,
    LanguageAdapter, NodeKind, ParamInfo, Visibility,
)

logger = logging.getLogger(__name__)

CLASS_LIKE_TYPES = {
    'class_declaration': 'class',
    'interface_declaration': 'interface',
    'trait_declaration': 'trait',
    'enum_declaration': 'enum',
}

# Grammar versions disagree on the closure node name.
CLOSURE_TYPES = {'anonymous_function', 'anonymous_function_creation_expression'}

FUNCTION_LIKE_TYPES = {'method_declaration', 'function_definition'} | CLOSURE_TYPES

# Block children that are not statements.
NON_STATEMENT_TYPES = {'comment', 'empty_statement'}

PARAMETER_TYPES = {'simple_parameter', 'variadic_parameter', 'property_promotion_parameter'}

# Names that never refer to a declared class.
RESERVED_CLASS_NAMES = {'self', 'static', 'parent'}

ANONYMOUS_CLASS_NAME = 'class@anonymous'

DEPRECATED_TAG = re.compile(r'(?:^|[\s*])@deprecated(?![\w-])')


class _NamespaceState:
    """Current namespace and class-name imports while walking a file."""

    def __init__(self, namespace: str = ""):
        self.namespace = namespace
        self.uses: Dict[str, str] = {}  # lowercase alias -> fq name

    def add_use(self, name: str, alias: Optional[str] = None) -> None:
        name = name.strip().lstrip('\\')
        if not name:
            return
        if not alias:
            alias = name.rsplit('\\', 1)[-1]
        self.uses[alias.lower()] = name

    def resolve(self, name: str) -> Optional[str]:
        """Resolve a class reference to its fully-qualified name (no leading backslash)."""
        name = ''.join(name.split())
        if not name:
            return None
        if name.startswith('\\'):
            return name[1:]
        if name.lower().startswith('namespace\\'):
            return self._qualify(name[len('namespace\\'):])
        if name.lower() in RESERVED_CLASS_NAMES:
            return None
        first, sep, rest = name.partition('\\')
        imported = self.uses.get(first.lower())
        if imported:
            return imported + sep + rest
        return self._qualify(name)

    def qualify_declaration(self, name: str) -> str:
        return self._qualify(name)

    def _qualify(self, name: str) -> str:
        if self.namespace:
            return f"{self.namespace}\\{name}"
        return name


class PhpAdapter(LanguageAdapter):
    """Tree-sitter adapter for the PHP language."""

    def __init__(self):
        self._parser = None

    @property
    def language_id(self) -> str:
        """Return the language identifier."""
        return "php"

    @property
    def file_extensions(self) -> Tuple[str, ...]:
        """Return supported file extensions."""
        return (".php", ".phtml", ".inc")

    def _get_parser(self):
        """Get or create the tree-sitter parser."""
        if self._parser is None:
            php_language = tree_sitter.Language(tree_sitter_php.language_php())
            self._parser = tree_sitter.Parser()
            self._parser.language = php_language
            logger.debug("PHP parser initialized")
        return self._parser

    def parse(self, text) -> Any:
        """Parse text and return a Tree-sitter tree."""
        if isinstance(text, str):
            text_bytes = text.encode('utf-8')
        else:
            text_bytes = text
        return self._get_parser().parse(text_bytes)

    def list_files(self, paths: List[str]) -> List[str]:
        """List all PHP files in the given paths."""
        php_files = []

        for path in paths:
            if os.path.isfile(path):
                if any(path.endswith(ext) for ext in self.file_extensions):
                    php_files.append(path)
            elif os.path.isdir(path):
                for root, dirs, files in os.walk(path):
                    # Skip hidden and dependency directories
                    dirs[:] = [d for d in dirs if not d.startswith('.') and d not in ['vendor', 'node_modules']]

                    for file in files:
                        if any(file.endswith(ext) for ext in self.file_extensions):
                            php_files.append(os.path.join(root, file))

        return php_files

    def node_text(self, text: str, start_byte: int, end_byte: int) -> str:
        """Extract text between byte offsets."""
        try:
            return text.encode('utf-8')[start_byte:end_byte].decode('utf-8')
        except (UnicodeDecodeError, IndexError):
            return ""

    def enclosing_function(self, tree: Any, byte_offset: int) -> Optional[Dict[str, Any]]:
        """Find the innermost function-like node enclosing the given byte offset."""
        if tree is None:
            return None

        found = None
        node = tree.root_node if hasattr(tree, 'root_node') else tree
        while node is not None:
            if node.type in FUNCTION_LIKE_TYPES or node.type == 'arrow_function':
                name_node = node.child_by_field_name('name')
                found = {
                    'name': _text(name_node) if name_node is not None else '{closure}',
                    'kind': node.type,
                    'start_byte': node.start_byte,
                    'end_byte': node.end_byte,
                }
            next_node = None
            for child in node.children:
                if child.start_byte <= byte_offset < child.end_byte:
                    next_node = child
                    break
            node = next_node
        return found

    def byte_to_linecol(self, text: str, byte: int) -> Tuple[int, int]:
        """Convert byte offset to (line, column) 1-based."""
        text_bytes = text.encode('utf-8')
        if byte > len(text_bytes):
            byte = len(text_bytes)

        lines = text_bytes[:byte].decode('utf-8', errors='ignore').split('\n')
        return (len(lines), len(lines[-1]) + 1)

    def line_col_to_byte(self, text: str, line: int, col: int) -> int:
        """Convert (line, column) 1-based to byte offset."""
        lines = text.split('\n')
        if line > len(lines):
            return len(text.encode('utf-8'))

        byte_offset = 0
        for i in range(line - 1):
            byte_offset += len(lines[i].encode('utf-8')) + 1  # +1 for newline

        line_text = lines[line - 1]
        col_offset = min(col - 1, len(line_text))
        byte_offset += len(line_text[:col_offset].encode('utf-8'))
        return byte_offset

    def get_source_slice(self, text: str, node_range) -> str:
        """Get source text for a node range (start_byte, end_byte)."""
        if hasattr(node_range, 'start_byte') and hasattr(node_range, 'end_byte'):
            return self.node_text(text, node_range.start_byte, node_range.end_byte)
        elif isinstance(node_range, tuple) and len(node_range) == 2:
            return self.node_text(text, node_range[0], node_range[1])
        return ""

    # === Outline extraction ===

    def outline(self, tree: Any, file_path: str) -> FileOutline:
        """Collect class-like and function-like declarations of a parsed file.

        Declarations are returned in source order (pre-order over the tree).
        """
        outline = FileOutline(file_path=file_path)
        if tree is None:
            return outline

        root = tree.root_node if hasattr(tree, 'root_node') else tree
        state = _NamespaceState()
        class_stack: List[ClassLikeInfo] = []

        # Iterative pre-order walk; callables on the stack run when a subtree is done.
        stack: List[Any] = [root]
        while stack:
            item = stack.pop()
            if callable(item):
                item()
                continue
            node = item
            node_type = node.type

            if node_type == 'namespace_definition':
                name_node = node.child_by_field_name('name')
                namespace = ''.join(_text(name_node).split()) if name_node is not None else ""
                body = node.child_by_field_name('body')
                if body is None:
                    state = _NamespaceState(namespace)
                    if not outline.namespace:
                        outline.namespace = namespace
                    continue
                outer = state
                state = _NamespaceState(namespace)

                def restore(saved=outer):
                    nonlocal state
                    state = saved
                stack.append(restore)
                stack.append(body)
                continue

            if node_type == 'namespace_use_declaration':
                self._collect_uses(node, state)
                continue

            if node_type in CLASS_LIKE_TYPES or _is_anonymous_class(node):
                info = self._class_like(node, state, file_path)
                outline.class_likes.append(info)
                class_stack.append(info)
                stack.append(class_stack.pop)
            elif node_type in FUNCTION_LIKE_TYPES:
                decl = self._declaration(node, state, class_stack[-1] if class_stack else None)
                if decl is not None:
                    outline.declarations.append(decl)

            for child in reversed(node.children):
                stack.append(child)

        return outline

    def _collect_uses(self, node, state: _NamespaceState) -> None:
        for child in node.children:
            # `use function ...` and `use const ...` do not import class names
            if child.type in ('function', 'const'):
                return
        prefix = ""
        for child in node.named_children:
            if child.type == 'namespace_name':
                prefix = ''.join(_text(child).split())
            elif child.type == 'namespace_use_clause':
                self._add_use_clause(child, state, "")
            elif child.type == 'namespace_use_group':
                for clause in child.named_children:
                    if clause.type in ('namespace_use_clause', 'namespace_use_group_clause'):
                        self._add_use_clause(clause, state, prefix)

    def _add_use_clause(self, clause, state: _NamespaceState, prefix: str) -> None:
        for child in clause.children:
            if child.type in ('function', 'const'):
                return
        alias_node = clause.child_by_field_name('alias')
        name = None
        for child in clause.named_children:
            if child == alias_node:
                continue
            if child.type in ('qualified_name', 'name', 'namespace_name') and name is None:
                name = _text(child)
            elif child.type == 'namespace_aliasing_clause':
                for sub in child.named_children:
                    if sub.type == 'name':
                        alias_node = sub
        if not name:
            return
        if prefix:
            name = prefix + '\\' + name.lstrip('\\')
        state.add_use(name, _text(alias_node) if alias_node is not None else None)

    def _class_like(self, node, state: _NamespaceState, file_path: str) -> ClassLikeInfo:
        if _is_anonymous_class(node):
            kind = 'class'
            fq_name = ANONYMOUS_CLASS_NAME
            key = f"{ANONYMOUS_CLASS_NAME}:{file_path}:{node.start_byte}"
        else:
            kind = CLASS_LIKE_TYPES[node.type]
            name_node = node.child_by_field_name('name')
            fq_name = state.qualify_declaration(_text(name_node))
            key = fq_name.lower()

        parent = None
        interfaces: List[str] = []
        traits: List[str] = []
        for child in node.named_children:
            if child.type == 'base_clause':
                names = self._resolve_names(child, state)
                if kind == 'interface':
                    interfaces.extend(names)
                elif names:
                    parent = names[0]
            elif child.type == 'class_interface_clause':
                interfaces.extend(self._resolve_names(child, state))
            elif child.type in ('declaration_list', 'enum_declaration_list'):
                for member in child.named_children:
                    if member.type == 'use_declaration':
                        traits.extend(self._resolve_names(member, state))

        return ClassLikeInfo(
            fq_name=fq_name,
            key=key,
            kind=kind,
            range=(node.start_byte, node.end_byte),
            parent=parent,
            interfaces=tuple(interfaces),
            traits=tuple(traits),
        )

    def _resolve_names(self, node, state: _NamespaceState) -> List[str]:
        names = []
        for child in node.named_children:
            if child.type in ('name', 'qualified_name'):
                resolved = state.resolve(_text(child))
                if resolved:
                    names.append(resolved.lower())
        return names

    def _declaration(self, node, state: _NamespaceState,
                     class_info: Optional[ClassLikeInfo]) -> Optional[FunctionLikeDecl]:
        body = node.child_by_field_name('body')
        statements = None
        if body is not None and body.type == 'compound_statement':
            statements = tuple(
                child.type for child in body.named_children
                if child.type not in NON_STATEMENT_TYPES
            )

        params = self._params(node.child_by_field_name('parameters'))
        modifiers = {_text(child).lower() for child in node.children
                     if child.type in ('visibility_modifier', 'static_modifier', 'abstract_modifier')}
        name_node = node.child_by_field_name('name')
        name = _text(name_node) if name_node is not None else ""

        if node.type == 'method_declaration':
            if class_info is None:
                logger.debug("Method %s outside of a class-like at byte %d", name, node.start_byte)
                return None
            kind = NodeKind.METHOD
            fq_name = f"{class_info.fq_name}::{name}"
            class_key = class_info.key
            class_name = class_info.fq_name
        elif node.type == 'function_definition':
            kind = NodeKind.FUNCTION
            fq_name = state.qualify_declaration(name)
            class_key = None
            class_name = None
        else:
            kind = NodeKind.CLOSURE
            name = '{closure}'
            fq_name = state.qualify_declaration(name)
            class_key = None
            class_name = None

        return FunctionLikeDecl(
            node=FunctionLikeNode(
                kind=kind,
                line=_declaration_line(node),
                statements=statements,
                params=params,
                name=name,
                class_name=class_name,
                start_byte=node.start_byte,
                end_byte=node.end_byte,
            ),
            fq_name=fq_name,
            class_key=class_key,
            visibility=_visibility(modifiers),
            is_deprecated=_is_deprecated(node),
            is_static='static' in modifiers,
            is_abstract='abstract' in modifiers,
        )

    def _params(self, params_node) -> Tuple[ParamInfo, ...]:
        if params_node is None:
            return ()
        params = []
        for child in params_node.named_children:
            if child.type not in PARAMETER_TYPES:
                continue
            modifiers = tuple(_param_modifiers(child))
            params.append(ParamInfo(
                name=_param_name(child),
                modifiers=modifiers,
                # readonly alone still promotes (implicitly public)
                is_promoted=bool(modifiers),
            ))
        return tuple(params)


def _text(node) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode('utf-8', errors='ignore')


def _is_anonymous_class(node) -> bool:
    if node.type == 'anonymous_class':
        return True
    # Older grammars inline the class body into the `new` expression
    return (node.type == 'object_creation_expression'
            and any(child.type == 'declaration_list' for child in node.children))


def _declaration_line(node) -> int:
    """1-based line of the declaration itself, after any attributes."""
    for child in node.children:
        if child.type not in ('attribute_list', 'comment'):
            return child.start_point[0] + 1
    return node.start_point[0] + 1


def _param_name(param_node) -> str:
    name_node = param_node.child_by_field_name('name')
    if name_node is not None and name_node.type == 'variable_name':
        return _text(name_node)
    stack = list(param_node.named_children)
    while stack:
        candidate = stack.pop(0)
        if candidate.type == 'variable_name':
            return _text(candidate)
        stack.extend(candidate.named_children)
    return ""


def _param_modifiers(param_node) -> List[str]:
    """Promotion modifiers on a parameter, in source order."""
    modifiers = []
    for sub in param_node.children:
        if sub.type in ('visibility_modifier', 'readonly_modifier'):
            modifiers.append(' '.join(_text(sub).lower().split()))
        elif sub.type == 'ERROR' and _text(sub).strip().lower() == 'readonly':
            # Some grammar versions only know readonly after a visibility keyword
            modifiers.append('readonly')
    return modifiers


def _visibility(modifiers) -> Visibility:
    if 'private' in modifiers:
        return Visibility.PRIVATE
    if 'protected' in modifiers:
        return Visibility.PROTECTED
    return Visibility.PUBLIC


def _is_deprecated(node) -> bool:
    """True for an @deprecated docblock right before the node or a #[Deprecated] attribute."""
    previous = node.prev_named_sibling
    if previous is not None and previous.type == 'comment':
        comment = _text(previous)
        if comment.startswith('/**') and DEPRECATED_TAG.search(comment):
            return True

    for child in node.children:
        if child.type != 'attribute_list':
            continue
        stack = list(child.named_children)
        while stack:
            candidate = stack.pop()
            if candidate.type == 'attribute':
                for part in candidate.named_children:
                    if part.type in ('name', 'qualified_name'):
                        short = _text(part).rsplit('\\', 1)[-1]
                        if short.lower() == 'deprecated':
                            return True
                        break
            else:
                stack.extend(candidate.named_children)
    return False


# Default adapter instance
default_php_adapter = PhpAdapter()
