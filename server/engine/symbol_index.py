"""
Project-wide symbol table for PHP function-like declarations.

This module collects classes, interfaces, traits and enums together with the
methods, functions and closures they declare across all analyzed files, then
links the class hierarchy so each method knows whether it overrides, or is
overridden by, another method.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .types import ClassLikeInfo, FileOutline, FunctionLikeDecl, LanguageAdapter, NodeKind, Visibility

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodSymbol:
    """A resolved method."""
    fq_name: str                      # "Ns\\Foo::bar"
    class_key: str
    name: str
    visibility: Visibility = Visibility.PUBLIC
    is_new_constructor: bool = False
    is_override: bool = False
    is_overridden_by_another: bool = False
    is_deprecated: bool = False
    is_static: bool = False
    is_abstract: bool = False
    file_path: str = ""
    line: int = 0

    def representation_for_issue(self) -> str:
        if self.fq_name.startswith('class@anonymous'):
            return f"{self.fq_name}()"
        return f"\\{self.fq_name}()"


@dataclass(frozen=True)
class FunctionSymbol:
    """A resolved free function or closure."""
    fq_name: str                      # "Ns\\foo" or "Ns\\{closure}"
    is_closure: bool = False
    is_deprecated: bool = False
    file_path: str = ""
    line: int = 0

    # Free functions and closures take part in no inheritance
    is_override = False
    is_overridden_by_another = False

    def representation_for_issue(self) -> str:
        return f"\\{self.fq_name}()"


class PhpSymbolTable:
    """Index of class-likes and function-likes across project files.

    Usage:
        table = PhpSymbolTable()
        table.add_outline(path, outline)   # for every file
        table.link()                       # once, before lookups
        table.function_like_at(path, start_byte)
    """

    def __init__(self):
        self._class_likes: Dict[str, List[ClassLikeInfo]] = defaultdict(list)
        self._decls: Dict[Tuple[str, int], FunctionLikeDecl] = {}
        self._methods_by_class: Dict[str, Dict[str, List[FunctionLikeDecl]]] = defaultdict(lambda: defaultdict(list))
        self._outlines: Dict[str, FileOutline] = {}
        self._symbols: Dict[Tuple[str, int], Any] = {}
        self._linked = False

    def add_outline(self, file_path: str, outline: FileOutline) -> None:
        """Index the declarations of one file."""
        self._outlines[file_path] = outline
        for info in outline.class_likes:
            self._class_likes[info.key].append(info)
        for decl in outline.declarations:
            self._decls[(file_path, decl.node.start_byte)] = decl
            if decl.class_key is not None:
                self._methods_by_class[decl.class_key][decl.node.name.lower()].append(decl)
        self._linked = False

    def link(self) -> None:
        """Resolve override relations and build the symbol for every declaration."""
        ancestors = {key: self._ancestors(key) for key in self._class_likes}

        # class key -> class keys inheriting from it
        descendants: Dict[str, Set[str]] = defaultdict(set)
        for key, ancestor_keys in ancestors.items():
            for ancestor in ancestor_keys:
                descendants[ancestor].add(key)

        symbols = {}
        for (file_path, start_byte), decl in self._decls.items():
            node = decl.node
            if decl.class_key is None:
                symbols[(file_path, start_byte)] = FunctionSymbol(
                    fq_name=decl.fq_name,
                    is_closure=node.kind is NodeKind.CLOSURE,
                    is_deprecated=decl.is_deprecated,
                    file_path=file_path,
                    line=node.line,
                )
                continue

            method_name = node.name.lower()
            symbols[(file_path, start_byte)] = MethodSymbol(
                fq_name=decl.fq_name,
                class_key=decl.class_key,
                name=node.name,
                visibility=decl.visibility,
                is_new_constructor=method_name == '__construct',
                is_override=self._overrides(decl.class_key, method_name, ancestors),
                is_overridden_by_another=self._is_overridden(decl, method_name, descendants),
                is_deprecated=decl.is_deprecated,
                is_static=decl.is_static,
                is_abstract=decl.is_abstract,
                file_path=file_path,
                line=node.line,
            )

        self._symbols = symbols
        self._linked = True

    def function_like_at(self, file_path: str, start_byte: int) -> Optional[Any]:
        """Get the symbol declared by the node starting at ``start_byte`` in ``file_path``."""
        if not self._linked:
            self.link()
        return self._symbols.get((file_path, start_byte))

    def get_outline(self, file_path: str) -> Optional[FileOutline]:
        """Get the outline indexed for ``file_path``, if any."""
        return self._outlines.get(file_path)

    def get_class_like(self, name: str) -> List[ClassLikeInfo]:
        """Get every declaration of a class-like by (case-insensitive) fq name."""
        return list(self._class_likes.get(name.lstrip('\\').lower(), []))

    def ancestors_of(self, name: str) -> Set[str]:
        return self._ancestors(name.lstrip('\\').lower())

    def get_stats(self) -> Dict[str, int]:
        """Get statistics about the symbol table."""
        kinds = defaultdict(int)
        for decl in self._decls.values():
            kinds[decl.node.kind.value] += 1
        return {
            "files": len(self._outlines),
            "class_likes": sum(len(infos) for infos in self._class_likes.values()),
            "methods": kinds["method"],
            "functions": kinds["function"],
            "closures": kinds["closure"],
        }

    def __len__(self) -> int:
        return len(self._decls)

    # ================================
    # Private helper methods
    # ================================

    def _direct_parents(self, key: str) -> Set[str]:
        parents = set()
        for info in self._class_likes.get(key, []):
            if info.parent:
                parents.add(info.parent)
            parents.update(info.interfaces)
            parents.update(info.traits)
        return parents

    def _ancestors(self, key: str) -> Set[str]:
        seen: Set[str] = set()
        pending = list(self._direct_parents(key))
        while pending:
            current = pending.pop()
            # Unknown (external) class-likes contribute nothing; cycles stop here
            if current in seen or current == key or current not in self._class_likes:
                continue
            seen.add(current)
            pending.extend(self._direct_parents(current))
        return seen

    def _is_trait(self, key: str) -> bool:
        return any(info.kind == 'trait' for info in self._class_likes.get(key, []))

    def _visible_to_subclasses(self, decl: FunctionLikeDecl) -> bool:
        # Trait members are copied into the using class, private ones included
        return decl.visibility is not Visibility.PRIVATE or self._is_trait(decl.class_key)

    def _overrides(self, class_key: str, method_name: str, ancestors: Dict[str, Set[str]]) -> bool:
        for ancestor in ancestors.get(class_key, ()):
            for other in self._methods_by_class.get(ancestor, {}).get(method_name, []):
                if self._visible_to_subclasses(other):
                    return True
        return False

    def _is_overridden(self, decl: FunctionLikeDecl, method_name: str,
                       descendants: Dict[str, Set[str]]) -> bool:
        if not self._visible_to_subclasses(decl):
            return False
        for descendant in descendants.get(decl.class_key, ()):
            if self._methods_by_class.get(descendant, {}).get(method_name):
                return True
        return False


def build_symbol_index(files: Iterable[str], adapter: LanguageAdapter,
                       trees: Optional[Dict[str, Any]] = None) -> PhpSymbolTable:
    """Build and link a symbol table from a list of files.

    Args:
        files: File paths to index
        adapter: PHP adapter used to parse and outline files
        trees: Optional already-parsed trees keyed by file path

    Returns:
        A linked PhpSymbolTable
    """
    table = PhpSymbolTable()
    trees = trees or {}

    for file_path in files:
        try:
            tree = trees.get(file_path)
            if tree is None:
                with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
                    content = f.read()
                tree = adapter.parse(content)
            table.add_outline(file_path, adapter.outline(tree, file_path))
        except OSError as e:
            logger.warning("Failed to index symbols in %s: %s", file_path, e)

    table.link()
    logger.debug("Symbol table: %s", table.get_stats())
    return table
