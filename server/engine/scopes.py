"""
Scope context for the traversal.

The traversal pushes a scope for every function-like node before handing it
to rules, and rules resolve "the function-like in scope" through the context
instead of reaching into the symbol table themselves.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

from .types import FunctionLikeNode


@dataclass(frozen=True)
class Scope:
    """A scope opened by a function-like node."""
    node: FunctionLikeNode
    parent: Optional['Scope'] = None

    @property
    def depth(self) -> int:
        return 0 if self.parent is None else self.parent.depth + 1


class Context:
    """Traversal state for one file: the file path, the symbol table and the scope stack."""

    def __init__(self, file_path: str, symbols: Any):
        self.file_path = file_path
        self.symbols = symbols
        self._stack: List[Scope] = []

    @property
    def current_scope(self) -> Optional[Scope]:
        return self._stack[-1] if self._stack else None

    @contextmanager
    def scope(self, node: FunctionLikeNode) -> Iterator[Scope]:
        """Open a scope for ``node`` for the duration of the block."""
        scope = Scope(node=node, parent=self.current_scope)
        self._stack.append(scope)
        try:
            yield scope
        finally:
            self._stack.pop()

    def get_function_like_in_scope(self) -> Optional[Any]:
        """Resolve the function-like entity for the node at the top of the scope stack."""
        scope = self.current_scope
        if scope is None or self.symbols is None:
            return None
        return self.symbols.function_like_at(self.file_path, scope.node.start_byte)
