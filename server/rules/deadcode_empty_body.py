# server/rules/deadcode_empty_body.py
"""
Rule: deadcode.empty_body

Detects methods, functions and closures whose statement block is empty.

- Declarations without a statement block (abstract and interface methods)
  are not empty and are never reported.
- Constructors that promote at least one parameter to a property are
  legitimate with an empty body.
- Methods that override, or are overridden by, another method are treated as
  intentional no-op hooks, and deprecated declarations are left alone.

Arrow functions (`fn($x) => expr`) always have an expression body, so the rule
does not ask the traversal for them.
"""

from typing import Optional, Tuple

from engine.issues import IssueKind
from engine.symbol_index import FunctionSymbol, MethodSymbol
from engine.types import (
    CheckResult, ContractViolation, Emission, FunctionLikeNode, NodeKind,
    Requires, RuleMeta, SymbolLookup, Visibility,
)


class DeadcodeEmptyBodyRule:
    """Report function-like declarations with an empty body."""

    meta = RuleMeta(
        id="deadcode.empty_body",
        category="deadcode",
        tier=2,
        priority="P2",
        description="Detects methods, functions and closures whose body is empty.",
        langs=["php"]
    )

    requires = Requires(syntax=True, symbols=True)

    node_kinds: Tuple[NodeKind, ...] = (NodeKind.METHOD, NodeKind.FUNCTION, NodeKind.CLOSURE)

    def check(self, node: FunctionLikeNode, lookup: SymbolLookup) -> CheckResult:
        if node.kind is NodeKind.METHOD:
            return self._check_method(node, lookup)
        if node.kind in (NodeKind.FUNCTION, NodeKind.CLOSURE):
            return self._check_function(node, lookup)
        raise ValueError(f"Unsupported node kind: {node.kind!r}")

    def _check_method(self, node: FunctionLikeNode, lookup: SymbolLookup) -> CheckResult:
        if not node.is_empty:
            return None

        method = lookup.get_function_like_in_scope()
        if not isinstance(method, MethodSymbol):
            return _violation(node, "MethodSymbol", method)

        if method.is_new_constructor:
            for param in node.params:
                if param.is_promoted:
                    # Constructor property promotion
                    return None

        if method.is_overridden_by_another or method.is_override or method.is_deprecated:
            return None

        return Emission(
            issue_kind=_issue_kind_for_method(method),
            line=node.line,
            args=(method.representation_for_issue(),),
        )

    def _check_function(self, node: FunctionLikeNode, lookup: SymbolLookup) -> CheckResult:
        if not node.is_empty:
            return None

        function = lookup.get_function_like_in_scope()
        if not isinstance(function, FunctionSymbol):
            return _violation(node, "FunctionSymbol", function)

        if function.is_deprecated:
            return None

        return Emission(
            issue_kind=IssueKind.EMPTY_CLOSURE if function.is_closure else IssueKind.EMPTY_FUNCTION,
            line=node.line,
            args=(function.representation_for_issue(),),
        )


def _issue_kind_for_method(method: MethodSymbol) -> str:
    if method.visibility is Visibility.PRIVATE:
        return IssueKind.EMPTY_PRIVATE_METHOD
    if method.visibility is Visibility.PROTECTED:
        return IssueKind.EMPTY_PROTECTED_METHOD
    return IssueKind.EMPTY_PUBLIC_METHOD


def _violation(node: FunctionLikeNode, expected: str, actual: Optional[object]) -> ContractViolation:
    return ContractViolation(
        node_kind=node.kind,
        expected=expected,
        actual=type(actual).__name__ if actual is not None else "nothing",
        line=node.line,
    )


RULES = [DeadcodeEmptyBodyRule()]
