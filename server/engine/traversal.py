"""
Traversal engine: delivers each function-like node to the rules that asked for it.

Every node of a file outline is visited exactly once, in source order. For
each node a scope is opened on the context, each interested rule decides
through ``check``, and emissions go to that rule's issue sink.
"""

import logging
from typing import Dict, Iterator, List, Sequence

from .issues import IssueSink
from .scopes import Context
from .types import ContractViolation, Emission, FileOutline, FunctionLikeNode, Rule, SymbolContractError

logger = logging.getLogger(__name__)


def walk_function_likes(outline: FileOutline) -> Iterator[FunctionLikeNode]:
    """Yield the function-like nodes of a file in source order."""
    yield from outline.function_likes()


def run_rule(rule: Rule, outline: FileOutline, context: Context, sink: IssueSink) -> int:
    """Run one rule over a file outline.

    Returns:
        Number of issues emitted

    Raises:
        SymbolContractError: when a node resolves to the wrong kind of symbol
    """
    emitted = 0
    for node in walk_function_likes(outline):
        if node.kind not in rule.node_kinds:
            continue
        with context.scope(node):
            result = rule.check(node, context)
        if result is None:
            continue
        if isinstance(result, ContractViolation):
            raise SymbolContractError(result)
        if isinstance(result, Emission):
            sink.emit_issue(result.issue_kind, result.line, *result.args)
            emitted += 1
    return emitted


def run_rules(rules: Sequence[Rule], outline: FileOutline, context: Context,
              sinks: Dict[str, IssueSink]) -> List[str]:
    """Run several rules over a file outline, one sink per rule id.

    A rule that hits a contract violation stops on that file; the others
    still run.

    Returns:
        Ids of rules that failed on this file
    """
    failed = []
    for rule in rules:
        try:
            run_rule(rule, outline, context, sinks[rule.meta.id])
        except SymbolContractError as e:
            logger.error("Rule '%s' aborted on %s: %s", rule.meta.id, context.file_path, e)
            failed.append(rule.meta.id)
    return failed
