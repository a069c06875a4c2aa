"""
Tests for the traversal engine and scope context.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock
import sys

# Add the server directory to the path for importing
server_dir = Path(__file__).parent.parent
sys.path.insert(0, str(server_dir))

from engine.scopes import Context
from engine.traversal import run_rule, run_rules, walk_function_likes
from engine.types import (
    ContractViolation, Emission, FileOutline, FunctionLikeDecl, FunctionLikeNode,
    NodeKind, RuleMeta, SymbolContractError,
)


def make_outline(*kinds):
    outline = FileOutline(file_path="t.php")
    for index, kind in enumerate(kinds):
        node = FunctionLikeNode(kind=kind, line=index + 1, statements=(), name=f"n{index}",
                                start_byte=index * 10, end_byte=index * 10 + 5)
        outline.declarations.append(FunctionLikeDecl(node=node, fq_name=f"n{index}"))
    return outline


class RecordingRule:
    """Rule double that records what it saw and returns a scripted result."""

    def __init__(self, rule_id="test.rule", node_kinds=(NodeKind.METHOD, NodeKind.FUNCTION, NodeKind.CLOSURE),
                 result=None):
        self.meta = RuleMeta(id=rule_id, category="test", tier=2, priority="P2", langs=["php"])
        self.node_kinds = node_kinds
        self.result = result
        self.seen = []
        self.scopes = []

    def check(self, node, lookup):
        self.seen.append(node)
        self.scopes.append(lookup.current_scope)
        if callable(self.result):
            return self.result(node)
        return self.result


class TestScopes:

    def test_scope_pushes_and_pops(self):
        context = Context("t.php", symbols=None)
        node = make_outline(NodeKind.FUNCTION).function_likes()[0]

        assert context.current_scope is None
        with context.scope(node) as scope:
            assert context.current_scope is scope
            assert scope.node is node
            assert scope.depth == 0
            with context.scope(node) as inner:
                assert inner.parent is scope
                assert inner.depth == 1
        assert context.current_scope is None

    def test_lookup_goes_through_symbol_table(self):
        symbols = Mock()
        symbols.function_like_at.return_value = "resolved"
        context = Context("t.php", symbols)
        node = make_outline(NodeKind.FUNCTION, NodeKind.METHOD).function_likes()[1]

        with context.scope(node):
            assert context.get_function_like_in_scope() == "resolved"
        symbols.function_like_at.assert_called_once_with("t.php", 10)

    def test_lookup_outside_scope_is_none(self):
        symbols = Mock()
        assert Context("t.php", symbols).get_function_like_in_scope() is None
        symbols.function_like_at.assert_not_called()


class TestTraversal:

    def setup_method(self):
        self.context = Context("t.php", symbols=Mock())
        self.sink = Mock()

    def test_walk_is_source_order(self):
        outline = make_outline(NodeKind.METHOD, NodeKind.CLOSURE, NodeKind.FUNCTION)
        assert [n.name for n in walk_function_likes(outline)] == ["n0", "n1", "n2"]

    def test_each_node_visited_once_with_scope(self):
        outline = make_outline(NodeKind.METHOD, NodeKind.FUNCTION, NodeKind.CLOSURE)
        rule = RecordingRule()

        run_rule(rule, outline, self.context, self.sink)

        assert [n.name for n in rule.seen] == ["n0", "n1", "n2"]
        assert [s.node for s in rule.scopes] == rule.seen
        assert self.context.current_scope is None

    def test_only_requested_kinds_delivered(self):
        outline = make_outline(NodeKind.METHOD, NodeKind.FUNCTION, NodeKind.CLOSURE)
        rule = RecordingRule(node_kinds=(NodeKind.CLOSURE,))

        run_rule(rule, outline, self.context, self.sink)

        assert [n.kind for n in rule.seen] == [NodeKind.CLOSURE]

    def test_emissions_forwarded_to_sink(self):
        outline = make_outline(NodeKind.FUNCTION, NodeKind.FUNCTION)
        rule = RecordingRule(result=lambda node: Emission("EmptyFunction", node.line, (node.name,)))

        emitted = run_rule(rule, outline, self.context, self.sink)

        assert emitted == 2
        self.sink.emit_issue.assert_any_call("EmptyFunction", 1, "n0")
        self.sink.emit_issue.assert_any_call("EmptyFunction", 2, "n1")

    def test_none_result_emits_nothing(self):
        emitted = run_rule(RecordingRule(), make_outline(NodeKind.METHOD), self.context, self.sink)

        assert emitted == 0
        self.sink.emit_issue.assert_not_called()

    def test_contract_violation_raises(self):
        violation = ContractViolation(NodeKind.METHOD, "MethodSymbol", "FunctionSymbol", 1)
        rule = RecordingRule(result=violation)

        with pytest.raises(SymbolContractError) as excinfo:
            run_rule(rule, make_outline(NodeKind.METHOD), self.context, self.sink)

        assert excinfo.value.violation is violation
        assert isinstance(excinfo.value, AssertionError)
        assert self.context.current_scope is None

    def test_run_rules_isolates_failing_rule(self):
        outline = make_outline(NodeKind.METHOD)
        broken = RecordingRule("broken.rule", result=ContractViolation(NodeKind.METHOD, "MethodSymbol", "nothing", 1))
        working = RecordingRule("working.rule", result=Emission("EmptyPublicMethod", 1, ("x",)))
        sinks = {"broken.rule": Mock(), "working.rule": Mock()}

        failed = run_rules([broken, working], outline, self.context, sinks)

        assert failed == ["broken.rule"]
        sinks["broken.rule"].emit_issue.assert_not_called()
        sinks["working.rule"].emit_issue.assert_called_once_with("EmptyPublicMethod", 1, "x")
