"""
Issue catalog and the reporting sink rules emit into.

Rules emit an issue kind, a line and message arguments; the sink turns that
into a ``Finding`` with a formatted message, a byte span and a severity.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from .types import Finding, Severity


class IssueKind:
    EMPTY_PRIVATE_METHOD = "EmptyPrivateMethod"
    EMPTY_PROTECTED_METHOD = "EmptyProtectedMethod"
    EMPTY_PUBLIC_METHOD = "EmptyPublicMethod"
    EMPTY_FUNCTION = "EmptyFunction"
    EMPTY_CLOSURE = "EmptyClosure"


@dataclass(frozen=True)
class IssueType:
    kind: str
    category: str
    severity: Severity
    template: str

    def format(self, args) -> str:
        return self.template.format(*args)


ISSUE_TYPES: Dict[str, IssueType] = {
    issue.kind: issue for issue in (
        IssueType(IssueKind.EMPTY_PRIVATE_METHOD, "deadcode", "info", "Empty private method {0}"),
        IssueType(IssueKind.EMPTY_PROTECTED_METHOD, "deadcode", "info", "Empty protected method {0}"),
        IssueType(IssueKind.EMPTY_PUBLIC_METHOD, "deadcode", "info", "Empty public method {0}"),
        IssueType(IssueKind.EMPTY_FUNCTION, "deadcode", "info", "Empty function {0}"),
        IssueType(IssueKind.EMPTY_CLOSURE, "deadcode", "info", "Empty closure {0}"),
    )
}


def get_issue_type(kind: str) -> IssueType:
    """Look up an issue type; unknown kinds raise KeyError."""
    return ISSUE_TYPES[kind]


class IssueSink(Protocol):
    def emit_issue(self, issue_kind: str, line: int, *args: str) -> None:
        ...


class FindingCollector:
    """Issue sink that records findings for one rule in one file."""

    def __init__(self, rule_id: str, file_path: str, text: str,
                 severities: Optional[Dict[str, str]] = None):
        self.rule_id = rule_id
        self.file_path = file_path
        self._line_offsets = _line_offsets(text)
        self._severities = severities or {}
        self.findings: List[Finding] = []

    def emit_issue(self, issue_kind: str, line: int, *args: str) -> None:
        issue_type = get_issue_type(issue_kind)
        start_byte, end_byte = self._line_span(line)
        severity = self._severities.get(issue_kind) or self._severities.get(self.rule_id) or issue_type.severity
        self.findings.append(Finding(
            rule=self.rule_id,
            message=issue_type.format(args),
            file=self.file_path,
            start_byte=start_byte,
            end_byte=end_byte,
            severity=severity,
            issue=issue_kind,
            line=line,
            meta={"category": issue_type.category, "args": list(args)},
        ))

    def _line_span(self, line: int):
        if not self._line_offsets:
            return 0, 0
        index = min(max(line, 1), len(self._line_offsets)) - 1
        start, end = self._line_offsets[index]
        return start, end


def _line_offsets(text: str):
    """Byte (start, end) of each line, newline excluded."""
    offsets = []
    position = 0
    for raw_line in text.encode('utf-8').split(b'\n'):
        offsets.append((position, position + len(raw_line)))
        position += len(raw_line) + 1
    return offsets
