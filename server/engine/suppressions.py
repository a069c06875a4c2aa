"""
Suppression system for findings.

This module parses suppression directives in PHP comments and filters out
the findings they cover:

    // @suppress-current-line EmptyPublicMethod
    # @suppress-next-line EmptyFunction, EmptyClosure
    /* @suppress-next-line deadcode.* */

Patterns are matched against the finding's issue kind and rule id, and may
use glob wildcards.
"""

import fnmatch
import re
from typing import Dict, List, Set, Tuple

DIRECTIVE_PATTERN = re.compile(
    r'(?://|#(?!\[)|/\*|\*)\s*@suppress-(current|next)-line\s+([\w.*?\[\]\\-]+(?:\s*,\s*[\w.*?\[\]\\-]+)*)',
    re.IGNORECASE,
)


class SuppressionParser:
    """Parser for suppression comments."""

    def __init__(self, text: str):
        self.text = text
        self.lines = text.split('\n')
        self._parse_suppressions()

    def _parse_suppressions(self):
        """Parse all suppression comments in the text."""
        self.line_suppressions: Dict[int, Set[str]] = {}  # line_number -> {patterns}

        for line_num, line in enumerate(self.lines, 1):
            for target, patterns in self._extract_suppression_patterns(line):
                target_line = line_num if target == "current" else line_num + 1
                self.line_suppressions.setdefault(target_line, set()).update(patterns)

    def _extract_suppression_patterns(self, line: str) -> List[Tuple[str, Set[str]]]:
        """Extract (target, patterns) pairs from a line."""
        found = []
        for match in DIRECTIVE_PATTERN.finditer(line):
            patterns = {p.strip() for p in match.group(2).split(',') if p.strip()}
            if patterns:
                found.append((match.group(1).lower(), patterns))
        return found

    def is_suppressed(self, names: List[str], line_num: int) -> bool:
        """Check if a finding identified by ``names`` on ``line_num`` is suppressed."""
        for pattern in self.line_suppressions.get(line_num, ()):
            for name in names:
                if name and self._matches_pattern(name, pattern):
                    return True
        return False

    def _matches_pattern(self, name: str, pattern: str) -> bool:
        """Check if an issue kind or rule ID matches a suppression pattern."""
        if name == pattern:
            return True
        # Glob pattern match (e.g., Empty*)
        return fnmatch.fnmatchcase(name, pattern)

    def get_suppression_stats(self) -> Dict[str, int]:
        """Get statistics about suppressions in the file."""
        all_patterns = set()
        for patterns in self.line_suppressions.values():
            all_patterns.update(patterns)

        return {
            "suppressed_lines": len(self.line_suppressions),
            "unique_patterns": len(all_patterns),
            "total_suppressions": sum(len(patterns) for patterns in self.line_suppressions.values())
        }


def filter_suppressed_findings(findings: List, text: str) -> List:
    """Filter out suppressed findings from a list."""
    if not findings:
        return findings

    parser = SuppressionParser(text)
    if not parser.line_suppressions:
        return findings

    filtered_findings = []
    for finding in findings:
        line_num = getattr(finding, 'line', None) or (text[:finding.start_byte].count('\n') + 1)
        names = [getattr(finding, 'issue', None), getattr(finding, 'rule', '')]
        if not parser.is_suppressed(names, line_num):
            filtered_findings.append(finding)

    return filtered_findings
