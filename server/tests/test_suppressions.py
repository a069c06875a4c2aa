"""
Tests for suppression comments.
"""

from pathlib import Path
import sys

# Add the server directory to the path for importing
server_dir = Path(__file__).parent.parent
sys.path.insert(0, str(server_dir))

from engine.suppressions import SuppressionParser, filter_suppressed_findings
from engine.types import Finding


def finding(line, issue="EmptyPublicMethod", rule="deadcode.empty_body"):
    return Finding(rule=rule, message="m", file="a.php", start_byte=0, end_byte=0,
                   severity="info", issue=issue, line=line)


CODE = """<?php
class A {
    public function a() {} // @suppress-current-line EmptyPublicMethod
    // @suppress-next-line EmptyPrivate*, EmptyProtectedMethod
    private function b() {}
    /* @suppress-next-line deadcode.empty_body */
    public function c() {}
    #[Attr] public function d() {}
    # @suppress-next-line EmptyFunction
    public function e() {}
}
"""


class TestSuppressionParser:

    def setup_method(self):
        self.parser = SuppressionParser(CODE)

    def test_current_line(self):
        assert self.parser.is_suppressed(["EmptyPublicMethod"], 3)
        assert not self.parser.is_suppressed(["EmptyPrivateMethod"], 3)

    def test_next_line_with_glob_and_list(self):
        assert self.parser.is_suppressed(["EmptyPrivateMethod"], 5)
        assert self.parser.is_suppressed(["EmptyProtectedMethod"], 5)
        assert not self.parser.is_suppressed(["EmptyPublicMethod"], 5)

    def test_rule_id_pattern(self):
        assert self.parser.is_suppressed(["EmptyPublicMethod", "deadcode.empty_body"], 7)

    def test_attribute_is_not_a_comment(self):
        assert not self.parser.is_suppressed(["EmptyPublicMethod"], 8)

    def test_hash_comment_targets_next_line(self):
        assert self.parser.is_suppressed(["EmptyFunction"], 10)
        assert not self.parser.is_suppressed(["EmptyPublicMethod"], 10)

    def test_matching_is_case_sensitive(self):
        assert not self.parser.is_suppressed(["emptypublicmethod"], 3)

    def test_stats(self):
        stats = self.parser.get_suppression_stats()

        assert stats["suppressed_lines"] == 4
        assert stats["total_suppressions"] == 5


class TestFilterSuppressedFindings:

    def test_only_matching_findings_dropped(self):
        findings = [
            finding(3),
            finding(5, issue="EmptyPrivateMethod"),
            finding(7),
            finding(8),
            finding(10),
        ]

        kept = filter_suppressed_findings(findings, CODE)

        assert [f.line for f in kept] == [8, 10]

    def test_no_directives_keeps_everything(self):
        findings = [finding(2)]
        assert filter_suppressed_findings(findings, "<?php\nfunction f() {}\n") == findings

    def test_line_derived_from_bytes(self):
        text = "<?php\n// @suppress-next-line EmptyFunction\nfunction f() {}\n"
        start = text.index("function")
        unlined = Finding(rule="deadcode.empty_body", message="m", file="a.php",
                          start_byte=start, end_byte=start + 8, severity="info", issue="EmptyFunction")

        assert filter_suppressed_findings([unlined], text) == []
