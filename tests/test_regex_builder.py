"""Tests for the regex rule tool (validate, test, build_rule)."""

import pytest

from statusbar_forge.tools.regex_builder import (
    RegexRuleTool,
    RegexRule,
    RuleScope,
    MatchReport,
    RULE_FLAGS,
    translate_flags,
)


@pytest.fixture
def tool():
    """Create a regex rule tool."""
    return RegexRuleTool()


class TestValidate:
    """Tests for RegexRuleTool.validate."""

    def test_empty_pattern_is_invalid(self, tool):
        """Test that an empty pattern is rejected."""
        result = tool.validate("")
        assert result["valid"] is False
        assert result["error"] == "pattern required"

    def test_valid_pattern(self, tool):
        """Test a simple valid pattern."""
        result = tool.validate(r"[a-z]+\d{2}")
        assert result["valid"] is True
        assert result["error"] is None

    def test_invalid_pattern_reports_compiler_message(self, tool):
        """Test that the compiler's message is passed through."""
        result = tool.validate("[a-z")
        assert result["valid"] is False
        assert "unterminated character set" in result["error"]

    @pytest.mark.parametrize("flags", RULE_FLAGS)
    def test_validity_follows_compilation(self, tool, flags):
        """Test validity matches compilation for every rule flag set."""
        assert tool.validate("(?P<x>a)b", flags)["valid"] is True
        assert tool.validate("(unclosed", flags)["valid"] is False

    def test_multiline_pattern_is_always_valid(self, tool):
        """Test that patterns with line breaks skip compilation."""
        result = tool.validate("<status>\n(unclosed", "g")
        assert result["valid"] is True
        assert result["error"] is None

    def test_carriage_return_counts_as_line_break(self, tool):
        """Test that \\r alone also marks a multi-line pattern."""
        assert tool.validate("[\r", "gi")["valid"] is True

    def test_unsupported_flags(self, tool):
        """Test that flags outside the accepted set are rejected."""
        result = tool.validate("abc", "gx")
        assert result["valid"] is False
        assert "gx" in result["error"]

    def test_validate_is_idempotent(self, tool):
        """Test that validating twice gives identical output."""
        assert tool.validate("(a|b", "gm") == tool.validate("(a|b", "gm")
        assert tool.validate("a|b", "gm") == tool.validate("a|b", "gm")


class TestTranslateFlags:
    """Tests for flag translation."""

    def test_global_only(self):
        assert translate_flags("g") == 0

    def test_preview_flags_accepted(self):
        import re
        assert translate_flags("gms") == re.MULTILINE | re.DOTALL

    def test_unknown_flags(self):
        assert translate_flags("gs") is None


class TestTest:
    """Tests for RegexRuleTool.test."""

    def test_count_and_replace(self, tool):
        """Test the basic count-and-replace scenario."""
        report = tool.test("a+", "aaa bb aaaa", "g", "X")
        assert isinstance(report, MatchReport)
        assert report.success is True
        assert report.match_count == 2
        assert report.result_text == "X bb X"
        assert [m.text for m in report.matches] == ["aaa", "aaaa"]
        assert (report.matches[1].start, report.matches[1].end) == (7, 11)

    def test_matches_truncated_to_ten(self, tool):
        """Test that only ten match records are kept while the count is exact."""
        text = " ".join(str(n) for n in range(25))
        report = tool.test(r"\d+", text)
        assert report.match_count == 25
        assert len(report.matches) == 10

    def test_compile_error(self, tool):
        """Test that a compile error becomes a failed report."""
        report = tool.test("(abc", "abc abc", "g", "X")
        assert report.success is False
        assert report.match_count == 0
        assert report.matches == []
        assert report.result_text == "abc abc"
        assert report.error.startswith("Invalid pattern:")

    def test_no_replacement_leaves_text(self, tool):
        """Test that an omitted replacement means no rewrite."""
        report = tool.test("b", "abc")
        assert report.match_count == 1
        assert report.result_text == "abc"

    def test_empty_replacement_deletes_matches(self, tool):
        """Test that an empty replacement removes every match."""
        report = tool.test("b+", "abbc b", "g", "")
        assert report.match_count == 2
        assert report.result_text == "ac "

    def test_no_match_leaves_text(self, tool):
        report = tool.test("z", "abc", replacement="Q")
        assert report.match_count == 0
        assert report.result_text == "abc"

    def test_case_insensitive_flag(self, tool):
        assert tool.test("abc", "ABC abc", "g").match_count == 1
        assert tool.test("abc", "ABC abc", "gi").match_count == 2

    def test_multiline_flag(self, tool):
        text = "one\ntwo\nthree"
        assert tool.test("^t", text, "g").match_count == 0
        assert tool.test("^t", text, "gm").match_count == 2

    def test_captured_groups(self, tool):
        """Test that groups and named groups are reported."""
        report = tool.test(r"(?P<h>\d{2}):(\d{2})", "at 09:30 and 18:05")
        assert report.matches[0].groups == ["09", "30"]
        assert report.matches[0].named_groups == {"h": "09"}

    def test_dollar_references(self, tool):
        """Test $-style group references in the replacement."""
        report = tool.test(r"(\w+)@(\w+)", "me@home", replacement="$2 <- $1 ($&) $$")
        assert report.result_text == "home <- me (me@home) $"

    def test_named_reference(self, tool):
        report = tool.test(r"<time>(?P<t>[^<]*)</time>", "<time>12:00</time>", replacement="[$<t>]")
        assert report.result_text == "[12:00]"

    def test_two_digit_reference_falls_back(self, tool):
        """Test that $10 with one group means group 1 followed by '0'."""
        report = tool.test(r"(a)", "a", replacement="$10")
        assert report.result_text == "a0"

    def test_unknown_reference_kept(self, tool):
        report = tool.test(r"a", "a", replacement="$3")
        assert report.result_text == "$3"

    def test_multiline_replacement_preserved(self, tool):
        """Test that newlines, indentation and backslashes survive replacement."""
        replacement = "  <div>\n\t$1\\n\n  </div>\n"
        report = tool.test(r"\[(\w+)\]", "x [hp] y", replacement=replacement)
        assert report.result_text == "x   <div>\n\thp\\n\n  </div>\n y"

    def test_deterministic(self, tool):
        """Test that repeated runs give identical results."""
        first = tool.test(r"(o+)", "foo boo zoo", "gi", "<$1>")
        second = tool.test(r"(o+)", "foo boo zoo", "gi", "<$1>")
        assert first == second


class TestBuildRule:
    """Tests for RegexRuleTool.build_rule."""

    @pytest.mark.parametrize("scope,placement", [
        ("user-only", [1]),
        ("model-only", [2]),
        ("both", [1, 2]),
        ("all", [1, 2, 3, 5]),
    ])
    def test_scope_placement(self, tool, scope, placement):
        result = tool.build_rule("name", "p", "r", scope)
        assert result["success"] is True
        assert result["rule"].placement == placement
        assert result["rule"].scope is RuleScope(scope)

    def test_default_scope_is_both(self, tool):
        rule = tool.build_rule("name", "p", "r")["rule"]
        assert rule.scope is RuleScope.BOTH
        assert rule.placement == [1, 2]

    def test_pattern_and_replacement_kept_exactly(self, tool):
        """Test that whitespace and newlines are stored untouched."""
        pattern = "  <status>\n(.*?)\n</status>  "
        replacement = "\n\t<b>$1</b>  \n"
        rule = tool.build_rule("  spaced  ", pattern, replacement)["rule"]
        assert rule.pattern == pattern
        assert rule.replacement == replacement
        assert rule.name == "  spaced  "

    def test_empty_strings_are_accepted(self, tool):
        result = tool.build_rule("", "", "")
        assert result["success"] is True

    @pytest.mark.parametrize("missing", ["name", "pattern", "replacement"])
    def test_missing_field(self, tool, missing):
        """Test that a None field is reported distinctly from an empty one."""
        values = {"name": "n", "pattern": "p", "replacement": "r"}
        values[missing] = None
        result = tool.build_rule(**values)
        assert result["success"] is False
        assert result["missing_field"] == missing
        assert missing in result["error"]

    def test_unknown_scope(self, tool):
        result = tool.build_rule("n", "p", "r", "everyone")
        assert result["success"] is False
        assert "everyone" in result["error"]

    def test_ids_are_unique(self, tool):
        ids = {tool.build_rule("n", "p", "r")["rule"].id for _ in range(50)}
        assert len(ids) == 50

    def test_round_trip_through_dict(self, tool):
        rule = tool.build_rule("n", "a\nb", " r ", "all", "gim")["rule"]
        data = rule.to_dict()
        assert data["scope"] == "all"
        assert RegexRule.from_dict(data) == rule


class TestExecute:
    """Tests for action dispatch."""

    def test_execute_validate(self, tool):
        assert tool.execute("validate", pattern="a+")["valid"] is True

    def test_execute_test(self, tool):
        result = tool.execute("test", pattern="a", text="aa", replacement="b")
        assert result["match_count"] == 2
        assert result["result_text"] == "bb"

    def test_execute_test_empty_replacement(self, tool):
        result = tool.execute("test", pattern="b+", text="abbc", replacement="")
        assert result["result_text"] == "ac"

    def test_execute_test_without_replacement(self, tool):
        result = tool.execute("test", pattern="b+", text="abbc")
        assert result["result_text"] == "abbc"

    def test_execute_build(self, tool):
        result = tool.execute("build", name="n", pattern="p", replacement="r", scope="all")
        assert result["rule"]["placement"] == [1, 2, 3, 5]

    def test_execute_unknown(self, tool):
        result = tool.execute("unknown_action_xyz")
        assert result.get("success") is False
        assert "error" in result
