"""Tests for the tiered section extractor."""

import pytest

from statusbar_forge.tools.section_extractor import (
    SectionExtractor,
    ExtractedSections,
    extract_sections,
    split_marked_sections,
    parse_heuristic,
    FOUR_PART_MARKERS,
)


FOUR_PART_RESPONSE = """Here is your status bar.

### Regex Expression
<status>(.*?)</status>

### Tagged-Field Template
<status>
  <time>HH:MM</time>
  <date>YYYY-MM-DD</date>
</status>

### Example Body
Mira: The gates close at dusk.
<status><time>18:30</time><date>1024-03-15</date></status>

### Rendered Fragment
<div class="bar">
  $1
</div>
"""

THREE_PART_RESPONSE = """**Regex Expression:**
<status>([\\s\\S]*?)</status>

**Tagged-Field Template:**
<status><weekday>Day</weekday></status>

**Rendered Fragment:**
<span>$1</span>
"""

LEGACY_RESPONSE = """【Regex Expression】
\\[OOC:.*?\\]

【Replacement Content】
<!-- hidden -->
"""


@pytest.fixture
def extractor():
    """Create a section extractor."""
    return SectionExtractor()


class TestFourPart:
    """Tests for the strict four-section tier."""

    def test_all_fields_extracted(self, extractor):
        sections = extractor.extract(FOUR_PART_RESPONSE)
        assert sections.tier == "four_part"
        assert sections.regex_pattern == "<status>(.*?)</status>"
        assert sections.template_content == (
            "<status>\n  <time>HH:MM</time>\n  <date>YYYY-MM-DD</date>\n</status>"
        )
        assert sections.example_content == (
            "Mira: The gates close at dusk.\n"
            "<status><time>18:30</time><date>1024-03-15</date></status>"
        )
        assert sections.rendered_fragment == '<div class="bar">\n  $1\n</div>'

    def test_indentation_inside_sections_kept(self, extractor):
        """Test that only surrounding blank lines are trimmed."""
        text = "## Regex Expression\n\n   \n  a+  \n\n## Tagged-Field Template\nt\n" \
               "## Example Body\ne\n## Rendered Fragment\n\n\tX\t\n\n"
        sections = extractor.extract(text)
        assert sections.regex_pattern == "  a+  "
        assert sections.rendered_fragment == "\tX\t"

    def test_crlf_line_endings(self, extractor):
        text = FOUR_PART_RESPONSE.replace("\n", "\r\n")
        sections = extractor.extract(text)
        assert sections.tier == "four_part"
        assert sections.regex_pattern == "<status>(.*?)</status>"
        assert sections.rendered_fragment == '<div class="bar">\r\n  $1\r\n</div>'

    def test_out_of_order_markers_fall_through(self, extractor):
        """Test that misordered markers do not count as the four-part tier."""
        text = ("### Example Body\nexample\n### Regex Expression\na+\n"
                "### Tagged-Field Template\nt\n### Rendered Fragment\nX\n")
        sections = extractor.extract(text)
        assert sections.tier == "three_part"
        assert sections.regex_pattern == "a+"
        assert sections.rendered_fragment == "X"


class TestThreePart:
    """Tests for the tier without an example body."""

    def test_three_part(self, extractor):
        sections = extractor.extract(THREE_PART_RESPONSE)
        assert sections.tier == "three_part"
        assert sections.regex_pattern == "<status>([\\s\\S]*?)</status>"
        assert sections.template_content == "<status><weekday>Day</weekday></status>"
        assert sections.example_content == ""
        assert sections.rendered_fragment == "<span>$1</span>"


class TestTwoPart:
    """Tests for the legacy regex/replacement tier."""

    def test_legacy_markers(self, extractor):
        sections = extractor.extract(LEGACY_RESPONSE)
        assert sections.tier == "two_part"
        assert sections.regex_pattern == "\\[OOC:.*?\\]"
        assert sections.rendered_fragment == "<!-- hidden -->"
        assert sections.template_content == ""
        assert sections.example_content == ""

    def test_delete_sentinel(self, extractor):
        """Test that a "(delete)" replacement becomes an empty fragment."""
        text = "=== Regex Expression ===\n\\(OOC\\)\n=== Replacement Content ===\n(delete)\n"
        sections = extractor.extract(text)
        assert sections.tier == "two_part"
        assert sections.regex_pattern == "\\(OOC\\)"
        assert sections.rendered_fragment == ""


class TestHeuristic:
    """Tests for the keyword scan."""

    def test_keyword_lines(self, extractor):
        text = "Sure!\nRegex: <status>(.*?)</status>\nReplacement: <b>$1</b>\nEnjoy."
        sections = extractor.extract(text)
        assert sections.tier == "heuristic"
        assert sections.regex_pattern == "<status>(.*?)</status>"
        assert sections.rendered_fragment == "<b>$1</b>"
        assert sections.template_content == ""

    def test_first_match_wins(self):
        text = "pattern: first\npattern: second\nreplace - one\nreplace - two"
        sections = parse_heuristic(text)
        assert sections.regex_pattern == "first"
        assert sections.rendered_fragment == "one"

    def test_line_with_both_keywords_feeds_regex_only(self):
        """Test that a line matching both keyword sets is assigned once."""
        sections = parse_heuristic("Replace pattern: abc\nReplacement: xyz")
        assert sections.regex_pattern == "abc"
        assert sections.rendered_fragment == "xyz"

    def test_bullet_prefix_ignored(self):
        sections = parse_heuristic("- Pattern: \\d+\n- Replace with: N")
        assert sections.regex_pattern == "\\d+"
        assert sections.rendered_fragment == "N"

    def test_partial_result(self, extractor):
        sections = extractor.extract("The regex: a+b\nnothing else")
        assert sections.regex_pattern == "a+b"
        assert sections.rendered_fragment == ""


class TestNoMarkers:
    """Tests for responses with nothing recognisable."""

    @pytest.mark.parametrize("text", ["", None, "Just a story with no markers at all."])
    def test_empty_fields(self, extractor, text):
        sections = extractor.extract(text)
        assert sections == ExtractedSections()
        assert sections.tier == "none"
        assert sections.has_anchors is False


class TestHelpers:
    """Tests for the module helpers."""

    def test_split_first_occurrence_only(self):
        text = "# Regex Expression\none\n# Regex Expression\ntwo\n"
        sections = split_marked_sections(text, FOUR_PART_MARKERS)
        assert sections["regex expression"][1] == "one"

    def test_marker_with_inline_text_is_not_a_delimiter(self):
        sections = split_marked_sections("Regex Expression is below\nabc", FOUR_PART_MARKERS)
        assert sections == {}

    def test_extract_sections_function(self):
        assert extract_sections(LEGACY_RESPONSE).tier == "two_part"

    def test_extract_all(self, extractor):
        results = extractor.extract_all([FOUR_PART_RESPONSE, "nothing"])
        assert [r.tier for r in results] == ["four_part", "none"]

    def test_sections_are_frozen(self, extractor):
        sections = extractor.extract(FOUR_PART_RESPONSE)
        with pytest.raises(Exception):
            sections.regex_pattern = "changed"
