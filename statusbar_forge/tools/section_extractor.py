"""Section extraction for model responses.

The model is asked to answer with four marked sections (regex expression,
tagged-field template, example body, rendered fragment) but often does not
follow the format exactly. Parsing degrades through a fixed list of tiers:

    four_part  -> all four markers, in order
    three_part -> no example-body marker
    two_part   -> legacy "regex expression" / "replacement content" pair
    heuristic  -> keyword scan, one line per field

The first tier that fills both anchor fields (regex pattern and rendered
fragment) wins. Nothing here raises on malformed input; missing fields are
empty strings.
"""

import logging
import re
from dataclasses import dataclass, asdict
from typing import Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


REGEX_EXPRESSION = "regex expression"
TAGGED_FIELD_TEMPLATE = "tagged-field template"
EXAMPLE_BODY = "example body"
RENDERED_FRAGMENT = "rendered fragment"
REPLACEMENT_CONTENT = "replacement content"

FOUR_PART_MARKERS = (REGEX_EXPRESSION, TAGGED_FIELD_TEMPLATE, EXAMPLE_BODY, RENDERED_FRAGMENT)
THREE_PART_MARKERS = (REGEX_EXPRESSION, TAGGED_FIELD_TEMPLATE, RENDERED_FRAGMENT)
TWO_PART_MARKERS = (REGEX_EXPRESSION, REPLACEMENT_CONTENT)

# Legacy replacement body meaning "replace with nothing"
DELETE_SENTINELS = ("(delete)", "（delete）")

REGEX_KEYWORDS = ("regex", "pattern")
REPLACE_KEYWORDS = ("replace",)

_SEPARATOR = re.compile(r"[:：\-]")
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


@dataclass(frozen=True)
class ExtractedSections:
    """Named sections pulled out of one model response."""
    regex_pattern: str = ""
    template_content: str = ""
    example_content: str = ""
    rendered_fragment: str = ""
    tier: str = "none"

    @property
    def has_anchors(self) -> bool:
        return bool(self.regex_pattern and self.rendered_fragment)

    def to_dict(self) -> dict:
        return asdict(self)


def _marker_pattern(names: Sequence[str]) -> re.Pattern:
    """Build the delimiter-line pattern for a marker vocabulary.

    A delimiter line holds only the marker name, optionally decorated with
    heading hashes, bold asterisks, brackets, rules, numbering and a colon.
    """
    alternatives = "|".join(
        r"[ \t]+".join(re.escape(word) for word in name.split())
        for name in names
    )
    # Each decoration is optional and appears at most once, in a fixed order
    return re.compile(
        r"^[ \t]*(?:\#{1,6}[ \t]*)?(?:\d+[.)][ \t]*)?(?:[=\-]{2,}[ \t]*)?"
        r"(?:\*\*[ \t]*)?(?:[\[【][ \t]*)?"
        rf"(?P<name>{alternatives})"
        r"(?:[ \t]*[\]】])?(?:[ \t]*\*\*)?(?:[ \t]*[:：])?(?:[ \t]*\*\*)?(?:[ \t]*[=\-]{2,})?"
        r"[ \t]*\r?$",
        re.IGNORECASE | re.MULTILINE
    )


def _trim_blank_lines(body: str) -> str:
    """Drop leading and trailing blank lines, leaving content lines untouched."""
    lines = body.splitlines(keepends=True)
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return ""
    lines[-1] = lines[-1].rstrip("\r\n")
    return "".join(lines)


def split_marked_sections(text: str, names: Sequence[str]) -> Dict[str, Tuple[int, str]]:
    """Split text on delimiter lines for the given marker names.

    Each section runs from its marker line to the next marker line of the
    same vocabulary, or the end of text. Only the first occurrence of each
    marker counts.

    Returns:
        Mapping of marker name -> (marker offset, trimmed content)
    """
    found = list(_marker_pattern(names).finditer(text))
    sections: Dict[str, Tuple[int, str]] = {}
    for position, match in enumerate(found):
        name = " ".join(match.group("name").lower().split())
        if name in sections:
            continue
        end = found[position + 1].start() if position + 1 < len(found) else len(text)
        sections[name] = (match.start(), _trim_blank_lines(text[match.end():end]))
    return sections


def _in_order(sections: Dict[str, Tuple[int, str]], names: Sequence[str]) -> bool:
    offsets = [sections[name][0] for name in names]
    return offsets == sorted(offsets)


def parse_four_part(text: str) -> Optional[ExtractedSections]:
    sections = split_marked_sections(text, FOUR_PART_MARKERS)
    if len(sections) < len(FOUR_PART_MARKERS) or not _in_order(sections, FOUR_PART_MARKERS):
        return None
    return ExtractedSections(
        regex_pattern=sections[REGEX_EXPRESSION][1],
        template_content=sections[TAGGED_FIELD_TEMPLATE][1],
        example_content=sections[EXAMPLE_BODY][1],
        rendered_fragment=sections[RENDERED_FRAGMENT][1],
        tier="four_part"
    )


def parse_three_part(text: str) -> Optional[ExtractedSections]:
    sections = split_marked_sections(text, THREE_PART_MARKERS)
    if REGEX_EXPRESSION not in sections or RENDERED_FRAGMENT not in sections:
        return None
    return ExtractedSections(
        regex_pattern=sections[REGEX_EXPRESSION][1],
        template_content=sections.get(TAGGED_FIELD_TEMPLATE, (0, ""))[1],
        rendered_fragment=sections[RENDERED_FRAGMENT][1],
        tier="three_part"
    )


def parse_two_part(text: str) -> Optional[ExtractedSections]:
    """Legacy format: regex expression plus replacement content."""
    sections = split_marked_sections(text, TWO_PART_MARKERS)
    if REGEX_EXPRESSION not in sections or REPLACEMENT_CONTENT not in sections:
        return None

    regex_pattern = sections[REGEX_EXPRESSION][1]
    replacement = sections[REPLACEMENT_CONTENT][1]
    if not regex_pattern or not replacement:
        return None

    # A "(delete)" body still counts as found; it just rewrites to nothing
    if replacement.strip().lower() in DELETE_SENTINELS:
        replacement = ""
    return ExtractedSections(regex_pattern=regex_pattern, rendered_fragment=replacement, tier="two_part")


def _value_after_separator(line: str) -> str:
    line = _BULLET.sub("", line, count=1)
    separator = _SEPARATOR.search(line)
    if not separator:
        return ""
    return line[separator.end():].strip()


def parse_heuristic(text: str) -> ExtractedSections:
    """Keyword scan: first regex-ish line and first replace-ish line.

    A line is checked for regex keywords first and feeds at most one field;
    each field is assigned at most once.
    """
    regex_pattern = ""
    rendered_fragment = ""

    for line in text.splitlines():
        line_lower = line.lower()
        if not regex_pattern and any(kw in line_lower for kw in REGEX_KEYWORDS):
            value = _value_after_separator(line)
            if value:
                regex_pattern = value
                continue
        if not rendered_fragment and any(kw in line_lower for kw in REPLACE_KEYWORDS):
            rendered_fragment = _value_after_separator(line)
        if regex_pattern and rendered_fragment:
            break

    if not regex_pattern and not rendered_fragment:
        return ExtractedSections()
    return ExtractedSections(
        regex_pattern=regex_pattern,
        rendered_fragment=rendered_fragment,
        tier="heuristic"
    )


# Delimiter-based tiers, strictest first
MARKED_TIERS: Tuple[Callable[[str], Optional[ExtractedSections]], ...] = (
    parse_four_part,
    parse_three_part,
    parse_two_part,
)


class SectionExtractor:
    """Splits a free-form model response into named sections."""

    def __init__(self, tiers: Sequence[Callable[[str], Optional[ExtractedSections]]] = MARKED_TIERS):
        self.tiers = tuple(tiers)

    def extract(self, text: Optional[str]) -> ExtractedSections:
        """Extract sections, degrading from strict markers to a keyword scan.

        Args:
            text: Raw model response

        Returns:
            ExtractedSections; fields that no tier found are "".
        """
        if not text:
            return ExtractedSections()

        for parse in self.tiers:
            sections = parse(text)
            if sections is not None and sections.has_anchors:
                logger.debug(f"Sections extracted with tier {sections.tier}")
                return sections
            if sections is not None and sections.tier == "two_part":
                # A deleting legacy rule is complete with an empty replacement
                return sections

        sections = parse_heuristic(text)
        if sections.tier == "none":
            logger.warning("No section markers or keywords found in response")
        else:
            logger.warning(f"Fell back to keyword scan (regex={bool(sections.regex_pattern)}, "
                           f"fragment={bool(sections.rendered_fragment)})")
        return sections

    def extract_all(self, texts: List[str]) -> List[ExtractedSections]:
        """Extract sections from several responses."""
        return [self.extract(text) for text in texts]


def extract_sections(text: Optional[str]) -> ExtractedSections:
    """Convenience function for one-off extraction."""
    return SectionExtractor().extract(text)
