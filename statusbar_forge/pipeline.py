"""Rule preview pipeline: apply a rule to sample text and show the result.

validate -> test (lenient flags) -> lift the <status> section out of the
result -> render its tags -> format the remaining prose -> before/after.
"""

import difflib
import logging
import random
import re
from typing import Optional, Sequence

from .config import Config
from .tools.prose_formatter import ProseFormatter
from .tools.regex_builder import RegexRuleTool
from .tools.tagged_renderer import TaggedFieldRenderer

logger = logging.getLogger(__name__)


STATUS_SECTION = re.compile(r"<status>(.*?)</status>", re.IGNORECASE | re.DOTALL)

DEMO_TEXTS = (
    "The rain had not stopped since dusk.\n"
    "Mira: We should wait it out here.\n"
    "Kael: And lose another night? No.\n"
    "<status><time>21:40</time><date>1024-03-15</date><weekday>Tuesday</weekday>"
    "<option-1>Stay at the inn</option-1><option-2>Leave at once</option-2></status>",

    "<status>\n<time>07:15</time>\n<date>2024-06-01</date>\n<weekday>Saturday</weekday>\n</status>\n"
    "Sunlight crept across the market square.\n"
    "Merchant: Fresh bread! Two coins a loaf!\n"
    "\n"
    "You count the coins left in your purse.",

    "Narrator: The duel is about to begin.\n"
    "Aria: Ready when you are.\n"
    "<status><time>12:00</time>\n"
    "<option-1>Draw your sword</option-1>\n"
    "<option-2>Offer a truce</option-2>\n"
    "<option-3>Walk away</option-3></status>",
)


class RulePreviewPipeline:
    """Applies a rule to sample text and prepares a before/after preview."""

    def __init__(
        self,
        regex_tool: Optional[RegexRuleTool] = None,
        renderer: Optional[TaggedFieldRenderer] = None,
        formatter: Optional[ProseFormatter] = None,
        demo_texts: Sequence[str] = DEMO_TEXTS,
        seed: Optional[int] = None,
        flags: str = Config.PREVIEW_FLAGS
    ):
        self.regex_tool = regex_tool or RegexRuleTool()
        self.renderer = renderer or TaggedFieldRenderer()
        self.formatter = formatter or ProseFormatter()
        self.demo_texts = tuple(demo_texts)
        self.flags = flags
        self._random = random.Random(seed)

    def pick_sample(self) -> str:
        """Pick one of the built-in demo texts."""
        return self._random.choice(self.demo_texts)

    def preview(self, pattern: str, replacement: str, sample_text: Optional[str] = None) -> dict:
        """Apply pattern/replacement to a sample and render the outcome.

        Args:
            pattern: Rule pattern (may span lines)
            replacement: Rule replacement with $-style back-references
            sample_text: Text to rewrite; a demo text is used when None

        Returns:
            dict with:
                - success: bool
                - error: Reason, when the pattern is invalid
                - tagged: TaggedFragment for the <status> section
                - prose: list of ProseLine for the rest of the text
                - before / after: Original and rewritten text
                - match_count: Number of matches
                - changed: Whether the rule altered the text
                - diff: Unified diff lines of before/after
        """
        validation = self.regex_tool.validate(pattern, self.flags)
        if not validation["valid"]:
            return {"success": False, "error": f"Invalid pattern: {validation['error']}"}

        before = sample_text if sample_text is not None else self.pick_sample()
        report = self.regex_tool.test(pattern, before, self.flags, replacement)
        if not report.success:
            return {"success": False, "error": report.error}

        after = report.result_text
        section = STATUS_SECTION.search(after)
        if section:
            tagged = self.renderer.render(section.group(1))
            remainder = after[:section.start()] + after[section.end():]
        else:
            tagged = self.renderer.render(after)
            remainder = after

        logger.info(f"Preview: {report.match_count} match(es), status section {'found' if section else 'absent'}")
        return {
            "success": True,
            "tagged": tagged,
            "prose": self.formatter.format(remainder.strip("\r\n")),
            "before": before,
            "after": after,
            "match_count": report.match_count,
            "changed": before != after,
            "diff": list(difflib.unified_diff(
                before.splitlines(), after.splitlines(),
                fromfile="before", tofile="after", lineterm=""
            )),
        }


def preview_rule(pattern: str, replacement: str, sample_text: Optional[str] = None) -> dict:
    """Convenience function for a one-off preview."""
    return RulePreviewPipeline().preview(pattern, replacement, sample_text)
