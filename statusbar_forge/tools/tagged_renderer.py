"""Tagged-field rendering for status bar fragments.

Finds the known inline tags in a fragment and turns them into display
items. The vocabulary is closed: <time>, <date>, <weekday> and numbered
<option-N> tags. When none of them is present the fragment is handed back
untouched so the caller never shows an empty status bar.
"""

import html
import logging
import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class TaggedFieldKind(Enum):
    """Kinds of inline tag the renderer understands."""
    TIME = "time"
    DATE = "date"
    WEEKDAY = "weekday"
    OPTION = "option"  # indexed: <option-1>, <option-2>, ...


# Single-occurrence kinds, in the order they are looked up
SINGLE_KINDS = (TaggedFieldKind.TIME, TaggedFieldKind.DATE, TaggedFieldKind.WEEKDAY)

_SINGLE_PATTERNS = {
    kind: re.compile(rf"<{kind.value}>(.*?)</{kind.value}>", re.IGNORECASE | re.DOTALL)
    for kind in SINGLE_KINDS
}
_OPTION_PATTERN = re.compile(r"<option-?(\d+)>(.*?)</option-?\1>", re.IGNORECASE | re.DOTALL)


def escape_text(text: str) -> str:
    """Escape text for embedding in markup as element content."""
    return html.escape(text, quote=False)


@dataclass
class TaggedItem:
    """One recognised tag."""
    kind: TaggedFieldKind
    text: str
    index: Optional[int] = None  # options only

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "text": self.text, "index": self.index}


@dataclass
class TaggedFragment:
    """Recognised items, or the raw fragment when nothing was recognised."""
    items: List[TaggedItem] = field(default_factory=list)
    has_recognized_items: bool = False
    raw_fallback_text: Optional[str] = None

    @property
    def options(self) -> List[TaggedItem]:
        return [item for item in self.items if item.kind is TaggedFieldKind.OPTION]

    def get(self, kind: TaggedFieldKind) -> Optional[TaggedItem]:
        """First item of a kind, or None."""
        for item in self.items:
            if item.kind is kind:
                return item
        return None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["items"] = [item.to_dict() for item in self.items]
        return data


class TaggedFieldRenderer:
    """Turns a tagged fragment into display items."""

    def render(self, text: Optional[str]) -> TaggedFragment:
        """Render the known tags found in text.

        Args:
            text: Section text, usually a rendered fragment or the output of
                applying a rule

        Returns:
            TaggedFragment with items in lookup order (time, date, weekday,
            then options in document order), or the fallback state.
        """
        text = text or ""
        items = []

        for kind in SINGLE_KINDS:
            match = _SINGLE_PATTERNS[kind].search(text)
            if match:
                items.append(TaggedItem(kind=kind, text=escape_text(match.group(1).strip())))

        for match in _OPTION_PATTERN.finditer(text):
            items.append(TaggedItem(
                kind=TaggedFieldKind.OPTION,
                text=escape_text(match.group(2).strip()),
                index=int(match.group(1))
            ))

        if not items:
            logger.debug("No known tags found, returning raw fragment")
            return TaggedFragment(items=[], has_recognized_items=False, raw_fallback_text=text)

        return TaggedFragment(items=items, has_recognized_items=True, raw_fallback_text=None)


def render_tagged_fragment(text: Optional[str]) -> TaggedFragment:
    """Convenience function for one-off rendering."""
    return TaggedFieldRenderer().render(text)
