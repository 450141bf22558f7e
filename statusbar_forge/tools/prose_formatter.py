"""Line formatting for the prose left around a status bar."""

import re
from dataclasses import dataclass, asdict
from typing import List, Optional

from .tagged_renderer import escape_text

# ASCII and full-width colon
_SPEAKER_SEPARATOR = re.compile(r"[:：]")


@dataclass
class ProseLine:
    type: str  # blank, dialogue, text
    speaker: Optional[str] = None
    utterance: Optional[str] = None
    content: Optional[str] = None

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}


class ProseFormatter:
    """Splits prose into blank, dialogue and plain text lines."""

    def format_line(self, line: str) -> ProseLine:
        if not line.strip():
            return ProseLine(type="blank")

        parts = _SPEAKER_SEPARATOR.split(line, maxsplit=1)
        if len(parts) == 2:
            speaker, utterance = parts[0].strip(), parts[1].strip()
            if speaker and utterance:
                return ProseLine(
                    type="dialogue",
                    speaker=escape_text(speaker),
                    utterance=escape_text(utterance)
                )

        return ProseLine(type="text", content=escape_text(line.strip()))

    def format(self, text: Optional[str]) -> List[ProseLine]:
        """Format every line of text, keeping blank lines as separators."""
        if not text:
            return []
        return [self.format_line(line) for line in text.splitlines()]


def format_prose(text: Optional[str]) -> List[ProseLine]:
    return ProseFormatter().format(text)
