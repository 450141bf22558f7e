"""Regex rule tool for validating, testing, and building rewriting rules.

A rule is a pattern, a replacement and a flag string. Patterns and
replacements may span several lines and are kept exactly as entered: nothing
here trims, escapes or normalises them.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..config import Config

logger = logging.getLogger(__name__)


# Flag strings a persisted rule may carry
RULE_FLAGS = ("g", "gi", "gm", "gim")

# Rules plus the lenient mode used for previews
ACCEPTED_FLAGS = RULE_FLAGS + (Config.PREVIEW_FLAGS,)

_FLAG_BITS = {
    "g": 0,  # global: every match is always reported and replaced
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}

# $$, $&, $`, $', $<name>, $1..$99
_REFERENCE_PATTERN = re.compile(r"\$(?:(\$)|(&)|(`)|(')|<([^>]*)>|(\d{1,2}))")


class RuleScope(Enum):
    """Which content channels a rule rewrites."""
    USER_ONLY = "user-only"
    MODEL_ONLY = "model-only"
    BOTH = "both"
    ALL = "all"


SCOPE_PLACEMENT = {
    RuleScope.USER_ONLY: [1],
    RuleScope.MODEL_ONLY: [2],
    RuleScope.BOTH: [1, 2],
    RuleScope.ALL: [1, 2, 3, 5],
}


@dataclass
class RegexRule:
    """A persistable rewriting rule."""
    id: str
    name: str
    pattern: str
    replacement: str
    flags: str = "g"
    scope: RuleScope = RuleScope.BOTH
    placement: List[int] = field(default_factory=lambda: [1, 2])

    def to_dict(self) -> dict:
        data = asdict(self)
        data["scope"] = self.scope.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegexRule":
        scope = RuleScope(data.get("scope", RuleScope.BOTH.value))
        return cls(
            id=data["id"],
            name=data["name"],
            pattern=data["pattern"],
            replacement=data["replacement"],
            flags=data.get("flags", "g"),
            scope=scope,
            placement=list(data.get("placement", SCOPE_PLACEMENT[scope])),
        )


@dataclass
class MatchRecord:
    """One match found by the tester."""
    text: str
    groups: List[Optional[str]]
    named_groups: Dict[str, Optional[str]]
    start: int
    end: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MatchReport:
    """Outcome of running a pattern against sample text."""
    success: bool
    match_count: int
    matches: List[MatchRecord]
    result_text: str
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def translate_flags(flags: str) -> Optional[int]:
    """Turn a flag string such as "gim" into `re` flag bits.

    Returns None when the flag string is not one the engine accepts.
    """
    if flags not in ACCEPTED_FLAGS:
        return None
    bits = 0
    for letter in flags:
        bits |= _FLAG_BITS[letter]
    return bits


def expand_replacement(match: re.Match, replacement: str) -> str:
    """Expand $-style back-references in a replacement for one match.

    Supports $1..$99, $& (whole match), $` and $' (text before/after the
    match), $<name> and $$. Anything else, backslashes and newlines included,
    is copied literally. Groups that did not take part expand to "".
    """
    group_count = match.re.groups
    named = match.re.groupindex

    def _expand(ref: re.Match) -> str:
        dollar, whole, before, after, name, digits = ref.groups()
        if dollar:
            return "$"
        if whole:
            return match.group(0)
        if before:
            return match.string[:match.start()]
        if after:
            return match.string[match.end():]
        if name is not None:
            if name in named:
                return match.group(name) or ""
            return ref.group(0)

        # $nn prefers the two-digit group, then falls back to $n + literal digit
        if len(digits) == 2 and 1 <= int(digits) <= group_count:
            return match.group(int(digits)) or ""
        first = int(digits[0])
        if 1 <= first <= group_count:
            return (match.group(first) or "") + digits[1:]
        return ref.group(0)

    return _REFERENCE_PATTERN.sub(_expand, replacement)


class RegexRuleTool:
    """Tool for validating, testing, and building regex rewriting rules."""

    def __init__(self, max_reported_matches: int = Config.MAX_REPORTED_MATCHES):
        """Initialize the regex rule tool.

        Args:
            max_reported_matches: How many match records a report keeps.
                The match count itself is never capped.
        """
        self.name = "regex_rules"
        self.description = "Validate, test, and build regex rewriting rules"
        self.max_reported_matches = max_reported_matches

    def validate(self, pattern: str, flags: str = Config.DEFAULT_FLAGS) -> dict:
        """Validate a pattern/flags pair.

        Multi-line patterns are accepted without compiling them.

        Args:
            pattern: The regex pattern to validate
            flags: One of the accepted flag strings

        Returns:
            dict with:
                - valid: bool
                - error: Error message if invalid, else None
                - pattern: The validated pattern

        Example:
            >>> tool = RegexRuleTool()
            >>> tool.validate(r'[a-z]+')
            {'valid': True, 'error': None, 'pattern': '[a-z]+'}
            >>> tool.validate(r'[a-z')['valid']
            False
        """
        if not pattern:
            return {"valid": False, "error": "pattern required", "pattern": pattern}

        if "\n" in pattern or "\r" in pattern:
            return {"valid": True, "error": None, "pattern": pattern}

        bits = translate_flags(flags)
        if bits is None:
            return {
                "valid": False,
                "error": f"Unsupported flags: {flags!r} (expected one of {', '.join(ACCEPTED_FLAGS)})",
                "pattern": pattern
            }

        try:
            re.compile(pattern, bits)
        except re.error as e:
            return {"valid": False, "error": str(e), "pattern": pattern}

        return {"valid": True, "error": None, "pattern": pattern}

    def test(
        self,
        pattern: str,
        text: str,
        flags: str = Config.DEFAULT_FLAGS,
        replacement: Optional[str] = None
    ) -> MatchReport:
        """Run a pattern against sample text and optionally rewrite it.

        Args:
            pattern: The regex pattern to test
            text: The sample text to search
            flags: One of the accepted flag strings
            replacement: Replacement with $-style back-references. None
                leaves the text as is; "" deletes every match.

        Returns:
            MatchReport with the total match count, up to
            `max_reported_matches` match records and the rewritten text.

        Example:
            >>> report = RegexRuleTool().test('a+', 'aaa bb aaaa', replacement='X')
            >>> report.match_count, report.result_text
            (2, 'X bb X')
        """
        text = text or ""
        if pattern is None:
            return self._failed_report(text, "pattern required")

        bits = translate_flags(flags)
        if bits is None:
            return self._failed_report(text, f"Unsupported flags: {flags!r}")

        try:
            compiled = re.compile(pattern, bits)
        except re.error as e:
            return self._failed_report(text, f"Invalid pattern: {e}")

        match_count = 0
        matches = []
        for match in compiled.finditer(text):
            match_count += 1
            if len(matches) < self.max_reported_matches:
                matches.append(MatchRecord(
                    text=match.group(),
                    groups=list(match.groups()),
                    named_groups=match.groupdict(),
                    start=match.start(),
                    end=match.end()
                ))

        result_text = text
        if replacement is not None and match_count:
            result_text = compiled.sub(lambda m: expand_replacement(m, replacement), text)

        logger.debug(f"Pattern {pattern!r} ({flags}) matched {match_count} time(s)")
        return MatchReport(
            success=True,
            match_count=match_count,
            matches=matches,
            result_text=result_text
        )

    def build_rule(
        self,
        name: Optional[str],
        pattern: Optional[str],
        replacement: Optional[str],
        scope: Union[RuleScope, str] = RuleScope.BOTH,
        flags: str = Config.DEFAULT_FLAGS
    ) -> dict:
        """Assemble a persistable rule from user input.

        Empty strings are accepted; only a missing (None) field is an error.
        The pattern is not validated here, call validate() first.

        Returns:
            dict with success and either `rule` (RegexRule) or `error`
            plus `missing_field`.
        """
        for field_name, value in (("name", name), ("pattern", pattern), ("replacement", replacement)):
            if value is None:
                return {
                    "success": False,
                    "error": f"{field_name} is missing",
                    "missing_field": field_name
                }

        try:
            scope = RuleScope(scope)
        except ValueError:
            return {
                "success": False,
                "error": f"Unknown scope: {scope!r} (expected one of {', '.join(s.value for s in RuleScope)})"
            }

        if flags not in RULE_FLAGS:
            return {"success": False, "error": f"Unsupported flags: {flags!r}"}

        rule = RegexRule(
            id=uuid.uuid4().hex,
            name=name,
            pattern=pattern,
            replacement=replacement,
            flags=flags,
            scope=scope,
            placement=list(SCOPE_PLACEMENT[scope])
        )
        return {"success": True, "rule": rule}

    def execute(self, action: str, **kwargs) -> dict:
        """Execute a regex rule action.

        Args:
            action: validate, test, or build
            **kwargs: Arguments for the chosen action

        Returns:
            dict with action result
        """
        action_lower = action.lower()

        if "validate" in action_lower or "check" in action_lower:
            return self.validate(kwargs.get("pattern", ""), kwargs.get("flags", Config.DEFAULT_FLAGS))

        if "test" in action_lower or "try" in action_lower:
            report = self.test(
                kwargs.get("pattern", ""),
                kwargs.get("text", ""),
                kwargs.get("flags", Config.DEFAULT_FLAGS),
                kwargs.get("replacement")
            )
            return report.to_dict()

        if "build" in action_lower or "create" in action_lower:
            result = self.build_rule(
                kwargs.get("name"),
                kwargs.get("pattern"),
                kwargs.get("replacement"),
                kwargs.get("scope", RuleScope.BOTH),
                kwargs.get("flags", Config.DEFAULT_FLAGS)
            )
            if result.get("success"):
                result["rule"] = result["rule"].to_dict()
            return result

        return {"success": False, "error": f"Unknown action: {action}"}

    def _failed_report(self, text: str, error: str) -> MatchReport:
        return MatchReport(success=False, match_count=0, matches=[], result_text=text, error=error)


# Singleton instance for easy import
regex_rule_tool = RegexRuleTool()
