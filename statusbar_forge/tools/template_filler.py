"""Fills a tagged-field template with the current status values.

Templates use {field} placeholders plus conditional blocks:

    {if-show:health:<:20}<b>Critical!</b>{/if-show}
    {if-hide:mood:==:calm}Mood: {mood}{/if-hide}

A condition is field:operator:value with one of >, <, >=, <=, ==, !=.
"""

import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][\w-]*)\}")
_IF_SHOW = re.compile(r"\{if-show:([^}]+)\}(.*?)\{/if-show\}", re.DOTALL)
_IF_HIDE = re.compile(r"\{if-hide:([^}]+)\}(.*?)\{/if-hide\}", re.DOTALL)
_CONDITION = re.compile(r"^([^:]+):(>=|<=|==|!=|>|<):(.*)$")

_ORDERING = {
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
}


def _as_number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def evaluate_condition(condition: str, state: Dict[str, Any]) -> bool:
    """Evaluate field:operator:value against state.

    Missing fields, malformed conditions and non-numeric operands of an
    ordering operator are all false.
    """
    match = _CONDITION.match(condition.strip())
    if not match:
        logger.debug(f"Malformed condition: {condition!r}")
        return False

    field_name, operator, expected = match.group(1).strip(), match.group(2), match.group(3).strip()
    if field_name not in state:
        return False
    current = state[field_name]

    if operator in _ORDERING:
        left, right = _as_number(current), _as_number(expected)
        if left is None or right is None:
            return False
        return _ORDERING[operator](left, right)

    # == and != compare numerically when both sides are numbers
    left, right = _as_number(current), _as_number(expected)
    equal = left == right if left is not None and right is not None else str(current) == expected
    return equal if operator == "==" else not equal


class TemplateFiller:
    """Resolves conditional blocks and placeholders in a template."""

    def fill(self, template: str, state: Dict[str, Any]) -> str:
        """Fill a template from a state mapping.

        Conditional blocks are resolved first, then placeholders. Unknown
        placeholders are left as they are.
        """
        if not template:
            return ""

        filled = _IF_SHOW.sub(
            lambda m: m.group(2) if evaluate_condition(m.group(1), state) else "",
            template
        )
        filled = _IF_HIDE.sub(
            lambda m: "" if evaluate_condition(m.group(1), state) else m.group(2),
            filled
        )
        return _PLACEHOLDER.sub(
            lambda m: str(state[m.group(1)]) if m.group(1) in state else m.group(0),
            filled
        )

    def placeholders(self, template: str) -> list:
        """Field names referenced by a template, in first-use order."""
        seen = []
        for name in _PLACEHOLDER.findall(template or ""):
            if name not in seen:
                seen.append(name)
        return seen
