"""Parser for status-change commands written into model replies.

The story model can change the status bar state with short commands:

    +strength:5        increase          %enable:magic_shield
    -health:10         decrease          %disable:poison
    =level:15          set               %show:hidden_stats
    =name:"Aria"       set text          %hide:debug_info
    !temporary_buff    delete
    ?>health:50:+regeneration:1          conditional (also ?< and ?=)

Like section extraction, parsing degrades through a fixed list of tiers and
the first tier that yields any command wins:

    hidden   -> commands inside <!-- STQSB: ... --> comments
    explicit -> commands written anywhere in the reply
    natural  -> trigger phrases ("attacked", "rested", ...) mapped to effects

Conditional commands are then resolved against the current state.
"""

import logging
import math
import re
from dataclasses import dataclass, asdict
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Tuple, Union

from .template_filler import evaluate_condition

logger = logging.getLogger(__name__)


class CommandType(Enum):
    """Kinds of status commands."""
    INCREASE = "increase"
    DECREASE = "decrease"
    SET = "set"
    SET_TEXT = "set_text"
    DELETE = "delete"
    ENABLE = "enable"
    DISABLE = "disable"
    SHOW = "show"
    HIDE = "hide"
    CONDITIONAL = "conditional"


NUMERIC_TYPES = (CommandType.INCREASE, CommandType.DECREASE, CommandType.SET)

_FIELD = r"[A-Za-z_]\w*"
_NUMBER = r"[+-]?\d+(?:\.\d+)?"

# Alternatives are tried left to right at each position, so a conditional
# swallows its own effect before the effect can be read as a command
_COMMAND = re.compile(
    r"(?<!\w)(?:"
    rf"\?(?P<cond_op>[<>=])(?P<cond_field>{_FIELD}):(?P<cond_value>[^:\s]+):(?P<effect>\S+)"
    rf"|%(?P<toggle>enable|disable|show|hide):(?P<toggle_field>{_FIELD})"
    rf"|=(?P<text_field>{_FIELD}):\"(?P<text>[^\"]+)\""
    rf"|(?P<op>[+\-=])(?P<field>{_FIELD}):(?P<number>{_NUMBER})"
    rf"|!(?P<delete_field>{_FIELD})"
    r")",
    re.IGNORECASE
)

_EFFECT = re.compile(rf"([+\-=])({_FIELD}):({_NUMBER})")
_HIDDEN_BLOCK = re.compile(r"<!--\s*STQSB:(.*?)\s*-->", re.DOTALL)

_OPERATOR_TYPES = {"+": CommandType.INCREASE, "-": CommandType.DECREASE, "=": CommandType.SET}
_CONDITIONS = {">": "greater", "<": "less", "=": "equal"}
_CONDITION_OPERATORS = {"greater": ">", "less": "<", "equal": "=="}


def _triggers(*entries: Tuple[str, str]) -> List[Tuple[Pattern, str]]:
    return [(re.compile(trigger, re.IGNORECASE), effect) for trigger, effect in entries]


# Trigger phrase -> effect string, by category
NATURAL_TRIGGERS: Dict[str, List[Tuple[Pattern, str]]] = {
    "combat": _triggers(
        (r"\b(?:attack(?:s|ed|ing)?|fight(?:s|ing)?|fought|strikes?|struck)\b|攻击|战斗|打击|击中",
         "+fatigue:5,-mana:10"),
        (r"\b(?:wounded|injured|takes? damage|took damage)\b|受伤|受到.*?伤害|被.*?攻击",
         "-health:15,+pain:10"),
        (r"\b(?:victory|victorious|slain|won the (?:fight|battle|duel))\b|击败|胜利|打败|成功击杀",
         "+experience:20,+confidence:5"),
        (r"\b(?:lost the (?:fight|battle|duel)|retreat(?:s|ed)?)\b|失败|败北|被击败",
         "-confidence:5,+fatigue:10"),
        (r"\b(?:critical hit|fatal blow|perfect strike)\b|暴击|致命一击|完美命中",
         "+confidence:10,+experience:5"),
    ),
    "skills": _triggers(
        (r"\b(?:casts? a spell|cast(?:ing)? a spell|uses? magic)\b|使用魔法|施法|施展.*?法术",
         "-mana:15,+magic_exp:2"),
        (r"\b(?:steal(?:s|ing)?|stole|sneak(?:s|ing)?|stealth)\b|偷窃|潜行|隐身",
         "+stealth_exp:5,-energy:5"),
        (r"\b(?:heal(?:s|ed|ing)?|recover(?:s|ed|ing)?)\b|治疗|恢复|回复",
         "+health:20,-mana:25"),
        (r"\b(?:meditat(?:e|es|ed|ing)|rest(?:s|ed|ing)?|sleep(?:s|ing)?|slept)\b|冥想|休息|睡觉",
         "+mana:15,-fatigue:10"),
        (r"\b(?:stud(?:y|ies|ied|ying)|practi[cs](?:e|es|ed|ing)|train(?:s|ed|ing)?)\b|学习|练习|训练",
         "+experience:10,-energy:15"),
    ),
    "environment": _triggers(
        (r"\b(?:cold|freezing|snow(?:s|ing)?)\b|寒冷|冰冻|下雪",
         "-temperature:5,+fatigue:3"),
        (r"\b(?:scorching|sweltering|heatwave)\b|炎热|酷热|高温",
         "+temperature:5,+thirst:10"),
        (r"\b(?:rain(?:s|ed|ing|y)?|damp|humid)\b|下雨|潮湿|阴雨",
         "-temperature:2,+discomfort:5"),
        (r"\b(?:sunlight|sunny|warmth)\b|阳光|温暖|晴朗",
         "+mood:3,+energy:5"),
        (r"\b(?:darkness|terrif(?:ying|ied)|horrif(?:ying|ied))\b|黑暗|恐怖|可怕",
         "-courage:5,+fear:10"),
    ),
    "social": _triggers(
        (r"\b(?:persuaded|convinced|negotiation succeeded)\b|成功说服|交涉成功|谈判成功",
         "+charisma:2,+confidence:5"),
        (r"\b(?:refused|rejected|negotiation failed)\b|被拒绝|交涉失败|谈判失败",
         "-confidence:3,+frustration:5"),
        (r"\b(?:made a friend|befriend(?:s|ed)?|offered help)\b|获得帮助|结交朋友|建立友谊",
         "+mood:10,+social_standing:5"),
        (r"\b(?:betray(?:s|ed)?|deceived|tricked)\b|被背叛|受到欺骗|被利用",
         "-trust:10,-mood:15"),
        (r"\b(?:praised|complimented|commended)\b|获得赞美|被称赞|受到表扬",
         "+confidence:8,+mood:12"),
    ),
}


@dataclass
class StatusCommand:
    """One parsed status command."""
    type: CommandType
    field: str
    value: Optional[Union[float, str]] = None
    condition: Optional[str] = None
    effect: Optional[str] = None

    def to_dict(self) -> dict:
        data = {key: value for key, value in asdict(self).items() if value is not None}
        data["type"] = self.type.value
        return data


def _command_from_match(match: re.Match) -> StatusCommand:
    if match.group("cond_op"):
        condition = _CONDITIONS[match.group("cond_op")]
        value: Union[float, str] = match.group("cond_value")
        if condition != "equal":
            try:
                value = float(value)
            except ValueError:
                pass
        return StatusCommand(
            type=CommandType.CONDITIONAL,
            field=match.group("cond_field"),
            value=value,
            condition=condition,
            effect=match.group("effect")
        )
    if match.group("toggle"):
        return StatusCommand(type=CommandType(match.group("toggle").lower()), field=match.group("toggle_field"))
    if match.group("text_field"):
        return StatusCommand(type=CommandType.SET_TEXT, field=match.group("text_field"), value=match.group("text"))
    if match.group("op"):
        return StatusCommand(
            type=_OPERATOR_TYPES[match.group("op")],
            field=match.group("field"),
            value=float(match.group("number"))
        )
    return StatusCommand(type=CommandType.DELETE, field=match.group("delete_field"))


def scan_commands(text: str) -> List[StatusCommand]:
    """All commands written in text, in document order."""
    return [_command_from_match(match) for match in _COMMAND.finditer(text)]


def parse_effects(effect_string: str) -> List[StatusCommand]:
    """Parse a comma-separated effect list such as "+mana:15,-fatigue:10"."""
    commands = []
    for part in effect_string.split(","):
        match = _EFFECT.search(part.strip())
        if match:
            operator, field_name, number = match.groups()
            commands.append(StatusCommand(type=_OPERATOR_TYPES[operator], field=field_name, value=float(number)))
    return commands


def parse_hidden_commands(text: str) -> List[StatusCommand]:
    """Commands inside <!-- STQSB: ... --> comments, comma-separated."""
    commands = []
    for block in _HIDDEN_BLOCK.finditer(text):
        for part in block.group(1).split(","):
            commands.extend(scan_commands(part.strip()))
    return commands


def parse_explicit_commands(text: str) -> List[StatusCommand]:
    return scan_commands(text)


def parse_natural_language(
    text: str,
    triggers: Dict[str, List[Tuple[Pattern, str]]] = NATURAL_TRIGGERS
) -> List[StatusCommand]:
    """Effects of every trigger phrase found in text, category by category."""
    commands = []
    for category, entries in triggers.items():
        for trigger, effect in entries:
            if trigger.search(text):
                logger.debug(f"Trigger {trigger.pattern!r} ({category}) matched")
                commands.extend(parse_effects(effect))
    return commands


def condition_holds(command: StatusCommand, state: Dict[str, Any]) -> bool:
    """Check a conditional command against state; missing fields are false."""
    operator = _CONDITION_OPERATORS.get(command.condition or "")
    if operator is None:
        return False
    value = command.value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return evaluate_condition(f"{command.field}:{operator}:{value}", state)


def resolve_conditionals(commands: Sequence[StatusCommand], state: Dict[str, Any]) -> List[StatusCommand]:
    """Replace conditionals by their effects when they hold, drop them otherwise."""
    resolved = []
    for command in commands:
        if command.type is not CommandType.CONDITIONAL:
            resolved.append(command)
        elif condition_holds(command, state):
            resolved.extend(parse_effects(command.effect or ""))
    return resolved


def validate_command(command: StatusCommand) -> dict:
    """Check a command for missing parts.

    Returns:
        dict with valid (bool) and errors (list of str)
    """
    errors = []
    if not command.field:
        errors.append("missing field name")

    if command.type in NUMERIC_TYPES:
        if command.value is None:
            errors.append("missing value")
        elif not isinstance(command.value, (int, float)) or math.isnan(command.value):
            errors.append("value must be a number")

    if command.type is CommandType.CONDITIONAL and not (command.condition and command.effect):
        errors.append("conditional needs a condition and an effect")

    return {"valid": not errors, "errors": errors}


def validate_commands(commands: Sequence[StatusCommand]) -> List[dict]:
    """Validation failures as {index, command, errors}; empty when all are valid."""
    failures = []
    for index, command in enumerate(commands):
        validation = validate_command(command)
        if not validation["valid"]:
            failures.append({"index": index, "command": command, "errors": validation["errors"]})
    return failures


def apply_commands(
    state: Dict[str, Any],
    commands: Sequence[StatusCommand],
    fields: Optional[Dict[str, Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """Apply commands to a copy of state.

    Numeric results are clamped to the field's min/max when `fields` has
    them. Show and hide only affect display and leave the state alone.

    Returns:
        The new state
    """
    fields = fields or {}
    new_state = dict(state)

    for command in commands:
        current = new_state.get(command.field)
        # Non-numeric current values count as 0
        base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
        if command.type is CommandType.INCREASE:
            value = base + command.value
        elif command.type is CommandType.DECREASE:
            value = base - command.value
        elif command.type in (CommandType.SET, CommandType.SET_TEXT):
            value = command.value
        elif command.type is CommandType.DELETE:
            new_state.pop(command.field, None)
            continue
        elif command.type in (CommandType.ENABLE, CommandType.DISABLE):
            value = command.type is CommandType.ENABLE
        else:
            logger.debug(f"Command {command.type.value} on {command.field} leaves state unchanged")
            continue

        bounds = fields.get(command.field, {})
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if bounds.get("min") is not None and value < bounds["min"]:
                value = bounds["min"]
            if bounds.get("max") is not None and value > bounds["max"]:
                value = bounds["max"]
        new_state[command.field] = value

    return new_state


class CommandParser:
    """Finds status commands in model replies."""

    def __init__(self, triggers: Optional[Dict[str, List[Tuple[Pattern, str]]]] = None):
        source = NATURAL_TRIGGERS if triggers is None else triggers
        self.triggers = {category: list(entries) for category, entries in source.items()}
        self.tiers: Tuple[Tuple[str, Callable[[str], List[StatusCommand]]], ...] = (
            ("hidden", parse_hidden_commands),
            ("explicit", parse_explicit_commands),
            ("natural", partial(parse_natural_language, triggers=self.triggers)),
        )

    def parse(self, text: Optional[str], state: Optional[Dict[str, Any]] = None) -> List[StatusCommand]:
        """Parse the commands in one reply.

        Args:
            text: Raw model reply
            state: Current status values, used to resolve conditionals

        Returns:
            Commands in the order found; conditionals are already resolved
        """
        if not text:
            return []

        for tier_name, parse in self.tiers:
            commands = parse(text)
            if commands:
                resolved = resolve_conditionals(commands, state or {})
                logger.info(f"Parsed {len(resolved)} command(s) from {tier_name} tier")
                return resolved

        logger.debug("No commands found in reply")
        return []

    def add_trigger(self, category: str, trigger: Union[str, Pattern], effect: str):
        """Register an extra trigger phrase for natural-language parsing."""
        if isinstance(trigger, str):
            trigger = re.compile(trigger, re.IGNORECASE)
        self.triggers.setdefault(category, []).append((trigger, effect))
        logger.debug(f"Added trigger to {category}: {trigger.pattern!r}")

    def get_stats(self) -> dict:
        return {
            "supported_commands": [command_type.value for command_type in CommandType],
            "trigger_categories": list(self.triggers),
            "total_triggers": sum(len(entries) for entries in self.triggers.values()),
        }


def parse_commands(text: Optional[str], state: Optional[Dict[str, Any]] = None) -> List[StatusCommand]:
    """Convenience function for one-off parsing."""
    return CommandParser().parse(text, state)
