"""Prompt templates asking the model to design a status bar rule.

The model is asked to answer with the four marked sections that
SectionExtractor understands.
"""

from typing import Any, Dict, Optional


SECTION_FORMAT = """Answer with exactly these four sections, each introduced by its heading line:

### Regex Expression
<a regular expression matching the status block the story model will write>

### Tagged-Field Template
<the status block the story model must append to every reply, using <time>, <date>, <weekday> and <option-1>, <option-2>, ... tags inside <status></status>>

### Example Body
<one short example reply that ends with a filled-in status block>

### Rendered Fragment
<the replacement that turns a matched status block into the displayed fragment; use $1, $2, ... for captured groups>

Do not add any other text before or after the sections."""


STYLE_TEMPLATES = {
    "roleplay": {
        "name": "Role-play status bar",
        "description": "Scene clock and next-step choices for character role-play",
        "intro": "You design status bars for a role-play chat. The story model appends a status block to every reply.",
        "fields": ["time", "date", "weekday", "location", "mood"],
    },
    "gaming": {
        "name": "Game master status bar",
        "description": "Player statistics tracked by a game master",
        "intro": "You design status bars for a game master who tracks the player's statistics after every turn.",
        "fields": ["health", "mana", "strength", "agility", "intelligence", "level", "experience"],
    },
    "survival": {
        "name": "Survival status bar",
        "description": "Needs and condition of a character in a survival game",
        "intro": "You design status bars for a survival game where the character's needs change every turn.",
        "fields": ["health", "hunger", "thirst", "fatigue", "temperature", "morale"],
    },
}


def describe_fields(fields: Optional[Dict[str, Dict[str, Any]]]) -> str:
    """Describe status fields, one line each.

    Args:
        fields: Mapping of field name -> {type, default, min, max, description}

    Returns:
        Lines like "- health: number, default 100, range 0-100 - Hit points"
    """
    if not fields:
        return "- (no custom fields)"

    lines = []
    for name, details in fields.items():
        line = f"- {name}: {details.get('type', 'text')}"
        if details.get("default") is not None:
            line += f", default {details['default']}"
        if details.get("min") is not None and details.get("max") is not None:
            line += f", range {details['min']}-{details['max']}"
        if details.get("description"):
            line += f" - {details['description']}"
        lines.append(line)
    return "\n".join(lines)


def build_generation_prompt(
    description: str,
    fields: Optional[Dict[str, Dict[str, Any]]] = None,
    style: str = "roleplay"
) -> str:
    """Build the instruction sent to the model.

    Raises:
        ValueError: If the style is unknown.
    """
    template = STYLE_TEMPLATES.get(style)
    if template is None:
        raise ValueError(f"Unknown prompt style: {style!r} (expected one of {', '.join(STYLE_TEMPLATES)})")

    return f"""{template['intro']}

Requested status bar: {description}

Suggested fields: {', '.join(template['fields'])}
Custom fields:
{describe_fields(fields)}

{SECTION_FORMAT}"""
