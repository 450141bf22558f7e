"""Text tools used by the status bar rule engine."""

from .regex_builder import (
    RegexRuleTool,
    RegexRule,
    RuleScope,
    MatchRecord,
    MatchReport,
    RULE_FLAGS,
    SCOPE_PLACEMENT,
    expand_replacement,
    regex_rule_tool,
)
from .section_extractor import SectionExtractor, ExtractedSections, extract_sections
from .tagged_renderer import (
    TaggedFieldRenderer,
    TaggedFieldKind,
    TaggedFragment,
    TaggedItem,
    render_tagged_fragment,
)
from .prose_formatter import ProseFormatter, ProseLine, format_prose
from .template_filler import TemplateFiller, evaluate_condition
from .command_parser import (
    CommandParser,
    CommandType,
    StatusCommand,
    apply_commands,
    parse_commands,
    validate_command,
    validate_commands,
)

__all__ = [
    "RegexRuleTool",
    "RegexRule",
    "RuleScope",
    "MatchRecord",
    "MatchReport",
    "RULE_FLAGS",
    "SCOPE_PLACEMENT",
    "expand_replacement",
    "regex_rule_tool",
    "SectionExtractor",
    "ExtractedSections",
    "extract_sections",
    "TaggedFieldRenderer",
    "TaggedFieldKind",
    "TaggedFragment",
    "TaggedItem",
    "render_tagged_fragment",
    "ProseFormatter",
    "ProseLine",
    "format_prose",
    "TemplateFiller",
    "evaluate_condition",
    "CommandParser",
    "CommandType",
    "StatusCommand",
    "apply_commands",
    "parse_commands",
    "validate_command",
    "validate_commands",
]
