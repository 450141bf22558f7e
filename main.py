#!/usr/bin/env python3
"""Main entry point for Status Bar Forge."""

import argparse
import json
import sys

from statusbar_forge import RulePreviewPipeline, RuleStore, RuleDesignerBrain
from statusbar_forge.config import Config, setup_logging
from statusbar_forge.exceptions import StatusBarForgeError
from statusbar_forge.tools import RegexRuleTool, SectionExtractor, CommandParser, apply_commands, RULE_FLAGS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Status Bar Forge - extract, test and preview status bar regex rules"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Logging level (default: {Config.LOG_LEVEL})"
    )
    subparsers = parser.add_subparsers(dest="command")

    validate = subparsers.add_parser("validate", help="Check that a pattern compiles")
    validate.add_argument("pattern")
    validate.add_argument("--flags", default=Config.DEFAULT_FLAGS, choices=RULE_FLAGS)

    test = subparsers.add_parser("test", help="Run a pattern against sample text")
    test.add_argument("pattern")
    test.add_argument("text")
    test.add_argument("--flags", default=Config.DEFAULT_FLAGS, choices=RULE_FLAGS)
    test.add_argument("--replace", default=None, help="Replacement with $1-style references ('' deletes matches)")

    extract = subparsers.add_parser("extract", help="Split a saved model response into sections")
    extract.add_argument("file", help="File holding the model response ('-' for stdin)")

    preview = subparsers.add_parser("preview", help="Preview a rule against sample or demo text")
    preview.add_argument("pattern")
    preview.add_argument("replacement")
    preview.add_argument("--sample", default=None, help="Sample text (default: a demo text)")
    preview.add_argument("--seed", type=int, default=None, help="Seed for picking the demo text")

    commands = subparsers.add_parser("commands", help="Parse status commands out of a model reply")
    commands.add_argument("text", help="Model reply ('-' for stdin)")
    commands.add_argument("--state", default=None, help="Current state as a JSON object")

    design = subparsers.add_parser("design", help="Ask the model to design a status bar rule")
    design.add_argument("description")
    design.add_argument("--style", default="roleplay", choices=["roleplay", "gaming", "survival"])
    design.add_argument("--save", metavar="NAME", default=None, help="Save the designed rule under NAME")
    design.add_argument("--scope", default="both", choices=["user-only", "model-only", "both", "all"])

    return parser


def run_validate(args) -> int:
    result = RegexRuleTool().validate(args.pattern, args.flags)
    if result["valid"]:
        print("Pattern is valid.")
        return 0
    print(f"Invalid pattern: {result['error']}")
    return 1


def run_test(args) -> int:
    report = RegexRuleTool().test(args.pattern, args.text, args.flags, args.replace)
    if not report.success:
        print(report.error)
        return 1
    print(f"Matches: {report.match_count}")
    for match in report.matches:
        print(f"  [{match.start}:{match.end}] {match.text!r}")
    if args.replace is not None:
        print("-" * 40)
        print(report.result_text)
    return 0


def run_extract(args) -> int:
    if args.file == "-":
        text = sys.stdin.read()
    else:
        with open(args.file, "r", encoding="utf-8") as f:
            text = f.read()

    sections = SectionExtractor().extract(text)
    print(json.dumps(sections.to_dict(), indent=2, ensure_ascii=False))
    return 0 if sections.has_anchors else 1


def run_preview(args) -> int:
    result = RulePreviewPipeline(seed=args.seed).preview(args.pattern, args.replacement, args.sample)
    if not result["success"]:
        print(result["error"])
        return 1
    print_preview(result)
    return 0


def run_commands(args) -> int:
    text = sys.stdin.read() if args.text == "-" else args.text
    try:
        state = json.loads(args.state) if args.state else {}
    except json.JSONDecodeError as e:
        print(f"Invalid --state JSON: {e}")
        return 1
    if not isinstance(state, dict):
        print("Invalid --state JSON: expected an object")
        return 1

    parsed = CommandParser().parse(text, state)
    print(json.dumps([command.to_dict() for command in parsed], indent=2, ensure_ascii=False))
    if not parsed:
        print("No commands found.")
        return 1
    if args.state:
        print("-" * 40)
        print(json.dumps(apply_commands(state, parsed), indent=2, ensure_ascii=False))
    return 0


def run_design(args) -> int:
    sections = RuleDesignerBrain().design(args.description, style=args.style)
    print(json.dumps(sections.to_dict(), indent=2, ensure_ascii=False))
    if not sections.regex_pattern:
        print("The model answer held no regex expression.")
        return 1

    if args.save:
        tool = RegexRuleTool()
        validation = tool.validate(sections.regex_pattern)
        if not validation["valid"]:
            print(f"Not saved, invalid pattern: {validation['error']}")
            return 1
        built = tool.build_rule(args.save, sections.regex_pattern, sections.rendered_fragment, args.scope)
        if not built["success"]:
            print(f"Not saved: {built['error']}")
            return 1
        outcome = RuleStore().save(built["rule"])
        print(f"Rule '{args.save}' {outcome}.")
    return 0


def print_preview(result: dict):
    """Print a rule preview."""
    print("=" * 60)
    print(f"Matches: {result['match_count']}  Changed: {result['changed']}")
    print("=" * 60)

    tagged = result["tagged"]
    if tagged.has_recognized_items:
        for item in tagged.items:
            label = f"option {item.index}" if item.index is not None else item.kind.value
            print(f"  {label}: {item.text}")
    else:
        print("  (no status tags)")
        print(tagged.raw_fallback_text)

    print("-" * 60)
    for line in result["prose"]:
        if line.type == "dialogue":
            print(f"  {line.speaker} > {line.utterance}")
        elif line.type == "text":
            print(f"  {line.content}")
        else:
            print()

    if result["diff"]:
        print("-" * 60)
        print("\n".join(result["diff"]))


COMMANDS = {
    "validate": run_validate,
    "test": run_test,
    "extract": run_extract,
    "preview": run_preview,
    "commands": run_commands,
    "design": run_design,
}


def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(args.log_level)
    try:
        sys.exit(COMMANDS[args.command](args))
    except (StatusBarForgeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
