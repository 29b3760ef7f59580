#!/usr/bin/env python3
"""
uiwatchctl - UI Watch operational CLI

A lightweight CLI for offline work with change detectors:
- Replay recorded metrics (uiwatchctl classify)
- Show effective thresholds (uiwatchctl thresholds)
- Version info (uiwatchctl version)
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import ValidationError

from uiwatch import __version__
from uiwatch.change_monitor.analyzer import ChangeDetector
from uiwatch.change_monitor.formatters import format_detection
from uiwatch.change_monitor.models import (
    ChangeLevel,
    InvalidMetricsVector,
    MetricsVector,
    PartialThresholdConfig,
)
from uiwatch.core.config import get_config


class Colors:
    """ANSI color codes for terminal output."""

    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


LEVEL_COLORS = {
    ChangeLevel.NONE: Colors.GREEN,
    ChangeLevel.MINOR: Colors.YELLOW,
    ChangeLevel.MAJOR: Colors.RED,
}


def colorize(text: str, color: str) -> str:
    """Colorize text if stdout is a TTY."""
    if sys.stdout.isatty():
        return f"{color}{text}{Colors.RESET}"
    return text


class InputError(Exception):
    """Raised when an input file cannot be used."""
    pass


def load_document(path: Path) -> Any:
    """
    Load a JSON or YAML document.

    Raises:
        InputError: if the file is missing or unparsable
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        raise InputError(f"File not found: {path}")
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Could not read {path}: {e}")
    except yaml.YAMLError as e:
        raise InputError(f"Could not parse {path}: {e}")


def load_metrics(path: Path) -> List[MetricsVector]:
    """
    Load a sequence of metrics vectors.

    Accepts either a top-level list or a mapping with a ``metrics`` list.
    """
    data = load_document(path)
    if isinstance(data, dict) and "metrics" in data:
        data = data["metrics"]
    if not isinstance(data, list):
        raise InputError(f"{path} must contain a list of metrics vectors")

    vectors = []
    for index, item in enumerate(data):
        try:
            vectors.append(MetricsVector.from_raw(item))
        except InvalidMetricsVector as e:
            raise InputError(f"Entry {index} in {path}: {e}")
    return vectors


def load_thresholds(path: Path) -> PartialThresholdConfig:
    data = load_document(path)
    if not isinstance(data, dict):
        raise InputError(f"{path} must contain a thresholds mapping")
    try:
        return PartialThresholdConfig.model_validate(data)
    except ValidationError as e:
        raise InputError(f"Invalid thresholds in {path}: {e}")


def cmd_classify(args) -> int:
    """
    Replay recorded metrics through a fresh detector.

    Returns:
        Exit code (0 on success, 1 on input errors)
    """
    config = get_config()

    try:
        vectors = load_metrics(Path(args.file))
        detector = ChangeDetector(thresholds=config.thresholds())
        if args.thresholds:
            detector.update_thresholds(load_thresholds(Path(args.thresholds)))
    except InputError as e:
        print(colorize(f"✗ {e}", Colors.RED), file=sys.stderr)
        return 1

    results = [detector.classify(vector) for vector in vectors]

    if args.json:
        print(json.dumps([r.model_dump(mode="json", by_alias=True) for r in results], indent=2))
        return 0

    include_details = config.include_details and not args.no_details
    for index, result in enumerate(results, start=1):
        header = f"[{index}/{len(results)}] {result.level.value.upper()}"
        print(colorize(header, LEVEL_COLORS[result.level]))
        for line in format_detection(result, include_details=include_details):
            print(f"  {line}")

    changed = sum(1 for r in results if r.changed)
    print()
    print(colorize(f"{len(results)} observation(s), {changed} change(s)", Colors.BOLD))
    return 0


def cmd_thresholds(args) -> int:
    """Print the thresholds new detectors start with."""
    print(json.dumps(get_config().thresholds().model_dump(by_alias=True), indent=2))
    return 0


def cmd_version(args) -> int:
    """
    Print version information.

    Returns:
        Exit code (always 0)
    """
    print(f"uiwatchctl version {__version__}")
    print("UI Watch - structural change detection for monitored web pages")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for uiwatchctl."""
    parser = argparse.ArgumentParser(
        description="UI Watch operational CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  uiwatchctl classify recorded.json               # Replay recorded metrics
  uiwatchctl classify recorded.yaml --json        # Raw results as JSON
  uiwatchctl thresholds                           # Show default thresholds
  uiwatchctl version                              # Show version information

Environment variables:
  UIWATCH_MAJOR_ELEMENT_DELTA, UIWATCH_MINOR_ELEMENT_DELTA, ...   # Default thresholds
  UIWATCH_LOG_LEVEL                                               # Logging level
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # classify command
    classify_parser = subparsers.add_parser(
        "classify",
        help="Replay a JSON/YAML list of metrics vectors through a detector"
    )
    classify_parser.add_argument("file", help="Metrics file (JSON or YAML)")
    classify_parser.add_argument(
        "--thresholds",
        help="Threshold overrides file (JSON or YAML)"
    )
    classify_parser.add_argument(
        "--json",
        action="store_true",
        help="Print raw results as JSON"
    )
    classify_parser.add_argument(
        "--no-details",
        action="store_true",
        help="Omit the JSON diagnostic block from formatted output"
    )

    subparsers.add_parser(
        "thresholds",
        help="Show the thresholds new detectors start with"
    )

    subparsers.add_parser(
        "version",
        help="Show version information"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for uiwatchctl CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        return 0

    # Dispatch to command handlers
    if args.command == "classify":
        return cmd_classify(args)
    elif args.command == "thresholds":
        return cmd_thresholds(args)
    elif args.command == "version":
        return cmd_version(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
