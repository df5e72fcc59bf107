# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""pagetopics CLI: validate and classify commands.

Usage:
    python -m pagetopics.cli validate MODEL.json
    python -m pagetopics.cli classify MODEL.json [--file PATH] [--title] [--top N] [--raw]
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from .data import TextData
from .errors import PageTopicsError
from .logging_config import configure
from .pipeline import TextClassificationPipeline
from .settings import ClassifierSettings

logger = logging.getLogger(__name__)


def _load(path: str, settings: ClassifierSettings) -> TextClassificationPipeline:
    return TextClassificationPipeline.load_file(path, settings=settings)


def _read_input(file: str | None) -> bytes:
    if file is None or file == "-":
        return sys.stdin.buffer.read()
    return Path(file).read_bytes()


def cmd_validate(args: argparse.Namespace, settings: ClassifierSettings) -> int:
    """Load a descriptor and report its shape."""
    pipeline = _load(args.model, settings)
    stages = ", ".join(s.name for s in pipeline.transformations) or "(none)"
    print(f"OK: {len(pipeline.classes)} classes, {pipeline.dimension} features, stages: {stages}")
    return 0


def cmd_classify(args: argparse.Namespace, settings: ClassifierSettings) -> int:
    """Classify text from a file or stdin and print predictions as JSON."""
    pipeline = _load(args.model, settings)
    data = _read_input(args.file)
    if args.raw:
        text = data.decode("utf-8", errors="replace")[: settings.max_text_chars]
        result = pipeline.apply(TextData(text))
    elif args.title:
        result = pipeline.get_top_predictions(data.decode("utf-8", errors="replace"))
    else:
        result = pipeline.classify_page(data)
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    env_settings = ClassifierSettings.from_env()

    parser = argparse.ArgumentParser(prog="pagetopics", description="Linear text classification for page content")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_validate = subparsers.add_parser("validate", help="Check that a model descriptor loads")
    p_validate.add_argument("model", type=str, metavar="MODEL", help="Path to the model descriptor JSON")

    p_classify = subparsers.add_parser("classify", help="Classify text from a file or stdin")
    p_classify.add_argument("model", type=str, metavar="MODEL", help="Path to the model descriptor JSON")
    p_classify.add_argument("--file", type=str, metavar="PATH", help="Input text file (default: stdin)")
    p_classify.add_argument("--title", action="store_true", help="Treat input as a short title")
    p_classify.add_argument("--raw", action="store_true", help="Print raw linear scores for every class")
    p_classify.add_argument("--top", type=int, metavar="N", help="Return at most N classes")

    commands = {"validate": cmd_validate, "classify": cmd_classify}

    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else env_settings.log_level
    configure(json_output=args.json_logs or env_settings.log_json, level=level)

    settings = env_settings
    top = getattr(args, "top", None)
    if top is not None:
        if top < 1:
            parser.error("--top must be >= 1")
        settings = dataclasses.replace(env_settings, top_count=top)

    try:
        return commands[args.command](args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except (PageTopicsError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        if args.verbose:
            logger.exception("Command %s failed", args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
