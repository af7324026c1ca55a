#!/usr/bin/env python3
"""CLI entry point: argparse, load_dotenv, logging, config resolution, single-shot or interactive chat."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import find_dotenv, load_dotenv

from chat_cli import run_chat, run_once
from chat_config import DEFAULT_CONFIG_PATH, DEFAULT_MODEL, ConfigError, resolve_config
from gemini_client import GeminiClient

LOG_LEVEL_ENV = "GEMINI_CHAT_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def _positive_float(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if seconds <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send prompts to Gemini (generateContent API).")
    parser.add_argument(
        "prompt",
        nargs="?",
        help="Prompt text (single-shot mode). Read from stdin when omitted and input is piped.",
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Start an interactive chat (commands: exit, quit, cls).",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        metavar="PATH",
        help=f"JSON config file with ApiKey/Model (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--api-key", default=None, help="Gemini API key (overrides config file and GEMINI_API_KEY)")
    parser.add_argument("--model", default=None, help=f"Model ID (default: {DEFAULT_MODEL})")
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        metavar="SECONDS",
        help="HTTP timeout in seconds (default: none)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _setup_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
        level = getattr(logging, name, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _read_prompt(args: argparse.Namespace, parser: argparse.ArgumentParser) -> str:
    prompt = args.prompt
    if prompt is None and not sys.stdin.isatty():
        prompt = sys.stdin.read()
    if not prompt or not prompt.strip():
        parser.error("a prompt is required (argument or stdin) unless --interactive is given")
    return prompt.strip()


def main(argv: list[str] | None = None) -> int:
    load_dotenv(find_dotenv(usecwd=True), override=False)
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    if args.interactive and args.prompt is not None:
        parser.error("a prompt argument cannot be combined with --interactive")

    prompt = None if args.interactive else _read_prompt(args, parser)

    try:
        config = resolve_config(
            api_key=args.api_key,
            model=args.model,
            config_path=args.config,
            timeout=args.timeout,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    with GeminiClient(config) as client:
        if prompt is None:
            run_chat(client)
        else:
            run_once(client, prompt)
    return 0


if __name__ == "__main__":
    sys.exit(main())
