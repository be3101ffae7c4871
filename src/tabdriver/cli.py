#!/usr/bin/env python
"""
tabdriver command line
======================

Interactive driver for one browser tab. Launch Edge/Chrome with
--remote-debugging-port=9222 first.

Usage:
    python -m tabdriver                      # REPL on the first page tab
    python -m tabdriver --target <id>        # REPL on a specific tab
    python -m tabdriver --tabs               # List page tabs and exit
    python -m tabdriver -c "navigate x.com"  # Run one command and exit
"""

import argparse
import logging
import sys
from typing import Optional, List

from .browser.endpoint import BrowserEndpoint
from .browser.registry import SessionRegistry
from .commands.command_executor import execute_command
from .commands.command_parser import COMMAND_HELP, format_result, parse_input
from .config import BrowserConfig, load_config
from .errors import BrowserConnectionError

logger = logging.getLogger("tabdriver")

EXIT_WORDS = {"quit", "exit"}


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _build_config(args: argparse.Namespace) -> BrowserConfig:
    config = load_config(args.config)
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def run_line(registry: SessionRegistry, target_id: str, line: str) -> str:
    """Parse, run and format one input line."""
    parsed = parse_input(line)
    if parsed is None:
        return 'Unknown command. Type "help" for available commands.'
    command, params = parsed
    if command == "help":
        return COMMAND_HELP
    result = execute_command(registry, target_id, command, params)
    return format_result(command, result)


def _repl(registry: SessionRegistry, target_id: str):
    print(f"Driving tab {target_id}. Type 'help' for commands, 'quit' to exit.")
    while True:
        try:
            line = input("> ")
        except EOFError:
            break
        if line.strip().lower() in EXIT_WORDS:
            break
        if line.strip():
            print(run_line(registry, target_id, line))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="tabdriver", description="Drive a browser tab over CDP")
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument("--host", help="DevTools host (default localhost)")
    parser.add_argument("--port", type=int, help="DevTools port (default 9222)")
    parser.add_argument("--target", help="Target (tab) id; defaults to the first page tab")
    parser.add_argument("--tabs", action="store_true", help="List page tabs and exit")
    parser.add_argument("-c", "--command", help="Run a single command line and exit")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING)")
    args = parser.parse_args(argv)

    config = _build_config(args)
    _setup_logging(config.log_level)

    endpoint = BrowserEndpoint(config)
    try:
        targets = endpoint.list_targets()
    except BrowserConnectionError as e:
        logger.error(f"{e}. Is the browser running with --remote-debugging-port={config.port}?")
        return 1

    if args.tabs:
        for t in targets:
            print(f"{t.target_id}  {t.title[:60]}  {t.url}")
        return 0

    target_id = args.target or (targets[0].target_id if targets else None)
    if not target_id:
        logger.error("No page tabs available")
        return 1

    registry = SessionRegistry(config, endpoint=endpoint)
    try:
        if args.command:
            print(run_line(registry, target_id, args.command))
        else:
            _repl(registry, target_id)
    finally:
        registry.remove_all()
    return 0
