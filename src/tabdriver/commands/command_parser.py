"""Text input -> (command, params), and command results -> display text."""

import json
from typing import Dict, Any, Optional, List, Tuple

from .results import is_success

COMMAND_HELP = """Available commands:
  navigate <url>    - Navigate to a URL
  snapshot          - Get accessibility snapshot
  click <ref>       - Click an element by ref ID
  type <text>       - Type text into focused element
  pressKey <key>    - Press a key (Enter, Tab, etc.)
  screenshot        - Capture page screenshot
  evaluate <js>     - Evaluate JavaScript
  wait [ms]         - Wait for the page to finish loading
  help              - Show this help"""

MAX_LISTED_REFS = 30

_ALIASES = {
    "navigate": "navigate",
    "go": "navigate",
    "snapshot": "snapshot",
    "click": "click",
    "type": "type",
    "presskey": "pressKey",
    "press": "pressKey",
    "screenshot": "screenshot",
    "evaluate": "evaluate",
    "eval": "evaluate",
    "wait": "waitForLoad",
    "waitforload": "waitForLoad",
    "help": "help",
}

# Commands whose single argument is the rest of the line
_REST_PARAM = {
    "navigate": "url",
    "click": "ref",
    "type": "text",
    "pressKey": "key",
    "evaluate": "expression",
}


def parse_input(text: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Parse a typed line. Returns None for unknown or incomplete input."""
    trimmed = text.strip()
    if not trimmed:
        return None

    word = trimmed.split()[0]
    rest = trimmed[len(word):].strip()
    command = _ALIASES.get(word.lower())
    if command is None:
        return None

    if command in _REST_PARAM:
        if not rest:
            return None
        return command, {_REST_PARAM[command]: rest}

    if command == "waitForLoad" and rest:
        try:
            return command, {"timeout": float(rest)}
        except ValueError:
            return None

    return command, {}


def format_refs(refs: List[Dict[str, Any]]) -> str:
    if not refs:
        return "No actionable elements found."
    lines = [f"  [{r['id']}] {r['role']}: {r.get('name') or '(unnamed)'}" for r in refs[:MAX_LISTED_REFS]]
    text = f"Found {len(refs)} actionable elements:\n" + "\n".join(lines)
    if len(refs) > MAX_LISTED_REFS:
        text += f"\n  ... and {len(refs) - MAX_LISTED_REFS} more"
    return text


def format_result(command: str, result: Dict[str, Any]) -> str:
    """Human-readable line(s) for a command result."""
    if not is_success(result):
        return f"Error: {result.get('error', 'unknown error')}"

    data = result.get("data") or {}
    if command == "navigate":
        return "Navigation complete." if data.get("loaded", True) else "Navigated (page still loading)."
    if command == "snapshot":
        return f"{data.get('tree', '')}\n\n{format_refs(data.get('refs', []))}"
    if command == "click":
        return "Click complete."
    if command == "type":
        return "Text typed."
    if command == "pressKey":
        return "Key pressed."
    if command == "screenshot":
        return f"Screenshot captured ({len(data.get('dataUrl', ''))} chars)."
    if command == "evaluate":
        return f"Result ({data.get('type')}): {json.dumps(data.get('value'), indent=2, default=str)}"
    if command == "waitForLoad":
        return "Page loaded."
    return "Done."
