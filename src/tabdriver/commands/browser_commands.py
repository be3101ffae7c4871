"""
Core automation commands (8 total).

Each command takes an attached session, issues its CDP calls and returns a
result dict. Errors from the session layer never escape a command.
"""

import logging
import re
import time
from typing import Dict, Any, Optional, Tuple

from ..browser.ref_table import RefTable
from ..browser.refs import resolve_refs
from ..browser.session import CDPSession
from ..errors import CommandError, LoadTimeoutError, ProtocolError
from .results import CommandResult, command_boundary, success_result, error_result

logger = logging.getLogger(__name__)

# CDP Input modifier bitmask
MODIFIER_ALT = 1
MODIFIER_CTRL = 2
MODIFIER_META = 4
MODIFIER_SHIFT = 8

KEY_CODES = {
    "Enter": 13,
    "Tab": 9,
    "Escape": 27,
    "Backspace": 8,
    "Delete": 46,
    "ArrowUp": 38,
    "ArrowDown": 40,
    "ArrowLeft": 37,
    "ArrowRight": 39,
    "Home": 36,
    "End": 35,
    "PageUp": 33,
    "PageDown": 34,
    "Space": 32,
}

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*:", re.IGNORECASE)


def get_key_code(key: str) -> int:
    """Windows virtual key code for a key name or single character."""
    if key in KEY_CODES:
        return KEY_CODES[key]
    return ord(key[0]) if key else 0


def normalize_url(url: str) -> str:
    """Trim and default to https:// when no scheme is given."""
    trimmed = url.strip()
    if not trimmed:
        raise CommandError("URL cannot be empty")
    if not _SCHEME_RE.match(trimmed):
        return f"https://{trimmed}"
    return trimmed


def _key_event(session: CDPSession, event_type: str, key: str, **extra: Any):
    params: Dict[str, Any] = {"type": event_type, "key": key}
    params.update(extra)
    session.send("Input.dispatchKeyEvent", params)


def _wait_until_loaded(session: CDPSession, timeout: float):
    """Poll document.readyState until complete. Raises LoadTimeoutError."""
    session.send("Page.setLifecycleEventsEnabled", {"enabled": True})

    interval = session.config.load_poll_interval
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = session.send("Runtime.evaluate", {
            "expression": "document.readyState",
            "returnByValue": True,
        })
        if result.get("result", {}).get("value") == "complete":
            return
        time.sleep(interval)

    raise LoadTimeoutError("Timeout waiting for page load")


def _center_of(quad) -> Tuple[float, float]:
    xs = quad[0::2][:4]
    ys = quad[1::2][:4]
    return sum(xs) / 4, sum(ys) / 4


def _click_ref(session: CDPSession, table: RefTable, ref_id: str) -> Tuple[float, float]:
    ref = table.require(ref_id)

    session.send("DOM.scrollIntoViewIfNeeded", {"backendNodeId": ref.backend_node_id})
    box = session.send("DOM.getBoxModel", {"backendNodeId": ref.backend_node_id})
    quad = box.get("model", {}).get("content") or []
    if len(quad) < 8:
        raise ProtocolError(f"No box model for {ref_id}", method="DOM.getBoxModel")
    x, y = _center_of(quad)

    for event_type in ("mousePressed", "mouseReleased"):
        session.send("Input.dispatchMouseEvent", {
            "type": event_type,
            "x": x,
            "y": y,
            "button": "left",
            "clickCount": 1,
        })
    return x, y


# ── Commands ───────────────────────────────────────────────────────

@command_boundary
def navigate(session: CDPSession, url: str) -> CommandResult:
    """Page.navigate, then wait for the load to finish."""
    normalized = normalize_url(url)
    result = session.send("Page.navigate", {"url": normalized})
    if result.get("errorText"):
        return error_result(result["errorText"])

    loaded = True
    try:
        _wait_until_loaded(session, session.config.load_timeout)
    except LoadTimeoutError:
        loaded = False
        logger.warning(f"Navigation to {normalized} did not finish loading in time")

    return success_result({"frameId": result.get("frameId", ""), "url": normalized, "loaded": loaded})


@command_boundary
def snapshot(session: CDPSession, table: RefTable) -> CommandResult:
    """Resolve refs and replace the target's ref table."""
    refs, tree = resolve_refs(session)
    table.update(refs)
    return success_result({
        "refs": [ref.to_dict() for ref in refs],
        "tree": tree,
        "timestamp": int(time.time() * 1000),
    })


@command_boundary
def click(session: CDPSession, table: RefTable, ref_id: str) -> CommandResult:
    """Scroll the ref into view and click the centre of its content box."""
    x, y = _click_ref(session, table, ref_id)
    return success_result({"ref": ref_id, "x": x, "y": y})


@command_boundary
def type_text(
    session: CDPSession,
    table: RefTable,
    text: str,
    ref_id: Optional[str] = None,
    clear: bool = False,
    press_sequentially: bool = False,
) -> CommandResult:
    """Type into the focused element, or into ref_id after clicking it."""
    if ref_id:
        _click_ref(session, table, ref_id)

    if clear:
        _key_event(session, "keyDown", "a", modifiers=MODIFIER_CTRL, windowsVirtualKeyCode=65)
        _key_event(session, "keyUp", "a", modifiers=MODIFIER_CTRL, windowsVirtualKeyCode=65)
        _key_event(session, "keyDown", "Backspace", windowsVirtualKeyCode=8)
        _key_event(session, "keyUp", "Backspace", windowsVirtualKeyCode=8)

    if press_sequentially:
        for char in text:
            code = ord(char.upper()[0])
            _key_event(session, "keyDown", char, text=char, windowsVirtualKeyCode=code)
            _key_event(session, "keyUp", char, windowsVirtualKeyCode=code)
            time.sleep(session.config.type_delay)
    else:
        session.send("Input.insertText", {"text": text})

    return success_result()


@command_boundary
def press_key(session: CDPSession, key: str, modifiers: int = 0) -> CommandResult:
    code = get_key_code(key)
    _key_event(session, "keyDown", key, modifiers=modifiers, windowsVirtualKeyCode=code)
    _key_event(session, "keyUp", key, modifiers=modifiers, windowsVirtualKeyCode=code)
    return success_result({"key": key})


@command_boundary
def screenshot(session: CDPSession) -> CommandResult:
    result = session.send("Page.captureScreenshot", {"format": "png"})
    return success_result({"dataUrl": f"data:image/png;base64,{result.get('data', '')}"})


@command_boundary
def evaluate(session: CDPSession, expression: str, return_by_value: bool = True) -> CommandResult:
    """Runtime.evaluate; a thrown script error becomes a failure."""
    result = session.send("Runtime.evaluate", {
        "expression": expression,
        "returnByValue": return_by_value,
        "awaitPromise": True,
    })

    exception = result.get("exceptionDetails")
    if exception:
        raise ProtocolError(exception.get("text", str(exception)), method="Runtime.evaluate")

    remote_obj = result.get("result", {})
    return success_result({
        "value": remote_obj.get("value"),
        "type": remote_obj.get("type", "undefined"),
    })


@command_boundary
def wait_for_load(session: CDPSession, timeout_ms: Optional[float] = None) -> CommandResult:
    """Bounded poll on document.readyState. Timeout is in milliseconds."""
    timeout = timeout_ms / 1000.0 if timeout_ms is not None else session.config.load_timeout
    _wait_until_loaded(session, timeout)
    return success_result()
