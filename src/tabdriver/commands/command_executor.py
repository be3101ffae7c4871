"""
Command dispatch: route a named command with a parameter payload to its
body, against the session for one target.
"""

import logging
from typing import Dict, Any, Optional, Callable

from ..browser.registry import SessionRegistry
from ..browser.session import CDPSession
from ..browser.types import (
    ClickParams,
    EvaluateParams,
    NavigateParams,
    PressKeyParams,
    TypeParams,
    WaitForLoadParams,
)
from ..errors import BrowserError
from . import browser_commands as commands
from .results import CommandResult, error_result

logger = logging.getLogger(__name__)

Handler = Callable[[SessionRegistry, CDPSession, str, Dict[str, Any]], CommandResult]


def _navigate(registry, session, target_id, params):
    p = NavigateParams.from_dict(params)
    return commands.navigate(session, p.url)


def _snapshot(registry, session, target_id, params):
    return commands.snapshot(session, registry.ref_table(target_id))


def _click(registry, session, target_id, params):
    p = ClickParams.from_dict(params)
    return commands.click(session, registry.ref_table(target_id), p.ref)


def _type(registry, session, target_id, params):
    p = TypeParams.from_dict(params)
    return commands.type_text(
        session,
        registry.ref_table(target_id),
        p.text,
        ref_id=p.ref,
        clear=p.clear,
        press_sequentially=p.press_sequentially,
    )


def _press_key(registry, session, target_id, params):
    p = PressKeyParams.from_dict(params)
    return commands.press_key(session, p.key, p.modifiers)


def _screenshot(registry, session, target_id, params):
    return commands.screenshot(session)


def _evaluate(registry, session, target_id, params):
    p = EvaluateParams.from_dict(params)
    return commands.evaluate(session, p.expression, p.return_by_value)


def _wait_for_load(registry, session, target_id, params):
    p = WaitForLoadParams.from_dict(params)
    return commands.wait_for_load(session, p.timeout)


COMMAND_HANDLERS: Dict[str, Handler] = {
    "navigate": _navigate,
    "snapshot": _snapshot,
    "click": _click,
    "type": _type,
    "pressKey": _press_key,
    "screenshot": _screenshot,
    "evaluate": _evaluate,
    "waitForLoad": _wait_for_load,
}


def execute_command(
    registry: SessionRegistry,
    target_id: str,
    command: str,
    params: Optional[Dict[str, Any]] = None,
) -> CommandResult:
    """
    Run one command against a target and return {success, data?, error?}.

    The session is fetched (and re-attached if it was detached) on every
    call, so a command after an external detach just works.
    """
    handler = COMMAND_HANDLERS.get(command)
    if handler is None:
        return error_result(f"Unknown command: {command}")

    try:
        session = registry.get_or_create(target_id)
        return handler(registry, session, target_id, params or {})
    except BrowserError as e:
        logger.warning(f"{command} on {target_id} failed: {e}")
        return error_result(e)
    except Exception as e:
        logger.exception(f"Unexpected error running {command} on {target_id}")
        return error_result(e)
