"""
Standardized Command Result Contract
====================================
Every command returns the same shape so callers never have to guess:

  success: bool      - Did the command succeed?
  data:    Any       - Command payload (only on success, only if any)
  error:   str       - Error message (only on failure)
"""

import functools
import logging
from typing import Dict, Any, Optional, Callable

from ..errors import BrowserError

logger = logging.getLogger(__name__)

CommandResult = Dict[str, Any]

MAX_ERROR_CHARS = 500


def success_result(data: Any = None) -> CommandResult:
    result: CommandResult = {"success": True}
    if data is not None:
        result["data"] = data
    return result


def error_result(error: Any) -> CommandResult:
    return {"success": False, "error": str(error)[:MAX_ERROR_CHARS]}


def is_success(result: Optional[CommandResult]) -> bool:
    return bool(result and result.get("success"))


def command_boundary(func: Callable[..., CommandResult]) -> Callable[..., CommandResult]:
    """Turn BrowserError raised inside a command into a failed result."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> CommandResult:
        try:
            return func(*args, **kwargs)
        except BrowserError as e:
            logger.debug(f"{func.__name__} failed: {e}")
            return error_result(e)

    return wrapper
