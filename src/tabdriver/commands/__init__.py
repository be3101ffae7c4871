"""
Command layer: the eight automation commands, dispatch, and the text
front end's parser/formatter.
"""

from .command_executor import COMMAND_HANDLERS, execute_command
from .command_parser import COMMAND_HELP, format_result, parse_input
from .results import error_result, is_success, success_result

__all__ = [
    "COMMAND_HANDLERS",
    "COMMAND_HELP",
    "error_result",
    "execute_command",
    "format_result",
    "is_success",
    "parse_input",
    "success_result",
]
