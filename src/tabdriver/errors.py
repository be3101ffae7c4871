"""
Error taxonomy for browser sessions and commands.

Internal plumbing (sessions, registry, resolver) raises these; the command
layer catches BrowserError at its boundary and turns it into a failed result.
"""

from typing import Optional


class BrowserError(Exception):
    """Base class for every error raised by tabdriver."""


class NotAttachedError(BrowserError):
    """A command was sent on a session that is not attached."""

    def __init__(self, message: str = "CDP session not attached"):
        super().__init__(message)


class BrowserConnectionError(BrowserError, ConnectionError):
    """Attaching to a target failed (target gone or debugging refused)."""


class ProtocolError(BrowserError):
    """The remote side rejected a command or an evaluated script raised."""

    def __init__(self, message: str, method: Optional[str] = None, code: Optional[int] = None):
        super().__init__(message)
        self.method = method
        self.code = code


class RefNotFoundError(BrowserError, KeyError):
    """A ref id is unknown or belongs to an older snapshot."""

    def __init__(self, ref_id: str):
        super().__init__(ref_id)
        self.ref_id = ref_id

    def __str__(self) -> str:
        return f"Ref not found: {self.ref_id}"


class LoadTimeoutError(BrowserError, TimeoutError):
    """The page-load poll loop ran out of time."""


class CommandError(BrowserError, ValueError):
    """Unknown command name or malformed command parameters."""
