"""
Browser module
==============
Chrome DevTools Protocol sessions and accessibility-tree element refs.

- cdp: websocket transport to one target
- session: attach/detach state and domain enablement
- registry: target id -> session + ref table
- refs: AX tree + layout snapshot -> refs and labeled tree text
"""

from .cdp import CDPConnection
from .endpoint import BrowserEndpoint, CDPTarget
from .ref_table import RefTable
from .refs import resolve_refs, resolve_nodes
from .registry import SessionRegistry
from .session import CDPSession, REQUIRED_DOMAINS
from .types import ACTIONABLE_ROLES, BoundingBox, Ref

__all__ = [
    "ACTIONABLE_ROLES",
    "BoundingBox",
    "BrowserEndpoint",
    "CDPConnection",
    "CDPSession",
    "CDPTarget",
    "REQUIRED_DOMAINS",
    "Ref",
    "RefTable",
    "SessionRegistry",
    "resolve_nodes",
    "resolve_refs",
]
