"""
Session Registry - target id -> (CDPSession, RefTable).

The registry is the only owner of sessions and ref tables. Both maps are
always cleaned up together. Creation is serialized per target; different
targets never wait on each other.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Optional, List

from ..config import BrowserConfig
from ..errors import BrowserError
from .cdp import CDPConnection
from .endpoint import BrowserEndpoint
from .ref_table import RefTable
from .session import CDPSession, ConnectionFactory

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Explicitly constructed, explicitly passed session owner."""

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        endpoint: Optional[BrowserEndpoint] = None,
        connection_factory: ConnectionFactory = CDPConnection,
    ):
        self.config = config or BrowserConfig()
        self.endpoint = endpoint or BrowserEndpoint(self.config)
        self._connection_factory = connection_factory
        self._sessions: Dict[str, CDPSession] = {}
        self._ref_tables: Dict[str, RefTable] = {}
        # target id -> [lock, holders + waiters]; dropped when unused
        self._target_locks: Dict[str, list] = {}
        self._lock = threading.Lock()

    @contextmanager
    def _target_lock(self, target_id: str):
        with self._lock:
            entry = self._target_locks.get(target_id)
            if entry is None:
                entry = self._target_locks[target_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._target_locks[target_id]

    def get(self, target_id: str) -> Optional[CDPSession]:
        with self._lock:
            return self._sessions.get(target_id)

    def targets(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def get_or_create(self, target_id: str) -> CDPSession:
        """Return an attached session with domains enabled, creating it if needed."""
        with self._target_lock(target_id):
            with self._lock:
                session = self._sessions.get(target_id)
                if session is None:
                    session = CDPSession(
                        target_id,
                        endpoint=self.endpoint,
                        config=self.config,
                        connection_factory=self._connection_factory,
                    )
                    session.add_detach_listener(self.handle_detached)
                    self._sessions[target_id] = session

            if not session.is_attached:
                session.attach()
                try:
                    session.enable_domains()
                except BrowserError:
                    # Partial enablement is not a usable state
                    session.detach()
                    raise
            return session

    def ref_table(self, target_id: str) -> RefTable:
        with self._lock:
            table = self._ref_tables.get(target_id)
            if table is None:
                table = self._ref_tables[target_id] = RefTable()
            return table

    def remove(self, target_id: str):
        """Detach and forget a target. No-op if unknown."""
        with self._target_lock(target_id):
            with self._lock:
                session = self._sessions.pop(target_id, None)
                table = self._ref_tables.pop(target_id, None)
            if table is not None:
                table.clear()
            if session is not None:
                session.detach()
                logger.info(f"Removed session for target {target_id}")

    def remove_all(self):
        """Teardown on shutdown."""
        with self._lock:
            target_ids = set(self._sessions) | set(self._ref_tables)
        for target_id in target_ids:
            self.remove(target_id)

    # ── Lifecycle events ───────────────────────────────────────────

    def handle_target_removed(self, target_id: str):
        self.remove(target_id)

    def handle_detached(self, target_id: str, reason: str):
        logger.info(f"Debugger detached from target {target_id}: {reason}")
        self.remove(target_id)
