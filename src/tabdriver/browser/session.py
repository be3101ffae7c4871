"""
CDP Session - one attached debugger connection to one target.

State machine: Detached -> attach() -> Attached -> detach() / external
detach / target closed -> Detached. Re-attaching while attached is a no-op.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Any, Optional, List, Callable

from ..config import BrowserConfig
from ..errors import BrowserConnectionError, NotAttachedError
from .cdp import CDPConnection
from .endpoint import BrowserEndpoint

logger = logging.getLogger(__name__)

# Domains every other operation depends on
REQUIRED_DOMAINS = ("Page", "DOM", "Accessibility", "Runtime")

DetachListener = Callable[[str, str], None]
ConnectionFactory = Callable[..., CDPConnection]


class CDPSession:
    """Typed command channel to a single target."""

    def __init__(
        self,
        target_id: str,
        endpoint: Optional[BrowserEndpoint] = None,
        config: Optional[BrowserConfig] = None,
        connection_factory: ConnectionFactory = CDPConnection,
    ):
        self.target_id = target_id
        self.config = config or BrowserConfig()
        self.endpoint = endpoint or BrowserEndpoint(self.config)
        self._connection_factory = connection_factory
        self._connection: Optional[CDPConnection] = None
        self._attached = False
        self._domains_enabled = False
        self._lock = threading.RLock()
        self._enable_lock = threading.Lock()
        self._detach_listeners: List[DetachListener] = []

    def __repr__(self) -> str:
        state = "attached" if self._attached else "detached"
        return f"<CDPSession {self.target_id} {state}>"

    @property
    def is_attached(self) -> bool:
        return self._attached

    @property
    def domains_enabled(self) -> bool:
        return self._domains_enabled

    def add_detach_listener(self, listener: DetachListener):
        """Called with (target_id, reason) when the remote side detaches us."""
        self._detach_listeners.append(listener)

    # ── Lifecycle ──────────────────────────────────────────────────

    def attach(self):
        """Open the debugger connection. No-op when already attached."""
        with self._lock:
            if self._attached:
                return

            target = self.endpoint.get_target(self.target_id)
            if target is None:
                raise BrowserConnectionError(f"Target {self.target_id} not found")
            if not target.ws_url:
                raise BrowserConnectionError(
                    f"Target {self.target_id} refused debugging (already attached by another client?)"
                )

            self._check_protocol_version()

            conn = self._connection_factory(target.ws_url, timeout=self.config.command_timeout)
            conn.on_event = lambda method, params, c=conn: self._on_event(c, method, params)
            conn.on_close = lambda reason, c=conn: self._on_remote_detach(c, reason)
            conn.connect()

            self._connection = conn
            self._attached = True
            logger.info(f"Attached to target {self.target_id} ({target.title[:40]})")

    def detach(self):
        """Close the connection. No-op when not attached."""
        with self._lock:
            if not self._attached:
                return
            conn = self._connection
            self._connection = None
            self._attached = False
            self._domains_enabled = False

        if conn is not None:
            conn.disconnect()
        logger.info(f"Detached from target {self.target_id}")

    def _check_protocol_version(self):
        version = self.endpoint.get_version().get("Protocol-Version")
        if version != self.config.protocol_version:
            logger.warning(
                f"Browser speaks protocol {version}, expected {self.config.protocol_version}"
            )

    # ── Commands ───────────────────────────────────────────────────

    def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a command and return its decoded result."""
        conn = self._connection
        if not self._attached or conn is None:
            raise NotAttachedError()
        return conn.send(method, params)

    def enable_domains(self):
        """Enable the required domains concurrently. All-or-nothing."""
        with self._enable_lock:
            if self._domains_enabled:
                return
            if not self._attached:
                raise NotAttachedError()

            with ThreadPoolExecutor(max_workers=len(REQUIRED_DOMAINS)) as pool:
                futures = [pool.submit(self.send, f"{domain}.enable") for domain in REQUIRED_DOMAINS]
            for future in futures:
                future.result()

            self._domains_enabled = True
            logger.debug(f"Enabled {', '.join(REQUIRED_DOMAINS)} on {self.target_id}")

    # ── Remote events ──────────────────────────────────────────────

    def _on_event(self, conn: CDPConnection, method: str, params: Dict[str, Any]):
        if method == "Inspector.detached":
            self._on_remote_detach(conn, params.get("reason", "unknown"))

    def _on_remote_detach(self, conn: CDPConnection, reason: str):
        with self._lock:
            if conn is not self._connection:
                return
            self._connection = None
            self._attached = False
            self._domains_enabled = False

        # Fails any in-flight send on this connection
        conn.disconnect()
        logger.info(f"Debugger detached from target {self.target_id}: {reason}")

        for listener in list(self._detach_listeners):
            try:
                listener(self.target_id, reason)
            except Exception as e:
                logger.error(f"Detach listener failed for {self.target_id}: {e}")
