"""
CDP Connection - WebSocket transport to a single target
=======================================================
Low-level Chrome DevTools Protocol connection. One websocket per target,
a background thread receiving frames, and responses correlated to callers
by message id so several commands can be in flight at once.

Events (frames without an id) are handed to ``on_event``; the socket
closing underneath us is reported through ``on_close``.
"""

import json
import logging
import threading
import time
from typing import Dict, Any, Optional, Callable, Set

import websocket

from ..errors import BrowserConnectionError, NotAttachedError, ProtocolError

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, Dict[str, Any]], None]
CloseCallback = Callable[[str], None]


class CDPConnection:
    """
    Websocket connection to one DevTools target.
    Uses websocket-client (sync) with a receive thread.
    """

    def __init__(self, ws_url: str, timeout: float = 15.0):
        self._ws_url = ws_url
        self._timeout = timeout
        self._ws: Optional[websocket.WebSocket] = None
        self._msg_id = 0
        self._lock = threading.Lock()
        self._pending: Set[int] = set()
        self._responses: Dict[int, Any] = {}
        self._recv_thread: Optional[threading.Thread] = None
        self._running = False
        self.on_event: Optional[EventCallback] = None
        self.on_close: Optional[CloseCallback] = None

    @property
    def ws_url(self) -> str:
        return self._ws_url

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._running

    def connect(self):
        """Open the websocket and start receiving."""
        try:
            ws = websocket.WebSocket()
            ws.settimeout(self._timeout)
            ws.connect(self._ws_url, suppress_origin=True)
        except (websocket.WebSocketException, OSError) as e:
            raise BrowserConnectionError(f"CDP connection to {self._ws_url[:80]} failed: {e}") from e

        self._ws = ws
        self._running = True
        self._recv_thread = threading.Thread(target=self._recv_loop, name="cdp-recv", daemon=True)
        self._recv_thread.start()
        logger.info(f"CDP connected to {self._ws_url[:80]}")

    def disconnect(self):
        """Close the websocket. Safe to call on an already-closed socket."""
        self._running = False
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            ws.close(timeout=1.0)
        except (websocket.WebSocketException, OSError) as e:
            # Remote side may have gone first
            logger.debug(f"CDP close ignored: {e}")

    def send(self, method: str, params: Optional[Dict[str, Any]] = None,
             timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Send a CDP command and wait for its response.

        Returns the 'result' dict. Raises NotAttachedError if the socket is
        closed before or during the call, ProtocolError if the remote side
        answers with an error or never answers.
        """
        ws = self._ws
        if ws is None or not self._running:
            raise NotAttachedError()

        timeout = timeout or self._timeout

        with self._lock:
            self._msg_id += 1
            msg_id = self._msg_id
            self._pending.add(msg_id)

        message: Dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            message["params"] = params

        try:
            try:
                ws.send(json.dumps(message))
            except (websocket.WebSocketException, OSError) as e:
                if not self._running:
                    raise NotAttachedError(f"CDP session detached during {method}") from e
                raise ProtocolError(f"Send failed: {e}", method=method) from e

            start = time.time()
            while (time.time() - start) < timeout:
                if msg_id in self._responses:
                    return self._unwrap(method, self._responses.pop(msg_id))
                if not self._running:
                    raise NotAttachedError(f"CDP session detached during {method}")
                time.sleep(0.005)

            raise ProtocolError(f"Timeout waiting for response to {method}", method=method)
        finally:
            with self._lock:
                self._pending.discard(msg_id)
                self._responses.pop(msg_id, None)

    @staticmethod
    def _unwrap(method: str, resp: Dict[str, Any]) -> Dict[str, Any]:
        if "error" in resp:
            error = resp["error"]
            if isinstance(error, dict):
                raise ProtocolError(error.get("message", str(error)), method=method, code=error.get("code"))
            raise ProtocolError(str(error), method=method)
        return resp.get("result", {})

    def _handle_message(self, raw: str):
        """Route one incoming frame: responses to waiters, events to on_event."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"CDP dropped non-JSON frame: {raw[:100]}")
            return

        if "id" in data:
            with self._lock:
                if data["id"] in self._pending:
                    self._responses[data["id"]] = data
        elif "method" in data and self.on_event:
            self.on_event(data["method"], data.get("params", {}))

    def _recv_loop(self):
        """Background thread to receive websocket frames."""
        while self._running:
            ws = self._ws
            if ws is None:
                break
            try:
                raw = ws.recv()
                if not raw:
                    continue
                self._handle_message(raw)
            except websocket.WebSocketTimeoutException:
                continue
            except (websocket.WebSocketException, OSError) as e:
                if self._running:
                    logger.debug(f"CDP recv error: {e}")
                break

        was_running = self._running
        self._running = False
        if was_running and self.on_close:
            self.on_close("socket_closed")
