"""Shared fakes for browser session tests."""

import threading
from typing import Dict, Any, List, Optional, Tuple
from unittest.mock import Mock

import pytest

from tabdriver.browser.endpoint import BrowserEndpoint, CDPTarget
from tabdriver.browser.registry import SessionRegistry
from tabdriver.browser.session import CDPSession
from tabdriver.config import BrowserConfig
from tabdriver.errors import BrowserConnectionError, NotAttachedError


class FakeConnection:
    """Stands in for CDPConnection; answers from the owning FakeBrowser."""

    def __init__(self, browser: "FakeBrowser", ws_url: str):
        self.browser = browser
        self.ws_url = ws_url
        self.sent: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self._connected = False
        self.on_event = None
        self.on_close = None

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self):
        if self.browser.refuse:
            raise BrowserConnectionError("connection refused")
        self._connected = True

    def disconnect(self):
        self._connected = False

    def send(self, method, params=None, timeout=None):
        if not self._connected:
            raise NotAttachedError()
        with self.browser.lock:
            self.sent.append((method, params))
        handler = self.browser.handlers.get(method, {})
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(params or {})
        return handler

    def fire_event(self, method: str, params: Dict[str, Any]):
        self.on_event(method, params)


class FakeBrowser:
    """Per-test fake remote: method -> result dict, callable or exception."""

    def __init__(self):
        self.handlers: Dict[str, Any] = {}
        self.connections: List[FakeConnection] = []
        self.refuse = False
        self.lock = threading.Lock()

    def connection_factory(self, ws_url: str, timeout: float = 15.0) -> FakeConnection:
        conn = FakeConnection(self, ws_url)
        with self.lock:
            self.connections.append(conn)
        return conn

    @property
    def sent(self) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
        return [msg for conn in self.connections for msg in conn.sent]

    def methods(self) -> List[str]:
        return [method for method, _ in self.sent]


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def config():
    return BrowserConfig(load_poll_interval=0.001, type_delay=0.0, load_timeout=0.05)


@pytest.fixture
def endpoint():
    ep = Mock(spec=BrowserEndpoint)
    ep.get_target.side_effect = lambda target_id: CDPTarget(
        target_id=target_id,
        url="https://example.com/",
        title="Example",
        ws_url=f"ws://localhost:9222/devtools/page/{target_id}",
    )
    ep.get_version.return_value = {"Protocol-Version": "1.3", "Browser": "Chrome/124.0"}
    return ep


@pytest.fixture
def session(browser, endpoint, config):
    return CDPSession("T1", endpoint=endpoint, config=config, connection_factory=browser.connection_factory)


@pytest.fixture
def registry(browser, endpoint, config):
    return SessionRegistry(config, endpoint=endpoint, connection_factory=browser.connection_factory)


# ── AX / snapshot builders ─────────────────────────────────────────

def ax_node(node_id, role, name="", backend_id=None, parent_id=None, child_ids=None,
            ignored=False, value=None):
    node: Dict[str, Any] = {
        "nodeId": node_id,
        "ignored": ignored,
        "role": {"type": "role", "value": role},
    }
    if name:
        node["name"] = {"type": "computedString", "value": name}
    if value is not None:
        node["value"] = {"type": "string", "value": value}
    if backend_id is not None:
        node["backendDOMNodeId"] = backend_id
    if parent_id is not None:
        node["parentId"] = parent_id
    if child_ids is not None:
        node["childIds"] = child_ids
    return node


def layout_snapshot(boxes: Dict[int, Tuple[float, float, float, float]], frame_id: str = "FRAME1"):
    """One-document DOMSnapshot with the given backendNodeId -> rect."""
    backend_ids = [1000] + list(boxes)  # index 0 is a node without layout
    return {
        "strings": [frame_id],
        "documents": [{
            "frameId": 0,
            "nodes": {"backendNodeId": backend_ids},
            "layout": {
                "nodeIndex": list(range(1, len(backend_ids))),
                "bounds": [list(rect) for rect in boxes.values()],
            },
        }],
    }
