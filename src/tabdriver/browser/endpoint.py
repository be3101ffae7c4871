"""
Target discovery over the browser's remote-debugging HTTP endpoint.

Requires Edge/Chrome launched with --remote-debugging-port=<port>.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, List

import requests

from ..config import BrowserConfig
from ..errors import BrowserConnectionError

logger = logging.getLogger(__name__)


@dataclass
class CDPTarget:
    """A page target discovered via /json/list."""
    target_id: str
    url: str
    title: str
    ws_url: str
    target_type: str = "page"
    favicon_url: Optional[str] = None

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> 'CDPTarget':
        return cls(
            target_id=entry.get("id", ""),
            url=entry.get("url", ""),
            title=entry.get("title", ""),
            ws_url=entry.get("webSocketDebuggerUrl", ""),
            target_type=entry.get("type", "page"),
            favicon_url=entry.get("faviconUrl"),
        )


class BrowserEndpoint:
    """HTTP side of the DevTools endpoint: version info and target listing."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()

    def _get_json(self, path: str) -> Any:
        url = f"{self.config.base_url}{path}"
        try:
            resp = requests.get(url, timeout=self.config.http_timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise BrowserConnectionError(f"DevTools endpoint unreachable at {url}: {e}") from e
        except ValueError as e:
            raise BrowserConnectionError(f"Invalid JSON from {url}: {e}") from e

    def is_available(self) -> bool:
        """Check if the browser is reachable via CDP."""
        try:
            self._get_json("/json/version")
            return True
        except BrowserConnectionError:
            return False

    def get_version(self) -> Dict[str, Any]:
        return self._get_json("/json/version")

    def list_targets(self) -> List[CDPTarget]:
        """Discover all open page targets."""
        data = self._get_json("/json/list")
        return [CDPTarget.from_dict(entry) for entry in data if entry.get("type") == "page"]

    def get_target(self, target_id: str) -> Optional[CDPTarget]:
        return next((t for t in self.list_targets() if t.target_id == target_id), None)
