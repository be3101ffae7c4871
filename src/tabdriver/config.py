"""
Runtime configuration for the browser driver.

Values come from a JSON file (camelCase keys) and may be overridden by CLI
flags. A missing file means defaults.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Union

logger = logging.getLogger(__name__)

# Defaults
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9222
PROTOCOL_VERSION = "1.3"
DEFAULT_COMMAND_TIMEOUT = 15.0
DEFAULT_HTTP_TIMEOUT = 5.0
DEFAULT_LOAD_TIMEOUT = 30.0
DEFAULT_LOAD_POLL_INTERVAL = 0.1
DEFAULT_TYPE_DELAY = 0.05


@dataclass
class BrowserConfig:
    """Connection and timing settings."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    protocol_version: str = PROTOCOL_VERSION
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT  # seconds per CDP call
    http_timeout: float = DEFAULT_HTTP_TIMEOUT        # seconds per /json request
    load_timeout: float = DEFAULT_LOAD_TIMEOUT        # seconds for waitForLoad
    load_poll_interval: float = DEFAULT_LOAD_POLL_INTERVAL
    type_delay: float = DEFAULT_TYPE_DELAY            # between keystrokes
    log_level: str = "INFO"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "protocolVersion": self.protocol_version,
            "commandTimeout": self.command_timeout,
            "httpTimeout": self.http_timeout,
            "loadTimeout": self.load_timeout,
            "loadPollInterval": self.load_poll_interval,
            "typeDelay": self.type_delay,
            "logLevel": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BrowserConfig':
        return cls(
            host=data.get("host", DEFAULT_HOST),
            port=int(data.get("port", DEFAULT_PORT)),
            protocol_version=data.get("protocolVersion", PROTOCOL_VERSION),
            command_timeout=float(data.get("commandTimeout", DEFAULT_COMMAND_TIMEOUT)),
            http_timeout=float(data.get("httpTimeout", DEFAULT_HTTP_TIMEOUT)),
            load_timeout=float(data.get("loadTimeout", DEFAULT_LOAD_TIMEOUT)),
            load_poll_interval=float(data.get("loadPollInterval", DEFAULT_LOAD_POLL_INTERVAL)),
            type_delay=float(data.get("typeDelay", DEFAULT_TYPE_DELAY)),
            log_level=str(data.get("logLevel", "INFO")).upper(),
        )


def load_config(path: Optional[Union[str, Path]] = None) -> BrowserConfig:
    """Load config from a JSON file, falling back to defaults."""
    if path is None:
        return BrowserConfig()

    path = Path(path)
    if not path.exists():
        logger.info(f"No config file at {path}, using defaults")
        return BrowserConfig()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read config {path}: {e}")
        return BrowserConfig()

    if not isinstance(data, dict):
        logger.warning(f"Config {path} is not a JSON object, using defaults")
        return BrowserConfig()

    return BrowserConfig.from_dict(data)
