"""
tabdriver
=========
Drive live Chrome/Edge tabs over the DevTools Protocol using short-lived
element refs resolved from the accessibility tree.
"""

from .browser import SessionRegistry
from .commands import execute_command
from .config import BrowserConfig, load_config

__version__ = "0.1.0"

__all__ = ["BrowserConfig", "SessionRegistry", "execute_command", "load_config"]
