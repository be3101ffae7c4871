"""
Browser automation types: refs, boxes, role sets and command parameter shapes.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional

from ..errors import CommandError


# Actionable roles for filtering the AX tree
ACTIONABLE_ROLES = frozenset({
    "button",
    "link",
    "textbox",
    "checkbox",
    "radio",
    "combobox",
    "menuitem",
    "menuitemcheckbox",
    "menuitemradio",
    "tab",
    "switch",
    "slider",
    "spinbutton",
    "searchbox",
    "option",
    "listitem",
})

# Container roles that render as nothing unless they carry a ref
NOISE_ROLES = frozenset({"none", "generic", "genericcontainer"})

ROOT_ROLE = "rootwebarea"
EMPTY_PAGE_TREE = "(empty page)"


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def visible(self) -> bool:
        return self.width > 0 and self.height > 0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Ref:
    """Portable reference to an actionable element, valid for one snapshot."""
    id: str
    backend_node_id: int
    role: str
    name: str
    value: Optional[str] = None
    bounding_box: Optional[BoundingBox] = None
    ax_node_id: Optional[str] = None
    frame_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "backendNodeId": self.backend_node_id,
            "role": self.role,
            "name": self.name,
            "boundingBox": self.bounding_box.to_dict() if self.bounding_box else None,
        }
        if self.value is not None:
            data["value"] = self.value
        if self.ax_node_id is not None:
            data["axNodeId"] = self.ax_node_id
        if self.frame_id is not None:
            data["frameId"] = self.frame_id
        return data


# ── Command parameter shapes ───────────────────────────────────────

def _require_str(params: Dict[str, Any], key: str, command: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        raise CommandError(f"{command}: '{key}' is required")
    return value


@dataclass
class NavigateParams:
    url: str

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'NavigateParams':
        return cls(url=_require_str(params, "url", "navigate"))


@dataclass
class ClickParams:
    ref: str

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'ClickParams':
        return cls(ref=_require_str(params, "ref", "click"))


@dataclass
class TypeParams:
    text: str
    ref: Optional[str] = None
    clear: bool = False
    press_sequentially: bool = False

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'TypeParams':
        text = params.get("text")
        if not isinstance(text, str):
            raise CommandError("type: 'text' is required")
        return cls(
            text=text,
            ref=params.get("ref") or None,
            clear=bool(params.get("clear", False)),
            press_sequentially=bool(params.get("pressSequentially", False)),
        )


@dataclass
class PressKeyParams:
    key: str
    modifiers: int = 0

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'PressKeyParams':
        try:
            modifiers = int(params.get("modifiers") or 0)
        except (TypeError, ValueError):
            raise CommandError("pressKey: 'modifiers' must be an integer bitmask")
        return cls(key=_require_str(params, "key", "pressKey"), modifiers=modifiers)


@dataclass
class EvaluateParams:
    expression: str
    return_by_value: bool = True

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'EvaluateParams':
        return cls(
            expression=_require_str(params, "expression", "evaluate"),
            return_by_value=bool(params.get("returnByValue", True)),
        )


@dataclass
class WaitForLoadParams:
    timeout: Optional[float] = None  # milliseconds

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'WaitForLoadParams':
        timeout = params.get("timeout")
        if timeout is None:
            return cls()
        try:
            return cls(timeout=float(timeout))
        except (TypeError, ValueError):
            raise CommandError("waitForLoad: 'timeout' must be a number of milliseconds")
