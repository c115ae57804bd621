"""Menu data model and the Linux checkbox emulation rule."""

from __future__ import annotations

import copy
import platform
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from traybridge.errors import ProtocolDecodeError

PLATFORM_LINUX = "linux"
CHECK_MARKER = " (√)"

# Opaque caller data; JSON numbers arrive as int or float.
SeqId = Union[int, float]


class ActionType(str, Enum):
    UPDATE_ITEM = "update-item"
    UPDATE_MENU = "update-menu"
    UPDATE_MENU_AND_ITEM = "update-menu-and-item"


class EventType(str, Enum):
    READY = "ready"
    CLICKED = "clicked"


def _normalized_platform() -> str:
    return platform.system().strip().lower()


def _require_type(payload: Dict[str, Any], key: str, expected, default):
    value = payload.get(key, default)
    # bool is an int subclass; seq_id must not accept true/false.
    if expected is int and isinstance(value, bool):
        raise ProtocolDecodeError(f"Field {key!r} must be an integer.")
    if not isinstance(value, expected):
        raise ProtocolDecodeError(
            f"Field {key!r} must be {getattr(expected, '__name__', expected)}, "
            f"got {type(value).__name__}."
        )
    return value


@dataclass
class MenuItem:
    """One row of the tray menu. Identity is its position in ``Menu.items``."""

    title: str = ""
    tooltip: str = ""
    checked: bool = False
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "tooltip": self.tooltip,
            "checked": self.checked,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "MenuItem":
        if not isinstance(payload, dict):
            raise ProtocolDecodeError("Menu item must be an object.")
        return cls(
            title=_require_type(payload, "title", str, ""),
            tooltip=_require_type(payload, "tooltip", str, ""),
            checked=_require_type(payload, "checked", bool, False),
            enabled=_require_type(payload, "enabled", bool, True),
        )

    def copy(self) -> "MenuItem":
        return copy.copy(self)


@dataclass
class Menu:
    """Tray icon state: icon, title, tooltip and ordered items."""

    icon: str = ""
    title: str = ""
    tooltip: str = ""
    items: List[MenuItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "icon": self.icon,
            "title": self.title,
            "tooltip": self.tooltip,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "Menu":
        if not isinstance(payload, dict):
            raise ProtocolDecodeError("Menu must be an object.")
        raw_items = _require_type(payload, "items", list, [])
        return cls(
            icon=_require_type(payload, "icon", str, ""),
            title=_require_type(payload, "title", str, ""),
            tooltip=_require_type(payload, "tooltip", str, ""),
            items=[MenuItem.from_dict(raw) for raw in raw_items],
        )

    def copy(self) -> "Menu":
        return copy.deepcopy(self)


@dataclass
class UpdateItemAction:
    item: MenuItem
    seq_id: SeqId
    type: ActionType = field(default=ActionType.UPDATE_ITEM, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "item": self.item.to_dict(),
            "seq_id": self.seq_id,
        }


@dataclass
class UpdateMenuAction:
    menu: Menu
    seq_id: SeqId
    type: ActionType = field(default=ActionType.UPDATE_MENU, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "menu": self.menu.to_dict(),
            "seq_id": self.seq_id,
        }


@dataclass
class UpdateMenuAndItemAction:
    menu: Menu
    item: MenuItem
    seq_id: SeqId
    type: ActionType = field(default=ActionType.UPDATE_MENU_AND_ITEM, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "menu": self.menu.to_dict(),
            "item": self.item.to_dict(),
            "seq_id": self.seq_id,
        }


Action = Union[UpdateItemAction, UpdateMenuAction, UpdateMenuAndItemAction]


@dataclass(frozen=True)
class ReadyEvent:
    type: EventType = field(default=EventType.READY, init=False)


@dataclass(frozen=True)
class ClickEvent:
    item: MenuItem
    seq_id: SeqId
    type: EventType = field(default=EventType.CLICKED, init=False)


Event = Union[ReadyEvent, ClickEvent]


def render_checked(item: MenuItem, platform_name: Optional[str] = None) -> MenuItem:
    """Emulate a checkbox in the title on platforms without checkable items.

    On Linux, a trailing ``CHECK_MARKER`` is stripped and re-appended when the
    item is checked, so repeated calls with the same ``checked`` value leave the
    title unchanged. The item is mutated in place and returned.
    """
    normalized = (platform_name or _normalized_platform()).strip().lower()
    if normalized != PLATFORM_LINUX:
        return item
    title = item.title or ""
    if title.endswith(CHECK_MARKER):
        title = title[: -len(CHECK_MARKER)]
    if item.checked:
        title += CHECK_MARKER
    item.title = title
    return item


def apply_checked_rule(action: Action, platform_name: Optional[str] = None) -> Action:
    """Run ``render_checked`` over every item carried by ``action``."""
    menu = getattr(action, "menu", None)
    if menu is not None:
        for item in menu.items:
            render_checked(item, platform_name)
    item = getattr(action, "item", None)
    if item is not None:
        render_checked(item, platform_name)
    return action
