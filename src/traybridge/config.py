"""Tray construction settings and TOML loading."""

from __future__ import annotations

import base64
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import tomlkit

from traybridge.errors import ProtocolDecodeError, TrayConfigError
from traybridge.models import Menu, MenuItem

logger = logging.getLogger(__name__)

TEMPLATE_ITEMS = (
    ("Show", "Show the main window", False, True),
    ("Notifications", "Toggle notifications", True, True),
    ("Exit", "Quit the application", False, True),
)


@dataclass
class TrayConf:
    """Settings for ``Systray``.

    ``copy_dir`` is ``False`` (launch in place), ``True`` (copy to the default
    cache root) or a directory under which a versioned copy is kept.
    ``logger`` replaces the engine's module logger; ``debug`` also selects the
    debug renderer build and logs every line crossing the pipe.
    """

    menu: Menu
    debug: bool = False
    copy_dir: Union[bool, str, os.PathLike] = False
    bin_path: Optional[Union[str, os.PathLike]] = None
    raw_bootstrap: bool = False
    logger: Optional[logging.Logger] = field(default=None, repr=False)


def encode_icon(path: Union[str, os.PathLike]) -> str:
    """Read an icon file and return it base64-encoded for the renderer."""
    icon_path = Path(path).expanduser()
    try:
        data = icon_path.read_bytes()
    except OSError as exc:
        raise TrayConfigError(
            f"Cannot read icon file {icon_path}: {exc.strerror or exc}"
        ) from exc
    return base64.b64encode(data).decode("ascii")


def _as_bool(section: Dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise TrayConfigError(f"[tray].{key} must be true or false.")
    return value


def _menu_from_section(section: Dict[str, Any], base_dir: Path) -> Menu:
    payload = dict(section)
    icon_path = str(payload.pop("icon_path", "") or "").strip()
    if icon_path:
        resolved = Path(icon_path).expanduser()
        if not resolved.is_absolute():
            resolved = base_dir / resolved
        payload["icon"] = encode_icon(resolved)
    try:
        return Menu.from_dict(payload)
    except ProtocolDecodeError as exc:
        raise TrayConfigError(f"Invalid [menu] section: {exc.message}") from exc


def conf_from_dict(
    parsed: Dict[str, Any], *, base_dir: Optional[Path] = None
) -> TrayConf:
    tray = parsed.get("tray", {})
    menu_section = parsed.get("menu")
    if not isinstance(tray, dict):
        raise TrayConfigError("[tray] must be a table.")
    if not isinstance(menu_section, dict):
        raise TrayConfigError("Configuration requires a [menu] table.")

    copy_dir = tray.get("copy_dir", False)
    if not isinstance(copy_dir, (bool, str)):
        raise TrayConfigError("[tray].copy_dir must be a boolean or a path.")
    if isinstance(copy_dir, str):
        copy_dir = copy_dir.strip() or False
    bin_path = str(tray.get("bin_path", "") or "").strip() or None

    return TrayConf(
        menu=_menu_from_section(menu_section, base_dir or Path.cwd()),
        debug=_as_bool(tray, "debug", False),
        copy_dir=copy_dir,
        bin_path=bin_path,
        raw_bootstrap=_as_bool(tray, "raw_bootstrap", False),
    )


def load_conf(path: Union[str, os.PathLike]) -> TrayConf:
    """Load a ``TrayConf`` from a TOML file."""
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise TrayConfigError(
            f"Configuration file {config_path} does not exist.",
            hint="Create one with `traybridge init PATH`.",
        )
    try:
        with config_path.open("rb") as handle:
            parsed = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise TrayConfigError(f"Invalid TOML in {config_path}: {exc}") from exc
    logger.debug("loaded tray config path=%s", config_path)
    return conf_from_dict(parsed, base_dir=config_path.parent)


def _commented(value: Any, text: str):
    return tomlkit.item(value).comment(text)


def _template_document() -> tomlkit.TOMLDocument:
    doc = tomlkit.document()
    doc.add(tomlkit.comment("traybridge tray configuration"))

    tray = tomlkit.table()
    tray.add("debug", _commented(False, "use the debug renderer build and log every line"))
    tray.add("copy_dir", _commented(False, "true, or a directory to copy the renderer into"))
    tray.add("raw_bootstrap", _commented(False, "send the first menu untagged (legacy renderers)"))
    tray.add("bin_path", "")
    doc.add("tray", tray)

    menu = tomlkit.table()
    menu.add("icon", "")
    menu.add("icon_path", _commented("", "read and base64-encoded into icon when set"))
    menu.add("title", "traybridge")
    menu.add("tooltip", "traybridge")
    items = tomlkit.aot()
    for title, tooltip, checked, enabled in TEMPLATE_ITEMS:
        item = tomlkit.table()
        item.add("title", title)
        item.add("tooltip", tooltip)
        item.add("checked", checked)
        item.add("enabled", enabled)
        items.append(item)
    menu.add("items", items)
    doc.add("menu", menu)
    return doc


def write_template(path: Union[str, os.PathLike], *, force: bool = False) -> Path:
    """Write a commented example configuration."""
    config_path = Path(path).expanduser()
    if config_path.exists() and not force:
        raise TrayConfigError(
            f"Configuration file {config_path} already exists.",
            hint="Pass --force to overwrite it.",
        )
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(tomlkit.dumps(_template_document()), encoding="utf-8")
    logger.debug("wrote tray config template path=%s", config_path)
    return config_path


def default_menu() -> Menu:
    return Menu(
        title="traybridge",
        tooltip="traybridge",
        items=[
            MenuItem(title=title, tooltip=tooltip, checked=checked, enabled=enabled)
            for title, tooltip, checked, enabled in TEMPLATE_ITEMS
        ],
    )
