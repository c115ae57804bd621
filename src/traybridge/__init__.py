"""traybridge - drive a system-tray renderer process over JSON lines."""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from traybridge.config import TrayConf  # noqa: E402
from traybridge.errors import (  # noqa: E402
    BinaryNotFoundError,
    ProtocolDecodeError,
    RendererWriteError,
    SpawnError,
    TrayConfigError,
    TrayError,
    UnsupportedPlatformError,
)
from traybridge.models import (  # noqa: E402
    ClickEvent,
    Menu,
    MenuItem,
    ReadyEvent,
    UpdateItemAction,
    UpdateMenuAction,
    UpdateMenuAndItemAction,
    render_checked,
)
from traybridge.tray import Systray, TrayState  # noqa: E402


def main() -> None:
    """Run the CLI entry point with lazy import."""
    from traybridge.cli import main as cli_main

    raise SystemExit(cli_main())


__all__ = [
    "BinaryNotFoundError",
    "ClickEvent",
    "Menu",
    "MenuItem",
    "ProtocolDecodeError",
    "ReadyEvent",
    "RendererWriteError",
    "SpawnError",
    "Systray",
    "TrayConf",
    "TrayConfigError",
    "TrayError",
    "TrayState",
    "UnsupportedPlatformError",
    "UpdateItemAction",
    "UpdateMenuAction",
    "UpdateMenuAndItemAction",
    "main",
    "render_checked",
    "__version__",
]
