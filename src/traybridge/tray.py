"""Controller side of the tray renderer protocol."""

from __future__ import annotations

import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from traybridge import binary
from traybridge.config import TrayConf
from traybridge.errors import ProtocolDecodeError
from traybridge.models import (
    Action,
    ClickEvent,
    Menu,
    ReadyEvent,
    UpdateMenuAction,
    apply_checked_rule,
    render_checked,
)
from traybridge.process import ErrorListener, ExitListener, TrayProcess
from traybridge.protocol import decode_event, encode_action, encode_menu

BOOTSTRAP_SEQ_ID = -1
ReadyListener = Callable[[], None]
ClickListener = Callable[[ClickEvent], None]
logger = logging.getLogger(__name__)


class TrayState(str, Enum):
    STARTING = "starting"
    AWAITING_READY = "awaiting-ready"
    READY = "ready"


def _exit_host_process() -> None:
    logging.shutdown()
    os._exit(0)


class Systray:
    """Drives one tray renderer process.

    The initial menu is pushed once, right after the renderer reports
    ``ready``; nothing is written before that. Listeners run on the session's
    reader thread, one line at a time, in the order lines arrive, so a slow
    listener delays every later event. A ready listener added after the
    handshake is called right away on the registering thread.
    """

    def __init__(self, conf: TrayConf, *, start: bool = True):
        self._conf = conf
        self._log = conf.logger or logger
        self._state = TrayState.STARTING
        self._ready_listeners: List[ReadyListener] = []
        self._click_listeners: List[ClickListener] = []
        self._listeners_lock = threading.Lock()
        self._bootstrapped = False

        if conf.bin_path:
            self._bin_path = Path(conf.bin_path).expanduser()
        else:
            self._bin_path = binary.get_tray_bin_path(conf.debug, conf.copy_dir)

        for item in conf.menu.items:
            render_checked(item)

        self._process = TrayProcess(self._bin_path, log=self._log)
        self._process.on_line(self._handle_line)
        if start:
            self.start()

    def start(self) -> "Systray":
        """Spawn the renderer. Called by the constructor unless ``start=False``.

        Deferring lets callers register listeners before the reader thread can
        deliver the first ``ready``.
        """
        if self._state is TrayState.STARTING:
            self._state = TrayState.AWAITING_READY
            self._process.spawn()
        return self

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def menu(self) -> Menu:
        return self._conf.menu

    @property
    def state(self) -> TrayState:
        return self._state

    @property
    def bin_path(self) -> Path:
        return self._bin_path

    @property
    def killed(self) -> bool:
        return self._process.killed

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _trace(self, message: str, *args) -> None:
        if self._conf.debug:
            self._log.debug(message, *args)

    def _handle_line(self, line: str) -> None:
        self._trace("renderer line=%s", line)
        try:
            event = decode_event(line)
        except ProtocolDecodeError as exc:
            self._log.warning("dropping renderer line: %s line=%r", exc.message, line)
            self._process.emit_error(exc)
            return

        if isinstance(event, ReadyEvent):
            self._on_ready_event()
            with self._listeners_lock:
                self._state = TrayState.READY
                listeners = list(self._ready_listeners)
            for listener in listeners:
                self._invoke(listener)
        else:
            self._trace("renderer click seq_id=%s title=%s", event.seq_id, event.item.title)
            for listener in list(self._click_listeners):
                self._invoke(listener, event)

    def _on_ready_event(self) -> None:
        if self._bootstrapped:
            self._log.debug("renderer reported ready again; menu already pushed")
            return
        self._bootstrapped = True
        self._log.info("tray renderer ready; pushing initial menu")
        if self._conf.raw_bootstrap:
            for item in self._conf.menu.items:
                render_checked(item)
            self.write_line(encode_menu(self._conf.menu))
        else:
            self.send_action(UpdateMenuAction(menu=self._conf.menu, seq_id=BOOTSTRAP_SEQ_ID))

    def _invoke(self, listener: Callable, *args) -> None:
        try:
            listener(*args)
        except Exception as exc:
            self._log.exception("tray listener %r failed", listener)
            self._process.emit_error(exc)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def write_line(self, line: str) -> "Systray":
        self._trace("renderer write=%s", (line or "").strip())
        self._process.write_line(line)
        return self

    def send_action(self, action: Action) -> "Systray":
        """Apply the checkbox rule to every carried item, encode and write."""
        apply_checked_rule(action)
        self._trace("send action type=%s seq_id=%s", action.type.value, action.seq_id)
        return self.write_line(encode_action(action))

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_ready(self, listener: ReadyListener) -> "Systray":
        """Register ``listener()``; called at once if the renderer is already ready."""
        with self._listeners_lock:
            self._ready_listeners.append(listener)
            replay = self._state is TrayState.READY
        if replay:
            self._invoke(listener)
        return self

    def on_click(self, listener: ClickListener) -> "Systray":
        self._click_listeners.append(listener)
        return self

    def on_exit(self, listener: ExitListener) -> "Systray":
        self._process.on_exit(listener)
        return self

    def on_error(self, listener: ErrorListener) -> "Systray":
        self._process.on_error(listener)
        return self

    def remove_listener(self, listener: Callable) -> bool:
        removed = self._process.remove_listener(listener)
        for registry in (self._ready_listeners, self._click_listeners):
            while listener in registry:
                registry.remove(listener)
                removed = True
        return removed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def kill(self, exit_process: bool = True) -> None:
        """Kill the renderer.

        With ``exit_process`` the host process exits once the renderer has
        exited.
        """
        if exit_process:
            self._process.on_exit(lambda _code, _signal: _exit_host_process())
        self._process.close_lines()
        self._process.kill()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._process.wait(timeout)

    def __enter__(self) -> "Systray":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.kill(exit_process=False)
