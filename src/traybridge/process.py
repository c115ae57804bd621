"""Renderer child process ownership and line-oriented stdio."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from traybridge.errors import RendererWriteError, SpawnError

LineListener = Callable[[str], None]
ExitListener = Callable[[Optional[int], Optional[str]], None]
ErrorListener = Callable[[BaseException], None]

LINE_END = "\n"
PIPE_RELEASE_TIMEOUT_SECONDS = 2.0

logger = logging.getLogger(__name__)


def _no_window_creationflags() -> int:
    if os.name != "nt":
        return 0
    return int(getattr(subprocess, "CREATE_NO_WINDOW", 0))


def _split_returncode(returncode: Optional[int]) -> tuple[Optional[int], Optional[str]]:
    """Map a Popen return code to a ``(code, signal_name)`` pair."""
    if returncode is None:
        return None, None
    if returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, f"SIG{-returncode}"


class TrayProcess:
    """Owns the renderer process and its stdin/stdout pipes.

    A reader thread delivers stdout lines to line listeners one at a time, in
    the order received. A separate waiter thread reports the exit, so exit
    notification does not depend on stdout being drained.

    Pipes are binary; lines are UTF-8 and always end in a bare ``\\n``,
    whatever the host platform's line separator is.
    """

    def __init__(
        self,
        args: Union[str, Path, Sequence[Union[str, Path]]],
        *,
        log: Optional[logging.Logger] = None,
    ):
        if isinstance(args, (str, Path)):
            args = [args]
        self.args = [str(part) for part in args]
        self._log = log or logger
        self._proc: Optional[subprocess.Popen] = None
        self._spawn_error: Optional[SpawnError] = None
        self._line_listeners: List[LineListener] = []
        self._exit_listeners: List[ExitListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._listeners_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._reading = False
        self._killed = False
        self._exited = threading.Event()
        self._exit_status: tuple[Optional[int], Optional[str]] = (None, None)
        self._reader_thread: Optional[threading.Thread] = None
        self._waiter_thread: Optional[threading.Thread] = None

    @property
    def path(self) -> str:
        return self.args[0] if self.args else ""

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc is not None else None

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.returncode if self._proc is not None else None

    @property
    def killed(self) -> bool:
        return self._killed or self._exited.is_set()

    @property
    def spawn_error(self) -> Optional[SpawnError]:
        return self._spawn_error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def spawn(self) -> "TrayProcess":
        """Start the child. Failures are reported to error listeners, never raised."""
        if self._proc is not None or self._spawn_error is not None or self._killed:
            return self
        self._log.debug("spawning tray renderer args=%s", self.args)
        try:
            self._proc = subprocess.Popen(
                self.args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                creationflags=_no_window_creationflags(),
            )
        except OSError as exc:
            self._spawn_error = SpawnError(self.path, exc)
            self._log.error("tray renderer spawn failed: %s", self._spawn_error.user_message)
            self._exited.set()
            self.emit_error(self._spawn_error)
            for listener in self._snapshot(self._exit_listeners):
                self._call_exit_listener(listener)
            return self

        self._log.info("tray renderer started pid=%s path=%s", self._proc.pid, self.path)
        self._reading = True
        self._reader_thread = threading.Thread(
            target=self._read_loop,
            name=f"traybridge-reader-{self._proc.pid}",
            daemon=True,
        )
        self._waiter_thread = threading.Thread(
            target=self._wait_loop,
            name=f"traybridge-waiter-{self._proc.pid}",
            daemon=True,
        )
        self._reader_thread.start()
        self._waiter_thread.start()
        return self

    def close_lines(self) -> None:
        """Stop delivering stdout lines to line listeners."""
        if self._reading:
            self._log.debug("tray renderer line subscription closed")
        self._reading = False

    def kill(self) -> None:
        """Terminate the child. Safe to call repeatedly or after a failed spawn."""
        self.close_lines()
        if self._killed:
            return
        self._killed = True
        proc = self._proc
        if proc is None:
            if not self._exited.is_set():
                # Never spawned; nothing else will report an exit.
                self._exited.set()
                for listener in self._snapshot(self._exit_listeners):
                    self._call_exit_listener(listener)
            return
        if proc.poll() is not None:
            self._log.debug("tray renderer kill skipped: process not running")
            return
        self._log.info("killing tray renderer pid=%s", proc.pid)
        try:
            proc.terminate()
        except OSError:
            # Raced with a natural exit.
            self._log.debug("tray renderer terminate failed", exc_info=True)
        # A writer stuck on a full pipe holds the lock until the child dies;
        # the waiter thread closes stdin in that case.
        if self._write_lock.acquire(blocking=False):
            try:
                self._close_pipe(proc.stdin, "stdin")
            finally:
                self._write_lock.release()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the exit was observed. Returns False on timeout."""
        return self._exited.wait(timeout)

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    def write_line(self, text: str) -> "TrayProcess":
        """Write one stripped line plus ``\\n``; blank text writes nothing.

        Writes are fire-and-forget and rely on the OS pipe buffer; there is no
        queue or backpressure. A bounded outbound queue would go here.
        """
        line = (text or "").strip()
        if not line:
            return self
        proc = self._proc
        if proc is None or proc.stdin is None or self._killed or self._exited.is_set():
            self._log.debug("write_line dropped: renderer not running line=%s", line)
            return self
        data = (line + LINE_END).encode("utf-8")
        with self._write_lock:
            try:
                proc.stdin.write(data)
                proc.stdin.flush()
            except (OSError, ValueError) as exc:
                if self._killed:
                    self._log.debug("write interrupted by kill: %s", exc)
                    return self
                self._log.warning("write to tray renderer failed: %s", exc)
                self.emit_error(
                    RendererWriteError(f"Failed to write to tray renderer: {exc}")
                )
        return self

    def _close_pipe(self, pipe, name: str) -> None:
        if pipe is None:
            return
        try:
            pipe.close()
        except (OSError, ValueError):
            self._log.debug("closing renderer %s failed", name, exc_info=True)

    def _read_loop(self) -> None:
        proc = self._proc
        assert proc is not None and proc.stdout is not None
        try:
            for raw in proc.stdout:
                if not self._reading:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                for listener in self._snapshot(self._line_listeners):
                    if not self._reading:
                        break
                    listener(line)
        except (OSError, ValueError):
            if self._reading:
                self._log.debug("tray renderer stdout read failed", exc_info=True)
        except Exception as exc:
            self._log.exception("tray renderer line listener crashed; reader stopped")
            self.emit_error(exc)
        finally:
            self._reading = False
            self._log.debug("tray renderer reader thread finished")

    def _wait_loop(self) -> None:
        proc = self._proc
        assert proc is not None
        returncode = proc.wait()
        self._exit_status = _split_returncode(returncode)
        code, signal_name = self._exit_status
        if self._killed:
            self._log.info("tray renderer exited code=%s signal=%s", code, signal_name)
        else:
            self._log.warning(
                "tray renderer exited unexpectedly code=%s signal=%s", code, signal_name
            )
        self._release_pipes(proc)
        self._exited.set()
        for listener in self._snapshot(self._exit_listeners):
            self._call_exit_listener(listener)

    def _release_pipes(self, proc: subprocess.Popen) -> None:
        """Close both pipes once the child is gone and stdout is drained."""
        reader = self._reader_thread
        if reader is not None and reader is not threading.current_thread():
            reader.join(PIPE_RELEASE_TIMEOUT_SECONDS)
        if reader is None or not reader.is_alive():
            self._close_pipe(proc.stdout, "stdout")
        else:
            self._log.debug("tray renderer reader still busy; leaving stdout open")
        if self._write_lock.acquire(timeout=PIPE_RELEASE_TIMEOUT_SECONDS):
            try:
                self._close_pipe(proc.stdin, "stdin")
            finally:
                self._write_lock.release()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def on_line(self, listener: LineListener) -> "TrayProcess":
        with self._listeners_lock:
            self._line_listeners.append(listener)
        return self

    def on_exit(self, listener: ExitListener) -> "TrayProcess":
        """Register ``listener(code, signal_name)``; fires now if already exited."""
        with self._listeners_lock:
            already_exited = self._exited.is_set()
            if not already_exited:
                self._exit_listeners.append(listener)
        if already_exited:
            self._call_exit_listener(listener)
        return self

    def on_error(self, listener: ErrorListener) -> "TrayProcess":
        """Register ``listener(exc)``; a past spawn failure is replayed to it."""
        with self._listeners_lock:
            self._error_listeners.append(listener)
        if self._spawn_error is not None:
            self._call_error_listener(listener, self._spawn_error)
        return self

    def remove_listener(self, listener: Callable) -> bool:
        removed = False
        with self._listeners_lock:
            for registry in (
                self._line_listeners,
                self._exit_listeners,
                self._error_listeners,
            ):
                while listener in registry:
                    registry.remove(listener)
                    removed = True
        return removed

    def _snapshot(self, registry: list) -> list:
        with self._listeners_lock:
            return list(registry)

    def emit_error(self, exc: BaseException) -> None:
        for listener in self._snapshot(self._error_listeners):
            self._call_error_listener(listener, exc)

    def _call_error_listener(self, listener: ErrorListener, exc: BaseException) -> None:
        try:
            listener(exc)
        except Exception:
            self._log.exception("tray error listener failed")

    def _call_exit_listener(self, listener: ExitListener) -> None:
        code, signal_name = self._exit_status
        try:
            listener(code, signal_name)
        except Exception:
            self._log.exception("tray exit listener failed")
