"""Command-line front end: run a tray from a TOML file, write templates."""

from __future__ import annotations

import argparse
import logging
import threading
from typing import Optional

from rich.console import Console

from traybridge import __version__, binary
from traybridge.config import TrayConf, default_menu, load_conf, write_template
from traybridge.errors import TrayError
from traybridge.logger import DEFAULT_LOG_FILE, setup_logging
from traybridge.models import CHECK_MARKER, ClickEvent, UpdateItemAction
from traybridge.tray import Systray

DEFAULT_QUIT_TITLE = "Exit"
POLL_INTERVAL_SECONDS = 0.5
SHUTDOWN_TIMEOUT_SECONDS = 5.0

console = Console()
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="traybridge",
        description="Drive a system-tray renderer process from a menu definition.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-file",
        nargs="?",
        const=DEFAULT_LOG_FILE,
        default=None,
        help=f"Write logs to a rotating file (default when flag is bare: {DEFAULT_LOG_FILE}).",
    )
    parser.add_argument("--log-level", default="INFO", help="Log level for --log-file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Start the tray and echo clicks.")
    run_parser.add_argument("config", nargs="?", help="TOML menu configuration file.")
    run_parser.add_argument("--debug", action="store_true", help="Use the debug renderer build.")
    run_parser.add_argument(
        "--copy-dir",
        nargs="?",
        const=True,
        default=None,
        help="Copy the renderer into a versioned cache directory before launching.",
    )
    run_parser.add_argument("--bin", dest="bin_path", help="Explicit renderer executable.")
    run_parser.add_argument(
        "--quit-item",
        default=DEFAULT_QUIT_TITLE,
        help="Title of the menu item that stops the tray.",
    )

    init_parser = subparsers.add_parser("init", help="Write a template configuration.")
    init_parser.add_argument("path", help="Where to write the TOML file.")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file.")

    which_parser = subparsers.add_parser("which", help="Print the resolved renderer path.")
    which_parser.add_argument("--debug", action="store_true", help="Resolve the debug build.")
    which_parser.add_argument("--copy-dir", nargs="?", const=True, default=None)
    return parser.parse_args(argv)


def _build_conf(args: argparse.Namespace) -> TrayConf:
    conf = load_conf(args.config) if args.config else TrayConf(menu=default_menu())
    if args.debug:
        conf.debug = True
    if args.copy_dir is not None:
        conf.copy_dir = args.copy_dir
    if args.bin_path:
        conf.bin_path = args.bin_path
    return conf


def _strip_marker(title: str) -> str:
    if title.endswith(CHECK_MARKER):
        return title[: -len(CHECK_MARKER)]
    return title


def run_command(args: argparse.Namespace) -> int:
    conf = _build_conf(args)
    tray = Systray(conf, start=False)
    console.print(f"[dim]renderer: {tray.bin_path}[/dim]")
    stopped = threading.Event()
    shutting_down = threading.Event()

    def _on_ready() -> None:
        console.print("[green]Tray renderer is ready.[/green]")

    def _on_click(event: ClickEvent) -> None:
        title = _strip_marker(event.item.title)
        console.print(f"clicked [bold]{title}[/bold] seq_id={event.seq_id}")
        if title == args.quit_item:
            stopped.set()
            return
        # The renderer reports the item index as seq_id.
        index = event.seq_id
        if isinstance(index, float) and index.is_integer():
            index = int(index)
        if not isinstance(index, int) or not 0 <= index < len(conf.menu.items):
            logger.debug("click seq_id=%s outside menu; not toggling", event.seq_id)
            return
        item = conf.menu.items[index]
        item.checked = not item.checked
        tray.send_action(UpdateItemAction(item=item, seq_id=event.seq_id))

    def _on_exit(code: Optional[int], signal_name: Optional[str]) -> None:
        if not shutting_down.is_set():
            console.print(
                f"[yellow]Tray renderer exited code={code} signal={signal_name}[/yellow]"
            )
        stopped.set()

    def _on_error(exc: BaseException) -> None:
        message = exc.user_message if isinstance(exc, TrayError) else str(exc)
        console.print(f"[red]Error:[/red] {message}")

    tray.on_ready(_on_ready).on_click(_on_click).on_error(_on_error).on_exit(_on_exit)
    tray.start()
    try:
        while not stopped.wait(POLL_INTERVAL_SECONDS):
            pass
    except KeyboardInterrupt:
        console.print("[dim]Interrupted.[/dim]")
    finally:
        shutting_down.set()
        tray.kill(exit_process=False)
        tray.wait(SHUTDOWN_TIMEOUT_SECONDS)
    spawn_failed = tray.pid is None
    return 1 if spawn_failed else 0


def init_command(args: argparse.Namespace) -> int:
    path = write_template(args.path, force=args.force)
    console.print(f"Wrote tray configuration to {path}")
    return 0


def which_command(args: argparse.Namespace) -> int:
    path = binary.get_tray_bin_path(args.debug, args.copy_dir or False)
    console.print(str(path), highlight=False)
    return 0


COMMANDS = {
    "run": run_command,
    "init": init_command,
    "which": which_command,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    logger.debug("traybridge command=%s", args.command)
    try:
        return COMMANDS[args.command](args)
    except TrayError as exc:
        logger.error("traybridge %s failed: %s", args.command, exc.user_message)
        console.print(f"[red]Error:[/red] {exc.user_message}")
        return 1
