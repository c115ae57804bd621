"""Renderer binary selection, lookup and optional cache copy."""

from __future__ import annotations

import logging
import os
import platform
import shutil
import stat
from pathlib import Path
from typing import List, Optional, Union

from traybridge.errors import BinaryNotFoundError, UnsupportedPlatformError

PLATFORM_DARWIN = "darwin"
PLATFORM_LINUX = "linux"
PLATFORM_WINDOWS = "windows"
WINDOWS_BINARIES = {
    "x86": "tray_windows_i386.exe",
    "i386": "tray_windows_i386.exe",
    "i686": "tray_windows_i386.exe",
    "amd64": "tray_windows_amd64.exe",
    "x86_64": "tray_windows_amd64.exe",
}
BUNDLED_BIN_DIR = Path(__file__).resolve().parent / "traybin"
DEFAULT_CACHE_ROOT = "~/.cache/traybridge"
logger = logging.getLogger(__name__)

CopyDir = Union[bool, str, os.PathLike, None]


def _normalized_platform() -> str:
    return platform.system().strip().lower()


def _normalized_machine() -> str:
    return platform.machine().strip().lower()


def get_binary_name(debug: bool = False) -> str:
    """Return the renderer file name for the current OS/architecture."""
    normalized = _normalized_platform()
    if normalized == PLATFORM_WINDOWS:
        machine = _normalized_machine()
        name = WINDOWS_BINARIES.get(machine)
        if name is None:
            raise UnsupportedPlatformError(
                f"Architecture {machine or 'unknown'} is not supported.",
                hint="Available architectures: i386 and amd64.",
            )
        return name
    if normalized == PLATFORM_DARWIN:
        return "tray_darwin" if debug else "tray_darwin_release"
    if normalized == PLATFORM_LINUX:
        return "tray_linux" if debug else "tray_linux_release"
    raise UnsupportedPlatformError(
        f"Platform {normalized or 'unknown'} is not supported.",
        hint="Supported platforms: Windows, macOS and Linux.",
    )


def candidate_paths(bin_name: str) -> List[Path]:
    return [BUNDLED_BIN_DIR / bin_name, Path.cwd() / bin_name]


def find_binary(debug: bool = False) -> Path:
    """Locate the renderer in the bundled directory, then the working directory."""
    bin_name = get_binary_name(debug)
    searched = candidate_paths(bin_name)
    for candidate in searched:
        if candidate.is_file():
            logger.debug("tray renderer found path=%s", candidate)
            return candidate.resolve()
    logger.error("tray renderer %s not found searched=%s", bin_name, searched)
    raise BinaryNotFoundError(bin_name, searched)


def resolve_cache_dir(copy_dir: CopyDir) -> Optional[Path]:
    """Return the versioned cache directory, or None when copying is off."""
    if not copy_dir:
        return None
    from traybridge import __version__

    if copy_dir is True:
        root = Path(DEFAULT_CACHE_ROOT).expanduser()
    else:
        root = Path(copy_dir).expanduser()
    return root / __version__


def copy_to_cache(bin_path: Path, cache_dir: Path) -> Path:
    """Copy the renderer into ``cache_dir`` once and keep it executable."""
    target = cache_dir / bin_path.name
    if target.exists():
        logger.debug("tray renderer cache hit path=%s", target)
        return target
    cache_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(bin_path, target)
    mode = target.stat().st_mode
    target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("tray renderer copied source=%s target=%s", bin_path, target)
    return target


def get_tray_bin_path(debug: bool = False, copy_dir: CopyDir = False) -> Path:
    """Resolve the renderer to launch, copying it to the cache when requested."""
    bin_path = find_binary(debug)
    cache_dir = resolve_cache_dir(copy_dir)
    if cache_dir is None:
        return bin_path
    return copy_to_cache(bin_path, cache_dir)
