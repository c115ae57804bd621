"""User-visible tray exceptions."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class TrayError(RuntimeError):
    """Error intended to be shown directly to the embedding application."""

    def __init__(self, message: str, *, hint: str = ""):
        self.message = str(message or "").strip() or "Unknown tray error."
        self.hint = str(hint or "").strip()
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if self.hint:
            return f"{self.message} {self.hint}".strip()
        return self.message


class UnsupportedPlatformError(TrayError):
    """No renderer binary exists for this OS/architecture."""


class BinaryNotFoundError(TrayError):
    """The renderer binary was not found in any searched location."""

    def __init__(self, bin_name: str, searched: Sequence[Path]):
        self.bin_name = bin_name
        self.searched = [Path(path) for path in searched]
        super().__init__(
            f"Unable to locate {bin_name} executable.",
            hint="Searched: " + ", ".join(str(path) for path in self.searched),
        )


class SpawnError(TrayError):
    """The OS refused to start the renderer executable."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = str(path)
        detail = f": {cause}" if cause is not None else "."
        super().__init__(
            f"Failed to start tray renderer {self.path}{detail}",
            hint="Check that the file exists and is executable.",
        )


class ProtocolDecodeError(TrayError):
    """A renderer line could not be decoded into an event."""

    def __init__(self, message: str, *, line: str = ""):
        self.line = line
        super().__init__(message)


class RendererWriteError(TrayError):
    """Writing to the renderer's input stream failed."""


class TrayConfigError(TrayError):
    """Tray configuration file is missing or malformed."""
