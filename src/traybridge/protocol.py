"""Newline-delimited JSON codec for the tray renderer wire protocol."""

from __future__ import annotations

import json
import math
from typing import Any

from traybridge.errors import ProtocolDecodeError
from traybridge.models import (
    Action,
    ClickEvent,
    Event,
    EventType,
    Menu,
    MenuItem,
    ReadyEvent,
)

LINE_TERMINATOR = "\n"
_JSON_SEPARATORS = (",", ":")


def _dump_line(payload: Any) -> str:
    return json.dumps(payload, separators=_JSON_SEPARATORS, ensure_ascii=False) + LINE_TERMINATOR


def encode_action(action: Action) -> str:
    """Serialize an action to one compact JSON line, terminator included."""
    return _dump_line(action.to_dict())


def encode_menu(menu: Menu) -> str:
    """Serialize a bare menu, the untagged first message legacy renderers expect."""
    return _dump_line(menu.to_dict())


def decode_event(line: str) -> Event:
    """Parse one renderer line into a ``ReadyEvent`` or ``ClickEvent``.

    Raises ``ProtocolDecodeError`` for anything that is not a JSON object with
    a known ``type`` and a well-formed payload. The offending line is kept on
    the exception for diagnostics.
    """
    text = (line or "").strip()
    if not text:
        raise ProtocolDecodeError("Empty line from tray renderer.", line=line)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProtocolDecodeError(
            f"Invalid JSON from tray renderer: {exc.msg}", line=line
        ) from exc
    if not isinstance(payload, dict):
        raise ProtocolDecodeError(
            "Tray renderer message must be a JSON object.", line=line
        )

    raw_type = payload.get("type")
    try:
        event_type = EventType(raw_type)
    except ValueError as exc:
        raise ProtocolDecodeError(
            f"Unknown tray event type {raw_type!r}.", line=line
        ) from exc

    if event_type is EventType.READY:
        return ReadyEvent()

    seq_id = payload.get("seq_id")
    if (
        isinstance(seq_id, bool)
        or not isinstance(seq_id, (int, float))
        or (isinstance(seq_id, float) and not math.isfinite(seq_id))
    ):
        raise ProtocolDecodeError(
            "Clicked event requires a numeric seq_id.", line=line
        )
    if "item" not in payload:
        raise ProtocolDecodeError("Clicked event requires an item.", line=line)
    try:
        item = MenuItem.from_dict(payload["item"])
    except ProtocolDecodeError as exc:
        raise ProtocolDecodeError(exc.message, line=line) from exc
    return ClickEvent(item=item, seq_id=seq_id)
