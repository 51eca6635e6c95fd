"""One-shot flash messages kept in the session.

A handler calls ``set_flash`` right before redirecting; the next page view
calls ``pop_flash``, which returns the message and removes it, so each
message is shown once.
"""

from __future__ import annotations

from typing import Any, Literal, MutableMapping

FlashLevel = Literal["info", "success", "warning", "danger"]

FLASH_KEY = "flash"


def set_flash(session: MutableMapping[str, Any], level: FlashLevel, message: str) -> None:
    session[FLASH_KEY] = {"level": level, "message": str(message)}


def pop_flash(
    session: MutableMapping[str, Any], default: dict[str, str] | None = None
) -> dict[str, str] | None:
    flash = session.pop(FLASH_KEY, None)
    if not isinstance(flash, dict):
        return default
    return flash
