"""Logging setup for the web app and the CLI."""

from __future__ import annotations

import logging
import os

from render_portal import config

_FORMAT = "%(asctime)s | (%(name)s) [%(levelname)s]: %(message)s"


def configure_logging(log_file: str | None = None, level: str | None = None) -> None:
    """Attach a file handler (``log/app.log`` by default) and a stderr handler.

    Calling it twice is a no-op, so both the FastAPI app and the CLI can call
    it at import/start time.
    """
    root = logging.getLogger("render_portal")
    if getattr(root, "_render_portal_configured", False):
        return

    log_file = log_file or config.PATHS.app_log()
    os.makedirs(os.path.dirname(log_file), exist_ok=True)

    formatter = logging.Formatter(_FORMAT)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)

    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    root.setLevel((level or config.WEB.log_level).upper())
    root._render_portal_configured = True  # type: ignore[attr-defined]
