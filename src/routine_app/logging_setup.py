from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure console logging for the CLI and the desktop app.

    Safe to call multiple times (won't double-add handlers).
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(_level(level))
        return

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logging.basicConfig(level=_level(level), handlers=[console])


def _level(name: str) -> int:
    value = logging.getLevelName((name or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO
