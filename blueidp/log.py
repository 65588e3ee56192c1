from __future__ import annotations

import json
import sys
from typing import Any

from termcolor import colored


LEVELS = ("debug", "info", "warn", "error")
PREFIX = "[blueidp]"

_MARKERS = {
    "debug": ("[.] ", "white"),
    "info": ("[+] ", "green"),
    "warn": ("[*] ", "yellow"),
    "error": ("[-] ", "red"),
}

_threshold = LEVELS.index("info")


def set_level(name: str) -> None:
    global _threshold
    lvl = (name or "info").strip().lower()
    if lvl == "warning":
        lvl = "warn"
    if lvl not in LEVELS:
        raise ValueError(f"Invalid log level '{name}'. Valid values: {', '.join(LEVELS)}")
    _threshold = LEVELS.index(lvl)


def _emit(level: str, message: str, extra: dict[str, Any]) -> None:
    if LEVELS.index(level) < _threshold:
        return
    marker, color = _MARKERS[level]
    line = f"{colored(marker, color)}{PREFIX} {message}"
    if extra:
        line += " " + json.dumps(extra, default=str, sort_keys=True)
    # stdout is reserved for the stdio tool protocol.
    print(line, file=sys.stderr, flush=True)


def debug(message: str, **extra: Any) -> None:
    _emit("debug", message, extra)


def info(message: str, **extra: Any) -> None:
    _emit("info", message, extra)


def warn(message: str, **extra: Any) -> None:
    _emit("warn", message, extra)


def error(message: str, **extra: Any) -> None:
    _emit("error", message, extra)
