"""Console logging for bios-update runs."""
from __future__ import annotations

import os
import sys
from enum import IntEnum
from typing import Optional

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


_LEVEL_BY_NAME = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "success": LogLevel.SUCCESS,
    "warning": LogLevel.WARNING,
    "warn": LogLevel.WARNING,
    "error": LogLevel.ERROR,
}
_STYLES = {
    LogLevel.DEBUG: "cyan",
    LogLevel.SUCCESS: "green",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "bold red",
}
_configured_level: Optional[LogLevel] = None


def _normalize_level(value: Optional[str]) -> LogLevel:
    if not value or not value.strip():
        return LogLevel.INFO
    return _LEVEL_BY_NAME.get(value.strip().lower(), LogLevel.INFO)


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        _configured_level = _normalize_level(os.environ.get("BIOS_UPDATE_LOG_LEVEL"))
    return _configured_level


def set_level(value: Optional[str]) -> None:
    global _configured_level
    _configured_level = _normalize_level(value)


def _console(*, stderr: bool) -> Console:
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=bool(os.environ.get("NO_COLOR")),
    )


def emit(level: LogLevel, message: str) -> None:
    if level < configured_level():
        return
    text = Text(message, style=_STYLES.get(level, ""))
    _console(stderr=level >= LogLevel.WARNING).print(text)


def debug(message: str) -> None:
    emit(LogLevel.DEBUG, message)


def info(message: str) -> None:
    emit(LogLevel.INFO, message)


def success(message: str) -> None:
    emit(LogLevel.SUCCESS, message)


def warning(message: str) -> None:
    emit(LogLevel.WARNING, f"WARN: {message}")


def error(message: str) -> None:
    emit(LogLevel.ERROR, f"FAIL: {message}")
