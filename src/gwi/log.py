"""Structured terminal logging for gwi commands."""

from __future__ import annotations

import os
import sys
from enum import IntEnum

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


LEVEL_NAMES = ("trace", "debug", "info", "success", "warning", "error")

_LEVEL_BY_NAME = {
    "trace": LogLevel.TRACE,
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "success": LogLevel.SUCCESS,
    "warning": LogLevel.WARNING,
    "warn": LogLevel.WARNING,
    "error": LogLevel.ERROR,
}
_DEFAULT_LEVEL = LogLevel.INFO
_configured_level = None
_no_color_override: bool | None = None

_PREFIX = {
    LogLevel.INFO: "→ ",
    LogLevel.SUCCESS: "✓ ",
    LogLevel.WARNING: "! ",
    LogLevel.ERROR: "Error: ",
}


def _normalize_level(value: str | None) -> LogLevel:
    if value is None:
        return _DEFAULT_LEVEL
    normalized = value.strip().lower()
    if not normalized:
        return _DEFAULT_LEVEL
    return _LEVEL_BY_NAME.get(normalized, _DEFAULT_LEVEL)


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        _configured_level = _normalize_level(os.environ.get("GWI_LOG_LEVEL"))
    return _configured_level


def set_level(value: str | None) -> None:
    """Set the active log level."""
    global _configured_level
    _configured_level = _normalize_level(value)


def enable_verbose() -> None:
    """Lower the threshold to debug unless a finer level is already active."""
    global _configured_level
    if configured_level() > LogLevel.DEBUG:
        _configured_level = LogLevel.DEBUG


def set_no_color(value: bool) -> None:
    global _no_color_override
    _no_color_override = value


def is_enabled(level: LogLevel) -> bool:
    return level >= configured_level()


def _no_color() -> bool:
    if _no_color_override is not None:
        return _no_color_override
    return bool(os.environ.get("NO_COLOR") or os.environ.get("GWI_NO_COLOR"))


def console(*, stderr: bool) -> Console:
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=_no_color(),
    )


def _default_style(level: LogLevel) -> str:
    if level is LogLevel.TRACE:
        return "dim"
    if level is LogLevel.DEBUG:
        return "cyan"
    if level is LogLevel.SUCCESS:
        return "green"
    if level is LogLevel.WARNING:
        return "yellow"
    if level is LogLevel.ERROR:
        return "bold red"
    return "blue"


def emit(
    level: LogLevel,
    message: str,
    *,
    style: str | None = None,
    stderr: bool | None = None,
) -> None:
    if not is_enabled(level):
        return
    target_stderr = stderr if stderr is not None else level >= LogLevel.WARNING
    text = Text()
    prefix = _PREFIX.get(level)
    if prefix:
        text.append(prefix, style=style or _default_style(level))
        text.append(message)
    else:
        text.append(message, style=style or _default_style(level))
    console(stderr=target_stderr).print(text)


def trace(message: str, *, style: str | None = None, stderr: bool = False) -> None:
    emit(LogLevel.TRACE, message, style=style, stderr=stderr)


def debug(message: str, *, style: str | None = None, stderr: bool = False) -> None:
    emit(LogLevel.DEBUG, message, style=style, stderr=stderr)


def info(message: str, *, style: str | None = None, stderr: bool = False) -> None:
    emit(LogLevel.INFO, message, style=style, stderr=stderr)


def success(message: str, *, style: str | None = None, stderr: bool = False) -> None:
    emit(LogLevel.SUCCESS, message, style=style, stderr=stderr)


def warning(message: str, *, style: str | None = None) -> None:
    emit(LogLevel.WARNING, message, style=style, stderr=True)


def error(message: str, *, style: str | None = None) -> None:
    emit(LogLevel.ERROR, message, style=style, stderr=True)
