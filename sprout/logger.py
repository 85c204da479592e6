"""Built-in logging plugin, configured from the ``logger`` table."""

from __future__ import annotations

import atexit
import faulthandler
import json
import logging
import os
import queue
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from .logconfig import (
    Format,
    LogLevel,
    LoggerConfig,
    LoggerFileAppender,
    Rotation,
    TimeStyle,
    WithFields,
)
from .plugin import Plugin

logger = logging.getLogger(__name__)

LOG_ENV_VAR = "SPROUT_LOG"
TRACE = 5
OFF = logging.CRITICAL + 10

logging.addLevelName(TRACE, "TRACE")

_DIRECTIVE_LEVELS = {
    "off": OFF,
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "0": OFF,
    "1": logging.ERROR,
    "2": logging.WARNING,
    "3": logging.INFO,
    "4": logging.DEBUG,
    "5": TRACE,
}

_RESET = "\x1b[0m"
_LEVEL_COLORS = {"TRACE": 35, "DEBUG": 34, "INFO": 32, "WARN": 33, "ERROR": 31}

_BANNER_LEVELS = {
    LogLevel.OFF: (91, "Disabled"),
    LogLevel.TRACE: (35, "TRACE"),
    LogLevel.DEBUG: (34, "DEBUG"),
    LogLevel.INFO: (32, "INFO "),
    LogLevel.WARN: (33, "WARN "),
    LogLevel.ERROR: (31, "ERROR"),
}

_ROTATION_WHEN = {Rotation.MINUTELY: "M", Rotation.HOURLY: "H", Rotation.DAILY: "D"}


def _paint(code: int, text: str) -> str:
    return f"\x1b[{code}m{text}{_RESET}"


@dataclass(frozen=True)
class _Filter:
    root: int
    targets: dict[str, int] = field(default_factory=dict)


def _parse_directives(text: str) -> _Filter:
    """Parse ``level`` and ``target=level`` items separated by commas."""
    root: int | None = None
    targets: dict[str, int] = {}
    for raw in text.split(","):
        token = raw.strip()
        if not token:
            continue
        target, sep, level_name = token.partition("=")
        if sep:
            target = target.strip()
            level = _DIRECTIVE_LEVELS.get(level_name.strip().lower())
            if not target or level is None:
                raise ValueError(f"invalid filter directive: {token}")
            targets[target] = level
        else:
            level = _DIRECTIVE_LEVELS.get(token.lower())
            if level is None:
                targets[token] = TRACE
            else:
                root = level
    return _Filter(logging.ERROR if root is None else root, targets)


def _resolve_filter(config: LoggerConfig) -> _Filter:
    from_env = os.environ.get(LOG_ENV_VAR)
    if from_env is not None:
        try:
            return _parse_directives(from_env)
        except ValueError:
            pass
    directive = config.override_filter if config.override_filter is not None else str(config.level)
    try:
        return _parse_directives(directive)
    except ValueError as exc:
        raise ValueError(f"logger initialization failed: {exc}") from exc


def build_level(config: LoggerConfig) -> int:
    """Return the root logging level.

    The ``SPROUT_LOG`` variable wins when it holds a valid filter, then the
    configured override filter, then the configured level.
    """
    return _resolve_filter(config).root


def _level_label(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    if levelno >= logging.INFO:
        return "INFO"
    if levelno >= logging.DEBUG:
        return "DEBUG"
    return "TRACE"


class _EventFormatter(logging.Formatter):
    """Renders records in the compact, pretty or JSON layout."""

    def __init__(self, config: LoggerConfig, layout: Format, ansi: bool) -> None:
        super().__init__()
        self._config = config
        self._layout = layout
        self._ansi = ansi
        self._start = datetime.now().timestamp()

    def _timestamp(self, record: logging.LogRecord) -> str | None:
        style = self._config.time_style
        if style is TimeStyle.NONE:
            return None
        if style is TimeStyle.UPTIME:
            return f"{record.created - self._start:.9f}s"
        if style is TimeStyle.SYSTEM_TIME:
            moment = datetime.fromtimestamp(record.created, timezone.utc)
            return moment.isoformat(timespec="microseconds").replace("+00:00", "Z")
        if style is TimeStyle.UTC:
            moment = datetime.fromtimestamp(record.created, timezone.utc)
        else:
            moment = datetime.fromtimestamp(record.created).astimezone()
        return moment.strftime(self._config.time_pattern)

    def _extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        extras: dict[str, Any] = {}
        for item in self._config.with_fields:
            if item is WithFields.FILE:
                extras["filename"] = record.pathname
            elif item is WithFields.LINE_NUMBER:
                extras["line_number"] = record.lineno
            elif item is WithFields.THREAD_ID:
                extras["threadId"] = record.thread
            elif item is WithFields.THREAD_NAME:
                extras["threadName"] = record.threadName
        return extras

    def _message(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"
        if record.stack_info:
            message = f"{message}\n{self.formatStack(record.stack_info)}"
        return message

    def _colored_level(self, label: str, width: int) -> str:
        padded = label.ljust(width)
        return _paint(_LEVEL_COLORS[label], padded) if self._ansi else padded

    def format(self, record: logging.LogRecord) -> str:
        message = self._message(record)
        timestamp = self._timestamp(record)
        label = _level_label(record.levelno)
        extras = self._extra_fields(record)

        if self._layout is Format.JSON:
            payload: dict[str, Any] = {}
            if timestamp is not None:
                payload["timestamp"] = timestamp
            payload["level"] = label
            payload["fields"] = {"message": message}
            payload["target"] = record.name
            payload.update(extras)
            return json.dumps(payload, ensure_ascii=False)

        location = ":".join(
            str(extras[key]) for key in ("filename", "line_number") if key in extras
        )
        thread = " ".join(
            part
            for part in (
                extras.get("threadName"),
                f"ThreadId({extras['threadId']})" if "threadId" in extras else None,
            )
            if part
        )

        if self._layout is Format.PRETTY:
            head = [timestamp] if timestamp is not None else []
            head += [self._colored_level(label, 0), f"{record.name}:", message]
            lines = ["  " + " ".join(head)]
            if location:
                lines.append(f"    at {location}")
            if thread:
                lines.append(f"    on {thread}")
            return "\n".join(lines)

        parts = [timestamp] if timestamp is not None else []
        parts.append(self._colored_level(label, 5))
        if thread:
            parts.append(thread)
        parts.append(f"{record.name}:")
        if location:
            parts.append(f"{location}:")
        parts.append(message)
        return " ".join(parts)


def _apply_error_reporting(handler: logging.Handler, config: LoggerConfig) -> None:
    if WithFields.INTERNAL_ERRORS not in config.with_fields:
        handler.handleError = lambda record: None  # type: ignore[method-assign]


class _NonBlockingHandler(QueueHandler):
    """Hands records to a background thread that writes them to ``target``."""

    def __init__(self, target: logging.Handler) -> None:
        records: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
        super().__init__(records)
        self.target = target
        self._listener = QueueListener(records, target)
        self._listener.start()
        self._running = True

    def close(self) -> None:
        if self._running:
            self._running = False
            self._listener.stop()
            self.target.close()
        super().close()


def _make_file_handler(config: LoggerConfig, appender: LoggerFileAppender) -> logging.Handler:
    directory = Path(appender.dir)
    directory.mkdir(parents=True, exist_ok=True)
    name = appender.filename_prefix
    if appender.filename_suffix:
        name = f"{name}.{appender.filename_suffix}" if name else appender.filename_suffix
    path = directory / name
    target: logging.Handler
    if appender.rotation is Rotation.NEVER:
        target = logging.FileHandler(path, encoding="utf-8")
    else:
        target = TimedRotatingFileHandler(
            path,
            when=_ROTATION_WHEN[appender.rotation],
            backupCount=appender.max_log_files,
            encoding="utf-8",
        )
    target.setFormatter(_EventFormatter(config, appender.format, ansi=False))
    _apply_error_reporting(target, config)
    if not appender.non_blocking:
        return target
    handler = _NonBlockingHandler(target)
    _apply_error_reporting(handler, config)
    return handler


def build_handlers(
    config: LoggerConfig, extra_handlers: Iterable[logging.Handler] = ()
) -> list[logging.Handler]:
    """Return the extra handlers followed by the file and stdout handlers the config enables."""
    handlers = list(extra_handlers)
    appender = config.file_appender
    if appender is not None and appender.enable:
        handlers.append(_make_file_handler(config, appender))
    if config.enable:
        stdout = logging.StreamHandler(sys.stdout)
        stdout.setFormatter(_EventFormatter(config, config.format, ansi=True))
        _apply_error_reporting(stdout, config)
        handlers.append(stdout)
    return handlers


@dataclass
class _Installation:
    handlers: list[logging.Handler]
    owned: list[logging.Handler]
    targets: list[str]


_current: _Installation | None = None


def _uninstall() -> None:
    global _current
    if _current is None:
        return
    root = logging.getLogger()
    for handler in _current.handlers:
        root.removeHandler(handler)
    for handler in _current.owned:
        handler.close()
    for name in _current.targets:
        logging.getLogger(name).setLevel(logging.NOTSET)
    _current = None


def _install(
    handlers: list[logging.Handler], extra: list[logging.Handler], log_filter: _Filter
) -> None:
    global _current
    _uninstall()
    root = logging.getLogger()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(log_filter.root)
    for name, level in log_filter.targets.items():
        logging.getLogger(name).setLevel(level)
    extra_ids = {id(handler) for handler in extra}
    _current = _Installation(
        handlers=list(handlers),
        owned=[handler for handler in handlers if id(handler) not in extra_ids],
        targets=list(log_filter.targets),
    )


atexit.register(_uninstall)


class LogPlugin(Plugin):
    """Sets up the root logger; always the first plugin built."""

    def immediately_build(self, app: Any) -> None:
        config = app.get_config(LoggerConfig)

        if config.enable:
            code, label = _BANNER_LEVELS[config.level]
        else:
            code, label = _BANNER_LEVELS[LogLevel.OFF]
        print(f"     logger: {_paint(code, label)}\n")

        if config.pretty_backtrace:
            os.environ["PYTHONFAULTHANDLER"] = "1"
            try:
                faulthandler.enable()
            except (OSError, ValueError, AttributeError):
                pass
            logger.warning(
                "pretty backtraces are enabled (this is great for development but has a "
                "runtime cost for production. disable with `logger.pretty_backtrace` in "
                "your config)"
            )

        extra = list(app.handlers)
        app.handlers.clear()
        log_filter = _resolve_filter(config)
        handlers = build_handlers(config, extra)
        _install(handlers, extra, log_filter)

    def immediately(self) -> bool:
        return True