"""Settings of the built-in logger, read from the ``logger`` table."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from .configuration import Configurable

E = TypeVar("E", bound=Enum)

DEFAULT_TIME_PATTERN = "%Y-%m-%dT%H:%M:%S"


class LogLevel(Enum):
    """Logger level."""

    OFF = "off"
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class Format(Enum):
    """Layout of log lines."""

    COMPACT = "compact"
    PRETTY = "pretty"
    JSON = "json"


class TimeStyle(Enum):
    """How event timestamps are rendered."""

    SYSTEM_TIME = "system"
    UPTIME = "uptime"
    LOCAL = "local"
    UTC = "utc"
    NONE = "none"


class WithFields(Enum):
    """Extra fields added to each log line."""

    FILE = "file"
    LINE_NUMBER = "line_number"
    THREAD_ID = "thread_id"
    THREAD_NAME = "thread_name"
    INTERNAL_ERRORS = "internal_errors"


class Rotation(Enum):
    """How often a log file is rolled over."""

    MINUTELY = "minutely"
    HOURLY = "hourly"
    DAILY = "daily"
    NEVER = "never"


def _get_bool(table: dict[str, Any], key: str, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise TypeError(f"invalid type for `{key}`: expected a boolean, found {value!r}")
    return value


def _get_str(table: dict[str, Any], key: str, default: str) -> str:
    value = table.get(key, default)
    if not isinstance(value, str):
        raise TypeError(f"invalid type for `{key}`: expected a string, found {value!r}")
    return value


def _to_enum(enum_type: type[E], value: Any, key: str) -> E:
    if not isinstance(value, str):
        raise TypeError(f"invalid type for `{key}`: expected a string, found {value!r}")
    try:
        return enum_type(value)
    except ValueError:
        expected = ", ".join(f"`{m.value}`" for m in enum_type)
        raise ValueError(
            f"unknown variant `{value}` for `{key}`, expected one of {expected}"
        ) from None


def _get_enum(enum_type: type[E], table: dict[str, Any], key: str, default: E) -> E:
    if key not in table:
        return default
    return _to_enum(enum_type, table[key], key)


@dataclass
class LoggerFileAppender:
    """Settings for writing logs to rolling files."""

    enable: bool
    non_blocking: bool = True
    format: Format = Format.COMPACT
    rotation: Rotation = Rotation.DAILY
    dir: str = "./logs"
    filename_prefix: str = "app"
    filename_suffix: str = "log"
    max_log_files: int = 365


def _file_appender_from_table(table: Any) -> LoggerFileAppender:
    if not isinstance(table, dict):
        raise TypeError(f"invalid type for `file`: expected a table, found {table!r}")
    if "enable" not in table:
        raise ValueError("missing field `enable`")
    max_log_files = table.get("max_log_files", 365)
    if isinstance(max_log_files, bool) or not isinstance(max_log_files, int) or max_log_files < 0:
        raise ValueError(f"invalid value for `max_log_files`: {max_log_files!r}")
    return LoggerFileAppender(
        enable=_get_bool(table, "enable", False),
        non_blocking=_get_bool(table, "non_blocking", True),
        format=_get_enum(Format, table, "format", Format.COMPACT),
        rotation=_get_enum(Rotation, table, "rotation", Rotation.DAILY),
        dir=_get_str(table, "dir", "./logs"),
        filename_prefix=_get_str(table, "filename_prefix", "app"),
        filename_suffix=_get_str(table, "filename_suffix", "log"),
        max_log_files=max_log_files,
    )


@dataclass
class LoggerConfig(Configurable, prefix="logger"):
    """Logger configuration; every field has a default."""

    enable: bool = True
    pretty_backtrace: bool = False
    level: LogLevel = LogLevel.INFO
    format: Format = Format.COMPACT
    time_style: TimeStyle = TimeStyle.LOCAL
    time_pattern: str = DEFAULT_TIME_PATTERN
    with_fields: list[WithFields] = field(default_factory=list)
    override_filter: str | None = None
    file_appender: LoggerFileAppender | None = None

    @classmethod
    def from_config(cls, table: dict[str, Any]) -> "LoggerConfig":
        """Build the configuration from the ``logger`` table; unknown keys are ignored."""
        raw_fields = table.get("with_fields", [])
        if not isinstance(raw_fields, list):
            raise TypeError(f"invalid type for `with_fields`: expected an array, found {raw_fields!r}")
        override_filter = table.get("override_filter")
        if override_filter is not None and not isinstance(override_filter, str):
            raise TypeError(
                f"invalid type for `override_filter`: expected a string, found {override_filter!r}"
            )
        file_table = table.get("file")
        return cls(
            enable=_get_bool(table, "enable", True),
            pretty_backtrace=_get_bool(table, "pretty_backtrace", False),
            level=_get_enum(LogLevel, table, "level", LogLevel.INFO),
            format=_get_enum(Format, table, "format", Format.COMPACT),
            time_style=_get_enum(TimeStyle, table, "time_style", TimeStyle.LOCAL),
            time_pattern=_get_str(table, "time_pattern", DEFAULT_TIME_PATTERN),
            with_fields=[_to_enum(WithFields, item, "with_fields") for item in raw_fields],
            override_filter=override_filter,
            file_appender=None if file_table is None else _file_appender_from_table(file_table),
        )