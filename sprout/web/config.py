"""Settings of the web server, read from the ``web`` table."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Any, TypeVar

from ..configuration import Configurable
from ..logger import TRACE

DEFAULT_BINDING = IPv4Address("0.0.0.0")
DEFAULT_PORT = 8080
MAX_PORT = 65535

P = TypeVar("P")

_MISSING: Any = object()


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _get(
    table: dict[str, Any],
    key: str,
    check: Callable[[Any], bool],
    expected: str,
    default: Any = _MISSING,
) -> Any:
    if key not in table:
        if default is _MISSING:
            raise ValueError(f"missing field `{key}`")
        return default
    value = table[key]
    if not check(value):
        raise TypeError(f"invalid type for `{key}`: expected {expected}, found {value!r}")
    return value


def _section(
    table: dict[str, Any], key: str, parser: Callable[[dict[str, Any]], P]
) -> P | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise TypeError(f"invalid type for `{key}`: expected a table, found {value!r}")
    return parser(value)


@dataclass
class ServerConfig:
    """Address the server listens on and how it serves connections."""

    binding: IPv4Address | IPv6Address = DEFAULT_BINDING
    port: int = DEFAULT_PORT
    connect_info: bool = False
    graceful: bool = False

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "ServerConfig":
        raw_binding = _get(table, "binding", _is_str, "a string", None)
        binding = DEFAULT_BINDING if raw_binding is None else ip_address(raw_binding)
        port = _get(table, "port", _is_uint, "an integer", DEFAULT_PORT)
        if port > MAX_PORT:
            raise ValueError(f"invalid value for `port`: {port} is out of range")
        return cls(
            binding=binding,
            port=port,
            connect_info=_get(table, "connect_info", _is_bool, "a boolean", False),
            graceful=_get(table, "graceful", _is_bool, "a boolean", False),
        )


class LogLevel(Enum):
    """Level of the request tracing middleware."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    def to_logging_level(self) -> int:
        """Return the matching :mod:`logging` level number."""
        return {
            LogLevel.TRACE: TRACE,
            LogLevel.DEBUG: logging.DEBUG,
            LogLevel.INFO: logging.INFO,
            LogLevel.WARN: logging.WARNING,
            LogLevel.ERROR: logging.ERROR,
        }[self]


@dataclass(frozen=True)
class EnableMiddleware:
    """A middleware that is only switched on or off."""

    enable: bool

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "EnableMiddleware":
        return cls(enable=_get(table, "enable", _is_bool, "a boolean"))


@dataclass
class LimitPayloadMiddleware:
    """Limit on the size of request bodies, e.g. ``5mb``."""

    enable: bool
    body_limit: str

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "LimitPayloadMiddleware":
        return cls(
            enable=_get(table, "enable", _is_bool, "a boolean"),
            body_limit=_get(table, "body_limit", _is_str, "a string"),
        )


@dataclass
class TraceLoggerMiddleware:
    """Logging of each request at a given level."""

    enable: bool
    level: LogLevel

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "TraceLoggerMiddleware":
        raw_level = _get(table, "level", _is_str, "a string")
        try:
            level = LogLevel(raw_level)
        except ValueError:
            expected = ", ".join(f"`{m.value}`" for m in LogLevel)
            raise ValueError(
                f"unknown variant `{raw_level}` for `level`, expected one of {expected}"
            ) from None
        return cls(enable=_get(table, "enable", _is_bool, "a boolean"), level=level)


@dataclass
class TimeoutRequestMiddleware:
    """Global request timeout in milliseconds."""

    enable: bool
    timeout: int

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "TimeoutRequestMiddleware":
        return cls(
            enable=_get(table, "enable", _is_bool, "a boolean"),
            timeout=_get(table, "timeout", _is_uint, "an unsigned integer"),
        )


@dataclass
class CorsMiddleware:
    """Cross-origin resource sharing settings."""

    enable: bool
    allow_origins: list[str] | None = None
    allow_headers: list[str] | None = None
    allow_methods: list[str] | None = None
    max_age: int | None = None

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "CorsMiddleware":
        return cls(
            enable=_get(table, "enable", _is_bool, "a boolean"),
            allow_origins=_get(table, "allow_origins", _is_str_list, "a string array", None),
            allow_headers=_get(table, "allow_headers", _is_str_list, "a string array", None),
            allow_methods=_get(table, "allow_methods", _is_str_list, "a string array", None),
            max_age=_get(table, "max_age", _is_uint, "an unsigned integer", None),
        )


@dataclass
class StaticAssetsMiddleware:
    """Serving of static files from a directory."""

    enable: bool
    must_exist: bool = False
    fallback: str = "index.html"
    precompressed: bool = False
    uri: str = "/static"
    path: str = "static"

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "StaticAssetsMiddleware":
        return cls(
            enable=_get(table, "enable", _is_bool, "a boolean"),
            must_exist=_get(table, "must_exist", _is_bool, "a boolean", False),
            fallback=_get(table, "fallback", _is_str, "a string", "index.html"),
            precompressed=_get(table, "precompressed", _is_bool, "a boolean", False),
            uri=_get(table, "uri", _is_str, "a string", "/static"),
            path=_get(table, "path", _is_str, "a string", "static"),
        )


@dataclass
class Middlewares:
    """Optional middlewares; an absent one is not applied."""

    compression: EnableMiddleware | None = None
    limit_payload: LimitPayloadMiddleware | None = None
    logger: TraceLoggerMiddleware | None = None
    catch_panic: EnableMiddleware | None = None
    timeout_request: TimeoutRequestMiddleware | None = None
    cors: CorsMiddleware | None = None
    static_assets: StaticAssetsMiddleware | None = None

    @classmethod
    def _from_table(cls, table: dict[str, Any]) -> "Middlewares":
        return cls(
            compression=_section(table, "compression", EnableMiddleware._from_table),
            limit_payload=_section(table, "limit_payload", LimitPayloadMiddleware._from_table),
            logger=_section(table, "logger", TraceLoggerMiddleware._from_table),
            catch_panic=_section(table, "catch_panic", EnableMiddleware._from_table),
            timeout_request=_section(
                table, "timeout_request", TimeoutRequestMiddleware._from_table
            ),
            cors=_section(table, "cors", CorsMiddleware._from_table),
            static_assets=_section(table, "static", StaticAssetsMiddleware._from_table),
        )


@dataclass
class WebConfig(Configurable, prefix="web"):
    """Web server configuration; server keys sit directly in the ``web`` table."""

    server: ServerConfig
    middlewares: Middlewares | None = None

    @classmethod
    def from_config(cls, table: dict[str, Any]) -> "WebConfig":
        """Build the configuration from the ``web`` table; unknown keys are ignored."""
        return cls(
            server=ServerConfig._from_table(table),
            middlewares=_section(table, "middlewares", Middlewares._from_table),
        )