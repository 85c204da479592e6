"""Turns middleware settings into an ordered list of layers to apply."""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import AppError
from .config import CorsMiddleware, Middlewares, StaticAssetsMiddleware

logger = logging.getLogger(__name__)

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")
_PREFIX_POWERS = {"": 0, "k": 1, "m": 2, "g": 3, "t": 4, "p": 5, "e": 6}
_MAX_BYTES = 2**64 - 1
_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")


class Wildcard(Enum):
    """Marker for a CORS list that allows anything."""

    ANY = "*"


ANY = Wildcard.ANY


@dataclass(frozen=True)
class CorsSettings:
    """Validated CORS rules; None leaves a rule unset."""

    allow_origins: Wildcard | tuple[str, ...] | None = None
    allow_headers: Wildcard | tuple[str, ...] | None = None
    allow_methods: Wildcard | tuple[str, ...] | None = None
    max_age: timedelta | None = None


@dataclass(frozen=True)
class Layer:
    """One middleware to wrap around the router, with its setting."""

    name: str
    value: Any = None


def parse_byte_size(text: str) -> int:
    """Parse a size such as ``5mb``, ``1.5 KB`` or ``64KiB`` into bytes.

    Units are case-insensitive; ``k``/``kb`` are powers of 1000 and
    ``ki``/``kib`` powers of 1024.
    """
    match = _SIZE_PATTERN.match(text)
    if match is None:
        raise ValueError(f"invalid byte size: {text!r}")
    try:
        number = Decimal(match.group(1))
    except InvalidOperation:
        raise ValueError(f"invalid byte size: {text!r}") from None
    unit = match.group(2).lower()
    if unit.endswith("b"):
        unit = unit[:-1]
    base = 1000
    if len(unit) == 2 and unit.endswith("i"):
        base = 1024
        unit = unit[0]
    if unit not in _PREFIX_POWERS:
        raise ValueError(f"invalid byte size unit in {text!r}")
    size = int(number * (base ** _PREFIX_POWERS[unit]))
    if size > _MAX_BYTES:
        raise ValueError(f"byte size too large: {text!r}")
    return size


def _is_header_value(text: str) -> bool:
    return all(ch == "\t" or 32 <= ord(ch) <= 126 for ch in text)


def _is_token(text: str) -> bool:
    return bool(text) and all(ch in _TOKEN_CHARS for ch in text)


def _parse_origin(origin: str) -> str:
    if not _is_header_value(origin):
        raise AppError(f"cors origin parse failed:{origin}")
    return origin


def _parse_header(header: str) -> str:
    if not _is_token(header):
        raise AppError(f"http header parse failed:{header}")
    return header.lower()


def _parse_method(method: str) -> str:
    if not _is_token(method):
        raise AppError(f"http method parse failed:{method}")
    return method


def _rule(items: list[str] | None, parse: Any) -> Wildcard | tuple[str, ...] | None:
    if items is None:
        return None
    if "*" in items:
        return ANY
    return tuple(parse(item) for item in items)


def build_cors(cors: CorsMiddleware) -> CorsSettings:
    """Validate CORS settings; a ``*`` in a list allows anything."""
    return CorsSettings(
        allow_origins=_rule(cors.allow_origins, _parse_origin),
        allow_headers=_rule(cors.allow_headers, _parse_header),
        allow_methods=_rule(cors.allow_methods, _parse_method),
        max_age=None if cors.max_age is None else timedelta(seconds=cors.max_age),
    )


def check_static_assets(static_assets: StaticAssetsMiddleware) -> Layer:
    """Check the asset directory and fallback page, and return the serving layer.

    When ``must_exist`` is set, both must be present on disk.
    """
    if static_assets.must_exist and (
        not Path(static_assets.path).exists() or not Path(static_assets.fallback).exists()
    ):
        raise AppError(
            "one of the static path are not found, "
            f"Folder `{static_assets.path}` fallback: `{static_assets.fallback}`"
        )
    if static_assets.precompressed:
        logger.info("[Middleware] Enable precompressed static assets")
    return Layer("static", static_assets)


def plan_middleware(middlewares: Middlewares) -> list[Layer]:
    """Return the enabled middlewares as layers, in the order they are applied."""
    layers: list[Layer] = []
    if middlewares.catch_panic is not None and middlewares.catch_panic.enable:
        layers.append(Layer("catch_panic"))
    if middlewares.compression is not None and middlewares.compression.enable:
        layers.append(Layer("compression"))
    if middlewares.logger is not None and middlewares.logger.enable:
        layers.append(Layer("trace", middlewares.logger.level.to_logging_level()))
    timeout = middlewares.timeout_request
    if timeout is not None and timeout.enable:
        layers.append(Layer("timeout", timedelta(milliseconds=timeout.timeout)))
    limit = middlewares.limit_payload
    if limit is not None and limit.enable:
        try:
            size = parse_byte_size(limit.body_limit)
        except ValueError as exc:
            raise ValueError(f"parse limit payload str failed: {limit.body_limit}") from exc
        layers.append(Layer("limit_payload", size))
    if middlewares.cors is not None and middlewares.cors.enable:
        layers.append(Layer("cors", build_cors(middlewares.cors)))
    static = middlewares.static_assets
    if static is not None and static.enable:
        layers.append(check_static_assets(static))
    return layers