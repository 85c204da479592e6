"""TOML-backed configuration registry."""

from __future__ import annotations

import copy
import dataclasses
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, ClassVar, TypeVar

from .env import Env, interpolate
from .errors import AppError, ConfigParseError, DeserializeError, TomlMergeError

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="Configurable")


class Configurable:
    """A type that reads its settings from one top-level table.

    Subclasses name their table with ``class X(Configurable, prefix="web")``.
    """

    config_prefix: ClassVar[str]

    def __init_subclass__(cls, prefix: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if prefix is not None:
            cls.config_prefix = prefix

    @classmethod
    def from_config(cls: type[C], table: dict[str, Any]) -> C:
        """Build an instance from a table; unknown keys are ignored for dataclasses."""
        if dataclasses.is_dataclass(cls):
            names = {f.name for f in dataclasses.fields(cls) if f.init}
            return cls(**{k: v for k, v in table.items() if k in names})
        return cls(**table)


def merge_tables(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Tables merge recursively, arrays are concatenated, other values are
    replaced. Values of different kinds under the same key are an error.
    """
    return _merge(base, override, "")


def _merge(base: dict[str, Any], override: dict[str, Any], path: str) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        key_path = f"{path}.{key}" if path else key
        if key not in merged:
            merged[key] = copy.deepcopy(value)
            continue
        existing = merged[key]
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = _merge(existing, value, key_path)
        elif isinstance(existing, list) and isinstance(value, list):
            merged[key] = existing + copy.deepcopy(value)
        elif type(existing) is type(value):
            merged[key] = copy.deepcopy(value)
        else:
            raise TomlMergeError(
                f"Incompatible types at path {key_path}, expected "
                f"{type(existing).__name__} received {type(value).__name__}."
            )
    return merged


def _parse(text: str, origin: str) -> dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigParseError(f"Failed to parse the toml file at path {origin}: {exc}") from exc


class TomlConfigRegistry:
    """Holds a parsed TOML document and hands out typed sections of it."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config: dict[str, Any] = config if config is not None else {}

    @classmethod
    def from_file(cls, config_path: str | os.PathLike[str], env: Env) -> "TomlConfigRegistry":
        """Load a file and merge the active environment's sibling file over it.

        A main file that cannot be read gives an empty registry.
        """
        return cls(cls._load_config(Path(config_path), env))

    @classmethod
    def from_str(cls, text: str) -> "TomlConfigRegistry":
        """Parse a TOML string."""
        try:
            return cls(tomllib.loads(text))
        except tomllib.TOMLDecodeError as exc:
            raise ConfigParseError(str(exc)) from exc

    @staticmethod
    def _load_config(config_path: Path, env: Env) -> dict[str, Any]:
        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to read configuration file %s: %s", config_path, exc)
            return {}
        main_table = _parse(interpolate(content), str(config_path))

        try:
            env_path = env.get_config_path(config_path)
        except AppError:
            logger.debug("%s config not found", env)
            return main_table

        if not env_path.exists():
            return main_table
        logger.info("The profile of the %s environment is active", env)

        try:
            env_content = env_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise AppError(f"Failed to read configuration file {env_path}: {exc}") from exc
        env_table = _parse(interpolate(env_content), str(env_path))
        try:
            return merge_tables(main_table, env_table)
        except TomlMergeError as exc:
            raise AppError(
                f"Failed to merge files {config_path} and {env_path}: {exc}"
            ) from exc

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        """Return a copy of the table under ``prefix``, or an empty table."""
        value = self.config.get(prefix)
        if isinstance(value, dict):
            return copy.deepcopy(value)
        return {}

    def get_config(self, config_type: type[C]) -> C:
        """Build ``config_type`` from the table named by its prefix."""
        prefix = getattr(config_type, "config_prefix", None)
        if prefix is None:
            raise TypeError(f"{config_type.__name__} has no config prefix")
        table = self.get_by_prefix(prefix)
        try:
            return config_type.from_config(table)
        except (TypeError, ValueError, KeyError) as exc:
            raise DeserializeError(prefix, exc) from exc

    def is_empty(self) -> bool:
        """True when no configuration was loaded."""
        return not self.config