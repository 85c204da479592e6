"""Active environment detection and placeholder interpolation."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .errors import AppError

logger = logging.getLogger(__name__)

ENV_VAR = "SPROUT_ENV"


class Env(Enum):
    """The environment an application runs in."""

    DEV = "dev"
    TEST = "test"
    PROD = "prod"

    @classmethod
    def init(cls) -> "Env":
        """Load a `.env` file if one is found, then read the active environment."""
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path)
            logger.debug(
                'Loaded the environment variable file under the path: "%s"', dotenv_path
            )
        else:
            logger.debug("Environment variable file not found")
        return cls.from_env()

    @classmethod
    def from_env(cls) -> "Env":
        """Read the environment variable; default to DEV when it is unset."""
        value = os.environ.get(ENV_VAR)
        if value is None:
            return cls.DEV
        return cls.from_string(value)

    @classmethod
    def from_string(cls, value: str) -> "Env":
        """Parse a name case-insensitively; unknown names give DEV."""
        lowered = value.lower()
        for member in cls:
            if member.value == lowered:
                return member
        return cls.DEV

    def get_config_path(self, path: str | os.PathLike[str]) -> Path:
        """Return the environment-specific sibling of a configuration file."""
        path = Path(path)
        stem = path.stem
        ext = path.suffix[1:] if path.suffix else ""
        try:
            resolved = path.resolve(strict=True)
        except OSError as exc:
            raise AppError(f"canonicalize {str(path)!r} failed: {exc}") from exc
        return resolved.parent / f"{stem}-{self.value}.{ext}"


def interpolate(template: str) -> str:
    """Replace `${NAME}` and `${NAME:default}` with environment variable values.

    A placeholder without a default whose variable is unset is kept as written.
    """
    parts: list[str] = []
    pos = 0
    while True:
        start = template.find("${", pos)
        if start < 0:
            break
        end = template.find("}", start + 2)
        if end < 0:
            break
        parts.append(template[pos:start])
        placeholder = template[start + 2 : end]
        name, sep, default = placeholder.partition(":")
        value = os.environ.get(name) if name else None
        if value is not None:
            parts.append(value)
        elif sep:
            parts.append(default)
        else:
            parts.append("${" + placeholder + "}")
        pos = end + 1
    parts.append(template[pos:])
    return "".join(parts)