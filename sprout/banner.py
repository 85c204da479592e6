"""Start-up banner."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as package_version

from .env import Env

BANNER = r"""
                                    _
  ___ _ __  _ __ ___  _   _| |_
 / __| '_ \| '__/ _ \| | | | __|
 \__ \ |_) | | | (_) | |_| | |_
 |___/ .__/|_|  \___/ \__,_|\__|
     |_|
"""

_GREEN = 32
_LIGHT_RED = 91
_LIGHT_YELLOW = 93
_LIGHT_BLUE = 94

_ENV_STYLES = {
    Env.DEV: (_LIGHT_YELLOW, "Dev"),
    Env.TEST: (_LIGHT_BLUE, "Test"),
    Env.PROD: (_GREEN, "Prod"),
}


def _paint(code: int, text: str) -> str:
    return f"\x1b[{code}m{text}\x1b[0m"


def _installed_version() -> str:
    try:
        return package_version("sprout")
    except PackageNotFoundError:
        return "0.0.0"


def render_banner(env: Env, version: str) -> str:
    """Return the banner text with the version, environment and build mode."""
    code, label = _ENV_STYLES[env]
    if __debug__:
        compilation = _paint(_LIGHT_RED, "Debug")
    else:
        compilation = _paint(_GREEN, "Release")
    lines = [
        BANNER,
        f"     sprout: {_paint(_GREEN, version)}",
        f"environment: {_paint(code, label)}",
        f"compilation: {compilation}",
    ]
    return "\n".join(lines) + "\n"


def print_banner(env: Env) -> None:
    """Print the banner for the installed version to standard output."""
    print(render_banner(env, _installed_version()), end="")