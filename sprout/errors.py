"""Error types raised by the application framework."""

from __future__ import annotations


class AppError(Exception):
    """Base class for every error the framework raises."""


class ComponentNotExistError(AppError):
    """A component of the requested type is not registered."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"{type_name} component not exists")
        self.type_name = type_name


class ConfigParseError(AppError):
    """A TOML document could not be parsed."""


class TomlMergeError(AppError):
    """Two TOML tables could not be merged."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"merge toml error: {detail}")
        self.detail = detail


class DeserializeError(AppError):
    """A configuration section could not be turned into its target type."""

    def __init__(self, prefix: str, cause: BaseException | str) -> None:
        super().__init__(
            f'Failed to deserialize the configuration of prefix "{prefix}": {cause}'
        )
        self.prefix = prefix
        self.cause = cause