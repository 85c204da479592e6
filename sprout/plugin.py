"""Plugins, the component registry and service registration."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from .errors import ComponentNotExistError

T = TypeVar("T")

ServiceRegistrar = Callable[[Any], None]

_service_registrars: list[ServiceRegistrar] = []


def _type_name(component_type: type) -> str:
    return f"{component_type.__module__}.{component_type.__qualname__}"


class Plugin:
    """Base class for plugins that configure an application while it is built."""

    async def build(self, app: Any) -> None:
        """Configure the application; called once the plugin's dependencies are built."""

    def immediately_build(self, app: Any) -> None:
        """Configure the application at the moment the plugin is added.

        Only used when :meth:`immediately` is true; such a plugin is never
        put in the registry and cannot see registered components.
        """

    def name(self) -> str:
        """Name used for uniqueness checks, dependency lists and logging."""
        return _type_name(type(self))

    def dependencies(self) -> list[str]:
        """Names of plugins that must be built before this one."""
        return []

    def immediately(self) -> bool:
        """Whether the plugin is built as soon as it is added."""
        return False


class ComponentRegistry:
    """Lookup of components by their exact type.

    Classes using this mixin keep their components in ``self.components``.
    """

    components: dict[type, Any]

    def get_component(self, component_type: type[T]) -> T | None:
        """Return the component of exactly this type, or None."""
        return self.components.get(component_type)

    def get_expect_component(self, component_type: type[T]) -> T:
        """Return the component of this type; raise if it is not registered."""
        if component_type not in self.components:
            raise ComponentNotExistError(_type_name(component_type))
        return self.components[component_type]

    def try_get_component(self, component_type: type[T]) -> T:
        """Return the component of this type or raise ComponentNotExistError."""
        try:
            return self.components[component_type]
        except KeyError:
            raise ComponentNotExistError(_type_name(component_type)) from None

    def has_component(self, component_type: type) -> bool:
        """True when a component of exactly this type is registered."""
        return component_type in self.components


def service_registrar(func: ServiceRegistrar) -> ServiceRegistrar:
    """Register a function that installs services into an application builder."""
    _service_registrars.append(func)
    return func


def auto_inject_service(app: Any) -> None:
    """Run every registered service registrar against ``app``, in registration order."""
    for registrar in tuple(_service_registrars):
        registrar(app)