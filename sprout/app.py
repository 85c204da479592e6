"""The application builder and the running application."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .banner import print_banner
from .configuration import TomlConfigRegistry
from .env import Env
from .errors import AppError
from .logger import LogPlugin
from .plugin import ComponentRegistry, Plugin, auto_inject_service

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./config/app.toml"

T = TypeVar("T")

Scheduler = Callable[["App"], Awaitable[str]]


def _type_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


class App(ComponentRegistry):
    """A built application: its environment, components and configuration."""

    def __init__(
        self,
        env: Env = Env.DEV,
        components: dict[type, Any] | None = None,
        config: TomlConfigRegistry | None = None,
    ) -> None:
        self.env = env
        self.components = dict(components) if components is not None else {}
        self.config = config if config is not None else TomlConfigRegistry()

    @classmethod
    def new(cls) -> "AppBuilder":
        """Start building an application."""
        return AppBuilder()

    @classmethod
    def global_app(cls) -> "App":
        """Return the most recently built application.

        Only meaningful once building has finished; during the build it is
        still the previous (or an empty) application.
        """
        with _global_lock:
            return _global_app

    @classmethod
    def _set_global(cls, app: "App") -> None:
        global _global_app
        with _global_lock:
            _global_app = app

    def get_config(self, config_type: type[T]) -> T:
        """Read the configuration section belonging to ``config_type``."""
        return self.config.get_config(config_type)


_global_lock = threading.Lock()
_global_app = App()


class AppBuilder(ComponentRegistry):
    """An application under construction: plugins, components and configuration."""

    def __init__(self, env: Env | None = None) -> None:
        self.env = env if env is not None else Env.init()
        self.handlers: list[logging.Handler] = []
        self.plugin_registry: dict[type, Plugin] = {}
        self.components: dict[type, Any] = {}
        self.config = TomlConfigRegistry()
        self._schedulers: list[Scheduler] = []
        self._shutdown_hooks: list[Scheduler] = []

    def add_plugin(self, plugin: Plugin) -> "AppBuilder":
        """Register a plugin, or build it at once if it is an immediate one."""
        logger.debug("added plugin: %s", plugin.name())
        if plugin.immediately():
            plugin.immediately_build(self)
            return self
        plugin_type = type(plugin)
        if plugin_type in self.plugin_registry:
            raise AppError(
                f"Error adding plugin {plugin.name()}: plugin was already added in application"
            )
        self.plugin_registry[plugin_type] = plugin
        return self

    def is_plugin_added(self, plugin_type: type) -> bool:
        """True when a plugin of this type is registered."""
        return plugin_type in self.plugin_registry

    def use_config_file(self, config_path: str | os.PathLike[str]) -> "AppBuilder":
        """Load configuration from a file, merged with its environment sibling."""
        self.config = TomlConfigRegistry.from_file(config_path, self.env)
        return self

    def use_config_str(self, toml_content: str) -> "AppBuilder":
        """Use a TOML string as the whole configuration; no environment merging."""
        self.config = TomlConfigRegistry.from_str(toml_content)
        return self

    def add_handler(self, handler: logging.Handler) -> "AppBuilder":
        """Add a logging handler installed by the logger alongside its own."""
        self.handlers.append(handler)
        return self

    def add_scheduler(self, scheduler: Scheduler) -> "AppBuilder":
        """Add a task started when the application runs."""
        self._schedulers.append(scheduler)
        return self

    def add_shutdown_hook(self, hook: Scheduler) -> "AppBuilder":
        """Add a hook run after every scheduled task has finished."""
        self._shutdown_hooks.append(hook)
        return self

    def add_component(self, component: Any) -> "AppBuilder":
        """Register a component under its exact type."""
        component_type = type(component)
        name = _type_name(component_type)
        logger.debug("added component: %s", name)
        if component_type in self.components:
            raise AppError(
                f"Error adding component {name}: component was already added in application"
            )
        self.components[component_type] = component
        return self

    def get_config(self, config_type: type[T]) -> T:
        """Read the configuration section belonging to ``config_type``."""
        return self.config.get_config(config_type)

    async def run(self) -> None:
        """Build the application and run its schedulers, logging any failure."""
        try:
            await self._inner_run()
        except Exception as exc:
            logger.error("%r", exc, exc_info=exc)

    async def _inner_run(self) -> None:
        self._load_config_if_needed()
        print_banner(self.env)
        await self._build_plugins()
        auto_inject_service(self)
        await self._schedule()

    async def build(self) -> App:
        """Build the application without running any scheduler."""
        self._load_config_if_needed()
        await self._build_plugins()
        auto_inject_service(self)
        return self._build_app()

    def _load_config_if_needed(self) -> None:
        if self.config.is_empty():
            self.config = TomlConfigRegistry.from_file(DEFAULT_CONFIG_PATH, self.env)

    async def _build_plugins(self) -> None:
        LogPlugin().immediately_build(self)

        registry = self.plugin_registry
        self.plugin_registry = {}
        try:
            to_register = list(registry.values())
            registered: set[str] = set()
            while to_register:
                progress = False
                next_round: list[Plugin] = []
                for plugin in to_register:
                    if all(dep in registered for dep in plugin.dependencies()):
                        await plugin.build(self)
                        registered.add(plugin.name())
                        logger.info("%s plugin registered", plugin.name())
                        progress = True
                    else:
                        next_round.append(plugin)
                if not progress:
                    raise AppError(
                        "Cyclic dependency detected or missing dependencies for some plugins"
                    )
                to_register = next_round
        finally:
            self.plugin_registry = registry

    async def _schedule(self) -> None:
        app = self._build_app()

        schedulers, self._schedulers = self._schedulers, []
        tasks = [asyncio.ensure_future(scheduler(app)) for scheduler in schedulers]
        while tasks:
            task = tasks.pop()
            try:
                message = await task
            except Exception as exc:
                logger.error("%r", exc, exc_info=exc)
            else:
                logger.info("scheduled result: %s", message)

        # Hooks added by plugins built first run last.
        while self._shutdown_hooks:
            hook = self._shutdown_hooks.pop()
            result = await hook(app)
            logger.info("shutdown result: %s", result)

    def _build_app(self) -> App:
        components, self.components = self.components, {}
        config, self.config = self.config, TomlConfigRegistry()
        app = App(env=self.env, components=components, config=config)
        App._set_global(app)
        return app