import logging
from dataclasses import dataclass

import pytest

from sprout.app import App, AppBuilder
from sprout.configuration import Configurable
from sprout.env import Env
from sprout.errors import AppError, ComponentNotExistError
from sprout.plugin import Plugin


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    saved_level = root.level
    saved_handlers = root.handlers[:]
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


QUIET = "[logger]\nenable = false\n"


def _builder(extra=""):
    builder = AppBuilder(Env.DEV)
    builder.use_config_str(QUIET + extra)
    return builder


class UnitComponent:
    pass


@dataclass
class TupleComponent:
    first: int
    second: int


@dataclass
class StructComponent:
    x: int
    y: int


@dataclass
class Point:
    x: int
    y: int


class OtherPoint(Point):
    pass


@dataclass
class ServerSettings(Configurable, prefix="server"):
    port: int = 0


@pytest.mark.asyncio
async def test_component_registry():
    app = await (
        _builder()
        .add_component(UnitComponent())
        .add_component(TupleComponent(1, 2))
        .add_component(StructComponent(x=3, y=4))
        .add_component(Point(x=5, y=6))
        .build()
    )

    assert isinstance(app.get_expect_component(UnitComponent), UnitComponent)
    t = app.get_expect_component(TupleComponent)
    assert t.first == 1
    assert t.second == 2
    s = app.get_expect_component(StructComponent)
    assert s.x == 3
    assert s.y == 4
    p = app.get_expect_component(Point)
    assert p.x == 5
    assert p.y == 6

    assert app.get_component(OtherPoint) is None
    with pytest.raises(ComponentNotExistError):
        app.get_expect_component(OtherPoint)


@pytest.mark.asyncio
async def test_build_sets_global_app_and_empties_builder():
    builder = _builder().add_component(Point(x=1, y=2))
    app = await builder.build()
    assert App.global_app() is app
    assert not builder.has_component(Point)
    assert app.has_component(Point)


def test_duplicate_component_raises():
    builder = _builder().add_component(Point(x=1, y=2))
    with pytest.raises(AppError):
        builder.add_component(Point(x=3, y=4))


class _Named(Plugin):
    label = ""
    deps: tuple = ()

    def __init__(self, log):
        self.log = log

    def name(self):
        return self.label

    def dependencies(self):
        return list(self.deps)

    async def build(self, app):
        self.log.append(self.label)


class Database(_Named):
    label = "database"


class Web(_Named):
    label = "web"
    deps = ("database",)


class Cache(_Named):
    label = "cache"
    deps = ("web", "database")


class Ping(_Named):
    label = "ping"
    deps = ("pong",)


class Pong(_Named):
    label = "pong"
    deps = ("ping",)


class Eager(_Named):
    label = "eager"

    def immediately(self):
        return True

    def immediately_build(self, app):
        self.log.append(self.label)


@dataclass
class Greeting:
    text: str


class Provider(Plugin):
    async def build(self, app):
        app.add_component(Greeting("hi"))


@pytest.mark.asyncio
async def test_plugins_build_in_dependency_order():
    log = []
    builder = _builder().add_plugin(Cache(log)).add_plugin(Web(log)).add_plugin(Database(log))
    await builder.build()
    assert log == ["database", "web", "cache"]
    assert builder.is_plugin_added(Web)


def test_duplicate_plugin_raises():
    builder = _builder().add_plugin(Database([]))
    assert builder.is_plugin_added(Database)
    with pytest.raises(AppError):
        builder.add_plugin(Database([]))


@pytest.mark.asyncio
async def test_cyclic_plugins_raise():
    builder = _builder().add_plugin(Ping([])).add_plugin(Pong([]))
    with pytest.raises(AppError, match="Cyclic dependency"):
        await builder.build()


@pytest.mark.asyncio
async def test_missing_dependency_raises():
    builder = _builder().add_plugin(Web([]))
    with pytest.raises(AppError):
        await builder.build()


def test_immediate_plugin_builds_at_once():
    log = []
    builder = _builder().add_plugin(Eager(log))
    assert log == ["eager"]
    assert not builder.is_plugin_added(Eager)


@pytest.mark.asyncio
async def test_plugin_can_register_components():
    app = await _builder().add_plugin(Provider()).build()
    assert app.get_component(Greeting) == Greeting("hi")


@pytest.mark.asyncio
async def test_config_from_string():
    builder = _builder("[server]\nport = 9000\n")
    assert builder.get_config(ServerSettings).port == 9000
    app = await builder.build()
    assert app.get_config(ServerSettings).port == 9000


@pytest.mark.asyncio
async def test_default_config_file_is_loaded(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "app.toml").write_text(QUIET + "[server]\nport = 7000\n", encoding="utf-8")
    app = await AppBuilder(Env.DEV).build()
    assert app.get_config(ServerSettings).port == 7000


def test_config_file_merges_environment_file(tmp_path):
    path = tmp_path / "app.toml"
    path.write_text("[server]\nport = 7000\n", encoding="utf-8")
    (tmp_path / "app-test.toml").write_text("[server]\nport = 7001\n", encoding="utf-8")
    builder = AppBuilder(Env.TEST).use_config_file(path)
    assert builder.get_config(ServerSettings).port == 7001


def test_invalid_config_string_raises():
    with pytest.raises(AppError):
        AppBuilder(Env.DEV).use_config_str("[[bad")


def test_new_reads_environment(monkeypatch):
    monkeypatch.setenv("SPROUT_ENV", "prod")
    builder = App.new()
    assert isinstance(builder, AppBuilder)
    assert builder.env is Env.PROD


@pytest.mark.asyncio
async def test_run_schedules_and_runs_hooks_in_reverse(capsys):
    log = []

    async def job(app):
        log.append(("job", app is App.global_app()))
        return "finished"

    async def failing(app):
        raise RuntimeError("boom")

    async def first(app):
        log.append("first")
        return "ok"

    async def second(app):
        log.append("second")
        return "ok"

    builder = (
        _builder()
        .add_scheduler(job)
        .add_scheduler(failing)
        .add_shutdown_hook(first)
        .add_shutdown_hook(second)
    )
    await builder.run()
    assert log == [("job", True), "second", "first"]
    assert "environment:" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_logs_build_failure(caplog):
    builder = _builder().add_plugin(Ping([])).add_plugin(Pong([]))
    with caplog.at_level(logging.ERROR):
        result = await builder.run()
    assert result is None
    assert "Cyclic dependency" in caplog.text


def test_handlers_are_collected():
    handler = logging.NullHandler()
    builder = _builder().add_handler(handler)
    assert builder.handlers == [handler]