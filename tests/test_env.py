import pytest

from sprout.env import ENV_VAR, Env, interpolate
from sprout.errors import AppError


@pytest.fixture
def foo_file(tmp_path):
    root = tmp_path.resolve()
    foo = root / "foo.toml"
    foo.touch()
    return root, foo


def test_get_config_path(foo_file):
    root, foo = foo_file
    assert Env.from_string("dev").get_config_path(foo) == root / "foo-dev.toml"
    assert Env.from_string("test").get_config_path(foo) == root / "foo-test.toml"
    assert Env.from_string("prod").get_config_path(foo) == root / "foo-prod.toml"
    assert Env.from_string("other").get_config_path(foo) == root / "foo-dev.toml"


def test_env(foo_file, monkeypatch):
    root, foo = foo_file
    monkeypatch.setenv(ENV_VAR, "dev")
    assert Env.from_env().get_config_path(foo) == root / "foo-dev.toml"
    monkeypatch.setenv(ENV_VAR, "TEST")
    assert Env.from_env().get_config_path(foo) == root / "foo-test.toml"
    monkeypatch.setenv(ENV_VAR, "Prod")
    assert Env.from_env().get_config_path(foo) == root / "foo-prod.toml"
    monkeypatch.setenv(ENV_VAR, "Other")
    assert Env.from_env().get_config_path(foo) == root / "foo-dev.toml"


def test_from_env_defaults_to_dev(monkeypatch):
    monkeypatch.setenv(ENV_VAR, "x")
    monkeypatch.delenv(ENV_VAR)
    assert Env.from_env() is Env.DEV


def test_get_config_path_missing_file(tmp_path):
    with pytest.raises(AppError):
        Env.DEV.get_config_path(tmp_path / "missing.toml")


def test_init_reads_dotenv(tmp_path, monkeypatch):
    monkeypatch.setenv(ENV_VAR, "x")
    monkeypatch.delenv(ENV_VAR)
    (tmp_path / ".env").write_text(f"{ENV_VAR}=prod\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert Env.init() is Env.PROD


def test_interpolate(monkeypatch):
    monkeypatch.setenv("NAME", "Alice")
    template = "Hello, ${NAME:default_name}!"
    assert interpolate(template) == "Hello, Alice!"

    monkeypatch.delenv("NAME")
    assert interpolate(template) == "Hello, default_name!"

    monkeypatch.delenv("UNKNOWN_NAME", raising=False)
    assert interpolate("Hello, ${UNKNOWN_NAME}!") == "Hello, ${UNKNOWN_NAME}!"
    assert interpolate("你好, ${UNKNOWN_NAME:默认值}!") == "你好, 默认值!"


def test_interpolate_unclosed_placeholder_is_kept(monkeypatch):
    monkeypatch.setenv("NAME", "Alice")
    assert interpolate("Hello, ${NAME") == "Hello, ${NAME"
    assert interpolate("plain text") == "plain text"