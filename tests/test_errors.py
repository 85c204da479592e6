import pytest

from sprout.errors import (
    AppError,
    ComponentNotExistError,
    ConfigParseError,
    DeserializeError,
    TomlMergeError,
)


def test_component_not_exist_message():
    err = ComponentNotExistError("Database")
    assert str(err) == "Database component not exists"
    assert err.type_name == "Database"


def test_toml_merge_message():
    err = TomlMergeError("bad types")
    assert str(err) == "merge toml error: bad types"
    assert err.detail == "bad types"


def test_deserialize_message():
    err = DeserializeError("web", "missing field")
    assert str(err) == 'Failed to deserialize the configuration of prefix "web": missing field'
    assert err.prefix == "web"
    assert err.cause == "missing field"


@pytest.mark.parametrize(
    "error_type, args, fragment",
    [
        (ComponentNotExistError, ("X",), "X component not exists"),
        (ConfigParseError, ("broken",), "broken"),
        (TomlMergeError, ("oops",), "merge toml error: oops"),
        (DeserializeError, ("p", "c"), 'prefix "p": c'),
    ],
)
def test_all_errors_are_app_errors(error_type, args, fragment):
    error = error_type(*args)
    assert isinstance(error, AppError)
    assert fragment in str(error)