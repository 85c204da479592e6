import pytest

from sprout.configuration import TomlConfigRegistry
from sprout.errors import DeserializeError
from sprout.logconfig import (
    Format,
    LogLevel,
    LoggerConfig,
    LoggerFileAppender,
    Rotation,
    TimeStyle,
    WithFields,
)


def test_defaults_from_empty_table():
    config = LoggerConfig.from_config({})
    assert config.enable is True
    assert config.pretty_backtrace is False
    assert config.level is LogLevel.INFO
    assert config.format is Format.COMPACT
    assert config.time_style is TimeStyle.LOCAL
    assert config.time_pattern == "%Y-%m-%dT%H:%M:%S"
    assert config.with_fields == []
    assert config.override_filter is None
    assert config.file_appender is None


def test_from_config_matches_dataclass_defaults():
    assert LoggerConfig.from_config({}) == LoggerConfig()


@pytest.mark.parametrize("level", list(LogLevel))
def test_log_level_str_round_trip(level):
    assert LogLevel(str(level)) is level


def test_log_level_display():
    assert str(LogLevel("warn")) == "warn"
    assert str(LogLevel("off")) == "off"


def test_full_table():
    config = LoggerConfig.from_config(
        {
            "enable": False,
            "pretty_backtrace": True,
            "level": "debug",
            "format": "json",
            "time_style": "system",
            "time_pattern": "%H:%M",
            "with_fields": ["file", "line_number", "thread_name"],
            "override_filter": "info,mylib=trace",
        }
    )
    assert config.enable is False
    assert config.pretty_backtrace is True
    assert config.level is LogLevel.DEBUG
    assert config.format is Format.JSON
    assert config.time_style is TimeStyle.SYSTEM_TIME
    assert config.time_pattern == "%H:%M"
    assert config.with_fields == [
        WithFields.FILE,
        WithFields.LINE_NUMBER,
        WithFields.THREAD_NAME,
    ]
    assert config.override_filter == "info,mylib=trace"


def test_file_appender_defaults():
    config = LoggerConfig.from_config({"file": {"enable": True}})
    appender = config.file_appender
    assert appender == LoggerFileAppender(enable=True)
    assert appender.non_blocking is True
    assert appender.rotation is Rotation.DAILY
    assert appender.dir == "./logs"
    assert appender.filename_prefix == "app"
    assert appender.filename_suffix == "log"
    assert appender.max_log_files == 365


def test_file_appender_values():
    config = LoggerConfig.from_config(
        {
            "file": {
                "enable": True,
                "non_blocking": False,
                "format": "pretty",
                "rotation": "hourly",
                "dir": "/tmp/out",
                "filename_prefix": "svc",
                "filename_suffix": "txt",
                "max_log_files": 7,
            }
        }
    )
    appender = config.file_appender
    assert appender.non_blocking is False
    assert appender.format is Format.PRETTY
    assert appender.rotation is Rotation.HOURLY
    assert appender.dir == "/tmp/out"
    assert (appender.filename_prefix, appender.filename_suffix) == ("svc", "txt")
    assert appender.max_log_files == 7


def test_file_appender_requires_enable():
    with pytest.raises(ValueError):
        LoggerConfig.from_config({"file": {"dir": "logs"}})


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        LoggerConfig.from_config({"level": "verbose"})


def test_unknown_with_field_is_rejected():
    with pytest.raises(ValueError):
        LoggerConfig.from_config({"with_fields": ["colour"]})


def test_wrong_type_is_rejected():
    with pytest.raises(TypeError):
        LoggerConfig.from_config({"enable": "yes"})


def test_unknown_keys_are_ignored():
    config = LoggerConfig.from_config({"level": "error", "colour": True})
    assert config.level is LogLevel.ERROR


def test_prefix_is_logger():
    registry = TomlConfigRegistry.from_str('[logger]\nlevel = "error"\n[log]\nlevel = "trace"\n')
    assert registry.get_config(LoggerConfig).level is LogLevel.ERROR

    other = TomlConfigRegistry.from_str('[log]\nlevel = "trace"\n')
    assert other.get_config(LoggerConfig).level is LogLevel.INFO


def test_read_through_registry():
    registry = TomlConfigRegistry.from_str(
        '[logger]\nlevel = "warn"\ntime_style = "utc"\n[logger.file]\nenable = true\nrotation = "never"\n'
    )
    config = registry.get_config(LoggerConfig)
    assert config.level is LogLevel.WARN
    assert config.time_style is TimeStyle.UTC
    assert config.file_appender.rotation is Rotation.NEVER


def test_registry_reports_bad_values():
    registry = TomlConfigRegistry.from_str('[logger]\nformat = "xml"\n')
    with pytest.raises(DeserializeError) as info:
        registry.get_config(LoggerConfig)
    assert info.value.prefix == "logger"