# sprout

`sprout` is a small framework for assembling asynchronous applications out of
plugins, shared components and layered TOML configuration.

## Concepts

- **`sprout.app.AppBuilder`** collects plugins, components, configuration,
  logging handlers, scheduled tasks and shutdown hooks. `App.new()` returns a
  fresh builder; its methods return the builder, so calls can be chained.
- **`sprout.app.App`** is the finished application. Components and
  configuration are read from it; `App.global_app()` returns the most recently
  built one.
- **`sprout.plugin.Plugin`** subclasses configure the builder in
  `async build(app)`. A plugin may list the `name()` of other plugins in
  `dependencies()`; those are built first. A dependency cycle or a missing
  dependency raises `AppError`. A plugin whose `immediately()` returns true is
  built by `immediately_build(app)` as soon as it is added and is not kept in
  the registry. Adding two plugins of the same type raises `AppError`.
- **Components** are plain objects registered once per exact type with
  `add_component` (a second one of the same type raises `AppError`) and
  fetched with `get_component` (returns `None` if absent),
  `get_expect_component` or `try_get_component` (both raise
  `ComponentNotExistError` if absent), or checked with `has_component`.
- **Services**: functions decorated with `sprout.plugin.service_registrar`
  are called with the builder, in registration order, after all plugins are
  built.
- **`sprout.configuration.Configurable`** classes read the table under their
  prefix. The prefix is given as a class keyword:
  `class MyConfig(Configurable, prefix="my")`. For dataclasses,
  `from_config` ignores keys that are not fields. A section that cannot be
  turned into its type raises `DeserializeError`.

All framework errors derive from `sprout.errors.AppError`.

## Configuration

When no configuration was given, `build()` and `run()` read
`./config/app.toml`; a main file that cannot be read gives an empty
configuration (a warning is logged). The active environment
(`sprout.env.Env`) comes from the `SPROUT_ENV` variable — `dev`, `test` or
`prod`, case-insensitive, anything else or unset meaning `dev` — after a
`.env` file, if one is found, has been loaded. A file next to the main one
named for the environment, such as `app-dev.toml`, is merged over it with
`merge_tables`: tables merge recursively, arrays are concatenated, other
values are replaced, and values of different kinds under one key raise an
error.

Values may refer to environment variables as `${NAME}` or, with a fallback,
`${NAME:default}`. A `${NAME}` whose variable is unset is left as written.

```toml
[web]
port = 8080

[logger]
level = "${LOG_LEVEL:info}"
```

Configuration can also be given as a string with `use_config_str` (no
environment merging), or from another path with `use_config_file`.

## Example

```python
import asyncio
from dataclasses import dataclass

from sprout.app import App
from sprout.configuration import Configurable


@dataclass
class GreetingConfig(Configurable, prefix="greeting"):
    text: str = "hello"


@dataclass
class Counter:
    start: int


async def main():
    builder = App.new()
    builder.use_config_str('[greeting]\ntext = "hi"\n')
    builder.add_component(Counter(start=3))
    app = await builder.build()

    print(app.get_config(GreetingConfig).text)
    print(app.get_expect_component(Counter).start)


asyncio.run(main())
```

Applications that keep running register coroutine functions with
`add_scheduler` and await `run()` instead of `build()`. `run()` prints a
start-up banner, builds the plugins, then starts every scheduler with the
built `App` and waits for all of them; a failing scheduler is logged, not
raised. Afterwards the shutdown hooks added with `add_shutdown_hook` run in
reverse order of registration.

## Logging

The built-in `sprout.logger.LogPlugin` is applied before any other plugin and
is configured from the `[logger]` table (`sprout.logconfig.LoggerConfig`):

- `enable` (default `true`) — log to standard output
- `level` — `off`, `trace`, `debug`, `info` (default), `warn`, `error`
- `format` — `compact` (default), `pretty`, `json`
- `time_style` — `system`, `uptime`, `local` (default), `utc`, `none`
- `time_pattern` — `strftime` pattern, default `%Y-%m-%dT%H:%M:%S`
- `with_fields` — any of `file`, `line_number`, `thread_id`, `thread_name`,
  `internal_errors`
- `override_filter` — a filter such as `info,mymodule=debug`
- `pretty_backtrace` — enables `faulthandler`
- `[logger.file]` — rotating log files: `enable`, `non_blocking`, `format`,
  `rotation` (`minutely`, `hourly`, `daily`, `never`), `dir`,
  `filename_prefix`, `filename_suffix`, `max_log_files`

A valid filter in the `SPROUT_LOG` variable takes precedence over both
`override_filter` and `level`. Extra `logging.Handler` objects can be added
with `AppBuilder.add_handler`.

## Web configuration

`sprout.web` holds the pieces that describe an HTTP server:

- `sprout.web.config.WebConfig` reads the `[web]` table: `binding` (default
  `0.0.0.0`), `port` (default 8080), `connect_info`, `graceful`, and a
  `[web.middlewares]` section with `compression`, `limit_payload`, `logger`,
  `catch_panic`, `timeout_request`, `cors` and `static`.
- `sprout.web.errors.KnownWebError` carries an HTTP status and message, with
  a constructor per status (`KnownWebError.not_found("...")` and so on).
  `into_response` turns any error into a `(HTTPStatus, body)` pair: known
  errors keep their status and message, everything else becomes a 500 with
  `Something went wrong: ...`.
- `sprout.web.middleware.plan_middleware` turns the middleware section into
  an ordered list of `Layer` values: panic catching, compression, request
  tracing, timeouts, body-size limits parsed by `parse_byte_size` (such as
  `"5mb"` or `"64KiB"`), CORS rules validated by `build_cors`, and static
  assets checked by `check_static_assets`.

## What it does not do

`sprout` does not include an HTTP server: the web modules only read and
validate configuration, map errors to responses and plan middleware layers;
nothing binds a socket or serves requests. It also has no database or
message-stream plugins and no command-line entry point.