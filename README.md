# summer

A small inversion-of-control container and console logging setup for Python applications.

## Components and the container

Decorate a class with `summer.core.component` to register it. The bean takes the class name as its name. The class must be constructible with no arguments, or the decorator raises `TypeError`. The container builds the bean the first time it is asked for and caches it as a singleton.

```python
from summer.core import component, registered_components
from summer.container import IocContainer

@component
class Greeter:
    def greet(self, name):
        return f"Hello, {name}!"

container = IocContainer(registered_components())
container.initialize()

greeter = container.get_bean(Greeter)
assert greeter is container.get_bean_by_name("Greeter", Greeter)
print(greeter.greet("world"))
```

`IocContainer()` with no argument reads the components registered with `@component` when `initialize()` runs. Calling `initialize()` again does nothing.

You can add beans before or after initialisation with `register_bean_definition(BeanDefinition(name, bean_type, constructor))`. A constructor receives the container as a `BeanProvider`. It can fetch its own dependencies with `get_bean_by_type(bean_type)`, and it reports failure by raising `ConstructorError`.

```python
from summer.core import BeanDefinition

class Repository: ...
class Service:
    def __init__(self, repo):
        self.repo = repo

container = IocContainer([])
container.initialize()
container.register_bean_definition(BeanDefinition("repo", Repository, lambda p: Repository()))
container.register_bean_definition(
    BeanDefinition("service", Service, lambda p: Service(p.get_bean_by_type(Repository)))
)
service = container.get_bean(Service)
```

### Errors

Errors raised by the container come from `summer.errors` and are subclasses of `IocError`:

- `ContainerNotInitializedError`: a bean was requested before `initialize()`.
- `BeanAlreadyExistsError`: a definition with that name is already registered.
- `BeanNotFoundError`: no definition matches the name or type.
- `MultipleBeansFoundError`: more than one definition is registered for the type.
- `DependencyCycleError`: a bean was requested again while it was still being built.
- `InstantiationError`: a constructor raised `ConstructorError`.
- `TypeMismatchError`: the bean is not an instance of the `expected_type` passed to `get_bean_by_name`.

Inside a constructor, `get_bean_by_type` turns any failure to build the dependency into a plain `ConstructorError`. A dependency cycle between beans therefore reaches the outer caller as an `InstantiationError`.

## Logging

`summer.logconfig.LoggingConfig` describes loggers, as a mapping from logger name to level, and appenders, which are console or file appenders with a pattern or JSON encoder. `LoggingConfig.from_dict` builds one from parsed YAML or JSON data and raises `ConfigParseError` for unknown or missing fields. `validate()` checks three things:

- each level is TRACE, DEBUG, INFO, WARN or ERROR;
- file rolling patterns contain `%d`, and also `%i` for size-and-time policies;
- `max_file_size` looks like `10MB` or `2GB`.

```python
from summer.logconfig import LoggingConfig
from summer.logsetup import init

config = LoggingConfig.from_dict({
    "loggers": {"app": "debug"},
    "appenders": {
        "console": {
            "type": "console",
            "target": "stderr",
            "encoder": {"type": "pattern", "pattern": "%d [%t] %l %T - %m%n"},
        }
    },
})
config.validate()
init(config)
```

`summer.logsetup.init` installs one console handler on the root logger.

- **Target and encoder:** the first console appender chooses stdout or stderr and pattern or JSON output. With no console appender, output goes to stdout with the default pattern.
- **Base level:** the `SUMMER_LOG` environment variable sets it, using comma-separated directives such as `warn,app=debug`. When the variable is unset or cannot be read, the base level is `info`. Configured loggers are applied on top.
- **Repeat calls:** calling `init` again replaces the previous handler and levels.

`init_default()` installs stdout logging with the default pattern `%d{%Y-%m-%d %H:%M:%S} [%t] %l %T - %m%n`. `summer.logsetup.JsonFormatter` writes one JSON object per line. Each object holds the timestamp, level, message, logger, file, line and thread, plus the active spans.

### Pattern specifiers

`summer.pattern.PatternFormatter` is a `logging.Formatter` that understands:

| Specifier | Output |
|-----------|--------|
| `%d`, `%d{fmt}` | local time, strftime format (default `%Y-%m-%d %H:%M:%S`) |
| `%t` / `%tid` | thread name / thread id |
| `%p`, `%l` | level, padded to five characters |
| `%T`, `%c` | logger name |
| `%m` | message |
| `%n` | platform line separator |
| `%F`, `%L` | file path and line number |
| `%M`, `%C` | function and module |
| `%span` | name of the current span |
| `%X`, `%X{key}` | fields of the current span and its parents (the key is ignored) |
| `%%` | literal percent |

Any other `%` sequence, including a bare `%s`, is written out unchanged. Spans from `summer.pattern` add context. They nest, and `current_span()` returns the innermost one.

```python
import logging
from summer.pattern import span

with span("processing", job_id=42):
    logging.getLogger("app").info("working")
```

## What it does not do

- **File output:** file appenders, rolling policies and JSON encoder options can be described, parsed and validated, but `init` only writes to the console. Nothing is ever written to a log file.
- **Constructor injection:** `@component` only builds classes with no constructor arguments. Beans with dependencies need a hand-written `BeanDefinition`.
- **Bean selection:** there are no qualifiers or primary beans.