"""Logging configuration: loggers, appenders, encoders and rolling policies."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

DEFAULT_PATTERN = "%d{%Y-%m-%d %H:%M:%S} [%t] %l %T - %m%n"
DEFAULT_MAX_HISTORY = 7

_VALID_LEVELS = frozenset({"TRACE", "DEBUG", "INFO", "WARN", "ERROR"})
_UNSIGNED = re.compile(r"\+?[0-9]+", re.ASCII)
_U64_LIMIT = 2**64


class LoggingError(Exception):
    """Base class of every error raised by the logging subsystem."""

    _template = "{}"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(self._template.format(detail))


class ConfigParseError(LoggingError):
    """The logging configuration could not be read."""

    _template = "Failed to parse logging configuration: {}"


class WriterCreationError(LoggingError):
    """A log writer could not be created."""

    _template = "Failed to create log writer: {}"


class InvalidLevelError(LoggingError):
    """A logger was given a level that does not exist."""

    _template = "Invalid log level: {}"


class InvalidRollingPolicyError(LoggingError):
    """A rolling policy is incomplete or malformed."""

    _template = "Invalid rolling policy configuration: {}"


class ConsoleTarget(Enum):
    """The stream a console appender writes to."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass
class PatternEncoderConfig:
    """Encoder that renders each event through a pattern string."""

    pattern: str = DEFAULT_PATTERN


@dataclass
class JsonEncoderConfig:
    """Encoder that renders each event as a JSON object."""

    json_options: dict[str, Any] = field(default_factory=dict)


EncoderConfig = Union[PatternEncoderConfig, JsonEncoderConfig]


@dataclass
class ConsoleAppenderConfig:
    """Appender writing to standard output or standard error."""

    target: ConsoleTarget = ConsoleTarget.STDOUT
    encoder: EncoderConfig = field(default_factory=PatternEncoderConfig)


@dataclass
class TimeBasedRollingPolicy:
    """Roll files by date; the pattern must contain ``%d``."""

    file_name_pattern: str
    max_history: int = DEFAULT_MAX_HISTORY


@dataclass
class SizeAndTimeBasedRollingPolicy:
    """Roll files by date and size; the pattern must contain ``%d`` and ``%i``."""

    file_name_pattern: str
    max_file_size: str
    max_history: int = DEFAULT_MAX_HISTORY


RollingPolicyConfig = Union[TimeBasedRollingPolicy, SizeAndTimeBasedRollingPolicy]


@dataclass
class FileAppenderConfig:
    """Appender writing to a file, optionally rolled over."""

    path: str
    encoder: EncoderConfig
    rolling_policy: RollingPolicyConfig | None = None


AppenderConfig = Union[ConsoleAppenderConfig, FileAppenderConfig]


def is_valid_level(level: str) -> bool:
    """Whether ``level`` names TRACE, DEBUG, INFO, WARN or ERROR, in any case."""
    return level.upper() in _VALID_LEVELS


def is_valid_size_format(size: str) -> bool:
    """Whether ``size`` is an unsigned number followed by MB or GB."""
    text = size.strip().upper()
    for suffix in ("MB", "GB"):
        if text.endswith(suffix):
            number = text[: -len(suffix)]
            return bool(_UNSIGNED.fullmatch(number)) and int(number) < _U64_LIMIT
    return False


def _validate_rolling_policy(policy: RollingPolicyConfig) -> None:
    if isinstance(policy, TimeBasedRollingPolicy):
        if "%d" not in policy.file_name_pattern:
            raise InvalidRollingPolicyError(
                "Time-based rolling policy must contain %d in file_name_pattern"
            )
        return
    pattern = policy.file_name_pattern
    if "%d" not in pattern or "%i" not in pattern:
        raise InvalidRollingPolicyError(
            "Size and time based rolling policy must contain both %d and %i "
            "in file_name_pattern"
        )
    if not is_valid_size_format(policy.max_file_size):
        raise InvalidRollingPolicyError(
            f"Invalid max_file_size format: {policy.max_file_size}. "
            "Expected format: <number>MB or <number>GB"
        )


@dataclass
class LoggingConfig:
    """Top-level logging configuration."""

    loggers: dict[str, str] = field(default_factory=dict)
    appenders: dict[str, AppenderConfig] = field(default_factory=dict)

    def validate(self) -> None:
        """Check every logger level and every appender's rolling policy."""
        for target, level in self.loggers.items():
            if not is_valid_level(level):
                raise InvalidLevelError(
                    f"Invalid log level '{level}' for target '{target}'"
                )
        for name, appender in self.appenders.items():
            if isinstance(appender, FileAppenderConfig) and appender.rolling_policy is not None:
                try:
                    _validate_rolling_policy(appender.rolling_policy)
                except InvalidRollingPolicyError as exc:
                    raise ConfigParseError(
                        f"Invalid rolling policy for appender '{name}': {exc}"
                    ) from exc

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LoggingConfig:
        """Build a configuration from parsed YAML, JSON or similar data."""
        data = _mapping(data, "logging configuration")
        _check_fields(data, {"loggers", "appenders"}, "logging configuration")
        loggers: dict[str, str] = {}
        if "loggers" in data:
            raw = _mapping(data["loggers"], "loggers")
            for target, level in raw.items():
                loggers[_string(target, "logger name")] = _string(
                    level, f"level of logger '{target}'"
                )
        appenders: dict[str, AppenderConfig] = {}
        if "appenders" in data:
            raw = _mapping(data["appenders"], "appenders")
            for name, appender in raw.items():
                key = _string(name, "appender name")
                appenders[key] = _parse_appender(appender, f"appender '{key}'")
        return cls(loggers=loggers, appenders=appenders)


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigParseError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _string(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ConfigParseError(f"{what} must be a string, got {type(value).__name__}")
    return value


def _unsigned(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigParseError(f"{what} must be a non-negative integer, got {value!r}")
    return value


def _check_fields(data: Mapping[str, Any], allowed: set[str], what: str) -> None:
    for key in data:
        if key not in allowed:
            expected = ", ".join(sorted(allowed))
            raise ConfigParseError(
                f"unknown field '{key}' in {what}, expected one of: {expected}"
            )


def _required(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise ConfigParseError(f"missing field '{key}' in {what}")
    return data[key]


def _tag(data: Mapping[str, Any], variants: tuple[str, ...], what: str) -> str:
    tag = _string(_required(data, "type", what), f"type of {what}")
    if tag not in variants:
        raise ConfigParseError(
            f"unknown {what} type '{tag}', expected one of: {', '.join(variants)}"
        )
    return tag


def _parse_encoder(value: Any, what: str) -> EncoderConfig:
    data = _mapping(value, what)
    if _tag(data, ("pattern", "json"), what) == "pattern":
        return PatternEncoderConfig(
            pattern=_string(_required(data, "pattern", what), f"pattern of {what}")
        )
    return JsonEncoderConfig(
        json_options={key: item for key, item in data.items() if key != "type"}
    )


def _parse_target(value: Any, what: str) -> ConsoleTarget:
    text = _string(value, what)
    try:
        return ConsoleTarget(text)
    except ValueError:
        raise ConfigParseError(
            f"unknown {what} '{text}', expected one of: stdout, stderr"
        ) from None


def _parse_rolling_policy(value: Any, what: str) -> RollingPolicyConfig:
    data = _mapping(value, what)
    kind = _tag(data, ("time", "size_and_time"), what)
    pattern = _string(
        _required(data, "file_name_pattern", what), f"file_name_pattern of {what}"
    )
    max_history = _unsigned(
        data.get("max_history", DEFAULT_MAX_HISTORY), f"max_history of {what}"
    )
    if kind == "time":
        return TimeBasedRollingPolicy(file_name_pattern=pattern, max_history=max_history)
    return SizeAndTimeBasedRollingPolicy(
        file_name_pattern=pattern,
        max_file_size=_string(
            _required(data, "max_file_size", what), f"max_file_size of {what}"
        ),
        max_history=max_history,
    )


def _parse_appender(value: Any, what: str) -> AppenderConfig:
    data = _mapping(value, what)
    if _tag(data, ("console", "file"), what) == "console":
        _check_fields(data, {"type", "target", "encoder"}, what)
        target = (
            _parse_target(data["target"], f"target of {what}")
            if "target" in data
            else ConsoleTarget.STDOUT
        )
        return ConsoleAppenderConfig(
            target=target,
            encoder=_parse_encoder(_required(data, "encoder", what), f"encoder of {what}"),
        )
    _check_fields(data, {"type", "path", "encoder", "rolling_policy"}, what)
    policy_data = data.get("rolling_policy")
    return FileAppenderConfig(
        path=_string(_required(data, "path", what), f"path of {what}"),
        encoder=_parse_encoder(_required(data, "encoder", what), f"encoder of {what}"),
        rolling_policy=(
            None
            if policy_data is None
            else _parse_rolling_policy(policy_data, f"rolling policy of {what}")
        ),
    )