"""Installing console logging from a :class:`LoggingConfig`."""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Any, TextIO

from summer.logconfig import (
    DEFAULT_PATTERN,
    ConfigParseError,
    ConsoleAppenderConfig,
    ConsoleTarget,
    LoggingConfig,
    PatternEncoderConfig,
)
from summer.pattern import PatternFormatter, current_span, format_level

TRACE = 5
OFF = logging.CRITICAL + 10
ENV_VAR = "SUMMER_LOG"
DEFAULT_LEVEL = logging.INFO

logging.addLevelName(TRACE, "TRACE")

_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "off": OFF,
}

_lock = threading.Lock()
_installed: _ConsoleHandler | None = None
_configured_targets: set[str] = set()


def _parse_level(text: str) -> int:
    try:
        return _LEVELS[text.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown level '{text}'") from None


def _parse_directives(spec: str) -> tuple[int, dict[str, int]]:
    """Parse ``level`` and ``target=level`` directives separated by commas."""
    default = DEFAULT_LEVEL
    targets: dict[str, int] = {}
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        target, sep, level = part.partition("=")
        if sep:
            if not target.strip():
                raise ValueError(f"empty target in directive '{part}'")
            targets[target.strip()] = _parse_level(level)
        elif part.lower() in _LEVELS:
            default = _LEVELS[part.lower()]
        else:
            targets[part] = TRACE
    return default, targets


def _env_filter() -> tuple[int, dict[str, int]]:
    spec = os.environ.get(ENV_VAR)
    if spec is None:
        return DEFAULT_LEVEL, {}
    try:
        return _parse_directives(spec)
    except ValueError:
        return DEFAULT_LEVEL, {}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object, with the current span context."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON document on a single line."""
        timestamp = (
            datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="microseconds")
            .replace("+00:00", "Z")
        )
        document: dict[str, Any] = {
            "timestamp": timestamp,
            "level": format_level(record.levelno).strip(),
            "fields": {"message": record.getMessage()},
            "target": record.name,
            "filename": record.pathname,
            "line_number": record.lineno,
        }
        if record.exc_info:
            document["fields"]["exception"] = self.formatException(record.exc_info)
        active = current_span()
        if active is not None:
            document["span"] = {**active.fields, "name": active.name}
            document["spans"] = [
                {**s.fields, "name": s.name} for s in reversed(list(active.scope()))
            ]
        document["threadName"] = record.threadName
        document["threadId"] = record.thread
        return json.dumps(document, ensure_ascii=False, default=str)


class _ConsoleHandler(logging.Handler):
    """Writes to whichever stream is the process's stdout or stderr at emit time."""

    def __init__(self, target: ConsoleTarget, terminator: str) -> None:
        super().__init__()
        self.target = target
        self.terminator = terminator

    @property
    def stream(self) -> TextIO:
        return sys.stderr if self.target is ConsoleTarget.STDERR else sys.stdout

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = self.format(record)
            stream = self.stream
            stream.write(text + self.terminator)
            stream.flush()
        except Exception:
            self.handleError(record)


def init(config: LoggingConfig) -> None:
    """Install console logging as described by ``config``.

    The ``SUMMER_LOG`` environment variable gives the base filter
    (``info`` when unset or unreadable); the configured loggers are added on
    top. The first console appender decides target and encoding. Calling it
    again replaces the previous setup.
    """
    default_level, targets = _env_filter()
    for target, level in config.loggers.items():
        directive = f"{target}={level}"
        try:
            targets[target] = _parse_level(level)
        except ValueError as exc:
            raise ConfigParseError(f"Invalid log directive '{directive}': {exc}") from None

    console = next(
        (a for a in config.appenders.values() if isinstance(a, ConsoleAppenderConfig)),
        ConsoleAppenderConfig(),
    )
    if isinstance(console.encoder, PatternEncoderConfig):
        handler = _ConsoleHandler(console.target, "")
        handler.setFormatter(PatternFormatter(console.encoder.pattern))
    else:
        handler = _ConsoleHandler(console.target, "\n")
        handler.setFormatter(JsonFormatter())

    global _installed
    root = logging.getLogger()
    with _lock:
        if _installed is not None:
            root.removeHandler(_installed)
        for name in _configured_targets:
            logging.getLogger(name).setLevel(logging.NOTSET)
        _configured_targets.clear()
        root.setLevel(default_level)
        for name, level in targets.items():
            logging.getLogger(name).setLevel(level)
            _configured_targets.add(name)
        root.addHandler(handler)
        _installed = handler


def init_default() -> None:
    """Install stdout logging with the default pattern."""
    config = LoggingConfig()
    config.appenders["console"] = ConsoleAppenderConfig(
        target=ConsoleTarget.STDOUT,
        encoder=PatternEncoderConfig(pattern=DEFAULT_PATTERN),
    )
    init(config)