"""Pattern-based log formatting with span context.

The pattern understands these specifiers:

``%d`` / ``%d{fmt}``  local time, strftime format (default ``%Y-%m-%d %H:%M:%S``)
``%t`` / ``%tid``     thread name / thread identifier
``%p`` / ``%l``       level, padded to five characters
``%T`` / ``%c``       logger name
``%m``                message
``%n``                platform line separator
``%F`` / ``%L``       source file / line number
``%M`` / ``%C``       function name / module name
``%span``             name of the current span
``%X`` / ``%X{key}``  fields of the current span and its parents
``%%``                a literal percent sign

Any other specifier is written out unchanged.
"""

from __future__ import annotations

import contextvars
import json
import logging
import os
from collections.abc import Iterator
from datetime import datetime
from typing import Any

_DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LINE_SEPARATOR = "\r\n" if os.name == "nt" else "\n"

_current: contextvars.ContextVar[Span | None] = contextvars.ContextVar(
    "summer_current_span", default=None
)


def format_level(level: int) -> str:
    """Five-character name of a numeric logging level."""
    if level >= logging.ERROR:
        return "ERROR"
    if level >= logging.WARNING:
        return "WARN "
    if level >= logging.INFO:
        return "INFO "
    if level >= logging.DEBUG:
        return "DEBUG"
    return "TRACE"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


class Span:
    """A named unit of work carrying fields; entered as a context manager."""

    def __init__(self, name: str, fields: dict[str, Any], parent: Span | None = None) -> None:
        self.name = name
        self.fields = dict(fields)
        self.parent = parent
        self._tokens: list[contextvars.Token[Span | None]] = []

    def __enter__(self) -> Span:
        self._tokens.append(_current.set(self))
        return self

    def __exit__(self, *exc_info: object) -> None:
        _current.reset(self._tokens.pop())

    def scope(self) -> Iterator[Span]:
        """This span followed by each of its ancestors."""
        span: Span | None = self
        while span is not None:
            yield span
            span = span.parent

    def formatted_fields(self) -> str:
        """The fields as ``key=value`` pairs separated by spaces."""
        return " ".join(f"{key}={_format_value(value)}" for key, value in self.fields.items())

    def __repr__(self) -> str:
        return f"Span({self.name!r}, {self.fields!r})"


def span(name: str, **kwargs: Any) -> Span:
    """Create a span whose parent is the span current at creation time."""
    return Span(name, kwargs, parent=current_span())


def current_span() -> Span | None:
    """The innermost span entered in this context, if any."""
    return _current.get()


def _parse(pattern: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    literal: list[str] = []

    def emit(kind: str, arg: str = "") -> None:
        if literal:
            tokens.append(("literal", "".join(literal)))
            literal.clear()
        tokens.append((kind, arg))

    simple = {
        "p": "level",
        "l": "level",
        "T": "target",
        "c": "target",
        "m": "message",
        "n": "newline",
        "F": "file",
        "L": "line",
        "M": "function",
        "C": "module",
    }
    length = len(pattern)
    pos = 0
    while pos < length:
        ch = pattern[pos]
        pos += 1
        if ch != "%":
            literal.append(ch)
            continue
        if pos >= length:
            literal.append("%")
            break
        code = pattern[pos]
        pos += 1
        if code == "%":
            literal.append("%")
        elif code == "d":
            date_format = _DEFAULT_DATE_FORMAT
            if pattern.startswith("{", pos):
                end = pattern.find("}", pos + 1)
                if end < 0:
                    date_format, pos = pattern[pos + 1 :], length
                else:
                    date_format, pos = pattern[pos + 1 : end], end + 1
            emit("date", date_format)
        elif code == "t":
            if pattern.startswith("id", pos):
                pos += 2
                emit("thread_id")
            else:
                emit("thread_name")
        elif code == "s":
            if pattern.startswith("pan", pos):
                pos += 3
                emit("span")
            else:
                literal.append("%s")
        elif code == "X":
            if pattern.startswith("{", pos):
                end = pattern.find("}", pos + 1)
                pos = length if end < 0 else end + 1
            emit("fields")
        elif code in simple:
            emit(simple[code])
        else:
            literal.append("%" + code)
    if literal:
        tokens.append(("literal", "".join(literal)))
    return tokens


class PatternFormatter(logging.Formatter):
    """A logging formatter driven by a pattern string."""

    def __init__(self, pattern: str) -> None:
        super().__init__()
        self.pattern = pattern
        self._tokens = _parse(pattern)

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` according to the pattern."""
        active = current_span()
        parts: list[str] = []
        for kind, arg in self._tokens:
            if kind == "literal":
                parts.append(arg)
            elif kind == "date":
                parts.append(datetime.fromtimestamp(record.created).strftime(arg))
            elif kind == "thread_name":
                parts.append(record.threadName or "?")
            elif kind == "thread_id":
                parts.append("?" if record.thread is None else str(record.thread))
            elif kind == "level":
                parts.append(format_level(record.levelno))
            elif kind == "target":
                parts.append(record.name)
            elif kind == "message":
                parts.append(record.getMessage())
            elif kind == "newline":
                parts.append(_LINE_SEPARATOR)
            elif kind == "file":
                parts.append(record.pathname or "?")
            elif kind == "line":
                parts.append(str(record.lineno) if record.lineno else "?")
            elif kind == "function":
                parts.append(record.funcName or "?")
            elif kind == "module":
                parts.append(record.module or "?")
            elif kind == "span":
                if active is not None:
                    parts.append(active.name)
            elif kind == "fields":
                if active is not None:
                    parts.append(
                        ", ".join(
                            text
                            for text in (s.formatted_fields() for s in active.scope())
                            if text
                        )
                    )
        return "".join(parts)