import json
import logging
import re

import pytest

from summer.logconfig import (
    ConfigParseError,
    ConsoleAppenderConfig,
    ConsoleTarget,
    FileAppenderConfig,
    JsonEncoderConfig,
    LoggingConfig,
    PatternEncoderConfig,
)
from summer.logsetup import TRACE, JsonFormatter, init, init_default
from summer.pattern import span

TEST_LOGGERS = ("test", "test_json", "app", "summer_app")


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    monkeypatch.delenv("SUMMER_LOG", raising=False)
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    for name in TEST_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


def pattern_config(pattern, target=ConsoleTarget.STDOUT, loggers=None):
    config = LoggingConfig()
    config.appenders["console"] = ConsoleAppenderConfig(
        target=target, encoder=PatternEncoderConfig(pattern=pattern)
    )
    if loggers:
        config.loggers.update(loggers)
    return config


def test_default_logging(capsys):
    init_default()
    logging.getLogger("test").info("这是一条信息日志")
    logging.getLogger("summer_app").warning("这是一条警告日志")
    logging.getLogger("summer_app").debug("这是一条调试日志, 不会显示")
    out = capsys.readouterr().out
    lines = out.splitlines()
    assert len(lines) == 2
    assert re.match(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[.+\] INFO  test - 这是一条信息日志$", lines[0])
    assert lines[1].endswith("WARN  summer_app - 这是一条警告日志")
    assert "不会显示" not in out


def test_basic_logging_with_target_level(capsys):
    config = pattern_config(
        "%d{yyyy-MM-dd HH:mm:ss} [%t]  %c @ %M [ %p] %m %n", loggers={"test": "debug"}
    )
    init(config)
    logging.getLogger("summer_app").info("这是一条信息日志")
    logging.getLogger("summer_app").debug("这是一条调试日志, 不会显示")
    logging.getLogger("test").debug("这是一条调试日志")
    out = capsys.readouterr().out
    assert "[ INFO ] 这是一条信息日志" in out
    assert " test @ test_basic_logging_with_target_level [ DEBUG] 这是一条调试日志 \n" in out
    assert "不会显示" not in out
    assert out.count("yyyy-MM-dd HH:mm:ss") == 2


def test_json_encoder_stderr(capsys):
    config = LoggingConfig()
    config.appenders["console_stderr_json"] = ConsoleAppenderConfig(
        target=ConsoleTarget.STDERR, encoder=JsonEncoderConfig()
    )
    config.loggers["test_json"] = "trace"
    init(config)
    log = logging.getLogger("test_json")
    log.log(TRACE, "这是一条 JSON trace 日志")
    log.debug("这是一条 JSON debug 日志")
    log.info("这是一条 JSON info 日志")
    log.warning("这是一条 JSON warn 日志")
    log.error("这是一条 JSON error 日志")
    captured = capsys.readouterr()
    assert captured.out == ""
    records = [json.loads(line) for line in captured.err.splitlines()]
    assert [r["level"] for r in records] == ["TRACE", "DEBUG", "INFO", "WARN", "ERROR"]
    assert records[2]["fields"]["message"] == "这是一条 JSON info 日志"
    assert all(r["target"] == "test_json" for r in records)
    assert records[0]["timestamp"].endswith("Z")


def test_json_formatter_includes_spans():
    record = logging.LogRecord("app", logging.INFO, "/src/app.py", 12, "hello %s", ("you",), None)
    with span("outer", job_id=42):
        with span("inner", task="decode"):
            document = json.loads(JsonFormatter().format(record))
    assert document["fields"] == {"message": "hello you"}
    assert document["line_number"] == 12
    assert document["filename"] == "/src/app.py"
    assert document["span"] == {"task": "decode", "name": "inner"}
    assert document["spans"] == [
        {"job_id": 42, "name": "outer"},
        {"task": "decode", "name": "inner"},
    ]


def test_json_formatter_without_span_has_no_span_keys():
    record = logging.LogRecord("app", logging.WARNING, "x.py", 1, "msg", None, None)
    document = json.loads(JsonFormatter().format(record))
    assert "span" not in document
    assert document["level"] == "WARN"


def test_invalid_logger_level_is_rejected():
    config = pattern_config("%m%n", loggers={"test": "INVALID_LEVEL"})
    with pytest.raises(ConfigParseError, match="Invalid log directive 'test=INVALID_LEVEL'"):
        init(config)


def test_environment_sets_base_level(capsys, monkeypatch):
    monkeypatch.setenv("SUMMER_LOG", "debug,app=error")
    init(pattern_config("%l %m%n"))
    logging.getLogger("summer_app").debug("visible")
    logging.getLogger("app").warning("hidden")
    out = capsys.readouterr().out
    assert out == "DEBUG visible\n"


def test_unreadable_environment_falls_back_to_info(capsys, monkeypatch):
    monkeypatch.setenv("SUMMER_LOG", "app=nonsense")
    init(pattern_config("%l %m%n"))
    logging.getLogger("summer_app").debug("hidden")
    logging.getLogger("summer_app").info("shown")
    assert capsys.readouterr().out == "INFO  shown\n"


def test_reinitialising_replaces_previous_handler(capsys):
    init(pattern_config("first %m%n"))
    init(pattern_config("second %m%n", target=ConsoleTarget.STDERR))
    logging.getLogger("summer_app").info("once")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == "second once\n"


def test_reinitialising_resets_target_levels(capsys):
    init(pattern_config("%m%n", loggers={"test": "debug"}))
    init(pattern_config("%m%n"))
    logging.getLogger("test").debug("gone")
    logging.getLogger("test").info("kept")
    assert capsys.readouterr().out == "kept\n"


def test_console_appender_is_used_even_after_file_appender(capsys):
    config = LoggingConfig()
    config.appenders["file"] = FileAppenderConfig(
        path="test.log", encoder=PatternEncoderConfig(pattern="file %m%n")
    )
    config.appenders["console"] = ConsoleAppenderConfig(
        target=ConsoleTarget.STDOUT, encoder=PatternEncoderConfig(pattern="console %m%n")
    )
    init(config)
    logging.getLogger("summer_app").error("boom")
    assert capsys.readouterr().out == "console boom\n"


def test_without_console_appender_uses_default_pattern(capsys):
    init(LoggingConfig())
    logging.getLogger("summer_app").info("plain")
    out = capsys.readouterr().out
    assert out.endswith("] INFO  summer_app - plain\n")
    assert out.count("\n") == 1
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[.+\] INFO  summer_app - plain\n", out)