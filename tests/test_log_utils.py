from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from blurctl.log_utils import (
    ContextFilter,
    JsonFormatter,
    build_log_config,
    configure_logging,
    log_context,
    log_event,
    parse_bool,
    parse_int,
    parse_level,
    parse_logger_levels,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_parsers_fall_back_to_defaults() -> None:
    assert parse_level(None, logging.INFO) == logging.INFO
    assert parse_level("debug", logging.INFO) == logging.DEBUG
    assert parse_level("15", logging.INFO) == 15
    assert parse_level("chatty", logging.WARNING) == logging.WARNING
    assert parse_bool("On", False)
    assert not parse_bool("0", True)
    assert parse_bool(None, True)
    assert parse_int("abc", 5) == 5
    assert parse_int("7", 5) == 7


def test_build_log_config_reads_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLURCTL_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("BLURCTL_LOG_LEVEL", "debug")
    monkeypatch.setenv("BLURCTL_LOG_JSON", "1")
    monkeypatch.setenv("BLURCTL_LOG_MAX_BYTES", "1024")

    config = build_log_config(log_file_name="client.log")

    assert config.log_file == tmp_path / "logs" / "client.log"
    assert config.log_file.parent.is_dir()
    assert config.level == logging.DEBUG
    assert config.json
    assert not config.stderr
    assert config.max_bytes == 1024


def test_text_log_lines_carry_context_and_fields(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, restore_root_logger: logging.Logger
) -> None:
    monkeypatch.setenv("BLURCTL_LOG_DIR", str(tmp_path))
    config = build_log_config(log_file_name="blurctl.log")
    configure_logging(config)
    logger = logging.getLogger("blurctl.test")

    with log_context(operation="apply"):
        log_event(logger, "session.transition", from_state="ready", to_state="applying")
    log_event(logger, "channel.call", command="clear_blur", error="native error")
    for handler in restore_root_logger.handlers:
        handler.flush()

    lines = config.log_file.read_text().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("session.transition operation=apply from_state=ready to_state=applying")
    assert "operation=" not in lines[1]
    assert lines[1].endswith('channel.call command=clear_blur error="native error"')


def test_json_formatter_includes_context_and_exception() -> None:
    record = logging.LogRecord("blurctl.session", logging.ERROR, __file__, 1, "session.failed", None, None)
    record.event_fields = {"error": "boom", "code": None}
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record.exc_info = sys.exc_info()

    with log_context(operation="clear"):
        ContextFilter().filter(record)
    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "ERROR"
    assert payload["logger"] == "blurctl.session"
    assert payload["message"] == "session.failed"
    assert payload["context"] == {"operation": "clear"}
    assert payload["fields"] == {"error": "boom"}
    assert "RuntimeError: boom" in payload["exc_info"]


def test_logger_levels_come_from_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, restore_root_logger: logging.Logger
) -> None:
    monkeypatch.setenv("BLURCTL_LOG_DIR", str(tmp_path))
    monkeypatch.setenv("BLURCTL_LOG_LOGGERS", "blurctl.native=warning, blurctl.channel=debug,bogus,x=loud")
    native = logging.getLogger("blurctl.native")
    channel = logging.getLogger("blurctl.channel")
    saved = (native.level, channel.level)

    config = build_log_config(log_file_name="blurctl.log")
    try:
        configure_logging(config)

        assert config.logger_levels == {"blurctl.native": logging.WARNING, "blurctl.channel": logging.DEBUG}
        assert native.level == logging.WARNING
        assert channel.level == logging.DEBUG
    finally:
        native.setLevel(saved[0])
        channel.setLevel(saved[1])


def test_parse_logger_levels_ignores_junk() -> None:
    assert parse_logger_levels(None) == {}
    assert parse_logger_levels("=debug, blurctl=20") == {"blurctl": 20}
