# test_logging_utils.py
# Logger setup is idempotent and the JSONL audit logger appends.

from __future__ import annotations

import json
import logging
from pathlib import Path

from versionkeeper import logging_utils
from versionkeeper.logging_utils import PACKAGE_LOGGER, JsonlLogger, get_logger, init_logger


def test_init_logger_replaces_handlers(tmp_path: Path):
    log_file = tmp_path / "logs" / "vk.log"
    logger = init_logger("DEBUG", rich=False, file_path=log_file)
    logger = init_logger("DEBUG", rich=False, file_path=log_file)
    assert logger.name == PACKAGE_LOGGER
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert logger.propagate is False

    get_logger("release").info("hello %s", "world")
    for h in logger.handlers:
        h.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "| INFO | versionkeeper.release | hello world" in text
    init_logger("WARNING", rich=False)


def test_non_tty_uses_plain_stream_handler(monkeypatch):
    monkeypatch.setattr(logging_utils, "_is_tty", lambda stream: False)
    logger = init_logger("INFO", rich=True)
    assert type(logger.handlers[0]) is logging.StreamHandler


def test_get_logger_names():
    assert get_logger("cli").name == "versionkeeper.cli"
    assert get_logger("versionkeeper.vcs").name == "versionkeeper.vcs"


def test_unknown_level_falls_back_to_info():
    assert init_logger("LOUD", rich=False).level == logging.INFO


def test_jsonl_logger_appends(tmp_path: Path):
    path = tmp_path / "a" / "audit.jsonl"
    j = JsonlLogger(path)
    j.log({"command": "bump", "new_version": "0.1.0"})
    j.log({"command": "release", "path": Path("VERSION"), "ts": 1.0})
    lines = [json.loads(ln) for ln in path.read_text(encoding="utf-8").splitlines()]
    assert lines[0]["command"] == "bump" and "ts" in lines[0]
    assert lines[1] == {"command": "release", "path": "VERSION", "ts": 1.0}
