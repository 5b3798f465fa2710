#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.logging_utils — logging setup for the CLI

Goals
-----
• One call configures the package logger:
      logger = init_logger(level="INFO", rich=True, file_path="logs/versionkeeper.log")
• Rich console handler when stderr is a TTY, plain StreamHandler otherwise (CI logs stay
  machine-readable); optional plain file handler.
• Diagnostics go to stderr so stdout carries only reports (and JSON with --json).
• JsonlLogger appends one JSON object per line for the release audit trail.

Calling init_logger() again replaces the handlers instead of stacking duplicates, which
keeps repeated in-process CLI invocations (tests) well-behaved.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "versionkeeper"


def _is_tty(stream: Any) -> bool:
    try:
        return bool(stream.isatty())
    except Exception:
        return False


def _fmt_plain() -> logging.Formatter:
    # timestamp | level | name | message
    return logging.Formatter(fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s", datefmt="%H:%M:%S")


def _level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def init_logger(
    level: Union[str, int] = "INFO",
    *,
    rich: bool = True,
    file_path: Optional[Union[str, Path]] = None,
    name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Configure and return the package logger.

    Args
    ----
    level:     logging level name or number
    rich:      use RichHandler when stderr is a TTY
    file_path: optional plain-format log file (parent dirs created)
    name:      logger to configure (defaults to the package logger)
    """
    logger = logging.getLogger(name)
    lvl = _level(level)
    logger.setLevel(lvl)
    logger.propagate = False

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    if rich and _is_tty(sys.stderr):
        ch: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_level=True,
            show_path=False,
            markup=False,
        )
    else:
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(_fmt_plain())
    ch.setLevel(lvl)
    logger.addHandler(ch)

    if file_path:
        p = Path(file_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(p), mode="a", encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(_fmt_plain())
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the package logger, e.g. get_logger("cli") -> versionkeeper.cli."""
    if name.startswith(PACKAGE_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class JsonlLogger:
    """
    Minimal JSONL event logger. Always appends; creates parent dirs.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def log(self, event: Mapping[str, Any]) -> None:
        payload = dict(event)
        payload.setdefault("ts", time.time())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
