#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.stores — storage backends and the canonical VERSION store

A backend owns one text artifact:
  • FileBackend   — a real file; writes go through AtomicFile (temp + verify + rename)
  • MemoryBackend — in-memory fake with the same contract, used by unit tests

VersionStore layers version semantics (trim, parse, format) on top of a backend.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from .atomic import atomic_write_text
from .errors import FileAccessFailed, InvalidFormat, NotFound, WriteVerificationFailed
from .semver import Version, parse

log = logging.getLogger(__name__)

Check = Callable[[str], bool]


class TextBackend(Protocol):
    name: str

    def exists(self) -> bool: ...

    def read(self) -> str: ...

    def write(self, text: str, check: Optional[Check] = None) -> None: ...


# -----------------------------------------------------------------------------
# Backends
# -----------------------------------------------------------------------------
class FileBackend:
    """Text file on disk. Bytes are decoded/encoded as UTF-8 without newline translation."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.name = str(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> str:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            raise NotFound(f"{self.path} does not exist") from None
        except OSError as e:
            raise FileAccessFailed(f"cannot read {self.path}: {e.strerror or e}") from None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidFormat(f"{self.path}: not valid UTF-8") from None

    def write(self, text: str, check: Optional[Check] = None) -> None:
        try:
            atomic_write_text(self.path, text, check)
        except OSError as e:
            raise FileAccessFailed(f"cannot write {self.path}: {e.strerror or e}") from None
        log.info("wrote %s", self.path)

    def __repr__(self) -> str:
        return f"FileBackend({str(self.path)!r})"


class MemoryBackend:
    """
    In-memory stand-in for FileBackend.

    `writes` records every committed text; `fail_verification` makes the next write behave
    like a failed read-back (content is left untouched, as with the real file).
    """

    def __init__(self, text: Optional[str] = None, name: str = "<memory>") -> None:
        self.text = text
        self.name = name
        self.writes: List[str] = []
        self.fail_verification = False

    def exists(self) -> bool:
        return self.text is not None

    def read(self) -> str:
        if self.text is None:
            raise NotFound(f"{self.name} does not exist")
        return self.text

    def write(self, text: str, check: Optional[Check] = None) -> None:
        if self.fail_verification or (check is not None and not check(text)):
            raise WriteVerificationFailed(f"written content for {self.name} failed verification")
        self.text = text
        self.writes.append(text)

    def __repr__(self) -> str:
        return f"MemoryBackend(name={self.name!r})"


# -----------------------------------------------------------------------------
# Canonical version store
# -----------------------------------------------------------------------------
class VersionStore:
    """Single-line canonical version file; the sole source of truth."""

    def __init__(self, backend: TextBackend) -> None:
        self.backend = backend

    @classmethod
    def at(cls, path: Path) -> "VersionStore":
        return cls(FileBackend(path))

    @property
    def name(self) -> str:
        return self.backend.name

    def get(self) -> Version:
        raw = self.backend.read().strip()
        try:
            return parse(raw)
        except InvalidFormat as e:
            raise InvalidFormat(f"{self.name}: {e.message}") from None

    def render(self, version: Version) -> str:
        return f"{version}\n"

    def set(self, version: Version) -> None:
        text = self.render(version)
        self.backend.write(text, check=lambda written: written.strip() == str(version))
