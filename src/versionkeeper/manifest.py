#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.manifest — version field inside a [section]-structured manifest

ManifestPatcher edits exactly one line: the first `<field> = "<value>"` assignment inside
the target section, where a section runs from its `[name]` header to the next header line.
Only the quoted value changes; comments, spacing, line endings and all other lines are
carried over byte for byte.

DelegatingManifest inspects a secondary manifest that should inherit the shared version
(`version.workspace = true`) instead of pinning its own copy. It never writes.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import InvalidFormat, NotFound, SectionNotFound, VersionLineNotFound
from .semver import Version, parse
from .stores import FileBackend, TextBackend

log = logging.getLogger(__name__)

# Headers start in column 0; indented bracketed lines are array elements, not tables.
HEADER_RE = re.compile(r"^\[\[?\s*(?P<name>[^\[\],]+?)\s*\]\]?\s*(?:#.*)?$")


def _header_name(line: str) -> Optional[str]:
    m = HEADER_RE.match(line.rstrip("\r\n"))
    return m.group("name") if m else None


def _field_re(field: str) -> "re.Pattern[str]":
    return re.compile(rf"""^(?P<lead>\s*{re.escape(field)}\s*=\s*)(?P<q>["'])(?P<value>[^"'\r\n]*)(?P=q)""")


def section_span(lines: List[str], section: str) -> Tuple[int, int]:
    """Return [start, end) line indexes of the body of `section` (header excluded)."""
    start = None
    for i, line in enumerate(lines):
        name = _header_name(line)
        if name is None:
            continue
        if start is not None:
            return start, i
        if name == section:
            start = i + 1
    if start is None:
        raise SectionNotFound(f"section [{section}] not found")
    return start, len(lines)


@dataclass
class FieldLocation:
    index: int
    match: "re.Match[str]"

    @property
    def value(self) -> str:
        return self.match.group("value")


class ManifestPatcher:
    def __init__(self, backend: TextBackend, section: str, field: str = "version") -> None:
        self.backend = backend
        self.section = section
        self.field = field
        self._field_re = _field_re(field)

    @classmethod
    def at(cls, path: Path, section: str, field: str = "version") -> "ManifestPatcher":
        return cls(FileBackend(path), section, field)

    @property
    def name(self) -> str:
        return self.backend.name

    def locate(self, lines: List[str]) -> FieldLocation:
        try:
            start, end = section_span(lines, self.section)
        except SectionNotFound as e:
            raise SectionNotFound(f"{self.name}: {e.message}") from None
        for i in range(start, end):
            m = self._field_re.match(lines[i])
            if m:
                return FieldLocation(i, m)
        raise VersionLineNotFound(
            f"{self.name}: no quoted `{self.field} = ...` inside [{self.section}]"
        )

    def get(self) -> Version:
        loc = self.locate(self.backend.read().splitlines(keepends=True))
        try:
            return parse(loc.value)
        except InvalidFormat as e:
            raise InvalidFormat(f"{self.name} [{self.section}] {self.field}: {e.message}") from None

    def render(self, version: Version) -> Tuple[str, str]:
        """Return (old_text, new_text) with only the located value replaced."""
        old_text = self.backend.read()
        lines = old_text.splitlines(keepends=True)
        loc = self.locate(lines)
        line = lines[loc.index]
        lines[loc.index] = line[: loc.match.start("value")] + str(version) + line[loc.match.end("value"):]
        return old_text, "".join(lines)

    def _holds(self, text: str, version: Version) -> bool:
        try:
            return self.locate(text.splitlines(keepends=True)).value == str(version)
        except (SectionNotFound, VersionLineNotFound):
            return False

    def set(self, version: Version) -> None:
        _, new_text = self.render(version)
        self.backend.write(new_text, check=lambda written: self._holds(written, version))
        log.debug("%s [%s] %s -> %s", self.name, self.section, self.field, version)


# -----------------------------------------------------------------------------
# Delegating manifest (read-only)
# -----------------------------------------------------------------------------
class Delegation(str, enum.Enum):
    INHERITS = "inherits"
    DUPLICATES = "duplicates"
    NO_VERSION = "no-version"
    SECTION_MISSING = "section-missing"
    FILE_MISSING = "file-missing"


_INHERIT_RES = (
    re.compile(r"^\s*version\.workspace\s*=\s*true\b"),
    re.compile(r"^\s*version\s*=\s*\{[^}]*\bworkspace\s*=\s*true\b[^}]*\}"),
)
_PINNED_RE = re.compile(r"""^\s*version\s*=\s*["']""")


class DelegatingManifest:
    """A manifest expected to inherit the shared version through a workspace flag."""

    def __init__(self, backend: TextBackend, section: str = "package") -> None:
        self.backend = backend
        self.section = section

    @classmethod
    def at(cls, path: Path, section: str = "package") -> "DelegatingManifest":
        return cls(FileBackend(path), section)

    @property
    def name(self) -> str:
        return self.backend.name

    def state(self) -> Delegation:
        try:
            lines = self.backend.read().splitlines(keepends=True)
        except NotFound:
            return Delegation.FILE_MISSING
        try:
            start, end = section_span(lines, self.section)
        except SectionNotFound:
            return Delegation.SECTION_MISSING
        for line in lines[start:end]:
            if any(r.match(line) for r in _INHERIT_RES):
                return Delegation.INHERITS
            if _PINNED_RE.match(line):
                return Delegation.DUPLICATES
        return Delegation.NO_VERSION

    def advisory(self) -> Optional[str]:
        """Human-readable warning, or None when the manifest inherits the shared version."""
        state = self.state()
        if state is Delegation.INHERITS:
            return None
        messages = {
            Delegation.DUPLICATES: "pins its own version instead of `version.workspace = true`",
            Delegation.NO_VERSION: f"has no version entry in [{self.section}]",
            Delegation.SECTION_MISSING: f"has no [{self.section}] section",
            Delegation.FILE_MISSING: "does not exist",
        }
        return f"{self.name} {messages[state]}"
