#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.errors — error taxonomy

Every fatal failure raised by the package derives from VersionKeeperError and carries:
  • kind  : short, stable name printed by the CLI (class name by default)
  • stage : the release stage that raised it, filled in by the orchestrator

Advisory conditions are Warning subclasses so they can travel through the standard
`warnings` machinery (and still be raised/caught where a collaborator reports them).

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

from typing import Optional


class VersionKeeperError(Exception):
    """Base error for all fatal versionkeeper failures."""

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    @property
    def kind(self) -> str:
        return type(self).__name__

    def describe(self) -> str:
        prefix = f"[{self.stage}] " if self.stage else ""
        return f"{prefix}{self.kind}: {self.message}"


class InvalidFormat(VersionKeeperError):
    """Text does not parse as MAJOR.MINOR.PATCH[-PRERELEASE]."""


class NotFound(VersionKeeperError):
    """A version-bearing file is missing."""


class SectionNotFound(VersionKeeperError):
    """The target [section] header is absent from the manifest."""


class VersionLineNotFound(VersionKeeperError):
    """The section exists but holds no quoted assignment for the field."""


class WriteVerificationFailed(VersionKeeperError):
    """Read-back of a temporary file did not match the intended content."""


class FileAccessFailed(VersionKeeperError):
    """The operating system refused a read or write (permissions, disk full, ...)."""


class DirtyWorkingTree(VersionKeeperError):
    """The working tree has staged or unstaged changes."""


class Mismatch(VersionKeeperError):
    """Two version values that must agree do not."""


class TagExists(VersionKeeperError):
    """The release tag is already present in the repository."""


class VcsCommandFailed(VersionKeeperError):
    """A version-control command exited non-zero or could not be started."""


class ConfigError(VersionKeeperError):
    """The configuration file or environment overrides are invalid."""


# -----------------------------------------------------------------------------
# Advisory (non-fatal)
# -----------------------------------------------------------------------------
class AdvisoryWarning(UserWarning):
    """Reported to the operator, never changes the exit code."""


class DowngradeWarning(AdvisoryWarning):
    """An explicit version is lower than the current one."""


class DependencySyncFailed(AdvisoryWarning):
    """The dependency lock file could not be regenerated."""
