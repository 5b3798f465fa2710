#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.semver — version model, ordering and bump rules

Pure functions only (no I/O):

  parse("1.2.3-beta.1")             -> Version(1, 2, 3, "beta.1")
  format(Version(1, 2, 3))          -> "1.2.3"
  compare(a, b)                     -> Ordering.LESS | EQUAL | GREATER
  bump(current, BumpKind.MINOR)     -> next version
  bump(current, Explicit("0.9.0"))  -> explicit version (DowngradeWarning if lower)

Ordering looks at major/minor/patch only. Prerelease tokens are carried and printed but do
not take part in comparison, so "1.2.3-rc.1" and "1.2.3" compare EQUAL.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import dataclasses
import enum
import re
import warnings
from typing import Optional, Union

from .errors import DowngradeWarning, InvalidFormat

# -----------------------------------------------------------------------------
# Grammar
# -----------------------------------------------------------------------------
# No leading zeros on numeric components, so text always round-trips.
VERSION_RE = re.compile(
    r"""
    ^
    (?P<major>0|[1-9]\d*)
    \.
    (?P<minor>0|[1-9]\d*)
    \.
    (?P<patch>0|[1-9]\d*)
    (?:-(?P<prerelease>[A-Za-z0-9.-]+))?
    $
    """,
    re.VERBOSE,
)

PRERELEASE_RE = re.compile(r"^[A-Za-z0-9.-]+$")


@dataclasses.dataclass(frozen=True)
class Version:
    """Semantic version with an optional, loosely validated prerelease token."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise InvalidFormat(f"{name} must be a non-negative integer, got {value!r}")
        if self.prerelease is not None and not PRERELEASE_RE.match(self.prerelease):
            raise InvalidFormat(f"invalid prerelease token {self.prerelease!r}")

    @classmethod
    def parse(cls, text: str) -> "Version":
        return parse(text)

    @property
    def core(self) -> tuple:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return format(self)


class Ordering(enum.IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


class BumpKind(str, enum.Enum):
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"


@dataclasses.dataclass(frozen=True)
class Explicit:
    """Bump to an operator-supplied version string (parsed at bump time)."""

    text: str


BumpSpec = Union[BumpKind, Explicit]


# -----------------------------------------------------------------------------
# Parse / format / compare
# -----------------------------------------------------------------------------
def parse(text: str) -> Version:
    """Parse canonical version text; raise InvalidFormat on anything else."""
    if not isinstance(text, str):
        raise InvalidFormat(f"expected version text, got {type(text).__name__}")
    m = VERSION_RE.match(text)
    if not m:
        raise InvalidFormat(
            f"invalid version {text!r}; expected MAJOR.MINOR.PATCH[-PRERELEASE]"
        )
    return Version(
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=int(m.group("patch")),
        prerelease=m.group("prerelease"),
    )


def format(version: Version) -> str:  # noqa: A001 - mirrors parse()
    base = f"{version.major}.{version.minor}.{version.patch}"
    return f"{base}-{version.prerelease}" if version.prerelease else base


def compare(a: Version, b: Version) -> Ordering:
    if a.core < b.core:
        return Ordering.LESS
    if a.core > b.core:
        return Ordering.GREATER
    return Ordering.EQUAL


def parse_release_ref(text: str, prefix: str = "v") -> Version:
    """
    Parse an externally supplied release identifier such as a CI tag.

    Accepts "0.0.6", "v0.0.6" and "refs/tags/v0.0.6" (with `prefix` as the tag prefix).
    """
    ref = text.strip()
    if ref.startswith("refs/tags/"):
        ref = ref[len("refs/tags/"):]
    if prefix and ref.startswith(prefix) and not VERSION_RE.match(ref):
        ref = ref[len(prefix):]
    return parse(ref)


# -----------------------------------------------------------------------------
# Bump
# -----------------------------------------------------------------------------
def parse_bump(text: str) -> BumpSpec:
    """Map 'patch' / 'minor' / 'major' to BumpKind; anything else is an explicit version."""
    try:
        return BumpKind(text.strip().lower())
    except ValueError:
        return Explicit(text.strip())


def bump(current: Version, kind: BumpSpec) -> Version:
    if isinstance(kind, Explicit):
        target = parse(kind.text)
        if compare(target, current) is Ordering.LESS:
            warnings.warn(
                DowngradeWarning(f"explicit version {target} is lower than current {current}"),
                stacklevel=2,
            )
        return target

    kind = BumpKind(kind)
    if kind is BumpKind.MAJOR:
        return Version(current.major + 1, 0, 0)
    if kind is BumpKind.MINOR:
        return Version(current.major, current.minor + 1, 0)
    return Version(current.major, current.minor, current.patch + 1)
