#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper — single-source version management and release pipeline

Keeps one semantic version in agreement across a canonical VERSION file and a structured
manifest (e.g. a Cargo workspace), and drives bump → commit → tag → push releases.

Exposes:
    __version__ : str
        Package version identifier.
    __all__ : list[str]
        Public submodules.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "semver",
    "stores",
    "manifest",
    "consistency",
    "release",
    "config",
]
