#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.consistency — cross-file version agreement

  report = ConsistencyChecker(delegating).check(canonical, manifest, expected_release)
  report.passed        # False iff a non-advisory comparison failed
  report.comparisons   # [Comparison("canonical == manifest", "0.0.6", "0.0.6", True), ...]
  report.advisories    # delegating-manifest notes; never affect `passed`

Values compare by their canonical text, so a prerelease difference is a mismatch here even
though semver.compare() treats it as EQUAL.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import Mismatch
from .manifest import DelegatingManifest, ManifestPatcher
from .semver import Version, parse_release_ref
from .stores import VersionStore

log = logging.getLogger(__name__)

CANONICAL_VS_MANIFEST = "canonical == manifest"
CANONICAL_VS_RELEASE = "canonical == expected release"


@dataclass(frozen=True)
class Comparison:
    pair: str
    left: str
    right: str
    passed: bool


@dataclass
class Report:
    comparisons: List[Comparison] = field(default_factory=list)
    advisories: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.comparisons)

    @property
    def failures(self) -> List[Comparison]:
        return [c for c in self.comparisons if not c.passed]

    def raise_for_mismatch(self) -> None:
        if self.failures:
            detail = "; ".join(f"{c.pair}: {c.left} != {c.right}" for c in self.failures)
            raise Mismatch(detail)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.passed,
            "comparisons": [
                {"pair": c.pair, "left": c.left, "right": c.right, "result": "pass" if c.passed else "fail"}
                for c in self.comparisons
            ],
            "advisories": list(self.advisories),
        }


class ConsistencyChecker:
    def __init__(self, delegating: Optional[DelegatingManifest] = None, tag_prefix: str = "v") -> None:
        self.delegating = delegating
        self.tag_prefix = tag_prefix

    def check(
        self,
        canonical: Version,
        manifest: Version,
        expected_release: Optional[Union[str, Version]] = None,
    ) -> Report:
        report = Report()
        report.comparisons.append(
            Comparison(CANONICAL_VS_MANIFEST, str(canonical), str(manifest), str(canonical) == str(manifest))
        )
        if expected_release is not None:
            expected = (
                expected_release
                if isinstance(expected_release, Version)
                else parse_release_ref(expected_release, self.tag_prefix)
            )
            report.comparisons.append(
                Comparison(CANONICAL_VS_RELEASE, str(canonical), str(expected), str(canonical) == str(expected))
            )
        if self.delegating is not None:
            note = self.delegating.advisory()
            if note:
                log.warning("advisory: %s", note)
                report.advisories.append(note)
        for c in report.failures:
            log.error("mismatch: %s (%s vs %s)", c.pair, c.left, c.right)
        return report

    def run(
        self,
        store: VersionStore,
        patcher: ManifestPatcher,
        expected_release: Optional[Union[str, Version]] = None,
    ) -> Report:
        return self.check(store.get(), patcher.get(), expected_release)
