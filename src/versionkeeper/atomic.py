#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.atomic — write-to-temp, verify, rename-over-target

    with AtomicFile(path) as af:
        af.write(data)
        af.verify(check=lambda text: ...)   # exact bytes + optional content check
        af.commit()                          # os.replace(temp, path)

The rename in commit() is the only visible mutation of the target. If the block exits any
other way (exception, early return, KeyboardInterrupt) the temporary file is removed and
the target keeps its previous content.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Callable, Optional

from .errors import WriteVerificationFailed

log = logging.getLogger(__name__)


class AtomicFile:
    """Scoped temporary file that is promoted over `target` only by commit()."""

    def __init__(self, target: Path) -> None:
        self.target = Path(target)
        self.temp_path: Optional[Path] = None
        self.committed = False
        self._expected: Optional[bytes] = None

    def __enter__(self) -> "AtomicFile":
        self.target.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            dir=str(self.target.parent),
            prefix=f".{self.target.name}.",
            suffix=".tmp",
        )
        os.close(fd)
        self.temp_path = Path(name)
        log.debug("temp file %s for %s", self.temp_path, self.target)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.committed and self.temp_path is not None:
            try:
                self.temp_path.unlink()
            except FileNotFoundError:
                pass
            log.debug("discarded temp file %s", self.temp_path)

    def write(self, data: bytes) -> None:
        assert self.temp_path is not None, "AtomicFile used outside a with-block"
        with open(self.temp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        self._expected = data

    def verify(self, check: Optional[Callable[[str], bool]] = None) -> None:
        """Read the temp file back; require the exact bytes written, then run `check`."""
        assert self.temp_path is not None, "AtomicFile used outside a with-block"
        actual = self.temp_path.read_bytes()
        if actual != self._expected:
            raise WriteVerificationFailed(
                f"read-back of {self.temp_path.name} differs from intended content for {self.target}"
            )
        if check is not None and not check(actual.decode("utf-8")):
            raise WriteVerificationFailed(f"written content for {self.target} failed verification")

    def commit(self) -> None:
        assert self.temp_path is not None, "AtomicFile used outside a with-block"
        if self.target.exists():
            mode = stat.S_IMODE(self.target.stat().st_mode)
        else:
            # mkstemp creates 0600; new files get the usual umask-derived mode
            umask = os.umask(0)
            os.umask(umask)
            mode = 0o666 & ~umask
        os.chmod(self.temp_path, mode)
        os.replace(self.temp_path, self.target)
        self.committed = True
        log.debug("replaced %s", self.target)


def atomic_write_text(target: Path, text: str, check: Optional[Callable[[str], bool]] = None) -> None:
    """Atomically replace `target` with UTF-8 `text`, verifying before the rename."""
    with AtomicFile(target) as af:
        af.write(text.encode("utf-8"))
        af.verify(check)
        af.commit()
