# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Content-hash fingerprints of the sources that produced an artifact."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Final

from .registry import RegistryEntry

FIELD_DELIMITER: Final[bytes] = b"\0"
MISSING_MARKER: Final[str] = "<missing>"


def file_digest(path: Path) -> str:
    """Return the SHA-256 hex digest of ``path`` or a missing marker.

    Args:
        path: File to hash.

    Returns:
        str: Hex digest of the file content, or :data:`MISSING_MARKER` when the
        file cannot be found.
    """

    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except (FileNotFoundError, IsADirectoryError):
        return MISSING_MARKER


def expand_globs(root: Path, patterns: Sequence[str]) -> tuple[Path, ...]:
    """Return the files under ``root`` matching any of ``patterns``.

    Args:
        root: Directory the globs are relative to.
        patterns: Glob expressions such as ``"app/views/**/*.erb"``.

    Returns:
        tuple[Path, ...]: Matching files, sorted and de-duplicated.
    """

    found: set[Path] = set()
    for pattern in patterns:
        found.update(path for path in root.glob(pattern) if path.is_file())
    return tuple(sorted(found))


class Fingerprinter:
    """Compute entry fingerprints, hashing each source file only once.

    Content hashes are used instead of modification times so touching a file
    without changing it does not mark its artifacts stale.
    """

    def __init__(self, root: Path, *, shared: Iterable[Path] = ()) -> None:
        """Initialise the fingerprinter.

        Args:
            root: Project root used to express dependency paths relatively so
                fingerprints survive moving the checkout.
            shared: Files that influence every entry, such as layouts.
        """

        self._root = root
        self._shared = tuple(shared)
        self._digests: dict[Path, str] = {}

    def digest(self, path: Path) -> str:
        """Return the cached content digest of ``path``."""

        resolved = self._resolve(path)
        cached = self._digests.get(resolved)
        if cached is None:
            cached = file_digest(resolved)
            self._digests[resolved] = cached
        return cached

    def fingerprint(self, entry: RegistryEntry) -> str:
        """Return the fingerprint of ``entry``.

        Args:
            entry: Registry entry whose inputs should be summarised.

        Returns:
            str: Hex digest over the pattern identity and every dependency's
            relative path and content digest.
        """

        hasher = hashlib.sha256()
        hasher.update(entry.pattern.full.encode("utf-8"))
        hasher.update(FIELD_DELIMITER)
        hasher.update(entry.kind.value.encode("utf-8"))
        labelled = {self._label(path): path for path in (*entry.dependencies, *self._shared)}
        for label in sorted(labelled):
            hasher.update(FIELD_DELIMITER)
            hasher.update(label.encode("utf-8"))
            hasher.update(FIELD_DELIMITER)
            hasher.update(self.digest(labelled[label]).encode("ascii"))
        return hasher.hexdigest()

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self._root / path

    def _label(self, path: Path) -> str:
        resolved = self._resolve(path)
        try:
            return resolved.relative_to(self._root).as_posix()
        except ValueError:
            return resolved.as_posix()


__all__ = ["MISSING_MARKER", "Fingerprinter", "expand_globs", "file_digest"]
