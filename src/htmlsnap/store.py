# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Byte store for rendered artifacts keyed by :class:`ArtifactKey`."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Final

from .errors import ArtifactNotFoundError
from .keys import ArtifactKey

LOGGER = logging.getLogger(__name__)

HIDDEN_PREFIX: Final[str] = "."
TEMP_PREFIX: Final[str] = ".tmp-"


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so readers never observe partial content.

    The payload lands in a uniquely named sibling file first and is then
    renamed over ``path``.

    Args:
        path: Destination file.
        data: Bytes to persist.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    descriptor, temp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=path.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


class SnapshotStore:
    """Persist and retrieve artifact bytes beneath a root directory."""

    def __init__(self, root: Path) -> None:
        """Initialise the store rooted at ``root``.

        Args:
            root: Directory holding one file per artifact key. It is created
                lazily on the first write.
        """

        self._root = root

    @property
    def root(self) -> Path:
        """Return the directory backing the store."""

        return self._root

    def path_for(self, key: ArtifactKey) -> Path:
        """Return the filesystem location of ``key``.

        Args:
            key: Artifact key to locate.

        Returns:
            Path: File path beneath the store root.
        """

        return self._root / key.value

    def write(self, key: ArtifactKey, data: bytes) -> None:
        """Store ``data`` under ``key``, replacing any existing bytes.

        Args:
            key: Artifact key to write.
            data: Rendered artifact bytes.
        """

        atomic_write_bytes(self.path_for(key), data)
        LOGGER.debug("stored %s (%d bytes)", key, len(data))

    def read(self, key: ArtifactKey) -> bytes:
        """Return the bytes stored under ``key``.

        Args:
            key: Artifact key to read.

        Returns:
            bytes: Stored artifact bytes.

        Raises:
            ArtifactNotFoundError: If nothing is stored for ``key``.
        """

        try:
            return self.path_for(key).read_bytes()
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise ArtifactNotFoundError(key.value) from exc

    def exists(self, key: ArtifactKey) -> bool:
        """Return whether bytes are stored for ``key``."""

        return self.path_for(key).is_file()

    def delete(self, key: ArtifactKey) -> None:
        """Remove the bytes stored for ``key`` when present."""

        self.path_for(key).unlink(missing_ok=True)
        LOGGER.debug("deleted %s", key)

    def keys(self) -> Iterator[ArtifactKey]:
        """Yield the keys of every stored artifact in sorted order.

        Hidden files such as the build manifest and in-flight temporary files
        are not artifacts and are skipped.
        """

        if not self._root.is_dir():
            return
        for child in sorted(self._root.iterdir()):
            if child.name.startswith(HIDDEN_PREFIX) or not child.is_file():
                continue
            yield ArtifactKey(child.name)


__all__ = ["SnapshotStore", "atomic_write_bytes"]
