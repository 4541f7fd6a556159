# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Persisted build manifest recording the fingerprint of every artifact."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, ValidationError

from .keys import ArtifactKey
from .patterns import ResponseKind
from .store import atomic_write_bytes

LOGGER = logging.getLogger(__name__)

MANIFEST_NAME: Final[str] = ".manifest"
MANIFEST_VERSION: Final[int] = 1


class ManifestRecord(BaseModel):
    """Describe one built artifact as recorded by the last successful build."""

    model_config = ConfigDict(frozen=True)

    key: str
    pattern: str
    kind: ResponseKind
    fingerprint: str
    source: str | None = None

    @property
    def artifact_key(self) -> ArtifactKey:
        """Return the record key as an :class:`ArtifactKey`."""

        return ArtifactKey(self.key)


class ManifestDocument(BaseModel):
    """Serialised form of the manifest file."""

    model_config = ConfigDict(frozen=True)

    version: int = MANIFEST_VERSION
    records: tuple[ManifestRecord, ...] = ()


class BuildManifest:
    """Ordered mapping from artifact key to :class:`ManifestRecord`.

    Records keep declaration order, which is the order the matcher consults
    when it is built from a manifest instead of a live registry.
    """

    def __init__(self, records: Iterable[ManifestRecord] = ()) -> None:
        """Initialise the manifest from ``records`` in order."""

        self._records: dict[str, ManifestRecord] = {}
        for record in records:
            self._records[record.key] = record

    @classmethod
    def path_in(cls, root: Path) -> Path:
        """Return the manifest location inside the snapshot root ``root``."""

        return root / MANIFEST_NAME

    @classmethod
    def load(cls, path: Path) -> BuildManifest:
        """Read the manifest stored at ``path``.

        A missing file yields an empty manifest. An unreadable or invalid file
        is logged and also yields an empty manifest, which marks every entry
        stale and every stored artifact an orphan.

        Args:
            path: Manifest file location.

        Returns:
            BuildManifest: Parsed manifest.
        """

        try:
            payload = path.read_bytes()
        except FileNotFoundError:
            return cls()
        try:
            document = ManifestDocument.model_validate_json(payload)
        except ValidationError as exc:
            LOGGER.warning("ignoring unreadable manifest %s: %s", path, exc)
            return cls()
        if document.version != MANIFEST_VERSION:
            LOGGER.warning(
                "ignoring manifest %s with unsupported version %s",
                path,
                document.version,
            )
            return cls()
        return cls(document.records)

    def save(self, path: Path) -> None:
        """Atomically write the manifest to ``path``."""

        document = ManifestDocument(records=tuple(self._records.values()))
        atomic_write_bytes(path, document.model_dump_json(indent=2).encode("utf-8"))

    def get(self, key: ArtifactKey) -> ManifestRecord | None:
        """Return the record for ``key`` when present."""

        return self._records.get(key.value)

    def keys(self) -> tuple[ArtifactKey, ...]:
        """Return every recorded key in order."""

        return tuple(ArtifactKey(key) for key in self._records)

    def records(self) -> tuple[ManifestRecord, ...]:
        """Return every record in order."""

        return tuple(self._records.values())

    def __contains__(self, key: object) -> bool:
        if isinstance(key, ArtifactKey):
            return key.value in self._records
        return key in self._records

    def __iter__(self) -> Iterator[ManifestRecord]:
        return iter(tuple(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BuildManifest):
            return NotImplemented
        return list(self._records.values()) == list(other._records.values())


__all__ = ["MANIFEST_NAME", "MANIFEST_VERSION", "BuildManifest", "ManifestDocument", "ManifestRecord"]
