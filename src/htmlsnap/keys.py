# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Canonical, filesystem-safe artifact keys.

Every character of the pattern outside ``[a-z0-9_-]`` is percent-escaped per
UTF-8 byte using lower-case hex, so keys contain no path separators, never
start with ``.``, and stay distinct on case-insensitive filesystems. The
response kind contributes a suffix that cannot occur inside an escaped stem.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Final

from .patterns import PathPattern, ResponseKind

SAFE_CHARACTERS: Final[frozenset[str]] = frozenset("abcdefghijklmnopqrstuvwxyz0123456789_-")
MAX_STEM_LENGTH: Final[int] = 180
SHORTENED_PREFIX_LENGTH: Final[int] = 120
SHORTENED_MARKER: Final[str] = "~"


@dataclass(frozen=True, slots=True, order=True)
class ArtifactKey:
    """Opaque identifier of one stored artifact.

    Attributes:
        value: Relative filename of the artifact beneath the store root.
    """

    value: str

    def __str__(self) -> str:
        return self.value


def escape_path(text: str) -> str:
    """Return ``text`` with every unsafe character percent-escaped.

    Args:
        text: Fully-qualified pattern text.

    Returns:
        str: Escaped stem made only of ``[a-z0-9_%-]`` characters.
    """

    escaped: list[str] = []
    for char in text:
        if char in SAFE_CHARACTERS:
            escaped.append(char)
            continue
        escaped.extend(f"%{byte:02x}" for byte in char.encode("utf-8"))
    return "".join(escaped)


def to_artifact_key(
    scope_prefix: str,
    raw: str,
    kind: ResponseKind | str = ResponseKind.DOCUMENT,
) -> ArtifactKey:
    """Derive the artifact key for ``scope_prefix + raw`` and ``kind``.

    Args:
        scope_prefix: Prefix inherited from enclosing scopes.
        raw: Pattern text as authored.
        kind: Response kind of the artifact.

    Returns:
        ArtifactKey: Deterministic key distinct for every ``(path, kind)``.
    """

    stem = escape_path(f"{scope_prefix}{raw}")
    if len(stem) > MAX_STEM_LENGTH:
        digest = hashlib.sha256(stem.encode("ascii")).hexdigest()
        stem = f"{stem[:SHORTENED_PREFIX_LENGTH]}{SHORTENED_MARKER}{digest}"
    return ArtifactKey(f"{stem}{ResponseKind.coerce(kind).suffix}")


def key_for_pattern(pattern: PathPattern) -> ArtifactKey:
    """Return the artifact key of a compiled pattern."""

    return to_artifact_key(pattern.scope_prefix, pattern.raw, pattern.kind)


__all__ = ["ArtifactKey", "escape_path", "key_for_pattern", "to_artifact_key"]
