# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve concrete request paths to artifact keys.

Resolution is first-match-wins in declaration order. The matcher does not
compute specificity: when two patterns overlap, e.g. ``/posts/[id]`` declared
before ``/posts/new``, the earlier one wins for ``/posts/new`` as well. Authors
who need the literal route must declare it first.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .errors import NoMatchError
from .keys import ArtifactKey
from .manifest import BuildManifest
from .patterns import PathPattern, ResponseKind, compile_pattern
from .registry import Registry


@dataclass(frozen=True, slots=True)
class Resolution:
    """Pattern selected for a request path, with its captured parameters."""

    pattern: PathPattern
    key: ArtifactKey
    params: dict[str, str] = field(default_factory=dict)


class Matcher:
    """Ordered list of ``(pattern, key)`` candidates."""

    def __init__(self, candidates: Iterable[tuple[PathPattern, ArtifactKey]]) -> None:
        """Initialise the matcher.

        Args:
            candidates: Patterns with their artifact keys, in declaration
                order. The order is preserved as given.
        """

        self._candidates = tuple(candidates)

    @classmethod
    def from_registry(cls, registry: Registry) -> Matcher:
        """Build a matcher over the entries of a live registry."""

        return cls((entry.pattern, entry.key) for entry in registry.entries())

    @classmethod
    def from_manifest(cls, manifest: BuildManifest) -> Matcher:
        """Build a matcher from the records of a build manifest.

        This is what test processes use: they never evaluate generator files,
        they only read what the last build recorded.
        """

        candidates: list[tuple[PathPattern, ArtifactKey]] = []
        for record in manifest.records():
            pattern = compile_pattern(record.pattern, kind=record.kind)
            candidates.append((pattern, record.artifact_key))
        return cls(candidates)

    @property
    def patterns(self) -> tuple[PathPattern, ...]:
        """Return the candidate patterns in match order."""

        return tuple(pattern for pattern, _ in self._candidates)

    def resolve_match(self, path: str, kind: ResponseKind | str = ResponseKind.DOCUMENT) -> Resolution:
        """Return the first candidate of ``kind`` matching ``path``.

        Args:
            path: Concrete request path.
            kind: Requested response kind.

        Returns:
            Resolution: Selected pattern, key and captured parameters.

        Raises:
            NoMatchError: If no candidate of the requested kind matches.
        """

        requested = ResponseKind.coerce(kind)
        for pattern, key in self._candidates:
            if pattern.kind is not requested:
                continue
            params = pattern.match(path)
            if params is not None:
                return Resolution(pattern=pattern, key=key, params=params)
        raise NoMatchError(path, requested.value)

    def resolve(self, path: str, kind: ResponseKind | str = ResponseKind.DOCUMENT) -> ArtifactKey:
        """Return the artifact key for ``path``; see :meth:`resolve_match`."""

        return self.resolve_match(path, kind).key

    def __len__(self) -> int:
        return len(self._candidates)


__all__ = ["Matcher", "Resolution"]
