# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by the build and runtime phases."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class HtmlSnapError(RuntimeError):
    """Base class for every error raised by htmlsnap."""


class ConfigError(HtmlSnapError):
    """Raised when configuration input is invalid."""


class AuthoringError(HtmlSnapError):
    """Raised for mistakes made while declaring snapshot patterns."""


class InvalidPatternError(AuthoringError):
    """Raised when a raw path pattern cannot be compiled into a matcher."""

    def __init__(self, raw: str, reason: str) -> None:
        """Initialise the error with the offending pattern.

        Args:
            raw: Pattern text as authored.
            reason: Human-readable description of the syntax problem.
        """

        super().__init__(f"invalid path pattern {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class DuplicatePatternError(AuthoringError):
    """Raised when the same pattern and response kind are declared twice."""

    def __init__(self, pattern: str, kind: str) -> None:
        """Initialise the error for a repeated ``(pattern, kind)`` pair.

        Args:
            pattern: Fully-qualified pattern text including scope prefixes.
            kind: Response kind value of the duplicate declaration.
        """

        super().__init__(f"pattern {pattern!r} ({kind}) is already defined")
        self.pattern = pattern
        self.kind = kind


class RenderFailure(HtmlSnapError):
    """Raised when the render collaborator fails for a single entry."""

    def __init__(self, pattern: str, kind: str, cause: BaseException | str) -> None:
        """Initialise the failure with the entry it belongs to.

        Args:
            pattern: Fully-qualified pattern of the entry being rendered.
            kind: Response kind value of the entry.
            cause: Underlying exception or description of the bad result.
        """

        detail = cause if isinstance(cause, str) else f"{type(cause).__name__}: {cause}"
        super().__init__(f"render failed for {pattern!r} ({kind}): {detail}")
        self.pattern = pattern
        self.kind = kind
        self.detail = detail


class GeneratorLoadError(HtmlSnapError):
    """Raised when a generator source file cannot be evaluated."""

    def __init__(self, source: Path, detail: str) -> None:
        """Initialise the error for the generator file ``source``.

        Args:
            source: Generator file that failed to load.
            detail: Human-readable description of the failure.
        """

        super().__init__(f"generator {source} failed to load: {detail}")
        self.source = source
        self.detail = detail


class BuildFailedError(HtmlSnapError):
    """Aggregate error raised when any entry of a build failed."""

    def __init__(self, failures: Sequence[HtmlSnapError]) -> None:
        """Initialise the aggregate from individual failures.

        Args:
            failures: Per-entry or per-file errors collected during the build.
        """

        lines = [f"{len(failures)} snapshot build failure(s):"]
        lines.extend(f"  - {failure}" for failure in failures)
        super().__init__("\n".join(lines))
        self.failures = tuple(failures)


class ArtifactNotFoundError(HtmlSnapError):
    """Raised when no bytes are stored for an artifact key."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"no snapshot stored for {key!r}; was the path registered and the build run?",
        )
        self.key = key


class NoMatchError(HtmlSnapError):
    """Raised when no registered pattern matches a concrete request path."""

    def __init__(self, path: str, kind: str) -> None:
        super().__init__(f"no snapshot pattern matches {path!r} ({kind})")
        self.path = path
        self.kind = kind


__all__ = [
    "ArtifactNotFoundError",
    "AuthoringError",
    "BuildFailedError",
    "ConfigError",
    "DuplicatePatternError",
    "GeneratorLoadError",
    "HtmlSnapError",
    "InvalidPatternError",
    "NoMatchError",
    "RenderFailure",
]
