# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Path pattern compilation and matching.

Patterns are written as URL paths whose segments may embed wildcard groups::

    /admin/staffs/table
    /admin/staffs/[id:[0-9]+]/toggle
    /posts/[slug]
    /exports/report-[year:\\d{4}].csv

``[name]`` matches one or more characters other than ``/``. ``[name:REGEX]``
additionally requires the captured text to fully match ``REGEX``. Everything
outside a bracket group is literal and compared case-sensitively. A pattern is
compiled once into per-segment matchers; lookups never re-parse the raw text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final

from .errors import InvalidPatternError

PATH_DELIMITER: Final[str] = "/"
DEFAULT_WILDCARD: Final[str] = r"[^/]+"


class ResponseKind(str, Enum):
    """Enumerate the categories of rendered output a snapshot can hold."""

    DOCUMENT = "document"
    STREAM_UPDATE = "stream_update"

    @property
    def suffix(self) -> str:
        """Return the artifact filename suffix for this kind.

        Returns:
            str: Suffix appended to escaped artifact keys.
        """

        return _KIND_SUFFIXES[self]

    @property
    def content_type(self) -> str:
        """Return the MIME type served for artifacts of this kind.

        Returns:
            str: Content type reported to intercepted network calls.
        """

        return _KIND_CONTENT_TYPES[self]

    @classmethod
    def coerce(cls, value: ResponseKind | str) -> ResponseKind:
        """Return ``value`` as a :class:`ResponseKind`.

        Args:
            value: Enum member or its string value (``"streamUpdate"`` is
                accepted as an alias of ``"stream_update"``).

        Returns:
            ResponseKind: Matching enum member.

        Raises:
            ValueError: If ``value`` names no known kind.
        """

        if isinstance(value, ResponseKind):
            return value
        normalised = value.strip()
        if normalised == "streamUpdate":
            normalised = cls.STREAM_UPDATE.value
        return cls(normalised.replace("-", "_").lower())


_KIND_SUFFIXES: Final[dict[ResponseKind, str]] = {
    ResponseKind.DOCUMENT: ".html",
    ResponseKind.STREAM_UPDATE: ".turbo_stream.html",
}
_KIND_CONTENT_TYPES: Final[dict[ResponseKind, str]] = {
    ResponseKind.DOCUMENT: "text/html",
    ResponseKind.STREAM_UPDATE: "text/vnd.turbo-stream.html",
}


@dataclass(frozen=True, slots=True)
class SegmentMatcher:
    """Match a single path segment, either literally or through a regex."""

    literal: str | None
    regex: re.Pattern[str] | None = None

    def match(self, text: str) -> dict[str, str] | None:
        """Return captured parameters when ``text`` satisfies the segment.

        Args:
            text: Concrete path segment.

        Returns:
            dict[str, str] | None: Captured wildcard values, or ``None`` when
            the segment does not match.
        """

        if self.regex is None:
            return {} if text == self.literal else None
        found = self.regex.fullmatch(text)
        if found is None:
            return None
        params = found.groupdict()
        if any(not value for value in params.values()):
            return None
        return params


@dataclass(frozen=True, slots=True, eq=False)
class PathPattern:
    """Compiled path pattern bound to a response kind.

    Equality and hashing consider only the fully-qualified text and the
    response kind, which is also the identity used for duplicate detection.
    """

    raw: str
    kind: ResponseKind
    scope_prefix: str
    segments: tuple[SegmentMatcher, ...]
    params: tuple[str, ...]

    @property
    def full(self) -> str:
        """Return the pattern text including the enclosing scope prefix."""

        return f"{self.scope_prefix}{self.raw}"

    @property
    def identity(self) -> tuple[str, ResponseKind]:
        """Return the ``(full, kind)`` pair identifying this pattern."""

        return (self.full, self.kind)

    @property
    def has_wildcards(self) -> bool:
        """Return whether any segment contains a wildcard group."""

        return bool(self.params)

    def match(self, path: str) -> dict[str, str] | None:
        """Return captured parameters when ``path`` matches the pattern.

        Args:
            path: Concrete request path such as ``/admin/staffs/7/toggle``.

        Returns:
            dict[str, str] | None: Wildcard captures keyed by name, or
            ``None`` when ``path`` does not match.
        """

        parts = path.split(PATH_DELIMITER)
        if len(parts) != len(self.segments):
            return None
        captured: dict[str, str] = {}
        for segment, text in zip(self.segments, parts, strict=True):
            params = segment.match(text)
            if params is None:
                return None
            captured.update(params)
        return captured

    def matches(self, path: str) -> bool:
        """Return whether ``path`` matches the pattern."""

        return self.match(path) is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathPattern):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __str__(self) -> str:
        return self.full


def compile_pattern(
    raw: str,
    *,
    kind: ResponseKind | str = ResponseKind.DOCUMENT,
    scope_prefix: str = "",
) -> PathPattern:
    """Compile ``scope_prefix + raw`` into a :class:`PathPattern`.

    Args:
        raw: Pattern text as authored.
        kind: Response kind the pattern serves.
        scope_prefix: Prefix inherited from enclosing scopes.

    Returns:
        PathPattern: Compiled pattern ready for matching.

    Raises:
        InvalidPatternError: If the pattern is empty or its wildcard syntax is
            malformed.
    """

    full = f"{scope_prefix}{raw}"
    if not full:
        raise InvalidPatternError(raw, "pattern is empty")
    segments: list[SegmentMatcher] = []
    names: list[str] = []
    for text in full.split(PATH_DELIMITER):
        segment, segment_names = _compile_segment(full, text)
        for name in segment_names:
            if name in names:
                raise InvalidPatternError(full, f"wildcard name {name!r} is used twice")
            names.append(name)
        segments.append(segment)
    return PathPattern(
        raw=raw,
        kind=ResponseKind.coerce(kind),
        scope_prefix=scope_prefix,
        segments=tuple(segments),
        params=tuple(names),
    )


def matches(pattern: PathPattern, path: str) -> bool:
    """Return whether ``path`` satisfies ``pattern``.

    Args:
        pattern: Compiled pattern.
        path: Concrete request path.

    Returns:
        bool: ``True`` when every segment matches.
    """

    return pattern.matches(path)


def _compile_segment(full: str, text: str) -> tuple[SegmentMatcher, list[str]]:
    """Compile one path segment into a matcher.

    Args:
        full: Complete pattern, used for error messages.
        text: Segment text between two delimiters.

    Returns:
        tuple[SegmentMatcher, list[str]]: Matcher and the wildcard names it
        declares, in order.

    Raises:
        InvalidPatternError: If brackets are unbalanced or a group is invalid.
    """

    if "[" not in text and "]" not in text:
        return SegmentMatcher(literal=text), []

    pieces: list[str] = []
    names: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == "]":
            raise InvalidPatternError(full, f"unbalanced ']' in segment {text!r}")
        if char != "[":
            pieces.append(re.escape(char))
            index += 1
            continue
        end = _find_group_end(full, text, index)
        name, constraint = _parse_group(full, text[index + 1 : end])
        if name in names:
            raise InvalidPatternError(full, f"wildcard name {name!r} is used twice")
        names.append(name)
        pieces.append(f"(?P<{name}>(?:{constraint}))")
        index = end + 1

    try:
        regex = re.compile("".join(pieces))
    except re.error as exc:
        raise InvalidPatternError(full, str(exc)) from exc
    return SegmentMatcher(literal=None, regex=regex), names


def _find_group_end(full: str, text: str, start: int) -> int:
    """Return the index of the ``]`` closing the group opened at ``start``."""

    depth = 0
    index = start
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    raise InvalidPatternError(full, f"unclosed '[' in segment {text!r}")


def _parse_group(full: str, body: str) -> tuple[str, str]:
    """Split a wildcard group body into its name and constraint regex."""

    name, separator, constraint = body.partition(":")
    name = name.strip()
    if not name:
        raise InvalidPatternError(full, "wildcard group has no name")
    if not name.isidentifier():
        raise InvalidPatternError(full, f"wildcard name {name!r} is not an identifier")
    if not separator:
        return name, DEFAULT_WILDCARD
    if not constraint:
        raise InvalidPatternError(full, f"wildcard {name!r} has an empty constraint")
    try:
        compiled = re.compile(constraint)
    except re.error as exc:
        raise InvalidPatternError(full, f"wildcard {name!r}: {exc}") from exc
    if compiled.groupindex:
        raise InvalidPatternError(full, f"wildcard {name!r} constraint may not declare named groups")
    return name, constraint


__all__ = [
    "DEFAULT_WILDCARD",
    "PATH_DELIMITER",
    "PathPattern",
    "ResponseKind",
    "SegmentMatcher",
    "compile_pattern",
    "matches",
]
