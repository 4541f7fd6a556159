# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build-time catalogue of snapshot scopes and pattern definitions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from .errors import AuthoringError, DuplicatePatternError
from .keys import ArtifactKey, key_for_pattern
from .patterns import PathPattern, ResponseKind, compile_pattern

RenderDescriptor = object
SetupContext = object


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    """One declared snapshot: a pattern plus everything needed to render it.

    Attributes:
        pattern: Compiled path pattern including the scope prefix.
        key: Artifact key derived from the pattern.
        descriptor: Opaque payload forwarded to the render collaborator.
        setup: Setup contexts of the enclosing scopes, outermost first.
        dependencies: Source files whose content decides staleness.
        source: Generator file that declared the entry, when known.
        index: Position of the entry in declaration order.
    """

    pattern: PathPattern
    key: ArtifactKey
    descriptor: RenderDescriptor
    setup: tuple[SetupContext, ...]
    dependencies: tuple[Path, ...]
    source: Path | None
    index: int

    @property
    def kind(self) -> ResponseKind:
        """Return the response kind of the entry."""

        return self.pattern.kind


@dataclass(frozen=True, slots=True)
class RegistryProblem:
    """Authoring error recorded instead of raised by a collecting registry."""

    error: AuthoringError
    source: Path | None = None

    def __str__(self) -> str:
        if self.source is None:
            return str(self.error)
        return f"{self.source}: {self.error}"


@dataclass(frozen=True, slots=True)
class ScopeHandle:
    """Handle onto a scope; nested scopes concatenate their prefixes."""

    registry: Registry = field(repr=False, compare=False)
    prefix: str
    setup: tuple[SetupContext, ...] = ()

    def scope(self, prefix: str, setup: SetupContext | None = None) -> ScopeHandle:
        """Open a child scope beneath this one.

        Args:
            prefix: Path prefix appended to this scope's prefix.
            setup: Optional fixture-setup context shared by the child scope.

        Returns:
            ScopeHandle: Handle for the nested scope.
        """

        return self.registry.register_scope(prefix, setup, parent=self)

    def define(
        self,
        raw: str,
        descriptor: RenderDescriptor,
        *,
        kind: ResponseKind | str = ResponseKind.DOCUMENT,
        dependencies: Iterable[Path | str] = (),
    ) -> RegistryEntry | None:
        """Declare a snapshot in this scope; see :meth:`Registry.define`."""

        return self.registry.define(self, raw, descriptor, kind=kind, dependencies=dependencies)


class Registry:
    """Ordered catalogue of :class:`RegistryEntry` objects for one build.

    The registry never re-sorts its entries: both the incremental builder and
    the matcher walk them in declaration order. Overlapping wildcard patterns
    are accepted and resolved by that order; only textually identical
    patterns of the same kind are rejected.
    """

    def __init__(self, *, collect_errors: bool = False) -> None:
        """Initialise an empty registry.

        Args:
            collect_errors: When ``True`` authoring errors raised by
                :meth:`define` are recorded in :attr:`errors` and the offending
                definition is skipped, so later definitions still register.
        """

        self._entries: list[RegistryEntry] = []
        self._identities: set[tuple[str, ResponseKind]] = set()
        self._errors: list[RegistryProblem] = []
        self._collect_errors = collect_errors
        self._source: Path | None = None
        self._root = ScopeHandle(registry=self, prefix="")

    @property
    def root(self) -> ScopeHandle:
        """Return the handle of the implicit top-level scope."""

        return self._root

    @property
    def errors(self) -> tuple[RegistryProblem, ...]:
        """Return authoring errors recorded while collecting."""

        return tuple(self._errors)

    @contextmanager
    def sourced_from(self, source: Path) -> Iterator[Registry]:
        """Attribute definitions made inside the block to ``source``.

        Entries defined and authoring errors collected in the block are
        withdrawn again when the block raises, so a generator that fails
        half-way contributes nothing.

        Args:
            source: Generator file being evaluated. It becomes the source and
                the first dependency of every entry defined in the block.

        Yields:
            Registry: This registry.
        """

        previous = self._source
        mark = len(self._entries)
        error_mark = len(self._errors)
        self._source = source
        try:
            yield self
        except BaseException:
            self._rollback(mark, error_mark)
            raise
        finally:
            self._source = previous

    def register_scope(
        self,
        prefix: str,
        setup: SetupContext | None = None,
        *,
        parent: ScopeHandle | None = None,
    ) -> ScopeHandle:
        """Create a scope sharing ``prefix`` and ``setup`` with its definitions.

        Args:
            prefix: Path prefix for the scope, appended to the parent prefix.
            setup: Optional opaque fixture-setup context.
            parent: Enclosing scope; defaults to the root scope.

        Returns:
            ScopeHandle: Handle used to define patterns inside the scope.
        """

        base = self._own(parent or self._root)
        setups = base.setup if setup is None else (*base.setup, setup)
        return ScopeHandle(registry=self, prefix=f"{base.prefix}{prefix}", setup=setups)

    def define(
        self,
        scope: ScopeHandle,
        raw: str,
        descriptor: RenderDescriptor,
        *,
        kind: ResponseKind | str = ResponseKind.DOCUMENT,
        dependencies: Iterable[Path | str] = (),
    ) -> RegistryEntry | None:
        """Register ``raw`` within ``scope``.

        Args:
            scope: Scope the pattern belongs to.
            raw: Pattern text relative to the scope prefix.
            descriptor: Opaque render descriptor.
            kind: Response kind served by the pattern.
            dependencies: Extra files whose content influences the artifact.

        Returns:
            RegistryEntry | None: The new entry, or ``None`` when the
            definition failed and the registry collects errors.

        Raises:
            InvalidPatternError: If the pattern syntax is malformed.
            DuplicatePatternError: If the same pattern and kind were already
                defined in this registry.
        """

        scope = self._own(scope)
        try:
            pattern = compile_pattern(raw, kind=kind, scope_prefix=scope.prefix)
            if pattern.identity in self._identities:
                raise DuplicatePatternError(pattern.full, pattern.kind.value)
        except AuthoringError as exc:
            if not self._collect_errors:
                raise
            self._errors.append(RegistryProblem(error=exc, source=self._source))
            return None

        entry = RegistryEntry(
            pattern=pattern,
            key=key_for_pattern(pattern),
            descriptor=descriptor,
            setup=scope.setup,
            dependencies=self._dependencies(dependencies),
            source=self._source,
            index=len(self._entries),
        )
        self._identities.add(pattern.identity)
        self._entries.append(entry)
        return entry

    def entries(self) -> tuple[RegistryEntry, ...]:
        """Return every entry in declaration order."""

        return tuple(self._entries)

    def sources(self) -> tuple[Path, ...]:
        """Return the distinct generator files that declared entries."""

        seen: dict[Path, None] = {}
        for entry in self._entries:
            if entry.source is not None:
                seen.setdefault(entry.source, None)
        return tuple(seen)

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def _rollback(self, mark: int, error_mark: int) -> None:
        for entry in self._entries[mark:]:
            self._identities.discard(entry.pattern.identity)
        del self._entries[mark:]
        del self._errors[error_mark:]

    def _own(self, scope: ScopeHandle) -> ScopeHandle:
        if scope.registry is not self:
            raise ValueError("scope handle belongs to a different registry")
        return scope

    def _dependencies(self, extra: Iterable[Path | str]) -> tuple[Path, ...]:
        ordered: dict[Path, None] = {}
        if self._source is not None:
            ordered[self._source] = None
        for item in extra:
            ordered.setdefault(Path(item), None)
        return tuple(ordered)


__all__ = [
    "Registry",
    "RegistryEntry",
    "RegistryProblem",
    "RenderDescriptor",
    "ScopeHandle",
    "SetupContext",
]
