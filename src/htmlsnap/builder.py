# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Incremental snapshot builder.

The builder walks a :class:`Registry` in declaration order, compares each
entry's dependency fingerprint with the :class:`BuildManifest`, renders only
the stale entries and finally removes artifacts the registry no longer
produces. Rendering may fan out over a thread pool; the manifest is only ever
mutated on the calling thread after the parallel phase completes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypeAlias

from .errors import BuildFailedError, GeneratorLoadError, HtmlSnapError, RenderFailure
from .fingerprints import Fingerprinter
from .keys import ArtifactKey
from .manifest import BuildManifest, ManifestRecord
from .patterns import PathPattern, ResponseKind
from .registry import Registry, RegistryEntry, RegistryProblem, RenderDescriptor, SetupContext
from .store import SnapshotStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Everything the render collaborator receives for one entry."""

    pattern: PathPattern
    descriptor: RenderDescriptor
    setup: tuple[SetupContext, ...] = ()

    @property
    def kind(self) -> ResponseKind:
        """Return the response kind being rendered."""

        return self.pattern.kind


RenderOutput: TypeAlias = bytes | bytearray | memoryview | str
Renderer: TypeAlias = Callable[[RenderRequest], RenderOutput]


class EntryStatus(str, Enum):
    """Enumerate what happened to an entry during a build."""

    RENDERED = "rendered"
    FRESH = "fresh"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class EntryResult:
    """Outcome of one registry entry within a build."""

    entry: RegistryEntry
    status: EntryStatus
    fingerprint: str
    error: RenderFailure | None = None

    @property
    def key(self) -> ArtifactKey:
        """Return the artifact key of the entry."""

        return self.entry.key


@dataclass(slots=True)
class BuildReport:
    """Aggregate result of one build pass."""

    results: list[EntryResult] = field(default_factory=list)
    removed: list[ArtifactKey] = field(default_factory=list)
    problems: list[RegistryProblem] = field(default_factory=list)
    load_errors: list[GeneratorLoadError] = field(default_factory=list)

    def with_status(self, status: EntryStatus) -> list[EntryResult]:
        """Return the results whose status equals ``status``."""

        return [result for result in self.results if result.status is status]

    @property
    def rendered(self) -> list[EntryResult]:
        """Return entries rendered during this build."""

        return self.with_status(EntryStatus.RENDERED)

    @property
    def fresh(self) -> list[EntryResult]:
        """Return entries skipped because they were up to date."""

        return self.with_status(EntryStatus.FRESH)

    @property
    def failed(self) -> list[EntryResult]:
        """Return entries whose rendering failed."""

        return self.with_status(EntryStatus.FAILED)

    @property
    def failures(self) -> list[HtmlSnapError]:
        """Return every failure: load errors, authoring errors, then renders."""

        collected: list[HtmlSnapError] = list(self.load_errors)
        collected.extend(problem.error for problem in self.problems)
        collected.extend(result.error for result in self.failed if result.error is not None)
        return collected

    @property
    def ok(self) -> bool:
        """Return whether the build finished without any failure."""

        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise :class:`BuildFailedError` when the build had failures.

        Raises:
            BuildFailedError: Aggregating every per-entry and per-file failure.
        """

        failures = self.failures
        if failures:
            raise BuildFailedError(failures)


ResultHook: TypeAlias = Callable[[EntryResult], None]


class IncrementalBuilder:
    """Render stale registry entries into a :class:`SnapshotStore`."""

    def __init__(
        self,
        store: SnapshotStore,
        renderer: Renderer,
        *,
        root: Path | None = None,
        workers: int = 1,
        shared_dependencies: Iterable[Path] = (),
        force: bool = False,
        on_result: ResultHook | None = None,
    ) -> None:
        """Initialise the builder.

        Args:
            store: Store receiving rendered artifacts.
            renderer: Render collaborator invoked for stale entries.
            root: Project root against which dependency paths are resolved.
                Defaults to the current working directory.
            workers: Maximum number of entries rendered concurrently.
            shared_dependencies: Files whose content influences every entry.
            force: When ``True`` every entry is treated as stale.
            on_result: Optional callback invoked once per entry result, on the
                calling thread, in completion order.

        Raises:
            ValueError: If ``workers`` is smaller than one.
        """

        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.store = store
        self.renderer = renderer
        self.root = root or Path.cwd()
        self.workers = workers
        self.shared_dependencies = tuple(shared_dependencies)
        self.force = force
        self.on_result = on_result

    @property
    def manifest_path(self) -> Path:
        """Return the manifest location inside the store root."""

        return BuildManifest.path_in(self.store.root)

    def build(
        self,
        registry: Registry,
        *,
        load_errors: Sequence[GeneratorLoadError] = (),
    ) -> BuildReport:
        """Run one incremental build pass over ``registry``.

        Args:
            registry: Entries produced by evaluating the generator sources.
            load_errors: Generator files that failed to evaluate. Artifacts
                previously built from those files are kept rather than
                treated as orphans.

        Returns:
            BuildReport: Per-entry outcomes, removed orphans and failures.
        """

        previous = BuildManifest.load(self.manifest_path)
        fingerprinter = Fingerprinter(self.root, shared=self.shared_dependencies)
        report = BuildReport(problems=list(registry.errors), load_errors=list(load_errors))

        fingerprints: dict[ArtifactKey, str] = {}
        stale: list[RegistryEntry] = []
        results: dict[ArtifactKey, EntryResult] = {}
        for entry in registry.entries():
            fingerprint = fingerprinter.fingerprint(entry)
            fingerprints[entry.key] = fingerprint
            if self._is_stale(entry, fingerprint, previous):
                stale.append(entry)
                continue
            result = EntryResult(entry=entry, status=EntryStatus.FRESH, fingerprint=fingerprint)
            results[entry.key] = result
            self._notify(result)

        for result in self._render_all(stale, fingerprints):
            results[result.key] = result
            self._notify(result)

        manifest = self._merge(registry, results, previous, load_errors)
        report.results = [results[entry.key] for entry in registry.entries()]
        report.removed = self._reconcile(previous, manifest)
        manifest.save(self.manifest_path)
        LOGGER.debug(
            "build finished: %d rendered, %d fresh, %d failed, %d removed",
            len(report.rendered),
            len(report.fresh),
            len(report.failed),
            len(report.removed),
        )
        return report

    def _is_stale(self, entry: RegistryEntry, fingerprint: str, previous: BuildManifest) -> bool:
        if self.force:
            return True
        record = previous.get(entry.key)
        if record is None or record.fingerprint != fingerprint:
            return True
        return not self.store.exists(entry.key)

    def _render_all(
        self,
        stale: Sequence[RegistryEntry],
        fingerprints: dict[ArtifactKey, str],
    ) -> list[EntryResult]:
        if self.workers == 1 or len(stale) < 2:
            return [self._render_entry(entry, fingerprints[entry.key]) for entry in stale]

        completed: list[EntryResult] = []
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            future_map = {
                executor.submit(self._render_entry, entry, fingerprints[entry.key]): entry for entry in stale
            }
            for future in as_completed(future_map):
                completed.append(future.result())
        return completed

    def _render_entry(self, entry: RegistryEntry, fingerprint: str) -> EntryResult:
        """Render ``entry`` and store its bytes, capturing any failure.

        Args:
            entry: Stale registry entry.
            fingerprint: Fingerprint recorded when the entry succeeds.

        Returns:
            EntryResult: ``RENDERED`` on success, ``FAILED`` with the captured
            :class:`RenderFailure` otherwise.
        """

        pattern = entry.pattern.full
        kind = entry.kind.value
        request = RenderRequest(pattern=entry.pattern, descriptor=entry.descriptor, setup=entry.setup)
        try:
            output = self.renderer(request)
        except Exception as exc:  # reported per entry
            failure = RenderFailure(pattern, kind, exc)
            failure.__cause__ = exc
            return EntryResult(entry=entry, status=EntryStatus.FAILED, fingerprint=fingerprint, error=failure)

        data = _coerce_output(output)
        if data is None:
            failure = RenderFailure(pattern, kind, f"renderer returned {type(output).__name__}, expected bytes")
            return EntryResult(entry=entry, status=EntryStatus.FAILED, fingerprint=fingerprint, error=failure)

        try:
            self.store.write(entry.key, data)
        except OSError as exc:
            failure = RenderFailure(pattern, kind, exc)
            failure.__cause__ = exc
            return EntryResult(entry=entry, status=EntryStatus.FAILED, fingerprint=fingerprint, error=failure)
        LOGGER.debug("rendered %s (%s) -> %s", pattern, kind, entry.key)
        return EntryResult(entry=entry, status=EntryStatus.RENDERED, fingerprint=fingerprint)

    def _merge(
        self,
        registry: Registry,
        results: dict[ArtifactKey, EntryResult],
        previous: BuildManifest,
        load_errors: Sequence[GeneratorLoadError],
    ) -> BuildManifest:
        """Return the manifest describing the store after this pass.

        Successful entries get a fresh record, fresh entries keep their
        previous record, and failed entries keep their previous record only
        while the old artifact is still on disk. Records from generator files
        that failed to load are carried over at their previous positions: each
        one is placed before the current record that followed it in the
        previous manifest, so overlapping patterns resolve as they did before.
        """

        records: list[ManifestRecord] = []
        for entry in registry.entries():
            result = results[entry.key]
            if result.status is EntryStatus.RENDERED:
                records.append(self._record_for(entry, result.fingerprint))
                continue
            kept = previous.get(entry.key)
            if kept is not None and self.store.exists(entry.key):
                records.append(kept)

        produced = {entry.key for entry in registry.entries()}
        current = {record.key for record in records}
        protected = {self._source_label(error.source) for error in load_errors}
        carried_before: dict[str, list[ManifestRecord]] = {}
        pending: list[ManifestRecord] = []
        for record in previous:
            if record.artifact_key not in produced and record.source in protected:
                if self.store.exists(record.artifact_key):
                    LOGGER.debug("keeping %s from unloadable generator %s", record.key, record.source)
                    pending.append(record)
            elif record.key in current and pending:
                carried_before[record.key] = pending
                pending = []
        if not carried_before and not pending:
            return BuildManifest(records)

        merged: list[ManifestRecord] = []
        for record in records:
            merged.extend(carried_before.get(record.key, ()))
            merged.append(record)
        merged.extend(pending)
        return BuildManifest(merged)

    def _reconcile(self, previous: BuildManifest, manifest: BuildManifest) -> list[ArtifactKey]:
        """Delete stored artifacts and stale records absent from ``manifest``.

        Returns:
            list[ArtifactKey]: Keys removed from the store or the manifest.
        """

        removed: dict[ArtifactKey, None] = {}
        for key in previous.keys():
            if key not in manifest:
                removed.setdefault(key, None)
        for key in list(self.store.keys()):
            if key not in manifest:
                removed.setdefault(key, None)
        for key in removed:
            self.store.delete(key)
            LOGGER.info("removed orphaned snapshot %s", key)
        return list(removed)

    def _record_for(self, entry: RegistryEntry, fingerprint: str) -> ManifestRecord:
        return ManifestRecord(
            key=entry.key.value,
            pattern=entry.pattern.full,
            kind=entry.kind,
            fingerprint=fingerprint,
            source=None if entry.source is None else self._source_label(entry.source),
        )

    def _source_label(self, source: Path) -> str:
        resolved = source if source.is_absolute() else self.root / source
        try:
            return resolved.relative_to(self.root).as_posix()
        except ValueError:
            return resolved.as_posix()

    def _notify(self, result: EntryResult) -> None:
        if self.on_result is not None:
            self.on_result(result)


def _coerce_output(output: object) -> bytes | None:
    if isinstance(output, bytes):
        return output
    if isinstance(output, (bytearray, memoryview)):
        return bytes(output)
    if isinstance(output, str):
        return output.encode("utf-8")
    return None


__all__ = [
    "BuildReport",
    "EntryResult",
    "EntryStatus",
    "IncrementalBuilder",
    "RenderOutput",
    "RenderRequest",
    "Renderer",
    "ResultHook",
]
