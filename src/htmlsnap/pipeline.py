# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Wire configuration, generator loading and the incremental builder together."""

from __future__ import annotations

from dataclasses import dataclass

from .builder import BuildReport, IncrementalBuilder, Renderer, ResultHook
from .config import SnapshotConfig
from .errors import ConfigError
from .fingerprints import expand_globs
from .generators import GeneratorLoadResult, import_object, load_factory
from .store import SnapshotStore


@dataclass(frozen=True, slots=True)
class BuildRun:
    """Result of :func:`run_build`: what was loaded and what was built."""

    loaded: GeneratorLoadResult
    report: BuildReport

    @property
    def ok(self) -> bool:
        """Return whether loading and building both succeeded."""

        return self.report.ok


def resolve_renderer(config: SnapshotConfig) -> Renderer:
    """Import the render collaborator named by ``config.renderer``.

    Args:
        config: Effective configuration.

    Returns:
        Renderer: Callable turning a render request into bytes.

    Raises:
        ConfigError: If no renderer is configured or it is not callable.
    """

    if not config.renderer:
        raise ConfigError("no renderer configured; set 'renderer = \"module:callable\"' under [tool.htmlsnap]")
    renderer = import_object(config.renderer)
    if not callable(renderer):
        raise ConfigError(f"renderer {config.renderer!r} is not callable")
    return renderer


def run_build(
    config: SnapshotConfig,
    renderer: Renderer | None = None,
    *,
    force: bool = False,
    on_result: ResultHook | None = None,
) -> BuildRun:
    """Evaluate the generator files of ``config`` and build stale snapshots.

    Args:
        config: Effective configuration.
        renderer: Render collaborator; imported from ``config.renderer`` when
            omitted.
        force: Re-render every entry regardless of fingerprints.
        on_result: Optional per-entry progress callback.

    Returns:
        BuildRun: Loaded generators and the build report. Generator load
        failures are part of the report's failures.
    """

    active_renderer = renderer if renderer is not None else resolve_renderer(config)
    loaded = load_factory(config.factory_path)
    builder = IncrementalBuilder(
        SnapshotStore(config.snapshot_path),
        active_renderer,
        root=config.root,
        workers=config.worker_count,
        shared_dependencies=expand_globs(config.root, config.extra_dependencies),
        force=force,
        on_result=on_result,
    )
    report = builder.build(loaded.registry, load_errors=loaded.errors)
    return BuildRun(loaded=loaded, report=report)


__all__ = ["BuildRun", "resolve_renderer", "run_build"]
