# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Pre-rendered HTML snapshots addressed by URL-like path patterns."""

from __future__ import annotations

from importlib import metadata

from .builder import BuildReport, EntryResult, EntryStatus, IncrementalBuilder, RenderRequest
from .config import SnapshotConfig, load_config
from .errors import (
    ArtifactNotFoundError,
    BuildFailedError,
    ConfigError,
    DuplicatePatternError,
    GeneratorLoadError,
    HtmlSnapError,
    InvalidPatternError,
    NoMatchError,
    RenderFailure,
)
from .generators import discover_generators, load_factory, load_generators
from .keys import ArtifactKey, to_artifact_key
from .manifest import BuildManifest, ManifestRecord
from .matcher import Matcher, Resolution
from .patterns import PathPattern, ResponseKind, compile_pattern, matches
from .pipeline import run_build
from .registry import Registry, RegistryEntry, ScopeHandle
from .runtime import MarkupEnvironment, OutgoingRequest, RuntimeBridge, SnapshotResponse
from .store import SnapshotStore

try:
    __version__ = metadata.version("htmlsnap")
except metadata.PackageNotFoundError:  # pragma: no cover - local development fallback
    __version__ = "0.0.0"

__all__ = [
    "ArtifactKey",
    "ArtifactNotFoundError",
    "BuildFailedError",
    "BuildManifest",
    "BuildReport",
    "ConfigError",
    "DuplicatePatternError",
    "EntryResult",
    "EntryStatus",
    "GeneratorLoadError",
    "HtmlSnapError",
    "IncrementalBuilder",
    "InvalidPatternError",
    "ManifestRecord",
    "MarkupEnvironment",
    "Matcher",
    "NoMatchError",
    "OutgoingRequest",
    "PathPattern",
    "Registry",
    "RegistryEntry",
    "RenderFailure",
    "RenderRequest",
    "Resolution",
    "ResponseKind",
    "RuntimeBridge",
    "ScopeHandle",
    "SnapshotConfig",
    "SnapshotResponse",
    "SnapshotStore",
    "compile_pattern",
    "discover_generators",
    "load_config",
    "load_factory",
    "load_generators",
    "matches",
    "run_build",
    "to_artifact_key",
    "__version__",
]
