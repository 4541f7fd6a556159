# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Discover and evaluate generator source files into a :class:`Registry`.

A generator file is a Python module beneath the factory directory that
defines ``snapshots(registry)``::

    def snapshots(registry):
        staffs = registry.register_scope("/admin/staffs", setup={"staffs": 3})
        staffs.define("/table", {"partial": "admin/staffs/table"})
        staffs.define(
            "/[id:[0-9]+]/toggle",
            {"turbo_stream": "admin/staffs/toggle"},
            kind="stream_update",
        )

Each build evaluates every generator into a fresh registry; nothing is
registered through module-level state.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Final

from .errors import ConfigError, GeneratorLoadError
from .registry import Registry

LOGGER = logging.getLogger(__name__)

GENERATOR_CALLABLE: Final[str] = "snapshots"
GENERATOR_GLOB: Final[str] = "*.py"
PRIVATE_PREFIX: Final[str] = "_"
MODULE_NAMESPACE: Final[str] = "htmlsnap_generators"


@dataclass(slots=True)
class GeneratorLoadResult:
    """Registry produced from a set of generator files, plus load failures."""

    registry: Registry
    sources: list[Path] = field(default_factory=list)
    errors: list[GeneratorLoadError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return whether every generator file loaded."""

        return not self.errors


def discover_generators(factory_path: Path) -> list[Path]:
    """Return generator files beneath ``factory_path`` in a stable order.

    Args:
        factory_path: Directory scanned recursively for ``*.py`` files.

    Returns:
        list[Path]: Generator files sorted by relative path. Files and
        directories whose name starts with ``_`` are skipped.
    """

    if not factory_path.is_dir():
        return []
    found: list[Path] = []
    for path in factory_path.rglob(GENERATOR_GLOB):
        relative = path.relative_to(factory_path)
        if any(part.startswith(PRIVATE_PREFIX) for part in relative.parts):
            continue
        if path.is_file():
            found.append(path)
    return sorted(found, key=lambda candidate: candidate.relative_to(factory_path).as_posix())


def load_generators(
    paths: Sequence[Path],
    *,
    factory_path: Path | None = None,
    registry: Registry | None = None,
) -> GeneratorLoadResult:
    """Evaluate each generator file into ``registry``.

    Args:
        paths: Generator files in evaluation order.
        factory_path: Directory used to derive stable module names.
        registry: Registry to populate; a fresh collecting registry is
            created when omitted.

    Returns:
        GeneratorLoadResult: The populated registry and per-file failures.
    """

    target = registry if registry is not None else Registry(collect_errors=True)
    result = GeneratorLoadResult(registry=target)
    for path in paths:
        try:
            with target.sourced_from(path):
                _evaluate(path, target, factory_path)
        except GeneratorLoadError as exc:
            LOGGER.debug("generator %s failed: %s", path, exc.detail)
            result.errors.append(exc)
            continue
        result.sources.append(path)
    return result


def load_factory(factory_path: Path) -> GeneratorLoadResult:
    """Discover and evaluate every generator beneath ``factory_path``."""

    return load_generators(discover_generators(factory_path), factory_path=factory_path)


def _evaluate(path: Path, registry: Registry, factory_path: Path | None) -> None:
    module_name = _module_name(path, factory_path)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise GeneratorLoadError(path, "not an importable Python file")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
        generate = _generator_callable(path, module)
        generate(registry)
    except GeneratorLoadError:
        sys.modules.pop(module_name, None)
        raise
    except Exception as exc:  # arbitrary generator code
        sys.modules.pop(module_name, None)
        raise GeneratorLoadError(path, f"{type(exc).__name__}: {exc}") from exc


def _generator_callable(path: Path, module: ModuleType) -> Callable[[Registry], object]:
    generate = getattr(module, GENERATOR_CALLABLE, None)
    if not callable(generate):
        raise GeneratorLoadError(path, f"defines no callable {GENERATOR_CALLABLE!r}")
    return generate


def _module_name(path: Path, factory_path: Path | None) -> str:
    relative = path.with_suffix("")
    if factory_path is not None:
        try:
            relative = relative.relative_to(factory_path)
        except ValueError:
            pass
    parts = [part.replace("-", "_").replace(".", "_") for part in relative.parts if part not in ("/", "\\")]
    return ".".join((MODULE_NAMESPACE, *parts))


def import_object(reference: str) -> object:
    """Import the object named by a ``"module:attribute"`` string.

    Args:
        reference: Import string such as ``"myapp.snapshots:render"``. Dotted
            attribute paths are allowed after the colon.

    Returns:
        object: The referenced object.

    Raises:
        ConfigError: If the string is malformed or the import fails.
    """

    module_name, separator, attribute = reference.partition(":")
    if not separator or not module_name or not attribute:
        raise ConfigError(f"expected 'module:attribute', got {reference!r}")
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"cannot import {module_name!r}: {exc}") from exc
    for name in attribute.split("."):
        try:
            target = getattr(target, name)
        except AttributeError as exc:
            raise ConfigError(f"{reference!r}: {module_name} has no attribute path {attribute!r}") from exc
    return target


__all__ = [
    "GeneratorLoadResult",
    "discover_generators",
    "import_object",
    "load_factory",
    "load_generators",
]
