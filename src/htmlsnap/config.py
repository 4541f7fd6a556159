# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration model and layered loading for htmlsnap.

Layers are merged in increasing precedence: built-in defaults,
``[tool.htmlsnap]`` in ``pyproject.toml``, a standalone ``htmlsnap.toml``,
``HTMLSNAP_*`` environment variables, then explicit overrides (CLI flags).
"""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigError

PYPROJECT_FILENAME: Final[str] = "pyproject.toml"
CONFIG_FILENAME: Final[str] = "htmlsnap.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "htmlsnap"
ENV_PREFIX: Final[str] = "HTMLSNAP_"
DEFAULT_FACTORY_PATH: Final[Path] = Path("snapshots/generators")
DEFAULT_SNAPSHOT_PATH: Final[Path] = Path("tmp/snapshots")
_PATH_FIELDS: Final[tuple[str, ...]] = ("factory_path", "snapshot_path")
_ENV_FIELDS: Final[tuple[str, ...]] = ("factory_path", "snapshot_path", "worker_count", "renderer")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


class SnapshotConfig(BaseModel):
    """Settings consumed by the generator and runtime phases.

    Attributes:
        root: Project root; relative paths resolve against it.
        factory_path: Directory scanned for generator source files.
        snapshot_path: Root directory of the snapshot store.
        worker_count: Maximum number of entries rendered concurrently.
        renderer: ``"module:attribute"`` import string of the render
            collaborator used by the CLI.
        extra_dependencies: Globs (relative to ``root``) of files that
            influence every artifact, such as shared layouts.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root: Path
    factory_path: Path = DEFAULT_FACTORY_PATH
    snapshot_path: Path = DEFAULT_SNAPSHOT_PATH
    worker_count: int = Field(default=1, ge=1)
    renderer: str | None = None
    extra_dependencies: tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _resolve_paths(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        resolved = dict(data)
        root = Path(resolved.get("root") or Path.cwd()).expanduser()
        resolved["root"] = root
        defaults = {"factory_path": DEFAULT_FACTORY_PATH, "snapshot_path": DEFAULT_SNAPSHOT_PATH}
        for name in _PATH_FIELDS:
            value = Path(resolved.get(name) or defaults[name]).expanduser()
            resolved[name] = value if value.is_absolute() else root / value
        return resolved


def normalise_keys(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``payload`` with kebab-case and camelCase keys in snake_case.

    Args:
        payload: Raw configuration table.

    Returns:
        dict[str, Any]: Table keyed by snake_case names.
    """

    normalised: dict[str, Any] = {}
    for key, value in payload.items():
        name = _CAMEL_BOUNDARY.sub(r"_\1", str(key)).replace("-", "_").lower()
        normalised[name] = value
    return normalised


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path} is not valid TOML: {exc}") from exc


def _pyproject_layer(root: Path) -> dict[str, Any]:
    tool = _read_toml(root / PYPROJECT_FILENAME).get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool, Mapping):
        return {}
    section = tool.get(PYPROJECT_SECTION_KEY)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"[{PYPROJECT_TOOL_KEY}.{PYPROJECT_SECTION_KEY}] must be a table")
    return normalise_keys(section)


def _env_layer(env: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for name in _ENV_FIELDS:
        value = env.get(f"{ENV_PREFIX}{name.upper()}")
        if value:
            layer[name] = value
    return layer


def load_config(
    root: Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> SnapshotConfig:
    """Load the effective configuration for the project at ``root``.

    Args:
        root: Project root; defaults to the current working directory.
        overrides: Highest-precedence values, typically CLI flags. ``None``
            values are ignored so unset flags do not mask lower layers.
        env: Environment mapping used instead of :data:`os.environ`.

    Returns:
        SnapshotConfig: Validated configuration.

    Raises:
        ConfigError: If a configuration file is malformed or a value fails
            validation.
    """

    project_root = (root or Path.cwd()).resolve()
    merged: dict[str, Any] = {}
    merged.update(_pyproject_layer(project_root))
    merged.update(normalise_keys(_read_toml(project_root / CONFIG_FILENAME)))
    merged.update(_env_layer(os.environ if env is None else env))
    merged.update({key: value for key, value in (overrides or {}).items() if value is not None})
    merged["root"] = project_root
    try:
        return SnapshotConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"invalid htmlsnap configuration: {exc}") from exc


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_FACTORY_PATH",
    "DEFAULT_SNAPSHOT_PATH",
    "SnapshotConfig",
    "load_config",
    "normalise_keys",
]
