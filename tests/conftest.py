# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import threading
from pathlib import Path
from textwrap import dedent

import pytest

from htmlsnap.builder import IncrementalBuilder, RenderRequest
from htmlsnap.store import SnapshotStore

pytest_plugins = ["pytester"]


class RecordingRenderer:
    """Render descriptors verbatim and remember which patterns were rendered."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self.failing: set[str] = set(failing or ())
        self._lock = threading.Lock()

    def __call__(self, request: RenderRequest) -> bytes:
        with self._lock:
            self.calls.append(request.pattern.full)
        if request.pattern.full in self.failing:
            raise RuntimeError(f"cannot render {request.pattern.full}")
        return str(request.descriptor).encode("utf-8")


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "snapshots")


@pytest.fixture
def builder(tmp_path: Path, store: SnapshotStore, renderer: RecordingRenderer) -> IncrementalBuilder:
    return IncrementalBuilder(store, renderer, root=tmp_path)


def write_generator(path: Path, body: str) -> Path:
    """Write a generator module defining ``snapshots(registry)`` to ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(body).lstrip(), encoding="utf-8")
    return path
