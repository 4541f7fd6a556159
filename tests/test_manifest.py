# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the persisted build manifest."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from htmlsnap.keys import ArtifactKey
from htmlsnap.manifest import MANIFEST_NAME, BuildManifest, ManifestRecord
from htmlsnap.patterns import ResponseKind


def _record(key: str, pattern: str, kind: ResponseKind = ResponseKind.DOCUMENT) -> ManifestRecord:
    return ManifestRecord(key=key, pattern=pattern, kind=kind, fingerprint="f" * 64, source="staffs.py")


def test_missing_manifest_loads_empty(tmp_path: Path) -> None:
    manifest = BuildManifest.load(tmp_path / MANIFEST_NAME)

    assert len(manifest) == 0
    assert manifest.keys() == ()


def test_save_and_load_preserves_order(tmp_path: Path) -> None:
    path = BuildManifest.path_in(tmp_path)
    records = [
        _record("z.html", "/z"),
        _record("a.turbo_stream.html", "/a", ResponseKind.STREAM_UPDATE),
        _record("m.html", "/m"),
    ]

    BuildManifest(records).save(path)
    loaded = BuildManifest.load(path)

    assert loaded == BuildManifest(records)
    assert [record.key for record in loaded] == ["z.html", "a.turbo_stream.html", "m.html"]
    assert loaded.get(ArtifactKey("a.turbo_stream.html")).kind is ResponseKind.STREAM_UPDATE
    assert ArtifactKey("m.html") in loaded
    assert "m.html" in loaded


def test_saved_manifest_is_versioned_json(tmp_path: Path) -> None:
    path = BuildManifest.path_in(tmp_path)
    BuildManifest([_record("a.html", "/a")]).save(path)

    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["version"] == 1
    assert payload["records"][0] == {
        "key": "a.html",
        "pattern": "/a",
        "kind": "document",
        "fingerprint": "f" * 64,
        "source": "staffs.py",
    }


def test_corrupt_manifest_is_ignored(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = BuildManifest.path_in(tmp_path)
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="htmlsnap.manifest"):
        manifest = BuildManifest.load(path)

    assert len(manifest) == 0
    assert "ignoring unreadable manifest" in caplog.text


def test_unknown_manifest_version_is_ignored(tmp_path: Path) -> None:
    path = BuildManifest.path_in(tmp_path)
    path.write_text(json.dumps({"version": 99, "records": []}), encoding="utf-8")

    assert len(BuildManifest.load(path)) == 0
