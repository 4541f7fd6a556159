# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the incremental snapshot builder."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import pytest

from htmlsnap.builder import EntryResult, EntryStatus, IncrementalBuilder, RenderRequest
from htmlsnap.errors import BuildFailedError, GeneratorLoadError, RenderFailure
from htmlsnap.keys import ArtifactKey, to_artifact_key
from htmlsnap.manifest import BuildManifest
from htmlsnap.matcher import Matcher
from htmlsnap.patterns import ResponseKind
from htmlsnap.registry import Registry
from htmlsnap.store import SnapshotStore

from .conftest import RecordingRenderer

HOME = to_artifact_key("", "/")
ABOUT = to_artifact_key("", "/about")
TABLE = to_artifact_key("/admin/staffs", "/table")
TOGGLE = to_artifact_key("/admin/staffs", "/[id:[0-9]+]/toggle", ResponseKind.STREAM_UPDATE)


@dataclass(slots=True)
class Project:
    """Generator sources and a partial that a single entry depends on."""

    root: Path
    pages: Path
    staffs: Path
    about_partial: Path

    def registry(self, *, include_staffs: bool = True, about: str = "<p>about</p>") -> Registry:
        registry = Registry()
        with registry.sourced_from(self.pages):
            registry.root.define("/", "<h1>home</h1>")
            registry.root.define("/about", about, dependencies=[self.about_partial])
        if include_staffs:
            with registry.sourced_from(self.staffs):
                staffs = registry.register_scope("/admin/staffs", setup={"staffs": 3})
                staffs.define("/table", "<table><tr><td>Ada</td></tr></table>")
                staffs.define(
                    "/[id:[0-9]+]/toggle",
                    '<turbo-stream action="replace"></turbo-stream>',
                    kind=ResponseKind.STREAM_UPDATE,
                )
        return registry


@pytest.fixture
def project(tmp_path: Path) -> Project:
    generators = tmp_path / "generators"
    generators.mkdir()
    pages = generators / "pages.py"
    pages.write_text("# pages\n", encoding="utf-8")
    staffs = generators / "staffs.py"
    staffs.write_text("# staffs\n", encoding="utf-8")
    partial = tmp_path / "views" / "_about.html"
    partial.parent.mkdir()
    partial.write_text("<p>about</p>\n", encoding="utf-8")
    return Project(root=tmp_path, pages=pages, staffs=staffs, about_partial=partial)


def _snapshot_bytes(store: SnapshotStore) -> dict[str, bytes]:
    return {path.name: path.read_bytes() for path in sorted(store.root.iterdir())}


def test_first_build_renders_every_entry(
    project: Project, builder: IncrementalBuilder, store: SnapshotStore, renderer: RecordingRenderer
) -> None:
    report = builder.build(project.registry())

    assert report.ok
    assert [result.status for result in report.results] == [EntryStatus.RENDERED] * 4
    assert renderer.calls == ["/", "/about", "/admin/staffs/table", "/admin/staffs/[id:[0-9]+]/toggle"]
    assert sorted(store.keys()) == sorted([HOME, ABOUT, TABLE, TOGGLE])
    assert store.read(TABLE) == b"<table><tr><td>Ada</td></tr></table>"

    manifest = BuildManifest.load(builder.manifest_path)
    assert manifest.keys() == (HOME, ABOUT, TABLE, TOGGLE)
    assert manifest.get(TOGGLE).kind is ResponseKind.STREAM_UPDATE
    assert manifest.get(TABLE).source == "generators/staffs.py"


def test_rebuild_without_changes_renders_nothing(
    project: Project, builder: IncrementalBuilder, store: SnapshotStore, renderer: RecordingRenderer
) -> None:
    builder.build(project.registry())
    before = _snapshot_bytes(store)

    report = builder.build(project.registry())

    assert len(renderer.calls) == 4
    assert len(report.fresh) == 4
    assert report.rendered == []
    assert report.removed == []
    assert _snapshot_bytes(store) == before


def test_touching_a_source_without_changing_it_keeps_entries_fresh(
    project: Project, builder: IncrementalBuilder, renderer: RecordingRenderer
) -> None:
    builder.build(project.registry())
    stat = project.staffs.stat()
    os.utime(project.staffs, (stat.st_atime + 60, stat.st_mtime + 60))

    report = builder.build(project.registry())

    assert len(report.fresh) == 4
    assert len(renderer.calls) == 4


def test_changing_one_dependency_rerenders_only_that_entry(
    project: Project, builder: IncrementalBuilder, store: SnapshotStore, renderer: RecordingRenderer
) -> None:
    builder.build(project.registry())
    before = _snapshot_bytes(store)
    old_record = BuildManifest.load(builder.manifest_path).get(ABOUT)
    project.about_partial.write_text("<p>about us</p>\n", encoding="utf-8")
    renderer.calls.clear()

    report = builder.build(project.registry(about="<p>about us</p>"))

    assert renderer.calls == ["/about"]
    assert [result.key for result in report.rendered] == [ABOUT]
    after = _snapshot_bytes(store)
    assert after[ABOUT.value] == b"<p>about us</p>"
    for key in (HOME, TABLE, TOGGLE):
        assert after[key.value] == before[key.value]
    assert BuildManifest.load(builder.manifest_path).get(ABOUT).fingerprint != old_record.fingerprint


def test_changing_a_generator_file_rerenders_its_entries(
    project: Project, builder: IncrementalBuilder, renderer: RecordingRenderer
) -> None:
    builder.build(project.registry())
    project.staffs.write_text("# staffs, now with more columns\n", encoding="utf-8")
    renderer.calls.clear()

    builder.build(project.registry())

    assert renderer.calls == ["/admin/staffs/table", "/admin/staffs/[id:[0-9]+]/toggle"]


def test_shared_dependency_change_rerenders_everything(
    project: Project, tmp_path: Path, store: SnapshotStore, renderer: RecordingRenderer
) -> None:
    layout = tmp_path / "views" / "layout.html"
    layout.write_text("<html></html>", encoding="utf-8")
    builder = IncrementalBuilder(store, renderer, root=tmp_path, shared_dependencies=[layout])
    builder.build(project.registry())
    layout.write_text("<html lang='en'></html>", encoding="utf-8")

    report = builder.build(project.registry())

    assert len(report.rendered) == 4


def test_removed_definitions_are_deleted_as_orphans(
    project: Project, builder: IncrementalBuilder, store: SnapshotStore
) -> None:
    builder.build(project.registry())

    report = builder.build(project.registry(include_staffs=False))

    assert sorted(report.removed) == sorted([TABLE, TOGGLE])
    assert sorted(store.keys()) == sorted([HOME, ABOUT])
    assert BuildManifest.load(builder.manifest_path).keys() == (HOME, ABOUT)


def test_stray_files_in_the_store_are_removed(
    project: Project, builder: IncrementalBuilder, store: SnapshotStore
) -> None:
    builder.build(project.registry())
    stray = ArtifactKey("%2fleftover.html")
    store.write(stray, b"stale")

    report = builder.build(project.registry())

    assert report.removed == [stray]
    assert not store.exists(stray)


def test_deleted_artifact_is_rendered_again(
    project: Project, builder: IncrementalBuilder, store: SnapshotStore, renderer: RecordingRenderer
) -> None:
    builder.build(project.registry())
    store.delete(TABLE)
    renderer.calls.clear()

    builder.build(project.registry())

    assert renderer.calls == ["/admin/staffs/table"]
    assert store.exists(TABLE)


def test_force_rerenders_every_entry(
    project: Project, tmp_path: Path, store: SnapshotStore, renderer: RecordingRenderer
) -> None:
    IncrementalBuilder(store, renderer, root=tmp_path).build(project.registry())

    report = IncrementalBuilder(store, renderer, root=tmp_path, force=True).build(project.registry())

    assert len(report.rendered) == 4
    assert len(renderer.calls) == 8


def test_render_failure_does_not_abort_other_entries(
    project: Project, tmp_path: Path, store: SnapshotStore
) -> None:
    failing = RecordingRenderer(failing={"/about"})
    builder = IncrementalBuilder(store, failing, root=tmp_path)

    report = builder.build(project.registry())

    assert not report.ok
    assert [result.key for result in report.failed] == [ABOUT]
    assert len(report.rendered) == 3
    error = report.failed[0].error
    assert isinstance(error, RenderFailure)
    assert "RuntimeError" in error.detail
    assert not store.exists(ABOUT)
    assert ABOUT not in BuildManifest.load(builder.manifest_path)

    with pytest.raises(BuildFailedError) as excinfo:
        report.raise_for_failures()
    assert excinfo.value.failures == (error,)

    recovered = RecordingRenderer()
    IncrementalBuilder(store, recovered, root=tmp_path).build(project.registry())
    assert recovered.calls == ["/about"]


def test_failed_rerender_keeps_the_previous_artifact(
    project: Project, tmp_path: Path, store: SnapshotStore, renderer: RecordingRenderer
) -> None:
    IncrementalBuilder(store, renderer, root=tmp_path).build(project.registry())
    old_record = BuildManifest.load(BuildManifest.path_in(store.root)).get(ABOUT)
    project.about_partial.write_text("<p>changed</p>\n", encoding="utf-8")

    failing = RecordingRenderer(failing={"/about"})
    report = IncrementalBuilder(store, failing, root=tmp_path).build(project.registry(about="<p>changed</p>"))

    assert [result.key for result in report.failed] == [ABOUT]
    assert report.removed == []
    assert store.read(ABOUT) == b"<p>about</p>"
    assert BuildManifest.load(BuildManifest.path_in(store.root)).get(ABOUT) == old_record

    retry = RecordingRenderer()
    IncrementalBuilder(store, retry, root=tmp_path).build(project.registry(about="<p>changed</p>"))
    assert retry.calls == ["/about"]
    assert store.read(ABOUT) == b"<p>changed</p>"


def test_non_bytes_render_output_is_a_failure(project: Project, tmp_path: Path, store: SnapshotStore) -> None:
    def renderer(request: RenderRequest) -> object:
        return 42 if request.pattern.full == "/" else str(request.descriptor)

    report = IncrementalBuilder(store, renderer, root=tmp_path).build(project.registry())

    assert [result.key for result in report.failed] == [HOME]
    assert "expected bytes" in str(report.failed[0].error)
    assert store.read(ABOUT) == b"<p>about</p>"


def test_render_request_carries_scope_setup(project: Project, tmp_path: Path, store: SnapshotStore) -> None:
    requests: list[RenderRequest] = []

    def renderer(request: RenderRequest) -> bytes:
        requests.append(request)
        return b"<div></div>"

    IncrementalBuilder(store, renderer, root=tmp_path).build(project.registry())

    by_pattern = {request.pattern.full: request for request in requests}
    assert by_pattern["/admin/staffs/table"].setup == ({"staffs": 3},)
    assert by_pattern["/"].setup == ()
    assert by_pattern["/admin/staffs/[id:[0-9]+]/toggle"].kind is ResponseKind.STREAM_UPDATE


def test_parallel_build_keeps_declaration_order(tmp_path: Path, store: SnapshotStore) -> None:
    registry = Registry()
    paths = [f"/pages/{index}" for index in range(12)]
    for path in paths:
        registry.root.define(path, f"<p>{path}</p>")
    renderer = RecordingRenderer()

    report = IncrementalBuilder(store, renderer, root=tmp_path, workers=4).build(registry)

    assert sorted(renderer.calls) == sorted(paths)
    assert [result.entry.pattern.full for result in report.results] == paths
    manifest = BuildManifest.load(BuildManifest.path_in(store.root))
    assert [record.pattern for record in manifest] == paths
    assert store.read(to_artifact_key("", "/pages/7")) == b"<p>/pages/7</p>"


def test_result_hook_sees_every_entry(project: Project, tmp_path: Path, store: SnapshotStore) -> None:
    seen: list[EntryResult] = []
    builder = IncrementalBuilder(store, RecordingRenderer(), root=tmp_path, on_result=seen.append)

    builder.build(project.registry())
    builder.build(project.registry())

    statuses = [result.status for result in seen]
    assert statuses.count(EntryStatus.RENDERED) == 4
    assert statuses.count(EntryStatus.FRESH) == 4


def test_artifacts_of_unloadable_generators_are_kept(
    project: Project, builder: IncrementalBuilder, store: SnapshotStore
) -> None:
    builder.build(project.registry())
    load_error = GeneratorLoadError(project.staffs, "SyntaxError: invalid syntax")

    report = builder.build(project.registry(include_staffs=False), load_errors=[load_error])

    assert not report.ok
    assert report.failures[0] is load_error
    assert report.removed == []
    assert store.exists(TABLE)
    assert store.exists(TOGGLE)
    assert BuildManifest.load(builder.manifest_path).keys() == (HOME, ABOUT, TABLE, TOGGLE)


def test_unloadable_generator_keeps_its_match_precedence(
    tmp_path: Path, builder: IncrementalBuilder, store: SnapshotStore
) -> None:
    posts = tmp_path / "generators" / "posts.py"
    drafts = tmp_path / "generators" / "drafts.py"
    posts.parent.mkdir()
    posts.write_text("# posts\n", encoding="utf-8")
    drafts.write_text("# drafts\n", encoding="utf-8")

    def registry(*, include_posts: bool) -> Registry:
        registry = Registry()
        if include_posts:
            with registry.sourced_from(posts):
                registry.root.define("/posts/[id]", "<article></article>")
        with registry.sourced_from(drafts):
            registry.root.define("/posts/new", "<form></form>")
            registry.root.define("/drafts", "<ul></ul>")
        return registry

    builder.build(registry(include_posts=True))
    before = BuildManifest.load(builder.manifest_path).keys()
    load_error = GeneratorLoadError(posts, "SyntaxError: invalid syntax")

    builder.build(registry(include_posts=False), load_errors=[load_error])

    manifest = BuildManifest.load(builder.manifest_path)
    assert manifest.keys() == before
    assert Matcher.from_manifest(manifest).resolve("/posts/new") == to_artifact_key("", "/posts/[id]")


def test_corrupt_manifest_rebuilds_everything(
    project: Project, builder: IncrementalBuilder, renderer: RecordingRenderer
) -> None:
    builder.build(project.registry())
    builder.manifest_path.write_text("garbage", encoding="utf-8")
    renderer.calls.clear()

    report = builder.build(project.registry())

    assert len(renderer.calls) == 4
    assert report.ok


def test_worker_count_must_be_positive(store: SnapshotStore, renderer: RecordingRenderer) -> None:
    with pytest.raises(ValueError):
        IncrementalBuilder(store, renderer, workers=0)
