# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the pytest fixtures shipped with htmlsnap."""

from __future__ import annotations

import pytest

from htmlsnap.builder import IncrementalBuilder, RenderRequest
from htmlsnap.config import CONFIG_FILENAME, load_config
from htmlsnap.patterns import ResponseKind
from htmlsnap.registry import Registry
from htmlsnap.store import SnapshotStore

UI_TESTS = """
import pytest

from htmlsnap.errors import NoMatchError


class Client:
    def send(self, request, kind=None):
        raise AssertionError("network access attempted")


def test_mounted_table(htmlsnap_bridge, htmlsnap_environment):
    with htmlsnap_bridge.mounted("/admin/staffs/table", htmlsnap_environment):
        assert [row.get_text() for row in htmlsnap_environment.select("td")] == ["Ada"]
    assert not htmlsnap_environment.mounted


def test_intercepted_toggle(htmlsnap_intercept):
    client = Client()
    htmlsnap_intercept(client)
    response = client.send("/admin/staffs/7/toggle", "stream_update")
    assert response.status == 200
    assert "turbo-stream" in response.text


def test_unknown_path(htmlsnap_bridge):
    with pytest.raises(NoMatchError):
        htmlsnap_bridge.load_for_path("/admin/unknown")


def test_environment_left_mounted_is_cleared(htmlsnap_environment):
    htmlsnap_environment.mount("<p>leftover</p>")
"""


def _render(request: RenderRequest) -> bytes:
    return str(request.descriptor).encode("utf-8")


def test_fixtures_serve_built_snapshots(pytester: pytest.Pytester, monkeypatch: pytest.MonkeyPatch) -> None:
    pytester.makefile(".toml", **{CONFIG_FILENAME.removesuffix(".toml"): 'snapshot_path = "built"\n'})
    pytester.makeini("[pytest]\nhtmlsnap_root = .\n")
    config = load_config(pytester.path, env={})
    registry = Registry()
    staffs = registry.register_scope("/admin/staffs")
    staffs.define("/table", "<table><tr><td>Ada</td></tr></table>")
    staffs.define("/[id:[0-9]+]/toggle", "<turbo-stream></turbo-stream>", kind=ResponseKind.STREAM_UPDATE)
    IncrementalBuilder(SnapshotStore(config.snapshot_path), _render, root=config.root).build(registry)
    pytester.makepyfile(test_ui=UI_TESTS)
    monkeypatch.setenv("PYTEST_DISABLE_PLUGIN_AUTOLOAD", "1")
    monkeypatch.delenv("HTMLSNAP_SNAPSHOT_PATH", raising=False)

    result = pytester.runpytest("-p", "htmlsnap.pytest_plugin")

    result.assert_outcomes(passed=4)
