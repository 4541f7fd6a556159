# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""pytest fixtures exposing the runtime bridge to UI test suites.

Enabled automatically through the ``pytest11`` entry point. Every fixture
tears down what it sets up, so interception state and mounted markup never
leak into the next test.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from .config import SnapshotConfig, load_config
from .runtime import MarkupEnvironment, RuntimeBridge

ROOT_INI = "htmlsnap_root"


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addini(ROOT_INI, "Project root holding the htmlsnap configuration.", default="")


@pytest.fixture(scope="session")
def htmlsnap_config(pytestconfig: pytest.Config) -> SnapshotConfig:
    """Return the htmlsnap configuration of the project under test."""

    configured = str(pytestconfig.getini(ROOT_INI) or "")
    root = Path(configured) if configured else pytestconfig.rootpath
    if not root.is_absolute():
        root = pytestconfig.rootpath / root
    return load_config(root)


@pytest.fixture
def htmlsnap_bridge(htmlsnap_config: SnapshotConfig) -> Iterator[RuntimeBridge]:
    """Yield a bridge over the last build; restores intercepted clients after the test."""

    bridge = RuntimeBridge.from_config(htmlsnap_config)
    try:
        yield bridge
    finally:
        bridge.uninstall_all()


@pytest.fixture
def htmlsnap_environment() -> Iterator[MarkupEnvironment]:
    """Yield an empty markup environment that is cleared after the test."""

    environment = MarkupEnvironment()
    try:
        yield environment
    finally:
        RuntimeBridge.cleanup(environment)


@pytest.fixture
def htmlsnap_intercept(htmlsnap_bridge: RuntimeBridge) -> Callable[[object], None]:
    """Return a function routing a client's ``send`` to stored snapshots."""

    return htmlsnap_bridge.install_interceptor
