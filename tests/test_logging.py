# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the user-facing status helpers."""

from __future__ import annotations

import pytest

from htmlsnap import logging as snaplog
from htmlsnap.cli import CLILogger


@pytest.mark.parametrize(
    ("helper", "glyph"),
    [(snaplog.info, "ℹ️"), (snaplog.ok, "✅"), (snaplog.warn, "⚠️"), (snaplog.fail, "❌")],
)
def test_status_helpers_prefix_glyph_only_with_emoji(helper, glyph: str, capsys: pytest.CaptureFixture[str]) -> None:
    helper("built 3 snapshots", use_emoji=True, use_color=False)
    helper("built 3 snapshots", use_emoji=False, use_color=False)

    decorated, plain = capsys.readouterr().out.splitlines()
    assert decorated.startswith(glyph)
    assert decorated.endswith("built 3 snapshots")
    assert plain == "built 3 snapshots"


def test_cli_logger_honours_presentation_flags(capsys: pytest.CaptureFixture[str]) -> None:
    logger = CLILogger(use_emoji=False, use_color=False)

    logger.info("loading generators")
    logger.ok("build finished")
    logger.warn("1 snapshot kept")
    logger.fail("renderer missing")

    assert capsys.readouterr().out.splitlines() == [
        "loading generators",
        "build finished",
        "1 snapshot kept",
        "renderer missing",
    ]


def test_section_prints_plain_heading_without_colour(capsys: pytest.CaptureFixture[str]) -> None:
    snaplog.section("Snapshot build", use_color=False)

    assert "--- Snapshot build ---" in capsys.readouterr().out
