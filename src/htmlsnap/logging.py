# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour and emoji support."""

from __future__ import annotations

import logging
import sys
from typing import Final, Literal

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

PACKAGE_LOGGER: Final[str] = "htmlsnap"
_VERBOSE_FLAG: Final[str] = "_htmlsnap_verbose_configured"

_CONSOLES: dict[tuple[bool, bool, bool], Console] = {}


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def get_console(*, color: bool, emoji: bool) -> Console:
    """Return a cached Rich console configured for ``color`` and ``emoji``.

    Args:
        color: ``True`` when ANSI colour output should be enabled.
        emoji: ``True`` when Rich should render emoji glyphs.

    Returns:
        Console: Console shared by every caller with the same preferences.
    """

    tty = detect_tty()
    key = (color, emoji, tty)
    if key not in _CONSOLES:
        color_system: Literal["auto"] | None = "auto" if color and tty else None
        _CONSOLES[key] = Console(
            color_system=color_system,
            force_terminal=tty,
            no_color=not (color and tty),
            emoji=emoji,
            soft_wrap=True,
            highlight=False,
        )
    return _CONSOLES[key]


_STATUS_DECOR: Final[dict[str, tuple[str, str]]] = {
    "info": ("ℹ️ ", "cyan"),
    "ok": ("✅ ", "green"),
    "warn": ("⚠️ ", "yellow"),
    "fail": ("❌ ", "red"),
}


def emoji(symbol: str, enable: bool) -> str:
    """Return *symbol* when emoji output is enabled, otherwise blank."""

    return symbol if enable else ""


def _status(level: str, msg: str, *, use_emoji: bool, use_color: bool | None) -> None:
    """Print ``msg`` decorated for ``level``.

    Args:
        level: Key of :data:`_STATUS_DECOR` selecting the glyph and style.
        msg: Message body.
        use_emoji: Prefix the line with the level glyph.
        use_color: Colour override; ``None`` colours only on a terminal.
    """

    glyph, style = _STATUS_DECOR[level]
    colourful = detect_tty() if use_color is None else use_color
    line = Text(f"{emoji(glyph, use_emoji)}{msg}")
    if colourful:
        line.stylize(style)
    get_console(color=colourful, emoji=use_emoji).print(line)


def section(title: str, *, use_color: bool) -> None:
    """Print a heading separating blocks of build output."""

    console = get_console(color=use_color, emoji=True)
    if not (use_color and detect_tty()):
        console.print(f"\n--- {title} ---")
        return
    console.print()
    console.print(Rule(title))


def info(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a progress message.

    Args:
        msg: Message body.
        use_emoji: Prefix the line with the info glyph.
        use_color: Colour override; ``None`` colours only on a terminal.
    """

    _status("info", msg, use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a success message in green.

    Args:
        msg: Message body.
        use_emoji: Prefix the line with the success glyph.
        use_color: Colour override; ``None`` colours only on a terminal.
    """

    _status("ok", msg, use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a warning in yellow.

    Args:
        msg: Message body.
        use_emoji: Prefix the line with the warning glyph.
        use_color: Colour override; ``None`` colours only on a terminal.
    """

    _status("warn", msg, use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print an error in red.

    Args:
        msg: Message body.
        use_emoji: Prefix the line with the failure glyph.
        use_color: Colour override; ``None`` colours only on a terminal.
    """

    _status("fail", msg, use_emoji=use_emoji, use_color=use_color)


def configure_verbose_logging() -> None:
    """Stream DEBUG records of the ``htmlsnap`` logger tree to stderr."""

    logger = logging.getLogger(PACKAGE_LOGGER)
    if getattr(logger, _VERBOSE_FLAG, False):
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    setattr(logger, _VERBOSE_FLAG, True)


__all__ = [
    "configure_verbose_logging",
    "detect_tty",
    "emoji",
    "fail",
    "get_console",
    "info",
    "ok",
    "section",
    "warn",
]
