# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Test-time facade: resolve paths to stored markup, intercept requests, mount.

Nothing here performs network I/O. Interception is explicit dependency
injection: a test passes the client it owns to
:meth:`RuntimeBridge.install_interceptor` and must undo it with
:meth:`RuntimeBridge.uninstall_interceptor` (or use
:meth:`RuntimeBridge.intercepting`).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from .config import SnapshotConfig
from .keys import ArtifactKey
from .manifest import BuildManifest
from .matcher import Matcher
from .patterns import ResponseKind
from .store import SnapshotStore

LOGGER = logging.getLogger(__name__)

SEND_ATTRIBUTE = "send"


@dataclass(frozen=True, slots=True)
class OutgoingRequest:
    """Request issued by client code under test."""

    path: str
    kind: ResponseKind = ResponseKind.DOCUMENT
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SnapshotResponse:
    """Response served from a stored artifact instead of the network."""

    body: bytes
    content_type: str
    key: ArtifactKey
    status: int = 200

    @property
    def text(self) -> str:
        """Return the body decoded as UTF-8."""

        return self.body.decode("utf-8")


@runtime_checkable
class MountTarget(Protocol):
    """DOM-like environment able to hold mounted markup."""

    def mount(self, markup: str) -> None:
        """Replace the environment content with ``markup``."""

    def clear(self) -> None:
        """Remove any mounted content."""


class MarkupEnvironment:
    """Minimal in-memory :class:`MountTarget` with CSS selector queries."""

    def __init__(self) -> None:
        self._markup = ""

    @property
    def mounted(self) -> bool:
        """Return whether any markup is currently mounted."""

        return bool(self._markup)

    def mount(self, markup: str) -> None:
        """Replace the mounted markup.

        Args:
            markup: HTML fragment or document to hold until :meth:`clear`.
        """

        self._markup = markup

    def clear(self) -> None:
        """Drop the mounted markup so :attr:`mounted` is false again."""

        self._markup = ""

    def read(self) -> str:
        """Return the mounted markup."""

        return self._markup

    def select(self, selector: str) -> list[Tag]:
        """Return every element matching the CSS ``selector``."""

        return list(BeautifulSoup(self._markup, "html.parser").select(selector))

    def select_one(self, selector: str) -> Tag | None:
        """Return the first element matching the CSS ``selector``."""

        return BeautifulSoup(self._markup, "html.parser").select_one(selector)


def request_path(target: str) -> str:
    """Return the path component of ``target``.

    Args:
        target: Path or absolute URL, optionally with a query or fragment.

    Returns:
        str: Path used for matching (``"/"`` for a bare origin). Input
        without a scheme is a path even when it starts with ``//``.
    """

    parts = urlsplit(target)
    if not (parts.scheme and parts.netloc):
        return target.partition("#")[0].partition("?")[0]
    return parts.path or "/"


def kind_from_headers(headers: Mapping[str, str]) -> ResponseKind:
    """Return the response kind implied by an ``Accept`` header."""

    for name, value in headers.items():
        if name.lower() == "accept" and ResponseKind.STREAM_UPDATE.content_type in value:
            return ResponseKind.STREAM_UPDATE
    return ResponseKind.DOCUMENT


@dataclass(frozen=True, slots=True)
class _InstalledInterceptor:
    client: object
    original: Callable[..., object]
    owned_attribute: bool


@dataclass(frozen=True, slots=True)
class _Interceptor:
    """Callable installed as ``client.send`` while interception is active."""

    bridge: RuntimeBridge

    def __call__(
        self,
        request: OutgoingRequest | str,
        kind: ResponseKind | str | None = None,
    ) -> SnapshotResponse:
        if isinstance(request, OutgoingRequest):
            path = request.path
            requested = request.kind if kind is None else ResponseKind.coerce(kind)
            if kind is None and requested is ResponseKind.DOCUMENT:
                requested = kind_from_headers(request.headers)
        else:
            path = request
            requested = ResponseKind.DOCUMENT if kind is None else ResponseKind.coerce(kind)
        return self.bridge.respond(path, requested)


class RuntimeBridge:
    """Resolve logical paths to stored artifacts for a test process."""

    def __init__(self, matcher: Matcher, store: SnapshotStore) -> None:
        """Initialise the bridge.

        Args:
            matcher: Matcher over the built patterns, in declaration order.
            store: Store holding the built artifacts.
        """

        self.matcher = matcher
        self.store = store
        self._installed: dict[int, _InstalledInterceptor] = {}

    @classmethod
    def from_config(cls, config: SnapshotConfig) -> RuntimeBridge:
        """Build a bridge from the manifest written by the last build."""

        store = SnapshotStore(config.snapshot_path)
        manifest = BuildManifest.load(BuildManifest.path_in(store.root))
        return cls(Matcher.from_manifest(manifest), store)

    def load_for_path(self, path: str, kind: ResponseKind | str = ResponseKind.DOCUMENT) -> bytes:
        """Return the stored bytes for ``path`` and ``kind``.

        Args:
            path: Concrete request path or absolute URL.
            kind: Requested response kind.

        Returns:
            bytes: Stored artifact bytes.

        Raises:
            NoMatchError: If no built pattern matches ``path``.
            ArtifactNotFoundError: If the matching artifact is missing.
        """

        key = self.matcher.resolve(request_path(path), kind)
        return self.store.read(key)

    resolve_path = load_for_path

    def respond(self, path: str, kind: ResponseKind | str = ResponseKind.DOCUMENT) -> SnapshotResponse:
        """Return a :class:`SnapshotResponse` serving the artifact for ``path``."""

        requested = ResponseKind.coerce(kind)
        key = self.matcher.resolve(request_path(path), requested)
        LOGGER.debug("intercepted %s (%s) -> %s", path, requested.value, key)
        return SnapshotResponse(body=self.store.read(key), content_type=requested.content_type, key=key)

    def install_interceptor(self, client: object) -> None:
        """Route ``client.send`` to stored artifacts; idempotent.

        Args:
            client: Object exposing a ``send`` callable.

        Raises:
            TypeError: If ``client`` has no callable ``send`` attribute.
        """

        if id(client) in self._installed:
            return
        original = getattr(client, SEND_ATTRIBUTE, None)
        if not callable(original):
            raise TypeError(f"{type(client).__name__} has no callable {SEND_ATTRIBUTE!r}")
        owned = SEND_ATTRIBUTE in getattr(client, "__dict__", {})
        setattr(client, SEND_ATTRIBUTE, _Interceptor(self))
        self._installed[id(client)] = _InstalledInterceptor(client=client, original=original, owned_attribute=owned)

    def uninstall_interceptor(self, client: object) -> None:
        """Restore the original ``client.send``; idempotent."""

        installed = self._installed.pop(id(client), None)
        if installed is None:
            return
        if installed.owned_attribute:
            setattr(client, SEND_ATTRIBUTE, installed.original)
        else:
            delattr(client, SEND_ATTRIBUTE)

    def is_intercepting(self, client: object) -> bool:
        """Return whether an interceptor is installed on ``client``."""

        return id(client) in self._installed

    @contextmanager
    def intercepting(self, client: object) -> Iterator[object]:
        """Intercept ``client`` for the duration of the block."""

        self.install_interceptor(client)
        try:
            yield client
        finally:
            self.uninstall_interceptor(client)

    def uninstall_all(self) -> None:
        """Restore every client this bridge intercepted."""

        for installed in list(self._installed.values()):
            self.uninstall_interceptor(installed.client)

    @staticmethod
    def mount(data: bytes, environment: MountTarget) -> None:
        """Mount ``data`` into ``environment``, replacing its content."""

        environment.mount(data.decode("utf-8"))

    @staticmethod
    def cleanup(environment: MountTarget) -> None:
        """Remove mounted content from ``environment``."""

        environment.clear()

    @contextmanager
    def mounted(
        self,
        path: str,
        environment: MountTarget,
        kind: ResponseKind | str = ResponseKind.DOCUMENT,
    ) -> Iterator[MountTarget]:
        """Mount the artifact for ``path`` and always clean up afterwards.

        Cleanup also runs when resolving or mounting fails, so a failed
        lookup never leaves markup from an earlier test behind.
        """

        try:
            self.mount(self.load_for_path(path, kind), environment)
            yield environment
        finally:
            self.cleanup(environment)


__all__ = [
    "MarkupEnvironment",
    "MountTarget",
    "OutgoingRequest",
    "RuntimeBridge",
    "SnapshotResponse",
    "kind_from_headers",
    "request_path",
]
