from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterator
import xml.etree.ElementTree as ET

from .errors import GenerationCancelledError


LOGGER = logging.getLogger(__name__)


class OffscreenContainer:
    """Detached render surface an encoder mounts its SVG tree into.

    The encoder may populate it from another thread; readers block on
    `wait_populated` until the tree is mounted, the encoder fails, or the
    settle timeout runs out.
    """

    def __init__(self, container_id: int) -> None:
        self.container_id = container_id
        self._lock = threading.Lock()
        self._populated = threading.Event()
        self._root: ET.Element | None = None
        self._error: BaseException | None = None
        self._attached = True

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def error(self) -> BaseException | None:
        return self._error

    def mount(self, root: ET.Element) -> None:
        with self._lock:
            if not self._attached:
                LOGGER.debug("dropping late mount into detached container id=%d", self.container_id)
                return
            self._root = root
        self._populated.set()

    def mount_markup(self, markup: str) -> None:
        try:
            root = ET.fromstring(markup)
        except ET.ParseError as exc:
            self.fail(exc)
            return
        self.mount(root)

    def fail(self, error: BaseException) -> None:
        with self._lock:
            if not self._attached:
                return
            self._error = error
        self._populated.set()

    def wait_populated(
        self,
        timeout: float,
        *,
        cancel_event: threading.Event | None = None,
        poll_interval_s: float = 0.01,
    ) -> bool:
        if timeout < 0:
            raise ValueError("timeout must be >= 0")
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        deadline = time.monotonic() + timeout
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise GenerationCancelledError("generation cancelled while waiting for encoder output")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return self._populated.is_set()
            if self._populated.wait(min(poll_interval_s, remaining)):
                return True

    def query_svg(self) -> ET.Element | None:
        """Return the mounted <svg> root, searching one level down for wrapped output."""
        with self._lock:
            root = self._root
        if root is None:
            return None
        if _local_name(root.tag) == "svg":
            return root
        for elem in root.iter():
            if _local_name(elem.tag) == "svg":
                return elem
        return None

    def _detach(self) -> None:
        with self._lock:
            self._attached = False
            self._root = None


class OffscreenHost:
    """Owns the set of attached off-screen containers; each one is isolated per request."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._attached: dict[int, OffscreenContainer] = {}
        self._next_id = 1

    @property
    def attached_count(self) -> int:
        with self._lock:
            return len(self._attached)

    @contextmanager
    def container(self) -> Iterator[OffscreenContainer]:
        with self._lock:
            container = OffscreenContainer(self._next_id)
            self._next_id += 1
            self._attached[container.container_id] = container
        LOGGER.debug("attached offscreen container id=%d", container.container_id)
        try:
            yield container
        finally:
            container._detach()
            with self._lock:
                self._attached.pop(container.container_id, None)
            LOGGER.debug("detached offscreen container id=%d", container.container_id)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag
