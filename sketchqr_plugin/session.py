from __future__ import annotations

import logging
from pathlib import Path
import threading
from typing import Any, Callable, Mapping, Protocol

from sketchqr_core.errors import GenerationError
from sketchqr_core.normalizer import QRVectorNormalizer
from sketchqr_core.request import QRRenderRequest, merge_options

from .config import PluginConfig
from .document import HostDocument
from .settings import SettingsStore


LOGGER = logging.getLogger(__name__)

QR_GROUP_NAME = "QR Code"


class PanelWindow(Protocol):
    def load_url(self, url: str) -> None:
        ...

    def show(self) -> None:
        ...

    def close(self) -> None:
        ...

    def is_destroyed(self) -> bool:
        ...

    def on(self, event: str, callback: Callable[[], None]) -> None:
        ...

    def once(self, event: str, callback: Callable[[], None]) -> None:
        ...


class PanelHost(Protocol):
    def create_window(self, options: dict[str, Any]) -> PanelWindow:
        ...

    def selected_document(self) -> HostDocument | None:
        ...

    def message(self, text: str) -> None:
        ...


class PanelSession:
    """Owns the plugin's single panel window and serves its messages.

    Opening while a window is live replaces it; closing cancels any
    generation still waiting on the encoder.
    """

    def __init__(
        self,
        host: PanelHost,
        *,
        config: PluginConfig | None = None,
        settings: SettingsStore | None = None,
        normalizer: QRVectorNormalizer | None = None,
        plugin_root: str | Path | None = None,
    ) -> None:
        self._host = host
        self._config = config or PluginConfig()
        self._settings = settings or SettingsStore(self._config.resolved_settings_path())
        self._normalizer = normalizer or QRVectorNormalizer(
            working_size=self._config.working_size,
            settle_timeout_s=self._config.settle_timeout_s,
        )
        self._plugin_root = plugin_root
        self._lock = threading.Lock()
        self._window: PanelWindow | None = None
        self._document: HostDocument | None = None
        self._cancel_event = threading.Event()

    @property
    def window(self) -> PanelWindow | None:
        return self._window

    @property
    def is_open(self) -> bool:
        window = self._window
        return window is not None and not window.is_destroyed()

    def open(self) -> PanelWindow | None:
        document = self._host.selected_document()
        if document is None:
            self._host.message("No document found. Please open a document.")
            return None
        self.close()
        window = self._host.create_window(self._config.window_options())
        url = self._config.panel_url(self._plugin_root)
        window.load_url(url)
        LOGGER.info("panel loading from %s (dev_mode=%s)", url, self._config.dev_mode)
        window.once("ready-to-show", window.show)
        window.on("closed", lambda: self._on_closed(window))
        with self._lock:
            self._window = window
            self._document = document
            self._cancel_event = threading.Event()
        return window

    def close(self) -> None:
        with self._lock:
            window = self._window
            self._window = None
            self._document = None
            self._cancel_event.set()
        if window is not None and not window.is_destroyed():
            window.close()

    def handle_message(self, name: str, payload: Mapping[str, Any] | None = None) -> Any:
        if name == "get-settings":
            return self._settings.load()
        if name == "generate":
            return self._generate(payload or {})
        raise ValueError(f"unknown panel message: {name}")

    def _generate(self, payload: Mapping[str, Any]) -> str:
        with self._lock:
            document = self._document
            cancel_event = self._cancel_event
        if document is None:
            raise RuntimeError("panel session is not open")
        options = merge_options(payload, defaults=self._settings.load())
        try:
            request = QRRenderRequest.from_options(options)
            svg = self._normalizer.generate(request, cancel_event=cancel_event)
        except GenerationError as exc:
            LOGGER.error("qr generation failed: %s", exc)
            self._host.message(f"QR generation failed: {exc}")
            raise
        try:
            document.insert_svg(svg, name=QR_GROUP_NAME)
        except ValueError as exc:
            LOGGER.error("qr insertion failed: %s", exc)
            self._host.message(f"QR insertion failed: {exc}")
            raise
        self._settings.save(request.as_options())
        return svg

    def _on_closed(self, window: PanelWindow) -> None:
        with self._lock:
            if self._window is not window:
                return
            self._window = None
            self._document = None
            self._cancel_event.set()
        LOGGER.debug("panel window closed")
