from __future__ import annotations

from pathlib import Path
import tempfile
import threading
import time
import unittest

from _fakes import GOLDEN_MARKUP, StubEncoder, normalize_ws

from sketchqr_core.errors import GenerationCancelledError, InvalidRequestError
from sketchqr_core.normalizer import QRVectorNormalizer
from sketchqr_plugin.config import PluginConfig
from sketchqr_plugin.document import InMemoryDocument
from sketchqr_plugin.session import PanelSession
from sketchqr_plugin.settings import DEFAULT_SETTINGS, SettingsStore


class _FakeWindow:
    def __init__(self, options: dict) -> None:
        self.options = options
        self.loaded: list[str] = []
        self.shown = False
        self.destroyed = False
        self._handlers: dict[str, list] = {}

    def load_url(self, url: str) -> None:
        self.loaded.append(url)

    def show(self) -> None:
        self.shown = True

    def close(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        self.emit("closed")

    def is_destroyed(self) -> bool:
        return self.destroyed

    def on(self, event: str, callback) -> None:
        self._handlers.setdefault(event, []).append(callback)

    def once(self, event: str, callback) -> None:
        self.on(event, callback)

    def emit(self, event: str) -> None:
        for callback in self._handlers.get(event, []):
            callback()


class _FakeHost:
    def __init__(self, document: InMemoryDocument | None) -> None:
        self.document = document
        self.windows: list[_FakeWindow] = []
        self.messages: list[str] = []

    def create_window(self, options: dict) -> _FakeWindow:
        window = _FakeWindow(options)
        self.windows.append(window)
        return window

    def selected_document(self) -> InMemoryDocument | None:
        return self.document

    def message(self, text: str) -> None:
        self.messages.append(text)


def _reject_insert(svg_markup: str, *, name: str) -> None:
    raise ValueError("fragment has external references: url(#clip)")


class PanelSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = SettingsStore(Path(self._tmp.name) / "settings.json")
        self.document = InMemoryDocument()
        self.host = _FakeHost(self.document)
        self.session = PanelSession(
            self.host,
            config=PluginConfig(dev_mode=True),
            settings=self.settings,
            normalizer=QRVectorNormalizer(StubEncoder()),
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_open_without_document_only_reports(self) -> None:
        host = _FakeHost(None)
        session = PanelSession(host, config=PluginConfig(dev_mode=True), settings=self.settings)
        self.assertIsNone(session.open())
        self.assertEqual(host.windows, [])
        self.assertEqual(len(host.messages), 1)

    def test_open_loads_panel_and_shows_when_ready(self) -> None:
        window = self.session.open()
        self.assertIs(window, self.host.windows[0])
        self.assertEqual(window.loaded, ["http://localhost:5173"])
        self.assertEqual(window.options["identifier"], "studio.workingon.plugin.webview")
        self.assertFalse(window.shown)
        window.emit("ready-to-show")
        self.assertTrue(window.shown)
        self.assertTrue(self.session.is_open)

    def test_second_open_replaces_first_window(self) -> None:
        first = self.session.open()
        second = self.session.open()
        self.assertTrue(first.destroyed)
        self.assertFalse(second.destroyed)
        self.assertIs(self.session.window, second)

    def test_host_closing_window_clears_session(self) -> None:
        window = self.session.open()
        window.close()
        self.assertIsNone(self.session.window)
        self.assertFalse(self.session.is_open)

    def test_close_destroys_window(self) -> None:
        window = self.session.open()
        self.session.close()
        self.assertTrue(window.destroyed)
        self.assertIsNone(self.session.window)

    def test_generate_inserts_fragment_and_persists_options(self) -> None:
        self.session.open()
        svg = self.session.handle_message("generate", {"size": 150, "margin": 10})
        self.assertEqual(normalize_ws(svg), normalize_ws(GOLDEN_MARKUP))
        self.assertEqual(len(self.document.groups), 1)
        self.assertEqual(self.document.groups[0].name, "QR Code")
        self.assertEqual(self.document.groups[0].layer_count, 9)
        self.assertEqual(self.settings.load()["margin"], 10)

    def test_generate_failure_is_reported_and_not_persisted(self) -> None:
        self.session.open()
        with self.assertRaises(InvalidRequestError):
            self.session.handle_message("generate", {"size": 10, "margin": 6})
        self.assertEqual(self.document.groups, [])
        self.assertEqual(len(self.host.messages), 1)
        self.assertEqual(self.settings.load(), DEFAULT_SETTINGS)

    def _generate_in_background(
        self, encoder: StubEncoder, session: PanelSession
    ) -> tuple[threading.Thread, list[BaseException]]:
        errors: list[BaseException] = []

        def run() -> None:
            try:
                session.handle_message("generate", {"size": 150, "margin": 10})
            except BaseException as exc:  # asserted by the caller
                errors.append(exc)

        thread = threading.Thread(target=run)
        thread.start()
        deadline = time.monotonic() + 2.0
        while not encoder.calls and time.monotonic() < deadline:
            time.sleep(0.005)
        self.assertEqual(len(encoder.calls), 1)
        return thread, errors

    def _slow_session(self) -> tuple[PanelSession, StubEncoder, QRVectorNormalizer]:
        encoder = StubEncoder(delay_s=2.0)
        normalizer = QRVectorNormalizer(encoder, settle_timeout_s=5.0)
        session = PanelSession(
            self.host,
            config=PluginConfig(dev_mode=True),
            settings=self.settings,
            normalizer=normalizer,
        )
        return session, encoder, normalizer

    def test_close_during_generation_cancels_it(self) -> None:
        session, encoder, normalizer = self._slow_session()
        session.open()
        thread, errors = self._generate_in_background(encoder, session)
        session.close()
        thread.join(timeout=2.0)
        self.assertFalse(thread.is_alive())
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], GenerationCancelledError)
        self.assertEqual(self.document.groups, [])
        self.assertEqual(normalizer.host.attached_count, 0)
        self.assertEqual(self.settings.load(), DEFAULT_SETTINGS)

    def test_window_closed_by_host_cancels_generation(self) -> None:
        session, encoder, normalizer = self._slow_session()
        window = session.open()
        thread, errors = self._generate_in_background(encoder, session)
        window.close()
        thread.join(timeout=2.0)
        self.assertFalse(thread.is_alive())
        self.assertEqual([type(exc) for exc in errors], [GenerationCancelledError])
        self.assertEqual(self.document.groups, [])
        self.assertEqual(normalizer.host.attached_count, 0)

    def test_insertion_failure_is_reported_to_host(self) -> None:
        self.session.open()
        self.document.insert_svg = _reject_insert  # type: ignore[method-assign]
        with self.assertRaises(ValueError):
            self.session.handle_message("generate", {"size": 150, "margin": 10})
        self.assertEqual(len(self.host.messages), 1)
        self.assertIn("external references", self.host.messages[0])
        self.assertEqual(self.settings.load(), DEFAULT_SETTINGS)

    def test_generate_requires_open_session(self) -> None:
        with self.assertRaises(RuntimeError):
            self.session.handle_message("generate", {})

    def test_get_settings_and_unknown_message(self) -> None:
        self.assertEqual(self.session.handle_message("get-settings"), DEFAULT_SETTINGS)
        with self.assertRaises(ValueError):
            self.session.handle_message("about")


if __name__ == "__main__":
    unittest.main()
