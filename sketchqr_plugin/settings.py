from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Mapping

from sketchqr_core.request import DEFAULT_OPTIONS, merge_options


LOGGER = logging.getLogger(__name__)

SETTINGS_KEY = "studio.workingon.qrcode.settings"
DEFAULT_SETTINGS: dict[str, Any] = dict(DEFAULT_OPTIONS)


class SettingsStore:
    """Key-value JSON store holding the last-used QR options under SETTINGS_KEY."""

    def __init__(self, path: str | Path, key: str = SETTINGS_KEY) -> None:
        self.path = Path(path)
        self.key = key
        self._lock = threading.Lock()

    def load(self) -> dict[str, Any]:
        with self._lock:
            saved = self._read_all().get(self.key)
        LOGGER.debug("loading settings: %s", saved)
        if not isinstance(saved, dict):
            return dict(DEFAULT_SETTINGS)
        return merge_options(saved, defaults=DEFAULT_SETTINGS)

    def save(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        record = merge_options(settings, defaults=DEFAULT_SETTINGS)
        LOGGER.debug("saving settings: %s", record)
        with self._lock:
            data = self._read_all()
            data[self.key] = record
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".settings-", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        return record

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("settings file unreadable, using defaults: %s (%s)", self.path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("settings file is not a JSON object, using defaults: %s", self.path)
            return {}
        return data
