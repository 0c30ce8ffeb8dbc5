from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
import tomllib
from typing import Any

from sketchqr_core.encoder import WORKING_CANVAS_SIZE
from sketchqr_core.normalizer import DEFAULT_SETTLE_TIMEOUT_S


CONFIG_FILENAME = "sketchqr.toml"
DEFAULT_SETTINGS_PATH = Path("~/.sketchqr/settings.json")


@dataclass(frozen=True)
class PluginConfig:
    identifier: str = "studio.workingon.plugin.webview"
    panel_width: int = 400
    panel_height: int = 500
    dev_mode: bool = False
    dev_url: str = "http://localhost:5173"
    ui_index: str = "Contents/Resources/ui/dist/index.html"
    working_size: int = WORKING_CANVAS_SIZE
    settle_timeout_s: float = DEFAULT_SETTLE_TIMEOUT_S
    settings_path: Path = DEFAULT_SETTINGS_PATH

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("config field identifier must be non-empty")
        for name in ("panel_width", "panel_height", "working_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"config field {name} must be a positive integer")
        if self.settle_timeout_s <= 0:
            raise ValueError("config field settle_timeout_s must be > 0")

    def panel_url(self, plugin_root: str | Path | None = None) -> str:
        if self.dev_mode:
            return self.dev_url
        if plugin_root is None:
            raise ValueError("plugin_root is required outside dev mode")
        return (Path(plugin_root) / self.ui_index).resolve().as_uri()

    def resolved_settings_path(self) -> Path:
        return Path(self.settings_path).expanduser()

    def window_options(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "width": self.panel_width,
            "height": self.panel_height,
            "show": False,
            "alwaysOnTop": True,
            "titleBarStyle": "hiddenInset",
            "backgroundColor": "#FFFFFF",
            "hasShadow": True,
            "acceptsFirstMouse": True,
            "resizable": False,
            "frame": True,
            "minimizable": False,
            "maximizable": False,
            "webPreferences": {"devTools": self.dev_mode},
        }


def load_config(path: str | Path | None = None) -> PluginConfig:
    """Load `sketchqr.toml`; a missing file yields the defaults."""
    config_path = Path(path) if path is not None else Path.cwd() / CONFIG_FILENAME
    if not config_path.exists():
        return PluginConfig()
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    section = raw.get("plugin", raw)
    if not isinstance(section, dict):
        raise ValueError("config section [plugin] must be a table")
    known = {f.name for f in fields(PluginConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"config has unknown fields: {', '.join(unknown)}")
    values: dict[str, Any] = dict(section)
    if "settings_path" in values:
        values["settings_path"] = Path(str(values["settings_path"]))
    if "settle_timeout_s" in values:
        values["settle_timeout_s"] = float(values["settle_timeout_s"])
    return PluginConfig(**values)
