from .config import CONFIG_FILENAME, PluginConfig, load_config
from .document import HostDocument, InMemoryDocument, ShapeGroup
from .session import PanelHost, PanelSession, PanelWindow
from .settings import DEFAULT_SETTINGS, SETTINGS_KEY, SettingsStore

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_SETTINGS",
    "SETTINGS_KEY",
    "HostDocument",
    "InMemoryDocument",
    "PanelHost",
    "PanelSession",
    "PanelWindow",
    "PluginConfig",
    "SettingsStore",
    "ShapeGroup",
    "load_config",
]
