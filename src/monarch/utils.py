"""Utility helpers: XDG paths, file I/O, app settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .compositor import Compositor, default_monitor_config_path
from .models import MovePolicy

log = logging.getLogger(__name__)

APP_NAME = "monarch"
APP_VERSION = "0.3.0"
DEFAULT_WORKSPACE_COUNT = 10
DEFAULT_SCALE_STEP = 0.01


def config_dir() -> Path:
    """Return ~/.config/monarch, creating it if needed."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    d = base / APP_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def expand_path(path: str) -> Path:
    return Path(path).expanduser()


def read_json(path: Path) -> dict | list | None:
    """Read and parse a JSON file, returning None on failure."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None


def write_json(path: Path, data: dict | list) -> None:
    """Write data as formatted JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def read_text(path: Path) -> str | None:
    """Read a text file, returning None if it is missing or unreadable."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def write_text(path: Path, text: str) -> None:
    """Write text to a file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def backup_file(path: Path) -> Path | None:
    """Create a .bak copy of a file. Returns backup path or None."""
    if not path.exists():
        return None
    bak = path.with_suffix(path.suffix + ".bak")
    bak.write_bytes(path.read_bytes())
    return bak


# ── Settings ─────────────────────────────────────────────────────────────

@dataclass
class AppSettings:
    monitor_config_path: str = ""
    workspace_count: int = DEFAULT_WORKSPACE_COUNT
    move_policy: MovePolicy = MovePolicy.VELOCITY
    scale_step: float = DEFAULT_SCALE_STEP
    # Injected at startup, never persisted
    compositor: Compositor = field(default=Compositor.UNKNOWN, compare=False)

    @property
    def monitor_config(self) -> Path | None:
        if not self.monitor_config_path:
            return None
        return expand_path(self.monitor_config_path)

    def to_dict(self) -> dict:
        return {
            "monitor_config_path": self.monitor_config_path,
            "workspace_count": self.workspace_count,
            "move_policy": self.move_policy.value,
            "scale_step": self.scale_step,
        }

    @classmethod
    def from_dict(cls, d: dict, compositor: Compositor = Compositor.UNKNOWN) -> AppSettings:
        settings = cls(compositor=compositor)
        path = d.get("monitor_config_path")
        if isinstance(path, str):
            settings.monitor_config_path = path
        count = d.get("workspace_count")
        if isinstance(count, int) and not isinstance(count, bool) and count > 0:
            settings.workspace_count = count
        try:
            settings.move_policy = MovePolicy(d.get("move_policy", MovePolicy.VELOCITY.value))
        except ValueError:
            log.warning("Unknown move_policy %r, using velocity", d.get("move_policy"))
        step = d.get("scale_step")
        if isinstance(step, (int, float)) and not isinstance(step, bool) and step > 0:
            settings.scale_step = float(step)
        return settings


def settings_path() -> Path:
    """Return the path to the global app settings file."""
    return config_dir() / "settings.json"


def load_app_settings(compositor: Compositor, path: Path | None = None) -> AppSettings:
    """Load settings, writing defaults on first run."""
    path = path or settings_path()
    data = read_json(path)
    if isinstance(data, dict):
        settings = AppSettings.from_dict(data, compositor)
    else:
        settings = AppSettings(compositor=compositor)
    if not settings.monitor_config_path:
        default = default_monitor_config_path(compositor)
        if default is not None:
            settings.monitor_config_path = str(default)
    if data is None and not path.exists():
        try:
            save_app_settings(settings, path)
            log.info("Wrote default settings to %s", path)
        except OSError as e:
            log.warning("Cannot write default settings to %s: %s", path, e)
    return settings


def save_app_settings(settings: AppSettings, path: Path | None = None) -> None:
    """Save global application settings."""
    write_json(path or settings_path(), settings.to_dict())
