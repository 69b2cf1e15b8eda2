"""Compositor identity, detection and reload."""

from __future__ import annotations

import logging
import os
import subprocess
from enum import Enum
from pathlib import Path
from typing import Mapping

log = logging.getLogger(__name__)


class Compositor(Enum):
    HYPRLAND = "hyprland"
    SWAY = "sway"
    RIVER = "river"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return {
            Compositor.HYPRLAND: "Hyprland",
            Compositor.SWAY: "Sway",
            Compositor.RIVER: "River",
            Compositor.UNKNOWN: "Unknown",
        }[self]


def detect(environ: Mapping[str, str] | None = None) -> Compositor:
    """Guess the running compositor from the session environment.

    Instance sockets win over ``XDG_CURRENT_DESKTOP``.  Only the entry point
    calls this; the engine receives the result through its settings.
    """
    env = os.environ if environ is None else environ
    if env.get("HYPRLAND_INSTANCE_SIGNATURE"):
        return Compositor.HYPRLAND
    if env.get("SWAYSOCK"):
        return Compositor.SWAY

    for entry in env.get("XDG_CURRENT_DESKTOP", "").lower().split(":"):
        entry = entry.strip()
        if entry == "hyprland":
            return Compositor.HYPRLAND
        if entry == "sway":
            return Compositor.SWAY
        if entry == "river":
            return Compositor.RIVER

    return Compositor.UNKNOWN


def _config_base() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def compositor_config_dir(compositor: Compositor) -> Path | None:
    """Return the compositor's own config directory."""
    dirs = {
        Compositor.HYPRLAND: "hypr",
        Compositor.SWAY: "sway",
        Compositor.RIVER: "river",
    }
    name = dirs.get(compositor)
    return _config_base() / name if name else None


def main_config_path(compositor: Compositor) -> Path | None:
    """Return the compositor's main config file, if it exists."""
    names = {
        Compositor.HYPRLAND: "hyprland.conf",
        Compositor.SWAY: "config",
    }
    base = compositor_config_dir(compositor)
    if base is None or compositor not in names:
        return None
    path = base / names[compositor]
    return path if path.exists() else None


def default_monitor_config_path(compositor: Compositor) -> Path | None:
    """Where the generated monitor config goes unless the user says otherwise."""
    base = compositor_config_dir(compositor)
    if base is None:
        return None
    return base / "monitors.conf"


def reload(compositor: Compositor) -> bool:
    """Ask the compositor to re-read its config.  Best-effort.

    River reads the generated script only at startup, so there is nothing to
    trigger for it.
    """
    commands = {
        Compositor.HYPRLAND: ["hyprctl", "reload"],
        Compositor.SWAY: ["swaymsg", "reload"],
    }
    cmd = commands.get(compositor)
    if cmd is None:
        return False
    try:
        subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        log.warning("Failed to reload %s: %s", compositor.label, e)
        return False
    log.info("Reloaded %s configuration", compositor.label)
    return True
