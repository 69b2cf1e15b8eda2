"""Hyprland IPC communication via Unix sockets."""

from __future__ import annotations

import json
import os
import socket
from pathlib import Path

from .actions import (
    Action,
    SetPosition,
    SetScale,
    SetTransform,
    SwitchMode,
    ToggleEnabled,
)
from .formats import format_scale
from .models import Monitor, Transform


def hyprland_runtime_dir() -> Path:
    """Return the Hyprland runtime directory for IPC sockets."""
    his = os.environ.get("HYPRLAND_INSTANCE_SIGNATURE", "")
    xdg = os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    return Path(xdg) / "hypr" / his


def monitor_rule(
    m: Monitor,
    *,
    mode: tuple[int, int, float] | None = None,
    position: tuple[int, int] | None = None,
    scale: float | None = None,
    transform: Transform | None = None,
) -> str:
    """Build a ``keyword monitor`` value, overriding some of *m*'s fields."""
    if mode is None:
        current = m.current_mode
        mode = (current.width, current.height, current.refresh) if current else (0, 0, 60.0)
    w, h, refresh = mode
    x, y = position if position is not None else (m.x, m.y)
    s = scale if scale is not None else m.scale
    t = transform if transform is not None else m.transform
    rule = f"{m.name},{w}x{h}@{refresh:g},{x}x{y},{format_scale(s)}"
    if t != Transform.NORMAL:
        rule += f",transform,{t.value}"
    return rule


class HyprlandIPC:
    """Communicate with Hyprland via its Unix socket IPC."""

    def __init__(self, runtime_dir: Path | None = None) -> None:
        self._runtime = runtime_dir or hyprland_runtime_dir()

    @property
    def command_socket(self) -> Path:
        return self._runtime / ".socket.sock"

    def _send(self, payload: bytes) -> bytes:
        """Send a raw command to the Hyprland command socket and return the response."""
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(str(self.command_socket))
            sock.sendall(payload)
            chunks: list[bytes] = []
            while True:
                chunk = sock.recv(8192)
                if not chunk:
                    break
                chunks.append(chunk)
            return b"".join(chunks)
        finally:
            sock.close()

    def command(self, cmd: str) -> str:
        """Send a command and return the text response."""
        return self._send(cmd.encode()).decode(errors="replace")

    def command_json(self, cmd: str) -> list | dict:
        """Send a -j command and return parsed JSON."""
        raw = self._send(f"j/{cmd}".encode()).decode(errors="replace")
        return json.loads(raw)

    def keyword(self, key: str, value: str) -> None:
        """Send a keyword command (runtime config change)."""
        response = self.command(f"keyword {key} {value}").strip()
        if response != "ok":
            raise RuntimeError(response or f"keyword {key} {value} failed")

    def get_monitors(self) -> list[Monitor]:
        """Query all connected monitors (including disabled)."""
        data = self.command_json("monitors all")
        return [Monitor.from_hyprctl(m) for m in data]

    def execute(self, action: Action, monitors: list[Monitor]) -> None:
        """Apply *action* as a live ``keyword monitor`` change."""
        m = next((mon for mon in monitors if mon.name == action.name), None)
        if m is None:
            raise RuntimeError(f"Unknown monitor {action.name}")

        if isinstance(action, ToggleEnabled):
            if m.enabled:
                rule = f"{m.name},disable"
            else:
                rule = monitor_rule(m, position=action.position)
        elif isinstance(action, SwitchMode):
            rule = monitor_rule(m, mode=(action.width, action.height, action.refresh))
        elif isinstance(action, SetScale):
            rule = monitor_rule(m, scale=action.scale)
        elif isinstance(action, SetTransform):
            rule = monitor_rule(m, transform=action.transform)
        elif isinstance(action, SetPosition):
            rule = monitor_rule(m, position=(action.x, action.y))
        else:
            raise RuntimeError(f"Unsupported action {action!r}")
        self.keyword("monitor", rule)
