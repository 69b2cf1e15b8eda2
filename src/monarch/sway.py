"""Sway IPC communication via binary i3-ipc protocol."""

from __future__ import annotations

import json
import os
import socket
import struct

from .actions import (
    Action,
    SetPosition,
    SetScale,
    SetTransform,
    SwitchMode,
    ToggleEnabled,
)
from .formats import format_scale
from .models import Monitor

# i3-ipc protocol constants
_MAGIC = b"i3-ipc"
_HEADER_SIZE = 14  # 6 (magic) + 4 (payload_len) + 4 (type)
_HEADER_FMT = f"={len(_MAGIC)}sII"

# Message types
IPC_COMMAND = 0
IPC_GET_OUTPUTS = 3


def _recv_exactly(sock: socket.socket, n: int) -> bytes:
    """Read exactly n bytes from a socket."""
    buf = bytearray()
    while len(buf) < n:
        chunk = sock.recv(n - len(buf))
        if not chunk:
            raise ConnectionError("Socket closed while reading")
        buf.extend(chunk)
    return bytes(buf)


def output_command(action: Action, monitor: Monitor) -> str:
    """Translate an action into a sway ``output`` command."""
    name = action.name
    if isinstance(action, ToggleEnabled):
        if monitor.enabled:
            return f"output {name} disable"
        cmd = f"output {name} enable"
        if action.position is not None:
            cmd += f" pos {action.position[0]} {action.position[1]}"
        return cmd
    if isinstance(action, SwitchMode):
        return f"output {name} mode {action.width}x{action.height}@{action.refresh:g}Hz"
    if isinstance(action, SetScale):
        return f"output {name} scale {format_scale(action.scale)}"
    if isinstance(action, SetTransform):
        return f"output {name} transform {action.transform.wl_name}"
    if isinstance(action, SetPosition):
        return f"output {name} pos {action.x} {action.y}"
    raise RuntimeError(f"Unsupported action {action!r}")


class SwayIPC:
    """Communicate with Sway via the i3-ipc binary protocol."""

    def __init__(self, socket_path: str | None = None) -> None:
        self._socket_path = socket_path or os.environ.get("SWAYSOCK", "")

    def _send(self, msg_type: int, payload: str = "") -> dict | list:
        """Send a message and return the parsed JSON response."""
        payload_bytes = payload.encode()
        header = struct.pack(_HEADER_FMT, _MAGIC, len(payload_bytes), msg_type)

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self._socket_path)
            sock.sendall(header + payload_bytes)

            # Read response header
            resp_header = _recv_exactly(sock, _HEADER_SIZE)
            _, resp_len, _ = struct.unpack(_HEADER_FMT, resp_header)

            # Read response payload
            resp_payload = _recv_exactly(sock, resp_len)
            return json.loads(resp_payload.decode())
        finally:
            sock.close()

    def get_monitors(self) -> list[Monitor]:
        """Query all connected outputs via GET_OUTPUTS."""
        return [Monitor.from_sway_output(o) for o in self._send(IPC_GET_OUTPUTS)]

    def command(self, cmd: str) -> None:
        """Run a sway command, raising on the first reported failure."""
        for result in self._send(IPC_COMMAND, cmd):
            if not result.get("success", False):
                raise RuntimeError(result.get("error") or f"{cmd} failed")

    def execute(self, action: Action, monitors: list[Monitor]) -> None:
        m = next((mon for mon in monitors if mon.name == action.name), None)
        if m is None:
            raise RuntimeError(f"Unknown monitor {action.name}")
        self.command(output_command(action, m))
