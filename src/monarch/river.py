"""River output management through the wlr-randr command line tool."""

from __future__ import annotations

import json
import subprocess

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


def randr_args(action: Action, monitor: Monitor) -> list[str]:
    """Translate an action into ``wlr-randr`` arguments."""
    args = ["--output", action.name]
    if isinstance(action, ToggleEnabled):
        if monitor.enabled:
            return args + ["--off"]
        args.append("--on")
        if action.position is not None:
            args += ["--pos", f"{action.position[0]},{action.position[1]}"]
        return args
    if isinstance(action, SwitchMode):
        return args + ["--mode", f"{action.width}x{action.height}@{action.refresh:g}Hz"]
    if isinstance(action, SetScale):
        return args + ["--scale", format_scale(action.scale)]
    if isinstance(action, SetTransform):
        return args + ["--transform", action.transform.wl_name]
    if isinstance(action, SetPosition):
        return args + ["--pos", f"{action.x},{action.y}"]
    raise RuntimeError(f"Unsupported action {action!r}")


class RiverRandr:
    """Query and configure outputs with ``wlr-randr``."""

    def __init__(self, executable: str = "wlr-randr") -> None:
        self._exe = executable

    def _run(self, args: list[str]) -> str:
        try:
            result = subprocess.run(
                [self._exe, *args], capture_output=True, text=True, check=True,
            )
        except subprocess.CalledProcessError as e:
            raise RuntimeError(e.stderr.strip() or f"{self._exe} exited with {e.returncode}") from e
        return result.stdout

    def get_monitors(self) -> list[Monitor]:
        return [Monitor.from_wlr_randr(o) for o in json.loads(self._run(["--json"]))]

    def execute(self, action: Action, monitors: list[Monitor]) -> None:
        m = next((mon for mon in monitors if mon.name == action.name), None)
        if m is None:
            raise RuntimeError(f"Unknown monitor {action.name}")
        self._run(randr_args(action, m))
