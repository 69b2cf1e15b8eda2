"""Data models: Mode, Monitor, WorkspaceAssignment and the editor enums."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar


SCALE_MIN = 0.5
SCALE_MAX = 10.0


# ── Enums ────────────────────────────────────────────────────────────────

class Transform(Enum):
    NORMAL = 0
    ROTATE_90 = 1
    ROTATE_180 = 2
    ROTATE_270 = 3
    FLIPPED = 4
    FLIPPED_90 = 5
    FLIPPED_180 = 6
    FLIPPED_270 = 7

    @property
    def label(self) -> str:
        labels = {
            0: "Normal",
            1: "90°",
            2: "180°",
            3: "270°",
            4: "Flipped",
            5: "Flipped 90°",
            6: "Flipped 180°",
            7: "Flipped 270°",
        }
        return labels[self.value]

    @property
    def is_rotated(self) -> bool:
        """True if width/height are swapped (90° or 270° variants)."""
        return self.value in (1, 3, 5, 7)

    @property
    def wl_name(self) -> str:
        """Name used by sway and wlr-randr (``flipped-90`` etc.)."""
        return _WL_NAMES[self.value]

    @classmethod
    def from_wl_name(cls, name: str) -> Transform:
        return cls(_WL_NAMES_INV.get(name, 0))


_WL_NAMES: dict[int, str] = {
    0: "normal",
    1: "90",
    2: "180",
    3: "270",
    4: "flipped",
    5: "flipped-90",
    6: "flipped-180",
    7: "flipped-270",
}

_WL_NAMES_INV: dict[str, int] = {v: k for k, v in _WL_NAMES.items()}

# Cycling order for the transform panel
TRANSFORMS: list[Transform] = list(Transform)


class Direction(Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"

    @property
    def delta(self) -> tuple[int, int]:
        return {
            Direction.LEFT: (-1, 0),
            Direction.RIGHT: (1, 0),
            Direction.UP: (0, -1),
            Direction.DOWN: (0, 1),
        }[self]

    @property
    def is_horizontal(self) -> bool:
        return self in (Direction.LEFT, Direction.RIGHT)


class Panel(Enum):
    MAP = "Map"
    MODES = "Modes"
    SCALE = "Scale"
    TRANSFORM = "Transform"
    WORKSPACES = "Workspaces"

    def next(self) -> Panel:
        order = list(Panel)
        return order[(order.index(self) + 1) % len(order)]


class MovePolicy(Enum):
    VELOCITY = "velocity"
    ACCELERATE = "accelerate"


# ── Mode ─────────────────────────────────────────────────────────────────

_MODE_RE = re.compile(r"^\s*(\d+)x(\d+)(?:@([\d.]+)\s*(?:Hz)?)?\s*$")


@dataclass
class Mode:
    width: int = 0
    height: int = 0
    refresh: float = 60.0
    is_current: bool = False
    is_preferred: bool = False

    @property
    def label(self) -> str:
        return f"{self.width}x{self.height} @ {self.refresh:g}Hz"

    def matches(self, width: int, height: int, refresh: float) -> bool:
        return (
            self.width == width
            and self.height == height
            and abs(self.refresh - refresh) < 0.01
        )

    @classmethod
    def parse(cls, text: str) -> Mode | None:
        """Parse ``1920x1080@60.00Hz`` (the refresh part is optional)."""
        m = _MODE_RE.match(text)
        if not m:
            return None
        refresh = float(m.group(3)) if m.group(3) else 60.0
        return cls(width=int(m.group(1)), height=int(m.group(2)), refresh=round(refresh, 3))


def _mark_current(modes: list[Mode], width: int, height: int, refresh: float) -> None:
    """Flag the first mode matching the given resolution/refresh as current."""
    for mode in modes:
        mode.is_current = False
    for mode in modes:
        if mode.matches(width, height, refresh):
            mode.is_current = True
            return
    # Refresh reported with different rounding; fall back to resolution only
    for mode in modes:
        if mode.width == width and mode.height == height:
            mode.is_current = True
            return
    modes.append(Mode(width=width, height=height, refresh=refresh, is_current=True))


# ── Monitor ──────────────────────────────────────────────────────────────

@dataclass
class Monitor:
    # Identity
    name: str = ""              # e.g. "DP-1", "HDMI-A-1"
    description: str = ""       # e.g. "LG Electronics LG ULTRAWIDE 0x00038C43"
    make: str = ""
    model: str = ""

    modes: list[Mode] = field(default_factory=list)

    # Position in the shared virtual pixel space
    x: int = 0
    y: int = 0

    scale: float = 1.0
    transform: Transform = Transform.NORMAL
    enabled: bool = True

    def __post_init__(self) -> None:
        self.scale = clamp_scale(self.scale)
        # Hyprland appends "Unknown" for missing serials, the others omit it.
        if self.description.endswith(" Unknown"):
            self.description = self.description[:-8]

    @property
    def current_mode(self) -> Mode | None:
        """The active mode, falling back to the preferred one."""
        for mode in self.modes:
            if mode.is_current:
                return mode
        for mode in self.modes:
            if mode.is_preferred:
                return mode
        return None

    @property
    def resolution(self) -> tuple[int, int]:
        mode = self.current_mode
        if mode is None:
            return 0, 0
        return mode.width, mode.height

    # hyprctl reports the Wayland transform enum directly (0-7)
    _HYPR_TRANSFORM_MAX: ClassVar[int] = 7

    @classmethod
    def from_hyprctl(cls, data: dict) -> Monitor:
        """Create from ``hyprctl monitors all -j`` output."""
        modes = [m for m in (Mode.parse(s) for s in data.get("availableModes", [])) if m]
        width = data.get("width", 0)
        height = data.get("height", 0)
        refresh = round(data.get("refreshRate", 60.0), 3)
        disabled = data.get("disabled", False)
        if width and height:
            _mark_current(modes, width, height, refresh)
        # hyprctl lists the preferred mode first
        if modes:
            modes[0].is_preferred = True

        raw_x = data.get("x", 0)
        raw_y = data.get("y", 0)
        # Disabled monitors report x=-1, y=-1
        if disabled and (raw_x < 0 or raw_y < 0):
            raw_x, raw_y = 0, 0

        transform = data.get("transform", 0)
        if not 0 <= transform <= cls._HYPR_TRANSFORM_MAX:
            transform = 0

        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            make=data.get("make", ""),
            model=data.get("model", ""),
            modes=modes,
            x=raw_x,
            y=raw_y,
            scale=data.get("scale", 1.0),
            transform=Transform(transform),
            enabled=not disabled,
        )

    @classmethod
    def from_sway_output(cls, data: dict) -> Monitor:
        """Create from ``swaymsg -t get_outputs`` JSON output."""
        make = data.get("make", "")
        model = data.get("model", "")
        serial = data.get("serial", "")
        description = f"{make} {model} {serial}".strip()

        # Sway reports refresh in millihertz
        modes = [
            Mode(
                width=m.get("width", 0),
                height=m.get("height", 0),
                refresh=round(m.get("refresh", 0) / 1000.0, 3),
            )
            for m in data.get("modes", [])
        ]
        current = data.get("current_mode") or {}
        if current:
            _mark_current(
                modes,
                current.get("width", 0),
                current.get("height", 0),
                round(current.get("refresh", 60000) / 1000.0, 3),
            )

        rect = data.get("rect", {})
        raw_scale = data.get("scale", 1.0)
        # Scale -1 means output is disabled in Sway
        if raw_scale is None or raw_scale < 0:
            enabled = False
            scale = 1.0
        else:
            enabled = data.get("active", True)
            scale = raw_scale

        return cls(
            name=data.get("name", ""),
            description=description,
            make=make,
            model=model,
            modes=modes,
            x=rect.get("x", 0) if enabled else 0,
            y=rect.get("y", 0) if enabled else 0,
            scale=scale,
            transform=Transform.from_wl_name(data.get("transform", "normal")),
            enabled=enabled,
        )

    @classmethod
    def from_wlr_randr(cls, data: dict) -> Monitor:
        """Create from one entry of ``wlr-randr --json``."""
        modes: list[Mode] = []
        seen_current = False
        for m in data.get("modes", []):
            current = bool(m.get("current")) and not seen_current
            seen_current = seen_current or current
            modes.append(Mode(
                width=m.get("width", 0),
                height=m.get("height", 0),
                refresh=round(m.get("refresh", 60.0), 3),
                is_current=current,
                is_preferred=bool(m.get("preferred")),
            ))

        enabled = data.get("enabled", True)
        position = data.get("position") or {}
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            make=data.get("make", ""),
            model=data.get("model", ""),
            modes=modes,
            x=position.get("x", 0) if enabled else 0,
            y=position.get("y", 0) if enabled else 0,
            scale=data.get("scale", 1.0) or 1.0,
            transform=Transform.from_wl_name(data.get("transform", "normal")),
            enabled=enabled,
        )


# ── WorkspaceAssignment ──────────────────────────────────────────────────

@dataclass
class WorkspaceAssignment:
    id: int = 1
    monitor: int | None = None  # index into the monitor list


def clamp_scale(value: float) -> float:
    return max(SCALE_MIN, min(SCALE_MAX, value))
