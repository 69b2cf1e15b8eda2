"""Messages exchanged with the display-server worker.

Actions flow from the engine to the worker; notifications flow back.  Both
are fire-and-forget: no action gets a direct reply, its effect shows up as a
later ``MonitorChanged`` (or ``ActionFailed``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .models import Monitor, Transform


# ── Outbound actions ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class ToggleEnabled:
    name: str
    position: tuple[int, int] | None = None


@dataclass(frozen=True)
class SwitchMode:
    name: str
    width: int
    height: int
    refresh: float


@dataclass(frozen=True)
class SetScale:
    name: str
    scale: float


@dataclass(frozen=True)
class SetTransform:
    name: str
    transform: Transform


@dataclass(frozen=True)
class SetPosition:
    name: str
    x: int
    y: int


Action = Union[ToggleEnabled, SwitchMode, SetScale, SetTransform, SetPosition]


# ── Inbound notifications ────────────────────────────────────────────────

@dataclass(frozen=True)
class Snapshot:
    monitors: list[Monitor]


@dataclass(frozen=True)
class MonitorChanged:
    monitor: Monitor


@dataclass(frozen=True)
class MonitorRemoved:
    name: str


@dataclass(frozen=True)
class ActionFailed:
    action: Action
    reason: str


Notification = Union[Snapshot, MonitorChanged, MonitorRemoved, ActionFailed]
