"""Geometry helpers for monitor footprints in the virtual pixel space."""

from __future__ import annotations

from typing import NamedTuple

from .models import Monitor


class Rect(NamedTuple):
    x: int
    y: int
    w: int
    h: int

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h


def effective_size(monitor: Monitor) -> tuple[int, int]:
    """Mode resolution with width/height swapped for 90°/270° transforms."""
    w, h = monitor.resolution
    if monitor.transform.is_rotated:
        w, h = h, w
    return w, h


def footprint(monitor: Monitor, position: tuple[int, int] | None = None) -> Rect:
    x, y = position if position is not None else (monitor.x, monitor.y)
    w, h = effective_size(monitor)
    return Rect(x, y, w, h)


def overlaps(a: Rect, b: Rect) -> bool:
    """Strict AABB overlap; rectangles sharing only an edge do not overlap."""
    return a.x < b.right and b.x < a.right and a.y < b.bottom and b.y < a.bottom
