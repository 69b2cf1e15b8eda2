"""Layout engine: directional moves, collision swaps and placement on enable.

Every position handled here is a top-left corner in the shared virtual pixel
space.  A monitor's *displayed* position is its pending override when one
exists, otherwise the position last reported by the compositor.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from .actions import SetPosition
from .geometry import Rect, effective_size, footprint, overlaps
from .models import Direction, MovePolicy

if TYPE_CHECKING:
    from .engine import ArrangementState

log = logging.getLogger(__name__)

SLOW_THRESHOLD = 10     # gap below which the velocity policy crawls
MIN_STEP = 1
DEFAULT_STEP = 50       # velocity step with nothing ahead
REPEAT_WINDOW = 0.2     # seconds between repeats for acceleration


def displayed_position(state: ArrangementState, index: int) -> tuple[int, int]:
    if index in state.pending_positions:
        return state.pending_positions[index]
    m = state.monitors[index]
    return m.x, m.y


def _enabled_rects(state: ArrangementState, exclude: int) -> list[tuple[int, Rect]]:
    return [
        (i, footprint(m, displayed_position(state, i)))
        for i, m in enumerate(state.monitors)
        if i != exclude and m.enabled
    ]


# ── Step policies ────────────────────────────────────────────────────────

def nearest_gap(state: ArrangementState, index: int, direction: Direction) -> int | None:
    """Distance to the closest enabled monitor strictly ahead of *index*.

    Only monitors overlapping on the perpendicular axis count as ahead.
    """
    me = footprint(state.monitors[index], displayed_position(state, index))
    best: int | None = None
    for _, r in _enabled_rects(state, index):
        if direction.is_horizontal:
            if not (r.y < me.bottom and me.y < r.bottom):
                continue
            gap = r.x - me.right if direction is Direction.RIGHT else me.x - r.right
        else:
            if not (r.x < me.right and me.x < r.right):
                continue
            gap = r.y - me.bottom if direction is Direction.DOWN else me.y - r.bottom
        if gap < 0:
            continue
        if best is None or gap < best:
            best = gap
    return best


def velocity_step(gap: int | None) -> int:
    if gap is None:
        return DEFAULT_STEP
    if gap < SLOW_THRESHOLD:
        return MIN_STEP
    return max(MIN_STEP, min(gap // 10, gap))


def acceleration_step(state: ArrangementState, direction: Direction, now: float) -> int:
    """Grow the step while the same direction keeps repeating quickly."""
    if (
        state.last_direction is direction
        and state.last_move_time is not None
        and now - state.last_move_time < REPEAT_WINDOW
    ):
        state.repeat_count += 1
    else:
        state.repeat_count = 0
    state.last_direction = direction
    state.last_move_time = now
    return 1 + 2 * state.repeat_count


# ── Movement ─────────────────────────────────────────────────────────────

def _swap_position(
    direction: Direction,
    candidate: tuple[int, int],
    size: tuple[int, int],
    obstacle: Rect,
) -> tuple[int, int]:
    """Put the mover just past *obstacle* in *direction*.

    Moving left, the mover's right edge lands on the obstacle's left edge,
    and so on.  The result is clamped to 0, so a mover wider than the space
    left of (or above) the obstacle still overlaps it afterwards.
    """
    w, h = size
    x, y = candidate
    if direction is Direction.LEFT:
        x = obstacle.x - w
    elif direction is Direction.RIGHT:
        x = obstacle.right
    elif direction is Direction.UP:
        y = obstacle.y - h
    else:
        y = obstacle.bottom
    return max(0, x), max(0, y)


def move(
    state: ArrangementState,
    direction: Direction,
    policy: MovePolicy = MovePolicy.VELOCITY,
    now: float | None = None,
) -> bool:
    """Move the selected monitor one step.  Returns True if anything moved.

    A collision with another enabled monitor swaps the two: the mover jumps
    to the far edge of the obstacle and the obstacle takes the mover's
    starting position.  At most one collision is resolved per call.
    """
    index = state.selected
    if not 0 <= index < len(state.monitors):
        return False
    monitor = state.monitors[index]
    if not monitor.enabled:
        return False

    if policy is MovePolicy.ACCELERATE:
        step = acceleration_step(state, direction, time.monotonic() if now is None else now)
    else:
        step = velocity_step(nearest_gap(state, index, direction))

    start = displayed_position(state, index)
    dx, dy = direction.delta
    candidate = (max(0, start[0] + dx * step), max(0, start[1] + dy * step))
    if candidate == start:
        return False

    mover = footprint(monitor, candidate)
    for other, rect in _enabled_rects(state, index):
        if overlaps(mover, rect):
            swapped = _swap_position(direction, candidate, effective_size(monitor), rect)
            state.pending_positions[index] = swapped
            state.pending_positions[other] = start
            log.debug(
                "Swap %s -> %s, %s -> %s",
                monitor.name, swapped, state.monitors[other].name, start,
            )
            return True

    state.pending_positions[index] = candidate
    return True


def commit_positions(state: ArrangementState) -> list[SetPosition]:
    """Turn pending positions into requests and clear them."""
    actions = [
        SetPosition(state.monitors[i].name, x, y)
        for i, (x, y) in sorted(state.pending_positions.items())
        if 0 <= i < len(state.monitors)
    ]
    state.pending_positions.clear()
    return actions


def reset_positions(state: ArrangementState) -> None:
    state.pending_positions.clear()


# ── Placement ────────────────────────────────────────────────────────────

def placement_for_enable(
    state: ArrangementState,
    index: int,
    saved: tuple[int, int] | None,
) -> tuple[int, int]:
    """Pick a position for a monitor about to be enabled.

    Prefers *saved* when it is free; otherwise the free flush-edge candidate
    (left of leftmost, right of rightmost, above topmost, below bottommost)
    nearest to *saved*.  Without a saved position the monitor goes to the
    right of everything at y=0.
    """
    w, h = effective_size(state.monitors[index])
    others = [rect for _, rect in _enabled_rects(state, index)]

    def free(pos: tuple[int, int]) -> bool:
        candidate = Rect(pos[0], pos[1], w, h)
        return not any(overlaps(candidate, r) for r in others)

    if saved is not None:
        if free(saved):
            return saved
        if others:
            leftmost = min(others, key=lambda r: r.x)
            rightmost = max(others, key=lambda r: r.right)
            topmost = min(others, key=lambda r: r.y)
            bottommost = max(others, key=lambda r: r.bottom)
            candidates = [
                (leftmost.x - w, leftmost.y),
                (rightmost.right, rightmost.y),
                (topmost.x, topmost.y - h),
                (bottommost.x, bottommost.bottom),
            ]
            # Saved positions may be negative, generated candidates may not
            valid = [p for p in candidates if p[0] >= 0 and p[1] >= 0 and free(p)]
            if valid:
                return min(
                    valid,
                    key=lambda p: abs(p[0] - saved[0]) + abs(p[1] - saved[1]),
                )

    right = max((r.right for r in others), default=0)
    return right, 0
