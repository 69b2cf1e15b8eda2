"""Arrangement engine: in-memory state, panel state machine and persistence.

The engine is driven from a single thread.  Notifications from the display
server worker go through :meth:`ArrangementEngine.handle`; user input goes
through the panel operations (``next``, ``previous``, ``nav_left``,
``nav_right``, ``apply``...).  Actions are handed to the ``emit`` callable
and never awaited: their effect comes back later as a ``MonitorChanged`` or
an ``ActionFailed``.
"""

from __future__ import annotations

import dataclasses
import logging
import queue
import time
from dataclasses import dataclass, field
from typing import Callable

from . import layout
from .actions import (
    Action,
    ActionFailed,
    MonitorChanged,
    MonitorRemoved,
    Notification,
    SetScale,
    SetTransform,
    Snapshot,
    SwitchMode,
    ToggleEnabled,
)
from .compositor import Compositor, reload as reload_compositor
from .formats import read_positions, read_workspaces, render, save_monitor_config
from .models import (
    TRANSFORMS,
    Direction,
    Monitor,
    Panel,
    WorkspaceAssignment,
    clamp_scale,
)
from .utils import AppSettings
from .workspaces import assign_by_name, cycle, invalidate, new_assignments, remove_index

log = logging.getLogger(__name__)


@dataclass
class ArrangementState:
    monitors: list[Monitor] = field(default_factory=list)
    selected: int = 0
    pending_positions: dict[int, tuple[int, int]] = field(default_factory=dict)
    pending_scale: float = 1.0
    transform_index: int = 0
    mode_index: int = 0
    panel: Panel = Panel.MAP
    workspaces: list[WorkspaceAssignment] = field(default_factory=list)
    workspace_index: int = 0

    # Move-repeat bookkeeping for the acceleration policy
    last_direction: Direction | None = None
    last_move_time: float | None = None
    repeat_count: int = 0

    needs_save: bool = False
    populated: bool = False
    last_error: str = ""

    @property
    def selected_monitor(self) -> Monitor | None:
        if 0 <= self.selected < len(self.monitors):
            return self.monitors[self.selected]
        return None

    def index_of(self, name: str) -> int | None:
        for i, m in enumerate(self.monitors):
            if m.name == name:
                return i
        return None


class ArrangementEngine:
    """Owns an :class:`ArrangementState` and every mutation applied to it."""

    def __init__(
        self,
        settings: AppSettings,
        emit: Callable[[Action], object],
        *,
        clock: Callable[[], float] = time.monotonic,
        reloader: Callable[[Compositor], bool] = reload_compositor,
    ) -> None:
        self.settings = settings
        self._emit = emit
        self._clock = clock
        self._reload = reloader
        self.state = ArrangementState(workspaces=new_assignments(settings.workspace_count))

    @property
    def compositor(self) -> Compositor:
        return self.settings.compositor

    # ── Notifications ────────────────────────────────────────────────

    def handle(self, notification: Notification) -> None:
        if isinstance(notification, Snapshot):
            self.set_monitors(notification.monitors)
        elif isinstance(notification, MonitorChanged):
            self.update_monitor(notification.monitor)
        elif isinstance(notification, MonitorRemoved):
            self.remove_monitor(notification.name)
        elif isinstance(notification, ActionFailed):
            self.action_failed(notification.action, notification.reason)

    def set_monitors(self, monitors: list[Monitor]) -> None:
        """Replace the whole monitor set (first snapshot)."""
        s = self.state
        s.monitors = list(monitors)
        s.pending_positions.clear()
        s.workspaces = new_assignments(self.settings.workspace_count)
        pairs = read_workspaces(self.compositor, self.settings.monitor_config)
        matched = assign_by_name(s.workspaces, pairs, [m.name for m in s.monitors])
        s.populated = True
        log.debug("Snapshot: %d monitor(s), %d workspace rule(s)", len(s.monitors), matched)
        self._monitors_changed()
        self.select_monitor(min(s.selected, len(s.monitors) - 1) if s.monitors else 0)

    def update_monitor(self, monitor: Monitor) -> None:
        """Replace a monitor by name, or append it if it is new."""
        s = self.state
        idx = s.index_of(monitor.name)
        if idx is None:
            s.monitors.append(monitor)
            log.debug("Monitor added: %s", monitor.name)
        else:
            s.monitors[idx] = monitor
            log.debug("Monitor changed: %s", monitor.name)
        self._monitors_changed()
        if idx == s.selected or len(s.monitors) == 1:
            self._sync_selected()

    def remove_monitor(self, name: str) -> bool:
        """Drop a monitor, but only once the compositor reports it disabled."""
        s = self.state
        idx = s.index_of(name)
        if idx is None:
            return False
        if s.monitors[idx].enabled:
            log.debug("Ignoring removal of enabled monitor %s", name)
            return False
        del s.monitors[idx]
        s.pending_positions = {
            (i - 1 if i > idx else i): pos
            for i, pos in s.pending_positions.items()
            if i != idx
        }
        remove_index(s.workspaces, idx)
        if s.selected > idx:
            s.selected -= 1
        self._monitors_changed()
        self._sync_selected()
        log.debug("Monitor removed: %s", name)
        return True

    def action_failed(self, action: Action, reason: str) -> None:
        s = self.state
        s.needs_save = False
        s.last_error = f"{type(action).__name__} failed: {reason}"
        log.warning("Action %s failed: %s", action, reason)

    def _monitors_changed(self) -> None:
        """Re-establish index invariants after any structural mutation."""
        s = self.state
        count = len(s.monitors)
        invalidate(s.workspaces, count)
        for i in [i for i in s.pending_positions if i >= count]:
            del s.pending_positions[i]
        if s.selected >= count:
            s.selected = max(count - 1, 0)

    # ── Selection ────────────────────────────────────────────────────

    def select_monitor(self, index: int) -> None:
        if not 0 <= index < len(self.state.monitors):
            return
        self.state.selected = index
        self._sync_selected()

    def select_next_monitor(self) -> None:
        n = len(self.state.monitors)
        if n:
            self.select_monitor((self.state.selected + 1) % n)

    def select_previous_monitor(self) -> None:
        n = len(self.state.monitors)
        if n:
            self.select_monitor((self.state.selected - 1) % n)

    def _sync_selected(self) -> None:
        """Point the editors at the selected monitor's actual values."""
        s = self.state
        s.mode_index = 0
        m = s.selected_monitor
        if m is None:
            return
        s.pending_scale = m.scale
        s.transform_index = TRANSFORMS.index(m.transform)

    # ── Panel state machine ──────────────────────────────────────────

    def toggle_panel(self) -> None:
        self.state.panel = self.state.panel.next()

    def next(self) -> None:
        panel = self.state.panel
        if panel is Panel.MAP:
            self._move(Direction.DOWN)
        elif panel is Panel.MODES:
            self._step_mode(1)
        elif panel is Panel.SCALE:
            self._adjust_scale(-self.settings.scale_step)
        elif panel is Panel.TRANSFORM:
            self._step_transform(1)
        elif panel is Panel.WORKSPACES:
            self._step_workspace(1)

    def previous(self) -> None:
        panel = self.state.panel
        if panel is Panel.MAP:
            self._move(Direction.UP)
        elif panel is Panel.MODES:
            self._step_mode(-1)
        elif panel is Panel.SCALE:
            self._adjust_scale(self.settings.scale_step)
        elif panel is Panel.TRANSFORM:
            self._step_transform(-1)
        elif panel is Panel.WORKSPACES:
            self._step_workspace(-1)

    def nav_left(self) -> None:
        panel = self.state.panel
        if panel is Panel.MAP:
            self._move(Direction.LEFT)
        elif panel is Panel.SCALE:
            self._adjust_scale(-self.settings.scale_step)
        elif panel is Panel.WORKSPACES:
            self.cycle_workspace(forward=False)

    def nav_right(self) -> None:
        panel = self.state.panel
        if panel is Panel.MAP:
            self._move(Direction.RIGHT)
        elif panel is Panel.SCALE:
            self._adjust_scale(self.settings.scale_step)
        elif panel is Panel.WORKSPACES:
            self.cycle_workspace(forward=True)

    def apply(self) -> None:
        """Commit whatever the active panel is editing."""
        s = self.state
        m = s.selected_monitor
        if s.panel is Panel.WORKSPACES:
            self.cycle_workspace(forward=True)
            return
        if m is None:
            return
        if s.panel is Panel.MAP:
            for action in layout.commit_positions(s):
                self._send(action)
        elif s.panel is Panel.MODES:
            if m.modes:
                mode = m.modes[s.mode_index % len(m.modes)]
                self._send(SwitchMode(m.name, mode.width, mode.height, mode.refresh))
        elif s.panel is Panel.SCALE:
            self._send(SetScale(m.name, s.pending_scale))
        elif s.panel is Panel.TRANSFORM:
            self._send(SetTransform(m.name, TRANSFORMS[s.transform_index]))

    def reset(self) -> None:
        """Abandon pending edits without emitting anything."""
        layout.reset_positions(self.state)
        self._sync_selected()
        self.state.last_error = ""

    def _move(self, direction: Direction) -> None:
        layout.move(self.state, direction, self.settings.move_policy, self._clock())

    def _step_mode(self, delta: int) -> None:
        m = self.state.selected_monitor
        if m is None or not m.modes:
            return
        self.state.mode_index = (self.state.mode_index + delta) % len(m.modes)

    def _adjust_scale(self, delta: float) -> None:
        s = self.state
        s.pending_scale = round(clamp_scale(s.pending_scale + delta), 2)

    def _step_transform(self, delta: int) -> None:
        s = self.state
        s.transform_index = (s.transform_index + delta) % len(TRANSFORMS)

    def _step_workspace(self, delta: int) -> None:
        s = self.state
        if s.workspaces:
            s.workspace_index = (s.workspace_index + delta) % len(s.workspaces)

    # ── Enable / disable ─────────────────────────────────────────────

    def toggle_monitor(self) -> None:
        s = self.state
        m = s.selected_monitor
        if m is None:
            return
        if m.enabled:
            if sum(1 for other in s.monitors if other.enabled) <= 1:
                s.last_error = f"Refusing to disable {m.name}: it is the only enabled monitor"
                log.warning(s.last_error)
                return
            self._send(ToggleEnabled(m.name))
            return
        saved = read_positions(self.compositor, self.settings.monitor_config).get(m.name)
        position = layout.placement_for_enable(s, s.selected, saved)
        self._send(ToggleEnabled(m.name, position))

    # ── Workspaces ───────────────────────────────────────────────────

    def cycle_workspace(self, forward: bool = True) -> None:
        """Reassign the selected workspace and save straight away."""
        s = self.state
        if not 0 <= s.workspace_index < len(s.workspaces):
            return
        ws = s.workspaces[s.workspace_index]
        enabled = [i for i, m in enumerate(s.monitors) if m.enabled]
        ws.monitor = cycle(ws.monitor, enabled, forward)
        s.needs_save = True
        self.save_config()

    def workspace_names(self) -> list[tuple[int, str | None]]:
        s = self.state
        return [
            (ws.id, s.monitors[ws.monitor].name if ws.monitor is not None else None)
            for ws in s.workspaces
        ]

    # ── Persistence ──────────────────────────────────────────────────

    def _send(self, action: Action) -> None:
        try:
            self._emit(action)
        except queue.Full:
            self.state.last_error = "Display server is busy, try again"
            log.warning("Action queue full, dropped %s", action)
            return
        log.info("Requested %s", action)
        self.state.needs_save = True

    def _monitors_for_save(self) -> list[Monitor]:
        """Monitors as they should be written.

        Disabled monitors keep the position already on disk, since the
        compositor no longer reports a meaningful one for them.
        """
        saved = read_positions(self.compositor, self.settings.monitor_config)
        result: list[Monitor] = []
        for m in self.state.monitors:
            if not m.enabled and m.name in saved:
                x, y = saved[m.name]
                m = dataclasses.replace(m, x=x, y=y)
            result.append(m)
        return result

    def render_config(self) -> str | None:
        return render(self.compositor, self._monitors_for_save(), self.workspace_names())

    def save_config(self) -> bool:
        """Write the monitor config if anything changed since the last save."""
        s = self.state
        if not s.needs_save:
            return False
        s.needs_save = False
        path = self.settings.monitor_config
        if path is None:
            log.debug("No monitor config path configured, not saving")
            return False
        try:
            written = save_monitor_config(
                self.compositor, path, self._monitors_for_save(), self.workspace_names(),
            )
        except OSError as e:
            s.last_error = f"Failed to write {path}: {e}"
            log.error(s.last_error)
            return False
        if written:
            self._reload(self.compositor)
        return written
