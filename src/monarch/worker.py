"""Display server worker: executes actions and reports monitor state.

The worker owns the compositor connection.  It talks to the engine only
through two bounded queues: actions flow in, notifications flow out.
"""

from __future__ import annotations

import logging
import queue
import threading

import pyudev

from .actions import (
    Action,
    ActionFailed,
    MonitorChanged,
    MonitorRemoved,
    Notification,
    Snapshot,
)
from .compositor import Compositor
from .hyprland import HyprlandIPC
from .models import Monitor
from .river import RiverRandr
from .sway import SwayIPC

log = logging.getLogger(__name__)

CHANNEL_CAPACITY = 32
ACTION_WAIT_S = 0.5

Backend = HyprlandIPC | SwayIPC | RiverRandr


def backend_for(compositor: Compositor) -> Backend | None:
    if compositor is Compositor.HYPRLAND:
        return HyprlandIPC()
    if compositor is Compositor.SWAY:
        return SwayIPC()
    if compositor is Compositor.RIVER:
        return RiverRandr()
    return None


def make_channels() -> tuple[queue.Queue, queue.Queue]:
    """Return ``(notifications, actions)`` queues."""
    return queue.Queue(maxsize=CHANNEL_CAPACITY), queue.Queue(maxsize=CHANNEL_CAPACITY)


def diff_monitors(
    previous: dict[str, Monitor], current: list[Monitor],
) -> list[Notification]:
    """Notifications that turn *previous* into *current*."""
    changes: list[Notification] = []
    names = set()
    for m in current:
        names.add(m.name)
        if previous.get(m.name) != m:
            changes.append(MonitorChanged(m))
    for name in previous:
        if name not in names:
            changes.append(MonitorRemoved(name))
    return changes


class DisplayWorker(threading.Thread):
    """Background thread bridging the engine and a compositor backend."""

    def __init__(
        self,
        backend: Backend,
        notifications: queue.Queue,
        actions: queue.Queue,
        *,
        hotplug: bool = True,
    ) -> None:
        super().__init__(name="display-worker", daemon=True)
        self._backend = backend
        self._notifications = notifications
        self._actions = actions
        self._hotplug = hotplug
        self._known: dict[str, Monitor] = {}
        self._stopping = threading.Event()

    def stop(self) -> None:
        self._stopping.set()

    def run(self) -> None:
        try:
            monitors = self._backend.get_monitors()
        except (OSError, RuntimeError, ValueError) as e:
            log.error("Cannot query monitors: %s", e)
            monitors = []
        self._known = {m.name: m for m in monitors}
        self._publish(Snapshot(monitors))

        udev = self._start_udev() if self._hotplug else None
        while not self._stopping.is_set():
            batch = self._next_actions()
            for action in batch:
                self.execute(action)
            hotplugged = udev is not None and self._drain_udev(udev)
            if batch or hotplugged:
                self.refresh()

    # ── Actions ──────────────────────────────────────────────────────

    def _next_actions(self) -> list[Action]:
        """Block briefly for one action, then take whatever else is queued."""
        try:
            batch = [self._actions.get(timeout=ACTION_WAIT_S)]
        except queue.Empty:
            return []
        while True:
            try:
                batch.append(self._actions.get_nowait())
            except queue.Empty:
                return batch

    def execute(self, action: Action) -> bool:
        try:
            self._backend.execute(action, list(self._known.values()))
        except (OSError, RuntimeError, ValueError) as e:
            log.warning("Failed to apply %s: %s", action, e)
            self._publish(ActionFailed(action, str(e)))
            return False
        log.debug("Applied %s", action)
        return True

    def refresh(self) -> list[Notification]:
        """Re-query the backend and publish what changed."""
        try:
            monitors = self._backend.get_monitors()
        except (OSError, RuntimeError, ValueError) as e:
            log.warning("Cannot query monitors: %s", e)
            return []
        changes = diff_monitors(self._known, monitors)
        self._known = {m.name: m for m in monitors}
        for change in changes:
            self._publish(change)
        return changes

    def _publish(self, notification: Notification) -> None:
        # Blocks while the UI catches up; the stop flag still wins.
        while not self._stopping.is_set():
            try:
                self._notifications.put(notification, timeout=ACTION_WAIT_S)
                return
            except queue.Full:
                continue

    # ── Hotplug ──────────────────────────────────────────────────────

    def _start_udev(self) -> pyudev.Monitor | None:
        try:
            context = pyudev.Context()
            monitor = pyudev.Monitor.from_netlink(context)
            monitor.filter_by(subsystem="drm")
            monitor.start()
        except OSError as e:
            log.warning("udev unavailable, hotplug detection disabled: %s", e)
            return None
        return monitor

    def _drain_udev(self, monitor: pyudev.Monitor) -> bool:
        seen = False
        while True:
            device = monitor.poll(timeout=0)
            if device is None:
                return seen
            if device.action in ("change", "add", "remove"):
                log.info("udev DRM event: %s %s", device.action, device.device_path)
                seen = True
