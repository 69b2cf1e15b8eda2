"""Workspace-to-monitor assignment helpers."""

from __future__ import annotations

from .models import WorkspaceAssignment


def new_assignments(count: int) -> list[WorkspaceAssignment]:
    return [WorkspaceAssignment(id=i) for i in range(1, count + 1)]


def cycle(current: int | None, enabled: list[int], forward: bool) -> int | None:
    """Return the next assignment for a workspace.

    *enabled* is the ordered list of enabled monitor indices.  Unassigned
    goes to the first (forward) or last (backward) enabled monitor; stepping
    past either end, or starting from a monitor that is no longer enabled,
    yields unassigned.
    """
    if not enabled:
        return None
    if current is None:
        return enabled[0] if forward else enabled[-1]
    if current not in enabled:
        return None
    pos = enabled.index(current) + (1 if forward else -1)
    if 0 <= pos < len(enabled):
        return enabled[pos]
    return None


def invalidate(workspaces: list[WorkspaceAssignment], monitor_count: int) -> None:
    """Clear references that no longer point at an existing monitor."""
    for ws in workspaces:
        if ws.monitor is not None and not 0 <= ws.monitor < monitor_count:
            ws.monitor = None


def remove_index(workspaces: list[WorkspaceAssignment], index: int) -> None:
    """Drop references to a removed monitor and shift the ones after it."""
    for ws in workspaces:
        if ws.monitor is None:
            continue
        if ws.monitor == index:
            ws.monitor = None
        elif ws.monitor > index:
            ws.monitor -= 1


def assign_by_name(
    workspaces: list[WorkspaceAssignment],
    pairs: list[tuple[int, str]],
    names: list[str],
) -> int:
    """Apply parsed ``(id, monitor name)`` pairs.  Returns how many matched."""
    by_id = {ws.id: ws for ws in workspaces}
    matched = 0
    for ws_id, name in pairs:
        ws = by_id.get(ws_id)
        if ws is None or name not in names:
            continue
        ws.monitor = names.index(name)
        matched += 1
    return matched
