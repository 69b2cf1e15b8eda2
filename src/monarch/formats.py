"""Compositor config formats: rendering and tolerant parsing.

Each supported compositor has one render function and one parser per kind
of data read back (workspace pairs, saved positions).  ``Compositor.UNKNOWN``
has none of them: rendering returns None and parsing returns nothing.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable

from .compositor import Compositor
from .models import Monitor, Transform
from .utils import backup_file, read_text, write_text

log = logging.getLogger(__name__)

# (workspace id, monitor name or None)
WorkspaceNames = list[tuple[int, str | None]]


def format_scale(scale: float) -> str:
    """Whole scales print as integers, the rest with two decimals."""
    if abs(scale - round(scale)) < 0.001:
        return str(int(round(scale)))
    return f"{scale:.2f}"


def _mode_triplet(monitor: Monitor) -> tuple[int, int, str]:
    mode = monitor.current_mode
    if mode is None:
        return 0, 0, "60"
    return mode.width, mode.height, f"{mode.refresh:g}"


def _strip_comment(line: str) -> str:
    return line.split("#", 1)[0].strip()


# ── Rendering ────────────────────────────────────────────────────────────

def render_hyprland(monitors: list[Monitor], workspaces: WorkspaceNames) -> str:
    """Generate monitors.conf content for Hyprland."""
    lines: list[str] = []
    for m in monitors:
        w, h, refresh = _mode_triplet(m)
        line = f"monitor = {m.name}, {w}x{h}@{refresh}, {m.x},{m.y}, {format_scale(m.scale)}"
        if m.transform != Transform.NORMAL:
            line += f", transform, {m.transform.value}"
        lines.append(line)
        # Later lines win in Hyprland; the full line above keeps the
        # position around for when the monitor is turned back on.
        if not m.enabled:
            lines.append(f"monitor = {m.name}, disable")

    ws_lines = [
        f"workspace = {ws_id}, monitor:{name}"
        for ws_id, name in workspaces
        if name is not None
    ]
    if ws_lines:
        lines.append("")
        lines.extend(ws_lines)

    lines.append("")
    return "\n".join(lines)


def render_sway(monitors: list[Monitor], workspaces: WorkspaceNames) -> str:
    """Generate monitors.conf content for Sway."""
    blocks: list[str] = []
    for m in monitors:
        if not m.enabled:
            blocks.append(f"output {m.name} disable")
            continue
        w, h, refresh = _mode_triplet(m)
        blocks.append(
            f"output {m.name} {{\n"
            f"    mode {w}x{h}@{refresh}Hz\n"
            f"    pos {m.x} {m.y}\n"
            f"    scale {format_scale(m.scale)}\n"
            f"    transform {m.transform.wl_name}\n"
            f"}}"
        )

    ws_lines = [
        f"workspace {ws_id} output {name}"
        for ws_id, name in workspaces
        if name is not None
    ]
    if ws_lines:
        blocks.append("\n".join(ws_lines))

    return "\n\n".join(blocks) + "\n"


def render_river(monitors: list[Monitor], workspaces: WorkspaceNames) -> str:
    """Generate a wlr-randr shell script for River (no workspace concept)."""
    lines = ["#!/bin/sh"]
    for m in monitors:
        if not m.enabled:
            lines.append(f"wlr-randr --output {m.name} --off")
            continue
        w, h, refresh = _mode_triplet(m)
        lines.append(
            f"wlr-randr --output {m.name} --mode {w}x{h}@{refresh}Hz "
            f"--pos {m.x},{m.y} --scale {format_scale(m.scale)} "
            f"--transform {m.transform.wl_name}"
        )
    lines.append("")
    return "\n".join(lines)


_RENDERERS: dict[Compositor, Callable[[list[Monitor], WorkspaceNames], str]] = {
    Compositor.HYPRLAND: render_hyprland,
    Compositor.SWAY: render_sway,
    Compositor.RIVER: render_river,
}


def render(
    compositor: Compositor,
    monitors: list[Monitor],
    workspaces: WorkspaceNames,
) -> str | None:
    """Render the monitor config for *compositor*, or None if unsupported."""
    renderer = _RENDERERS.get(compositor)
    if renderer is None:
        return None
    return renderer(monitors, workspaces)


def save_monitor_config(
    compositor: Compositor,
    path: Path,
    monitors: list[Monitor],
    workspaces: WorkspaceNames,
) -> bool:
    """Rewrite *path* with the rendered config.

    Returns False without touching the file for an unknown compositor.
    ``OSError`` propagates to the caller.
    """
    content = render(compositor, monitors, workspaces)
    if content is None:
        log.debug("No config format for %s, skipping save", compositor.label)
        return False
    backup_file(path)
    write_text(path, content)
    log.info("Saved %d monitor(s) to %s", len(monitors), path)
    return True


# ── Workspace parsing ────────────────────────────────────────────────────

_HYPR_WORKSPACE_RE = re.compile(r"^workspace\s*=\s*(.*)$")
_SWAY_WORKSPACE_RE = re.compile(r"^workspace\s+(?:number\s+)?(\S+)\s+output\s+(.+)$")


def parse_hyprland_workspaces(text: str) -> list[tuple[int, str]]:
    """Extract ``workspace = <id>, monitor:<name>`` rules."""
    pairs: list[tuple[int, str]] = []
    for raw in text.splitlines():
        m = _HYPR_WORKSPACE_RE.match(_strip_comment(raw))
        if not m:
            continue
        parts = [p.strip() for p in m.group(1).split(",")]
        try:
            ws_id = int(parts[0])
        except ValueError:
            continue
        for part in parts[1:]:
            if part.startswith("monitor:"):
                name = part[len("monitor:"):].strip()
                if name:
                    pairs.append((ws_id, name))
                break
    return pairs


def parse_sway_workspaces(text: str) -> list[tuple[int, str]]:
    """Extract ``workspace <id> output <name>`` assignments."""
    pairs: list[tuple[int, str]] = []
    for raw in text.splitlines():
        m = _SWAY_WORKSPACE_RE.match(_strip_comment(raw))
        if not m:
            continue
        try:
            ws_id = int(m.group(1))
        except ValueError:
            continue
        # Several outputs form a fallback list; the first one is the target
        name = m.group(2).split()[0].strip('"')
        pairs.append((ws_id, name))
    return pairs


_WORKSPACE_PARSERS: dict[Compositor, Callable[[str], list[tuple[int, str]]]] = {
    Compositor.HYPRLAND: parse_hyprland_workspaces,
    Compositor.SWAY: parse_sway_workspaces,
}


def parse_workspaces(compositor: Compositor, text: str) -> list[tuple[int, str]]:
    parser = _WORKSPACE_PARSERS.get(compositor)
    return parser(text) if parser else []


def read_workspaces(compositor: Compositor, path: Path | None) -> list[tuple[int, str]]:
    """Workspace pairs from a config file; a missing file means no pairs."""
    if path is None:
        return []
    text = read_text(path)
    return parse_workspaces(compositor, text) if text is not None else []


# ── Saved position parsing ───────────────────────────────────────────────

_HYPR_MONITOR_RE = re.compile(r"^monitor\s*=\s*(.*)$")
_XY_RE = re.compile(r"^(-?\d+)x(-?\d+)$")
_INT_RE = re.compile(r"^-?\d+$")
_SWAY_OUTPUT_RE = re.compile(r'^output\s+("[^"]+"|\S+)(.*)$')
_SWAY_POS_RE = re.compile(r"\b(?:pos|position)\s+(-?\d+)\s+(-?\d+)")
_RANDR_OUTPUT_RE = re.compile(r"--output\s+(\S+)")
_RANDR_POS_RE = re.compile(r"--pos\s+(-?\d+),(-?\d+)")


def parse_hyprland_positions(text: str) -> dict[str, tuple[int, int]]:
    """Positions from ``monitor = name, res, X,Y, scale`` (or ``XxY``) lines."""
    positions: dict[str, tuple[int, int]] = {}
    for raw in text.splitlines():
        m = _HYPR_MONITOR_RE.match(_strip_comment(raw))
        if not m:
            continue
        parts = [p.strip() for p in m.group(1).split(",")]
        if len(parts) < 3 or parts[1] == "disable":
            continue
        xy = _XY_RE.match(parts[2])
        if xy:
            positions[parts[0]] = (int(xy.group(1)), int(xy.group(2)))
        elif len(parts) >= 4 and _INT_RE.match(parts[2]) and _INT_RE.match(parts[3]):
            positions[parts[0]] = (int(parts[2]), int(parts[3]))
    return positions


def parse_sway_positions(text: str) -> dict[str, tuple[int, int]]:
    """Positions from ``pos X Y`` inside ``output`` blocks or single lines."""
    positions: dict[str, tuple[int, int]] = {}
    current: str | None = None
    depth = 0
    for raw in text.splitlines():
        line = _strip_comment(raw)
        if not line:
            continue
        if current is None:
            m = _SWAY_OUTPUT_RE.match(line)
            if not m:
                continue
            name = m.group(1).strip('"')
            rest = m.group(2)
            pos = _SWAY_POS_RE.search(rest)
            if pos:
                positions[name] = (int(pos.group(1)), int(pos.group(2)))
            depth = rest.count("{") - rest.count("}")
            if depth > 0:
                current = name
            continue
        pos = _SWAY_POS_RE.search(line)
        if pos:
            positions[current] = (int(pos.group(1)), int(pos.group(2)))
        depth += line.count("{") - line.count("}")
        if depth <= 0:
            current = None
    return positions


def parse_river_positions(text: str) -> dict[str, tuple[int, int]]:
    """Positions from ``wlr-randr --output NAME ... --pos X,Y`` commands."""
    positions: dict[str, tuple[int, int]] = {}
    for raw in text.splitlines():
        line = _strip_comment(raw)
        name = _RANDR_OUTPUT_RE.search(line)
        pos = _RANDR_POS_RE.search(line)
        if name and pos:
            positions[name.group(1)] = (int(pos.group(1)), int(pos.group(2)))
    return positions


_POSITION_PARSERS: dict[Compositor, Callable[[str], dict[str, tuple[int, int]]]] = {
    Compositor.HYPRLAND: parse_hyprland_positions,
    Compositor.SWAY: parse_sway_positions,
    Compositor.RIVER: parse_river_positions,
}


def parse_positions(compositor: Compositor, text: str) -> dict[str, tuple[int, int]]:
    parser = _POSITION_PARSERS.get(compositor)
    return parser(text) if parser else {}


def read_positions(compositor: Compositor, path: Path | None) -> dict[str, tuple[int, int]]:
    """Saved positions from a config file; a missing file means none."""
    if path is None:
        return {}
    text = read_text(path)
    return parse_positions(compositor, text) if text is not None else {}
