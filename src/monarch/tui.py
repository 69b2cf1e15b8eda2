"""Terminal front-end for the arrangement engine."""

from __future__ import annotations

import logging
import queue

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Static

from .engine import ArrangementEngine, ArrangementState
from .formats import format_scale
from .geometry import footprint
from .layout import displayed_position
from .models import TRANSFORMS, Panel
from .worker import DisplayWorker

log = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.05
MAP_COLS = 56
MAP_ROWS = 14


def drain_notifications(engine: ArrangementEngine, notifications: queue.Queue) -> int:
    """Apply every queued notification without blocking; return how many."""
    count = 0
    while True:
        try:
            notification = notifications.get_nowait()
        except queue.Empty:
            return count
        engine.handle(notification)
        count += 1


# ── Text rendering ───────────────────────────────────────────────────────

def render_map(state: ArrangementState, cols: int = MAP_COLS, rows: int = MAP_ROWS) -> str:
    """Draw enabled monitors at their displayed positions as ASCII boxes.

    The selected monitor is drawn with ``#``; others with ``+-|``.  Boxes are
    labelled with their 1-based index.
    """
    rects = [
        (i, footprint(m, displayed_position(state, i)))
        for i, m in enumerate(state.monitors)
        if m.enabled
    ]
    if not rects:
        return "(no enabled monitors)"

    left = min(r.x for _, r in rects)
    top = min(r.y for _, r in rects)
    span_w = max(max(r.right for _, r in rects) - left, 1)
    span_h = max(max(r.bottom for _, r in rects) - top, 1)
    # Terminal cells are about twice as tall as they are wide
    px_per_col = max(span_w / (cols - 1), 2 * span_h / (rows - 1))
    px_per_row = 2 * px_per_col

    grid = [[" "] * cols for _ in range(rows)]
    for i, r in rects:
        x0 = min(int((r.x - left) / px_per_col), cols - 2)
        y0 = min(int((r.y - top) / px_per_row), rows - 2)
        x1 = min(max(int((r.right - left) / px_per_col) - 1, x0 + 1), cols - 1)
        y1 = min(max(int((r.bottom - top) / px_per_row) - 1, y0 + 1), rows - 1)
        selected = i == state.selected
        hz, vt, corner = ("#", "#", "#") if selected else ("-", "|", "+")
        for x in range(x0, x1 + 1):
            grid[y0][x] = grid[y1][x] = hz
        for y in range(y0, y1 + 1):
            grid[y][x0] = grid[y][x1] = vt
        for x, y in ((x0, y0), (x1, y0), (x0, y1), (x1, y1)):
            grid[y][x] = corner
        label = str(i + 1)
        cy = (y0 + y1) // 2
        cx = (x0 + x1 - len(label) + 1) // 2
        if y1 - y0 >= 2 and x1 - x0 > len(label):
            for k, ch in enumerate(label):
                grid[cy][cx + k] = ch
    return "\n".join("".join(row).rstrip() for row in grid)


def render_monitor_list(state: ArrangementState) -> str:
    if not state.populated:
        return "Waiting for the display server..."
    if not state.monitors:
        return "No monitors reported"
    lines = []
    for i, m in enumerate(state.monitors):
        cursor = ">" if i == state.selected else " "
        x, y = displayed_position(state, i)
        pending = "*" if i in state.pending_positions else " "
        w, h = m.resolution
        status = "" if m.enabled else "  [off]"
        lines.append(
            f"{cursor} {i + 1} {m.name:<10} {w}x{h}  ({x},{y}){pending} "
            f"x{format_scale(m.scale)}  {m.transform.label}{status}"
        )
        if m.description:
            lines.append(f"      {m.description}")
    return "\n".join(lines)


def _panel_tabs(active: Panel) -> str:
    return " ".join(f"[{p.value}]" if p is active else f" {p.value} " for p in Panel)


def render_panel(engine: ArrangementEngine) -> str:
    s = engine.state
    m = s.selected_monitor
    lines = [_panel_tabs(s.panel), ""]

    if s.panel is Panel.MAP:
        lines.append(render_map(s))
        if s.pending_positions:
            lines += ["", "Enter to apply new positions, r to reset"]
    elif m is None:
        lines.append("No monitor selected")
    elif s.panel is Panel.MODES:
        for i, mode in enumerate(m.modes):
            cursor = ">" if i == s.mode_index else " "
            flags = ("*" if mode.is_current else " ") + ("+" if mode.is_preferred else " ")
            lines.append(f"{cursor}{flags} {mode.label}")
        if not m.modes:
            lines.append("No modes reported")
    elif s.panel is Panel.SCALE:
        lines.append(f"{m.name}: {format_scale(s.pending_scale)} (now {format_scale(m.scale)})")
    elif s.panel is Panel.TRANSFORM:
        for i, t in enumerate(TRANSFORMS):
            cursor = ">" if i == s.transform_index else " "
            current = "*" if t is m.transform else " "
            lines.append(f"{cursor}{current} {t.label}")

    if s.panel is Panel.WORKSPACES:
        lines = lines[:2]
        for i, (ws_id, name) in enumerate(engine.workspace_names()):
            cursor = ">" if i == s.workspace_index else " "
            lines.append(f"{cursor} workspace {ws_id:>2} -> {name or '-'}")

    if s.last_error:
        lines += ["", f"! {s.last_error}"]
    return "\n".join(lines)


# ── Application ──────────────────────────────────────────────────────────

class MonarchApp(App):
    """Interactive monitor arrangement.

    Keyboard shortcuts:
    - Tab: next panel
    - arrows / hjkl: move or edit, depending on the panel
    - Enter: apply, r: reset
    - [ / ]: select monitor, t: enable/disable
    - q / Esc: quit
    """

    CSS = """
    Screen {
        background: $surface;
    }

    #monitors {
        width: 2fr;
        padding: 1 2;
        border: round $primary;
    }

    #panel {
        width: 3fr;
        padding: 1 2;
        border: round $accent;
    }
    """

    BINDINGS = [
        Binding("q,escape", "quit", "Quit", priority=True),
        Binding("tab", "toggle_panel", "Panel", priority=True),
        Binding("up,k", "previous", "Up", show=False, priority=True),
        Binding("down,j", "next", "Down", show=False, priority=True),
        Binding("left,h", "nav_left", "Left", show=False, priority=True),
        Binding("right,l", "nav_right", "Right", show=False, priority=True),
        Binding("enter", "apply", "Apply", priority=True),
        Binding("r", "reset", "Reset", priority=True),
        Binding("t", "toggle_monitor", "Enable/Disable", priority=True),
        Binding("left_square_bracket", "select_previous", "Prev monitor", priority=True),
        Binding("right_square_bracket", "select_next", "Next monitor", priority=True),
    ]

    TITLE = "monarch"

    def __init__(
        self,
        engine: ArrangementEngine,
        notifications: queue.Queue,
        worker: DisplayWorker | None = None,
    ) -> None:
        super().__init__()
        self.engine = engine
        self.notifications = notifications
        self.worker = worker

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal():
            yield Static(id="monitors", markup=False)
            yield Static(id="panel", markup=False)
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = self.engine.compositor.label
        self.set_interval(POLL_INTERVAL_S, self.poll)
        self.redraw()

    def on_unmount(self) -> None:
        self.engine.save_config()
        if self.worker is not None:
            self.worker.stop()

    def poll(self) -> None:
        if drain_notifications(self.engine, self.notifications):
            self.engine.save_config()
        self.redraw()

    def redraw(self) -> None:
        self.query_one("#monitors", Static).update(render_monitor_list(self.engine.state))
        self.query_one("#panel", Static).update(render_panel(self.engine))

    # ── Key actions ──────────────────────────────────────────────────

    def action_toggle_panel(self) -> None:
        self.engine.toggle_panel()
        self.redraw()

    def action_previous(self) -> None:
        self.engine.previous()
        self.redraw()

    def action_next(self) -> None:
        self.engine.next()
        self.redraw()

    def action_nav_left(self) -> None:
        self.engine.nav_left()
        self.redraw()

    def action_nav_right(self) -> None:
        self.engine.nav_right()
        self.redraw()

    def action_apply(self) -> None:
        self.engine.apply()
        self.redraw()

    def action_reset(self) -> None:
        self.engine.reset()
        self.redraw()

    def action_toggle_monitor(self) -> None:
        self.engine.toggle_monitor()
        self.redraw()

    def action_select_previous(self) -> None:
        self.engine.select_previous_monitor()
        self.redraw()

    def action_select_next(self) -> None:
        self.engine.select_next_monitor()
        self.redraw()
