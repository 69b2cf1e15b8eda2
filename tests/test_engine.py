import queue

import pytest

from conftest import build_monitor
from monarch.actions import (
    ActionFailed,
    MonitorChanged,
    MonitorRemoved,
    SetPosition,
    SetScale,
    SetTransform,
    Snapshot,
    SwitchMode,
    ToggleEnabled,
)
from monarch.compositor import Compositor
from monarch.engine import ArrangementEngine
from monarch.models import Mode, MovePolicy, Panel, Transform


@pytest.fixture
def two_monitors():
    return [build_monitor("DP-1"), build_monitor("HDMI-A-1", x=1920)]


# ── Notifications ────────────────────────────────────────────────────────

def test_snapshot_populates_state(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    s = engine.state
    assert s.populated
    assert [m.name for m in s.monitors] == ["DP-1", "HDMI-A-1"]
    assert s.selected == 0
    assert len(s.workspaces) == 10
    assert all(ws.monitor is None for ws in s.workspaces)


def test_snapshot_loads_workspace_rules(engine, monitor_config, two_monitors):
    monitor_config.write_text(
        "monitor = DP-1, 1920x1080@60, 0,0, 1\n"
        "workspace = 2, monitor:HDMI-A-1\n"
        "workspace = 3, monitor:DP-9\n"
    )
    engine.handle(Snapshot(two_monitors))
    assert engine.workspace_names()[:3] == [(1, None), (2, "HDMI-A-1"), (3, None)]


def test_change_replaces_by_name(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.handle(MonitorChanged(build_monitor("HDMI-A-1", x=3000)))
    assert len(engine.state.monitors) == 2
    assert engine.state.monitors[1].x == 3000


def test_change_appends_new_monitor(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.handle(MonitorChanged(build_monitor("eDP-1", x=3840)))
    assert [m.name for m in engine.state.monitors] == ["DP-1", "HDMI-A-1", "eDP-1"]


def test_change_resyncs_selected_editors(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.handle(MonitorChanged(build_monitor("DP-1", scale=1.5, transform=Transform.ROTATE_180)))
    assert engine.state.pending_scale == 1.5
    assert engine.state.transform_index == 2


def test_removing_enabled_monitor_is_ignored(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.handle(MonitorRemoved("HDMI-A-1"))
    assert len(engine.state.monitors) == 2


def test_removing_disabled_monitor_clears_and_shifts_workspaces(engine):
    engine.handle(Snapshot([
        build_monitor("A"),
        build_monitor("B", enabled=False),
        build_monitor("C", x=1920),
    ]))
    ws = engine.state.workspaces
    ws[0].monitor = 0
    ws[1].monitor = 1
    ws[2].monitor = 2
    engine.state.selected = 2

    assert engine.remove_monitor("B")
    assert [m.name for m in engine.state.monitors] == ["A", "C"]
    assert [w.monitor for w in ws[:3]] == [0, None, 1]
    assert engine.state.selected == 1
    assert engine.state.selected_monitor.name == "C"


def test_remove_unknown_monitor(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    assert not engine.remove_monitor("DP-9")


def test_action_failed_clears_dirty_flag(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.state.needs_save = True
    action = SetScale("DP-1", 2.0)
    engine.handle(ActionFailed(action, "invalid scale"))
    assert not engine.state.needs_save
    assert "invalid scale" in engine.state.last_error


# ── Selection and panels ─────────────────────────────────────────────────

def test_toggle_panel_cycles(engine):
    seen = []
    for _ in range(6):
        seen.append(engine.state.panel)
        engine.toggle_panel()
    assert seen == [
        Panel.MAP, Panel.MODES, Panel.SCALE, Panel.TRANSFORM, Panel.WORKSPACES, Panel.MAP,
    ]


def test_selecting_resets_mode_cursor_and_syncs(engine):
    engine.handle(Snapshot([
        build_monitor("A", extra_modes=[Mode(1280, 720, 60.0)]),
        build_monitor("B", x=1920, scale=2.0, transform=Transform.ROTATE_90),
    ]))
    engine.state.panel = Panel.MODES
    engine.next()
    assert engine.state.mode_index == 1
    engine.select_next_monitor()
    assert engine.state.mode_index == 0
    assert engine.state.pending_scale == 2.0
    assert engine.state.transform_index == 1
    engine.select_next_monitor()
    assert engine.state.selected == 0


def test_map_panel_moves_and_commits(engine, recorder, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.nav_right()
    assert engine.state.pending_positions == {0: (3840, 0), 1: (0, 0)}
    engine.apply()
    assert recorder.actions == [SetPosition("DP-1", 3840, 0), SetPosition("HDMI-A-1", 0, 0)]
    assert engine.state.pending_positions == {}
    assert engine.state.needs_save


def test_map_panel_up_and_down(engine):
    engine.handle(Snapshot([build_monitor("A")]))
    engine.next()
    engine.next()
    engine.previous()
    assert engine.state.pending_positions == {0: (0, 50)}


def test_reset_discards_without_emitting(engine, recorder, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.nav_right()
    engine.reset()
    assert engine.state.pending_positions == {}
    assert recorder.actions == []


def test_acceleration_policy_uses_clock(engine, clock):
    engine.settings.move_policy = MovePolicy.ACCELERATE
    engine.handle(Snapshot([build_monitor("A")]))
    engine.nav_right()
    clock.advance(0.1)
    engine.nav_right()
    assert engine.state.pending_positions == {0: (4, 0)}


def test_modes_panel_wraps_and_switches(engine, recorder):
    engine.handle(Snapshot([build_monitor("A", extra_modes=[Mode(1280, 720, 59.94)])]))
    engine.state.panel = Panel.MODES
    engine.previous()
    assert engine.state.mode_index == 1
    engine.apply()
    assert recorder.actions == [SwitchMode("A", 1280, 720, 59.94)]


def test_scale_panel_adjusts_and_clamps(engine, recorder):
    engine.settings.scale_step = 0.25
    engine.handle(Snapshot([build_monitor("A")]))
    engine.state.panel = Panel.SCALE

    engine.previous()
    engine.nav_right()
    assert engine.state.pending_scale == 1.5
    engine.next()
    engine.nav_left()
    assert engine.state.pending_scale == 1.0

    for _ in range(100):
        engine.previous()
    assert engine.state.pending_scale == 10.0
    for _ in range(100):
        engine.next()
    assert engine.state.pending_scale == 0.5

    engine.apply()
    assert recorder.actions == [SetScale("A", 0.5)]


def test_fine_scale_step_stays_in_range(engine):
    engine.handle(Snapshot([build_monitor("A")]))
    engine.state.panel = Panel.SCALE
    for _ in range(60):
        engine.next()
        assert 0.5 <= engine.state.pending_scale <= 10.0
    assert engine.state.pending_scale == 0.5


def test_transform_panel_wraps(engine, recorder):
    engine.handle(Snapshot([build_monitor("A")]))
    engine.state.panel = Panel.TRANSFORM
    engine.previous()
    assert engine.state.transform_index == 7
    engine.next()
    engine.next()
    engine.apply()
    assert recorder.actions == [SetTransform("A", Transform.ROTATE_90)]


# ── Enable / disable ─────────────────────────────────────────────────────

def test_refuses_to_disable_last_enabled(engine, recorder):
    engine.handle(Snapshot([build_monitor("A"), build_monitor("B", enabled=False)]))
    engine.toggle_monitor()
    assert recorder.actions == []
    assert engine.state.last_error


def test_disable_emits_toggle(engine, recorder, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.select_monitor(1)
    engine.toggle_monitor()
    assert recorder.actions == [ToggleEnabled("HDMI-A-1")]


def test_enable_uses_saved_position(engine, recorder, monitor_config):
    monitor_config.write_text(
        "monitor = A, 1920x1080@60, 0,0, 1\n"
        "monitor = B, 1920x1080@60, 0,1080, 1\n"
        "monitor = B, disable\n"
    )
    engine.handle(Snapshot([build_monitor("A"), build_monitor("B", enabled=False)]))
    engine.select_monitor(1)
    engine.toggle_monitor()
    assert recorder.actions == [ToggleEnabled("B", (0, 1080))]


def test_enable_moves_off_overlapping_saved_position(engine, recorder, monitor_config):
    monitor_config.write_text("monitor = B, 1920x1080@60, 100,0, 1\n")
    engine.handle(Snapshot([build_monitor("A"), build_monitor("B", enabled=False)]))
    engine.select_monitor(1)
    engine.toggle_monitor()
    assert recorder.actions == [ToggleEnabled("B", (0, 1080))]


def test_enable_without_saved_position(engine, recorder):
    engine.handle(Snapshot([build_monitor("A"), build_monitor("B", enabled=False)]))
    engine.select_monitor(1)
    engine.toggle_monitor()
    assert recorder.actions == [ToggleEnabled("B", (1920, 0))]


# ── Workspaces and persistence ───────────────────────────────────────────

def test_workspace_cycle_saves_immediately(engine, recorder, monitor_config, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.state.panel = Panel.WORKSPACES
    engine.next()
    engine.nav_right()

    assert engine.workspace_names()[1] == (2, "DP-1")
    assert monitor_config.read_text() == (
        "monitor = DP-1, 1920x1080@60, 0,0, 1\n"
        "monitor = HDMI-A-1, 1920x1080@60, 1920,0, 1\n"
        "\n"
        "workspace = 2, monitor:DP-1\n"
    )
    assert recorder.reloads == [Compositor.HYPRLAND]
    assert not engine.state.needs_save


def test_workspace_apply_cycles_forward(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    engine.state.panel = Panel.WORKSPACES
    engine.apply()
    engine.apply()
    assert engine.workspace_names()[0] == (1, "HDMI-A-1")
    engine.apply()
    assert engine.workspace_names()[0] == (1, None)
    engine.nav_left()
    assert engine.workspace_names()[0] == (1, "HDMI-A-1")


def test_save_is_noop_when_clean(engine, recorder, monitor_config, two_monitors):
    engine.handle(Snapshot(two_monitors))
    assert not engine.save_config()
    assert not monitor_config.exists()
    assert recorder.reloads == []


def test_save_keeps_disabled_position_from_disk(engine, monitor_config):
    monitor_config.write_text("monitor = B, 1920x1080@60, 1920,0, 1\nmonitor = B, disable\n")
    engine.handle(Snapshot([build_monitor("A"), build_monitor("B", enabled=False)]))
    engine.state.needs_save = True
    assert engine.save_config()
    assert monitor_config.read_text() == (
        "monitor = A, 1920x1080@60, 0,0, 1\n"
        "monitor = B, 1920x1080@60, 1920,0, 1\n"
        "monitor = B, disable\n"
    )


def test_save_for_unknown_compositor_writes_nothing(settings, recorder, monitor_config):
    settings.compositor = Compositor.UNKNOWN
    engine = ArrangementEngine(settings, recorder.emit, reloader=recorder.reload)
    engine.handle(Snapshot([build_monitor("A")]))
    engine.state.needs_save = True
    assert not engine.save_config()
    assert not monitor_config.exists()
    assert recorder.reloads == []


def test_save_failure_is_reported(engine, recorder, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    engine.settings.monitor_config_path = str(blocker / "monitors.conf")
    engine.handle(Snapshot([build_monitor("A")]))
    engine.state.needs_save = True
    assert not engine.save_config()
    assert engine.state.last_error.startswith("Failed to write")
    assert recorder.reloads == []


def test_full_action_queue_sets_error(settings):
    actions = queue.Queue(maxsize=1)
    actions.put_nowait(object())
    engine = ArrangementEngine(settings, actions.put_nowait, reloader=lambda c: True)
    engine.handle(Snapshot([build_monitor("A")]))
    engine.state.panel = Panel.SCALE
    engine.apply()
    assert engine.state.last_error
    assert not engine.state.needs_save


def test_render_config(engine, two_monitors):
    engine.handle(Snapshot(two_monitors))
    assert engine.render_config().startswith("monitor = DP-1, 1920x1080@60, 0,0, 1\n")
