"""Shared fixtures for monarch tests."""

from pathlib import Path

import pytest

from monarch.compositor import Compositor
from monarch.engine import ArrangementEngine, ArrangementState
from monarch.models import Mode, Monitor, Transform
from monarch.utils import AppSettings


def build_monitor(
    name="DP-1",
    width=1920,
    height=1080,
    refresh=60.0,
    x=0,
    y=0,
    scale=1.0,
    transform=Transform.NORMAL,
    enabled=True,
    extra_modes=(),
):
    modes = [Mode(width, height, refresh, is_current=True, is_preferred=True), *extra_modes]
    return Monitor(
        name=name,
        modes=modes,
        x=x,
        y=y,
        scale=scale,
        transform=transform,
        enabled=enabled,
    )


class Recorder:
    """Collects emitted actions and reload requests."""

    def __init__(self):
        self.actions = []
        self.reloads = []

    def emit(self, action):
        self.actions.append(action)

    def reload(self, compositor):
        self.reloads.append(compositor)
        return True


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch) -> Path:
    """Keep every test away from the real ~/.config."""
    home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    return home


@pytest.fixture
def make_monitor():
    return build_monitor


@pytest.fixture
def monitor_config(tmp_path) -> Path:
    return tmp_path / "monitors.conf"


@pytest.fixture
def settings(monitor_config) -> AppSettings:
    return AppSettings(
        monitor_config_path=str(monitor_config),
        compositor=Compositor.HYPRLAND,
    )


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(settings, recorder, clock) -> ArrangementEngine:
    return ArrangementEngine(settings, recorder.emit, clock=clock, reloader=recorder.reload)


@pytest.fixture
def side_by_side():
    """Two 1920x1080 monitors, DP-1 left of HDMI-A-1."""
    return ArrangementState(monitors=[
        build_monitor("DP-1"),
        build_monitor("HDMI-A-1", x=1920),
    ])
