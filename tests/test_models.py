from monarch.models import (
    SCALE_MAX,
    SCALE_MIN,
    TRANSFORMS,
    Mode,
    Monitor,
    Panel,
    Transform,
    clamp_scale,
)

HYPRCTL_MONITOR = {
    "id": 1,
    "name": "DP-1",
    "description": "Dell Inc. DELL U2720Q Unknown",
    "make": "Dell Inc.",
    "model": "DELL U2720Q",
    "width": 2560,
    "height": 1440,
    "refreshRate": 59.951,
    "x": 1920,
    "y": 0,
    "scale": 1.25,
    "transform": 1,
    "disabled": False,
    "availableModes": ["3840x2160@60.00Hz", "2560x1440@59.95Hz", "garbage"],
}

SWAY_OUTPUT = {
    "name": "HDMI-A-1",
    "make": "LG Electronics",
    "model": "27GL850",
    "serial": "ABC123",
    "active": True,
    "scale": 1.0,
    "transform": "flipped-90",
    "rect": {"x": 2560, "y": 0, "width": 1080, "height": 1920},
    "modes": [
        {"width": 2560, "height": 1440, "refresh": 144000},
        {"width": 1920, "height": 1080, "refresh": 60000},
    ],
    "current_mode": {"width": 1920, "height": 1080, "refresh": 60000},
}

WLR_RANDR_OUTPUT = {
    "name": "eDP-1",
    "description": "BOE 0x095F",
    "make": "BOE",
    "model": "0x095F",
    "enabled": True,
    "modes": [
        {"width": 2256, "height": 1504, "refresh": 59.999, "preferred": True, "current": True},
        {"width": 1920, "height": 1200, "refresh": 59.885, "preferred": False, "current": False},
    ],
    "position": {"x": 0, "y": 0},
    "transform": "normal",
    "scale": 1.5,
}


def test_mode_parse():
    mode = Mode.parse("1920x1080@143.98Hz")
    assert (mode.width, mode.height, mode.refresh) == (1920, 1080, 143.98)
    assert Mode.parse("1280x720").refresh == 60.0
    assert Mode.parse("preferred") is None


def test_transform_names():
    assert Transform.FLIPPED_180.wl_name == "flipped-180"
    assert Transform.from_wl_name("270") is Transform.ROTATE_270
    assert Transform.from_wl_name("bogus") is Transform.NORMAL
    assert [t.value for t in TRANSFORMS] == list(range(8))


def test_panel_order_wraps():
    assert Panel.WORKSPACES.next() is Panel.MAP


def test_clamp_scale():
    assert clamp_scale(0.1) == SCALE_MIN
    assert clamp_scale(42) == SCALE_MAX
    assert clamp_scale(1.5) == 1.5
    assert Monitor(name="X", scale=20).scale == SCALE_MAX


def test_from_hyprctl():
    m = Monitor.from_hyprctl(HYPRCTL_MONITOR)
    assert m.name == "DP-1"
    assert m.description == "Dell Inc. DELL U2720Q"
    assert len(m.modes) == 2
    assert m.modes[0].is_preferred and not m.modes[0].is_current
    assert m.modes[1].is_current
    assert m.resolution == (2560, 1440)
    assert (m.x, m.y) == (1920, 0)
    assert m.scale == 1.25
    assert m.transform is Transform.ROTATE_90
    assert m.enabled


def test_from_hyprctl_disabled():
    data = dict(HYPRCTL_MONITOR, disabled=True, x=-1, y=-1, transform=12)
    m = Monitor.from_hyprctl(data)
    assert not m.enabled
    assert (m.x, m.y) == (0, 0)
    assert m.transform is Transform.NORMAL


def test_from_hyprctl_unlisted_current_mode():
    data = dict(HYPRCTL_MONITOR, width=1280, height=1024, refreshRate=75.0)
    m = Monitor.from_hyprctl(data)
    assert m.current_mode.label == "1280x1024 @ 75Hz"
    assert len(m.modes) == 3


def test_from_sway_output():
    m = Monitor.from_sway_output(SWAY_OUTPUT)
    assert m.description == "LG Electronics 27GL850 ABC123"
    assert m.current_mode.label == "1920x1080 @ 60Hz"
    assert m.modes[0].refresh == 144.0
    assert (m.x, m.y) == (2560, 0)
    assert m.transform is Transform.FLIPPED_90
    assert m.enabled


def test_from_sway_output_disabled():
    data = dict(SWAY_OUTPUT, active=False, scale=-1.0, current_mode=None)
    m = Monitor.from_sway_output(data)
    assert not m.enabled
    assert m.scale == 1.0
    assert (m.x, m.y) == (0, 0)
    # Falls back to nothing current, no preferred either
    assert m.current_mode is None


def test_from_wlr_randr():
    m = Monitor.from_wlr_randr(WLR_RANDR_OUTPUT)
    assert m.name == "eDP-1"
    assert m.resolution == (2256, 1504)
    assert m.scale == 1.5
    assert m.modes[0].is_preferred


def test_from_wlr_randr_disabled():
    data = dict(WLR_RANDR_OUTPUT, enabled=False, position={"x": 100, "y": 100})
    m = Monitor.from_wlr_randr(data)
    assert not m.enabled
    assert (m.x, m.y) == (0, 0)


def test_current_mode_falls_back_to_preferred():
    m = Monitor(name="A", modes=[Mode(1280, 720), Mode(1920, 1080, is_preferred=True)])
    assert m.resolution == (1920, 1080)
