from venue_scheduler.domain.segments import combo_segments, overlay_fits, overlay_window
from venue_scheduler.domain.snapshots import MinuteInterval
from venue_scheduler.models import Activity, ComboOrder, PartyAreaTiming


def test_combo_defaults_to_duckpin_first() -> None:
    split = combo_segments(1020, ComboOrder.DUCKPIN_FIRST, axe_minutes=60, duckpin_minutes=60)
    assert split.first.activity == Activity.DUCKPIN
    assert split.first.interval == MinuteInterval(1020, 1080)
    assert split.second.activity == Activity.AXE
    assert split.second.interval == MinuteInterval(1080, 1140)
    assert split.overall == MinuteInterval(1020, 1140)


def test_combo_axe_first_uses_each_segment_length() -> None:
    split = combo_segments(960, ComboOrder.AXE_FIRST, axe_minutes=30, duckpin_minutes=120)
    assert split.for_activity(Activity.AXE).interval == MinuteInterval(960, 990)
    assert split.for_activity(Activity.DUCKPIN).interval == MinuteInterval(990, 1110)


def test_overlay_before_main_window() -> None:
    overlay = overlay_window(MinuteInterval(1020, 1080), 60, PartyAreaTiming.BEFORE)
    assert overlay == MinuteInterval(960, 1020)
    assert overlay_fits(overlay, 960)


def test_overlay_before_open_does_not_fit() -> None:
    overlay = overlay_window(MinuteInterval(990, 1050), 60, PartyAreaTiming.BEFORE)
    assert overlay == MinuteInterval(930, 990)
    assert not overlay_fits(overlay, 960)


def test_overlay_during_defaults_to_main_length() -> None:
    assert overlay_window(MinuteInterval(1020, 1140), None, PartyAreaTiming.DURING) == MinuteInterval(1020, 1140)


def test_overlay_after_may_run_past_close() -> None:
    overlay = overlay_window(MinuteInterval(1200, 1320), 120, PartyAreaTiming.AFTER)
    assert overlay == MinuteInterval(1320, 1440)
    assert overlay_fits(overlay, 960)
