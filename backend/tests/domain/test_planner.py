import pytest
from venue_scheduler.domain.errors import ValidationError
from venue_scheduler.domain.hours import OpenWindow
from venue_scheduler.domain.planner import blackout_hit, build_scheduling_request, plan_at
from venue_scheduler.domain.snapshots import BlackoutWindow, BufferPadding, MinuteInterval
from venue_scheduler.models import Activity, ComboOrder, PartyAreaTiming, ResourceType, RuleScope

INVENTORY = {ResourceType.AXE: 4, ResourceType.DUCKPIN: 4, ResourceType.PARTY: 2}
WINDOW = OpenWindow(960, 1320)


def test_request_normalizes_party_areas() -> None:
    request = build_scheduling_request(
        activity=Activity.AXE,
        party_size=6,
        duration_minutes=60,
        party_areas=[" Party Room A ", "Party Room A", "", "Party Room B"],
        party_area_minutes=90,
    )
    assert request.party_areas == ("Party Room A", "Party Room B")
    assert request.party_area_minutes == 120
    assert request.resource_types() == (ResourceType.AXE, ResourceType.PARTY)


def test_combo_request_defaults() -> None:
    request = build_scheduling_request(activity=Activity.COMBO, party_size=8)
    assert request.combo_order == ComboOrder.DUCKPIN_FIRST
    assert request.total_minutes == 120
    assert set(request.rule_scopes()) == {RuleScope.ALL, RuleScope.COMBO, RuleScope.AXE, RuleScope.DUCKPIN}


def test_request_rejects_bad_combo_minutes() -> None:
    with pytest.raises(ValidationError):
        build_scheduling_request(activity=Activity.COMBO, party_size=8, combo_axe_minutes=45)


def test_single_activity_plan() -> None:
    request = build_scheduling_request(activity=Activity.DUCKPIN, party_size=10, duration_minutes=120)
    plan = plan_at(request, 1020, INVENTORY)
    assert len(plan.segments) == 1
    assert plan.segments[0].count == 2
    assert plan.segments[0].interval == MinuteInterval(1020, 1140)
    assert plan.claim_count == 2


def test_combo_plan_has_two_segments_and_overlay() -> None:
    request = build_scheduling_request(
        activity=Activity.COMBO,
        party_size=10,
        combo_order=ComboOrder.AXE_FIRST,
        party_areas=["Party Room A"],
        party_area_timing=PartyAreaTiming.AFTER,
        party_area_minutes=60,
    )
    plan = plan_at(request, 1020, INVENTORY)
    assert [(s.resource_type, s.count, s.interval) for s in plan.segments] == [
        (ResourceType.AXE, 2, MinuteInterval(1020, 1080)),
        (ResourceType.DUCKPIN, 2, MinuteInterval(1080, 1140)),
    ]
    assert plan.overlay == MinuteInterval(1140, 1200)
    assert plan.claim_count == 5


def test_buyout_plan_takes_every_activity_resource() -> None:
    request = build_scheduling_request(activity=Activity.AXE, party_size=30, duration_minutes=60)
    plan = plan_at(request, 1020, INVENTORY)
    assert plan.buyout is True
    assert {s.resource_type: s.count for s in plan.segments} == {ResourceType.AXE: 4, ResourceType.DUCKPIN: 4}
    assert all(s.interval == plan.overall for s in plan.segments)
    assert set(request.rule_scopes()) == set(RuleScope)


def test_sub_activity_blackout_only_hits_its_segment() -> None:
    request = build_scheduling_request(activity=Activity.COMBO, party_size=6)
    duckpin_blackout = (BlackoutWindow(MinuteInterval(1080, 1140), RuleScope.DUCKPIN),)

    # duckpin first: [1020, 1080) lanes then [1080, 1140) axe
    assert blackout_hit(plan_at(request, 1020, INVENTORY), request, duckpin_blackout, BufferPadding(), WINDOW) is None
    # starting an hour later moves the lanes into the blackout
    hit = blackout_hit(plan_at(request, 1080, INVENTORY), request, duckpin_blackout, BufferPadding(), WINDOW)
    assert hit == duckpin_blackout[0]


def test_buffers_pad_blackout_checks() -> None:
    request = build_scheduling_request(activity=Activity.AXE, party_size=4, duration_minutes=60)
    blackout = (BlackoutWindow(MinuteInterval(1080, 1110)),)
    plan = plan_at(request, 1020, INVENTORY)
    assert blackout_hit(plan, request, blackout, BufferPadding(), WINDOW) is None
    assert blackout_hit(plan, request, blackout, BufferPadding(after=15), WINDOW) == blackout[0]


def test_padding_is_clamped_to_open_window() -> None:
    request = build_scheduling_request(activity=Activity.AXE, party_size=4, duration_minutes=60)
    # a blackout before opening never matters, even with a large before-buffer
    blackout = (BlackoutWindow(MinuteInterval(900, 960)),)
    plan = plan_at(request, 960, INVENTORY)
    assert blackout_hit(plan, request, blackout, BufferPadding(before=60), WINDOW) is None


def test_other_activity_blackout_is_ignored() -> None:
    request = build_scheduling_request(activity=Activity.AXE, party_size=4, duration_minutes=60)
    blackout = (BlackoutWindow(MinuteInterval(1020, 1080), RuleScope.DUCKPIN),)
    assert blackout_hit(plan_at(request, 1020, INVENTORY), request, blackout, BufferPadding(), WINDOW) is None
