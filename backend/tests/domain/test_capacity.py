import pytest
from venue_scheduler.domain.capacity import (
    ResourceNeeds,
    axe_bays_for_party,
    duckpin_lanes_for_party,
    normalize_party_area_minutes,
    required_resources,
    validate_duration,
    validate_party_size,
    validate_step,
)
from venue_scheduler.domain.errors import ValidationError
from venue_scheduler.models import Activity, ResourceType


@pytest.mark.parametrize(("party", "bays"), [(1, 1), (8, 1), (9, 2), (16, 2)])
def test_axe_bays_cover_eight_guests_each(party: int, bays: int) -> None:
    assert axe_bays_for_party(party) == bays


@pytest.mark.parametrize(("party", "lanes"), [(1, 1), (6, 1), (7, 2), (12, 2), (24, 4)])
def test_duckpin_lanes_cover_six_guests_each(party: int, lanes: int) -> None:
    assert duckpin_lanes_for_party(party) == lanes


def test_combo_needs_both_resource_types() -> None:
    needs = required_resources(Activity.COMBO, 10)
    assert needs == ResourceNeeds(axe=2, duckpin=2)


def test_buyout_resolves_to_whole_inventory() -> None:
    needs = required_resources(Activity.AXE, 25)
    assert needs.buyout is True
    resolved = needs.resolve({ResourceType.AXE: 4, ResourceType.DUCKPIN: 6, ResourceType.PARTY: 2})
    assert resolved.count_for(ResourceType.AXE) == 4
    assert resolved.count_for(ResourceType.DUCKPIN) == 6
    assert resolved.count_for(ResourceType.PARTY) == 0


def test_party_size_limits_per_activity() -> None:
    validate_party_size(Activity.AXE, 16)
    with pytest.raises(ValidationError):
        validate_party_size(Activity.AXE, 17)
    # at the buyout threshold the activity limit no longer applies
    validate_party_size(Activity.AXE, 25)
    with pytest.raises(ValidationError):
        validate_party_size(Activity.DUCKPIN, 61)
    with pytest.raises(ValidationError):
        validate_party_size(Activity.COMBO, 0)


def test_duration_must_be_supported_except_for_combo() -> None:
    validate_duration(Activity.AXE, 120)
    validate_duration(Activity.COMBO, None)
    with pytest.raises(ValidationError):
        validate_duration(Activity.DUCKPIN, 45)
    with pytest.raises(ValidationError):
        validate_duration(Activity.AXE, None)


def test_step_must_be_supported() -> None:
    validate_step(15)
    with pytest.raises(ValidationError):
        validate_step(20)


@pytest.mark.parametrize(
    ("minutes", "expected"),
    [(None, None), (30, 60), (89, 60), (90, 120), (150, 180), (600, 480)],
)
def test_party_area_minutes_round_half_up_and_clamp(minutes: int | None, expected: int | None) -> None:
    assert normalize_party_area_minutes(minutes) == expected
