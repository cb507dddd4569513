from datetime import date

import pytest
from venue_scheduler.domain.errors import ValidationError
from venue_scheduler.domain.hours import OpenWindow, open_window


def test_thursday_opens_at_four_pm() -> None:
    assert open_window(date(2030, 1, 3)) == OpenWindow(960, 1320)


def test_saturday_opens_at_noon() -> None:
    assert open_window(date(2030, 1, 5)) == OpenWindow(720, 1380)


def test_closed_early_week() -> None:
    assert open_window(date(2030, 1, 7)) is None


def test_narrowing_never_widens_business_hours() -> None:
    window = OpenWindow(960, 1320)
    assert window.narrowed(900, 1400) == window
    assert window.narrowed(1020, None) == OpenWindow(1020, 1320)
    assert window.narrowed(None, 1200) == OpenWindow(960, 1200)


def test_narrowing_to_nothing_is_rejected() -> None:
    with pytest.raises(ValidationError):
        OpenWindow(960, 1320).narrowed(1300, 1000)


def test_contains_is_inclusive_of_close() -> None:
    window = OpenWindow(960, 1320)
    assert window.contains(1260, 1320)
    assert not window.contains(1290, 1350)
    assert not window.contains(930, 990)
