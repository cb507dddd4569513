from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from venue_scheduler.routers.bookings import _extract_version
from venue_scheduler.schemas import BookingUpdate


def test_if_match_preferred_over_body() -> None:
    payload = BookingUpdate(version=5)
    assert _extract_version('W/"10"', payload) == 10


def test_body_used_when_no_header() -> None:
    payload = BookingUpdate(version=7)
    assert _extract_version(None, payload) == 7


def test_bare_number_header_is_accepted() -> None:
    assert _extract_version("3", None) == 3


def test_missing_version_skips_check() -> None:
    assert _extract_version(None, None) is None
    assert _extract_version(None, BookingUpdate()) is None


def test_invalid_header_raises_400() -> None:
    with pytest.raises(HTTPException) as excinfo:
        _extract_version("invalid", None)
    assert excinfo.value.status_code == 400


def test_header_zero_raises_400() -> None:
    with pytest.raises(HTTPException) as excinfo:
        _extract_version('"0"', None)
    assert excinfo.value.status_code == 400


def test_body_zero_raises_400() -> None:
    payload = SimpleNamespace(version=0)  # bypass Pydantic validation to hit router validation
    with pytest.raises(HTTPException) as excinfo:
        _extract_version(None, payload)
    assert excinfo.value.status_code == 400
