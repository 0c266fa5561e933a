import math

import pytest

from courier_app.core.geo import distance_km, extract_point, point_distance_km

TASHKENT = (41.3111, 69.2797)
SAMARKAND = (39.6542, 66.9597)


def test_distance_is_symmetric():
    there = distance_km(*TASHKENT, *SAMARKAND)
    back = distance_km(*SAMARKAND, *TASHKENT)
    assert there == back
    assert 260 < there < 280


def test_distance_to_self_is_zero():
    assert distance_km(*TASHKENT, *TASHKENT) == 0.0


def test_distance_rounded_to_tenth():
    d = distance_km(41.3000, 69.2000, 41.3010, 69.2005)
    assert d == 0.1


def test_numeric_strings_are_accepted():
    assert distance_km("41.3", "69.2", "41.3", "69.2") == 0.0


def test_antipodal_points_do_not_blow_up():
    d = distance_km(0.0, 0.0, 0.0, 180.0)
    assert d == round(math.pi * 6371.0, 1)


@pytest.mark.parametrize(
    "bad",
    [None, float("nan"), float("inf"), "", "  ", "abc", True, [], {}],
)
def test_malformed_input_returns_none(bad):
    assert distance_km(bad, 69.2, 41.3, 69.2) is None
    assert distance_km(41.3, 69.2, 41.3, bad) is None


def test_extract_point_from_mapping_and_object():
    class Loc:
        lat = 41.3
        long = 69.2

    assert extract_point({"lat": "41.3", "long": 69.2}) == (41.3, 69.2)
    assert extract_point(Loc()) == (41.3, 69.2)


@pytest.mark.parametrize(
    "location",
    [None, {}, {"lat": 41.3}, {"lat": None, "long": 69.2}, {"lat": 91, "long": 0}, {"lat": 0, "long": 181}, "41.3,69.2"],
)
def test_extract_point_rejects_invalid(location):
    assert extract_point(location) is None


def test_point_distance_with_missing_point():
    assert point_distance_km(None, TASHKENT) is None
    assert point_distance_km(TASHKENT, None) is None
