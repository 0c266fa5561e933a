from types import SimpleNamespace

from courier_app.services.routing import is_on_route

from conftest import point

HOME = point(41.3000, 69.2000)


def order(order_id, location):
    return SimpleNamespace(id=order_id, location=location)


def test_no_active_orders_is_never_on_route():
    assert is_on_route(order(1, HOME), []) is False


def test_close_candidate_is_on_route():
    assert is_on_route(order(2, point(41.3010, 69.2005)), [order(1, HOME)], 2.0) is True


def test_far_candidate_is_not_on_route():
    assert is_on_route(order(2, point(41.4000, 69.3000)), [order(1, HOME)], 2.0) is False


def test_threshold_is_inclusive():
    candidate = order(2, point(41.3180, 69.2000))  # 2.0 km после округления
    assert is_on_route(candidate, [order(1, HOME)], 2.0) is True
    assert is_on_route(candidate, [order(1, HOME)], 1.9) is False


def test_any_active_order_within_threshold_is_enough():
    active = [order(1, point(41.5, 69.5)), order(3, HOME)]
    assert is_on_route(order(2, point(41.3010, 69.2005)), active, 2.0) is True


def test_active_orders_without_coordinates_are_skipped():
    active = [order(1, None), order(3, {"lat": "nan", "long": 69.2}), order(4, {"lat": 41.3})]
    assert is_on_route(order(2, HOME), active, 2.0) is False


def test_candidate_without_coordinates_is_excluded():
    assert is_on_route(order(2, None), [order(1, HOME)], 2.0) is False
    assert is_on_route(order(2, {"lat": "x", "long": "y"}), [order(1, HOME)], 2.0) is False


def test_default_threshold_comes_from_settings(monkeypatch):
    from courier_app.core.config import settings

    monkeypatch.setattr(settings, "MAX_ROUTE_DISTANCE_KM", 20.0)
    assert is_on_route(order(2, point(41.4000, 69.3000)), [order(1, HOME)]) is True
