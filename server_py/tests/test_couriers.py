import pytest

from courier_app.core.errors import NotFound
from courier_app.core.phone import format_phone_display, normalize_phone

from conftest import COURIER_X


@pytest.mark.parametrize(
    "raw, expected",
    [("901234567", "901234567"), (" 90-123-45-67 ", "901234567"), ("+998 90 123 45 67", "998901234567"), ("12345", ""), ("", "")],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_format_phone_display():
    assert format_phone_display("901234567") == "90 123 45 67"
    assert format_phone_display("123") == ""


async def test_login_requires_registered_phone(couriers):
    with pytest.raises(NotFound):
        await couriers.login(COURIER_X)

    await couriers.register("90 123 45 67", "Aziz")
    courier = await couriers.login("90-123-45-67")
    assert courier.phone_number == COURIER_X
    assert courier.name == "Aziz"


async def test_login_rejects_malformed_phone(couriers):
    with pytest.raises(ValueError):
        await couriers.login("12")


async def test_update_location_is_a_merge(couriers, clock):
    await couriers.register(COURIER_X, "Aziz")
    updated = await couriers.update_location(COURIER_X, 41.3, 69.2)

    assert updated.name == "Aziz"
    assert updated.location == {"lat": 41.3, "long": 69.2}
    assert updated.location_updated_at == clock()
    assert updated.online is True


async def test_update_location_rejects_bad_coordinates(couriers):
    with pytest.raises(ValueError):
        await couriers.update_location(COURIER_X, 95.0, 69.2)


async def test_current_position_respects_max_age(couriers, clock):
    await couriers.update_location(COURIER_X, 41.3, 69.2)
    clock.advance(120)
    assert await couriers.current_position(COURIER_X, 120) == (41.3, 69.2)
    clock.advance(1)
    assert await couriers.current_position(COURIER_X, 120) is None
    assert await couriers.current_position("900000000", 120) is None


async def test_set_online(couriers):
    await couriers.register(COURIER_X)
    courier = await couriers.set_online(COURIER_X, True)
    assert courier.online is True
    with pytest.raises(NotFound):
        await couriers.set_online("900000000", True)
