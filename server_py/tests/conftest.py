from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from courier_app.core.database import Base
from courier_app.core.retry import RetryPolicy
from courier_app.models.courier import Courier
from courier_app.models.order import Order, OrderStatus
from courier_app.models.restaurant import Restaurant
from courier_app.schemas.order import OrderSnapshot
from courier_app.services.alerts import NewOrderAlerts
from courier_app.services.changes import OrderChangeHub
from courier_app.services.claim import ClaimCoordinator
from courier_app.services.couriers import CourierService
from courier_app.services.lifecycle import OrderLifecycle
from courier_app.services.restaurants import RestaurantService
from courier_app.services.store import OrderStore

COURIER_X = "901234567"
COURIER_Y = "907654321"


class MutableClock:
    """Часы, которые тест двигает вручную."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
async def session_factory(tmp_path):
    # NullPool: каждое соединение открывается в текущем event loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'courier.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def hub() -> OrderChangeHub:
    return OrderChangeHub()


@pytest.fixture
def store(session_factory, hub, clock) -> OrderStore:
    return OrderStore(session_factory, hub=hub, clock=clock)


@pytest.fixture
def couriers(session_factory, clock) -> CourierService:
    return CourierService(session_factory, clock=clock)


@pytest.fixture
def restaurants(session_factory) -> RestaurantService:
    return RestaurantService(session_factory)


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def coordinator(store, couriers, no_wait_policy) -> ClaimCoordinator:
    return ClaimCoordinator(store, couriers, timeout_seconds=5.0, retry_policy=no_wait_policy)


@pytest.fixture
def lifecycle(store) -> OrderLifecycle:
    return OrderLifecycle(store, cancel_window_seconds=30)


@pytest.fixture
def alerts(store) -> NewOrderAlerts:
    return NewOrderAlerts(store, max_distance_km=2.0)


@pytest.fixture
def add_order(session_factory):
    """Вставляет заказ напрямую, в обход API (в том числе с битыми координатами)."""

    async def _add(
        location: Any = None,
        *,
        status: str = OrderStatus.SEARCH_COURIER.value,
        courier: Optional[str] = None,
        accepted_at: Optional[datetime] = None,
        restaurant_id: Optional[int] = None,
        products: Optional[list] = None,
        price: float = 40000.0,
    ) -> OrderSnapshot:
        async with session_factory() as session:
            order = Order(
                status=status,
                courier=courier,
                location=location,
                accepted_at=accepted_at,
                restaurant_id=restaurant_id,
                products=products or [],
                delivery_price=10000.0,
                price=price,
                service_price=1500.0,
                version=1,
            )
            session.add(order)
            await session.commit()
            await session.refresh(order)
            return OrderSnapshot.model_validate(order)

    return _add


@pytest.fixture
def add_restaurant(session_factory):
    async def _add(name: str = "Rayhon", location: Any = None, menu: Optional[list] = None) -> int:
        async with session_factory() as session:
            restaurant = Restaurant(name=name, location=location, menu=menu)
            session.add(restaurant)
            await session.commit()
            await session.refresh(restaurant)
            return restaurant.id

    return _add


@pytest.fixture
def add_courier(session_factory, clock):
    async def _add(phone: str = COURIER_X, name: str = "Courier", location: Any = None) -> str:
        async with session_factory() as session:
            session.add(
                Courier(
                    phone_number=phone,
                    name=name,
                    location=location,
                    location_updated_at=clock() if location else None,
                    online=bool(location),
                )
            )
            await session.commit()
        return phone

    return _add


def point(lat: float, long: float) -> dict:
    return {"lat": lat, "long": long}
