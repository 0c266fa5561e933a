import asyncio

import pytest

from courier_app.core.errors import (
    AlreadyClaimed,
    ClaimTimeout,
    LocationUnavailable,
    NotFound,
    StoreUnavailable,
)
from courier_app.models.order import OrderStatus
from courier_app.services.claim import ClaimCoordinator
from courier_app.services.store import OrderStore

from conftest import COURIER_X, COURIER_Y, point

HERE = point(41.3000, 69.2000)


async def test_claim_sets_courier_and_accepted_at(coordinator, store, add_order, add_courier, clock):
    order = await add_order(HERE)
    await add_courier(COURIER_X, location=HERE)

    claimed = await coordinator.claim(order.id, COURIER_X)

    assert claimed.status == OrderStatus.COURIER.value
    assert claimed.courier == COURIER_X
    assert claimed.accepted_at == clock()
    stored = await store.get_order(order.id)
    assert stored.courier == COURIER_X
    assert stored.accepted_at == clock()
    assert stored.version == order.version + 1


async def test_position_from_request_is_saved(coordinator, couriers, add_order):
    order = await add_order(HERE)
    await coordinator.claim(order.id, COURIER_X, point(41.31, 69.28))

    courier = await couriers.get(COURIER_X)
    assert courier.location == {"lat": 41.31, "long": 69.28}
    assert courier.online is True


async def test_claim_without_known_position_fails(coordinator, store, add_order, add_courier):
    order = await add_order(HERE)
    await add_courier(COURIER_X)

    with pytest.raises(LocationUnavailable):
        await coordinator.claim(order.id, COURIER_X)

    stored = await store.get_order(order.id)
    assert stored.status == OrderStatus.SEARCH_COURIER.value
    assert stored.courier is None


async def test_stale_position_is_not_used(coordinator, add_order, add_courier, clock):
    order = await add_order(HERE)
    await add_courier(COURIER_X, location=HERE)
    clock.advance(121)

    with pytest.raises(LocationUnavailable):
        await coordinator.claim(order.id, COURIER_X)


async def test_second_claim_gets_already_claimed(coordinator, store, add_order):
    order = await add_order(HERE)
    await coordinator.claim(order.id, COURIER_X, HERE)

    with pytest.raises(AlreadyClaimed):
        await coordinator.claim(order.id, COURIER_Y, HERE)

    stored = await store.get_order(order.id)
    assert stored.courier == COURIER_X


async def test_claim_of_delivered_or_missing_order(coordinator, add_order):
    delivered = await add_order(HERE, status=OrderStatus.DELIVERED.value, courier=COURIER_Y)

    with pytest.raises(AlreadyClaimed):
        await coordinator.claim(delivered.id, COURIER_X, HERE)
    with pytest.raises(NotFound):
        await coordinator.claim(delivered.id + 100, COURIER_X, HERE)


async def test_simultaneous_claims_have_exactly_one_winner(coordinator, store, add_order):
    order = await add_order(HERE)

    results = await asyncio.gather(
        coordinator.claim(order.id, COURIER_X, HERE),
        coordinator.claim(order.id, COURIER_Y, HERE),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], AlreadyClaimed)

    stored = await store.get_order(order.id)
    assert stored.status == OrderStatus.COURIER.value
    assert stored.courier == winners[0].courier
    assert stored.version == 2


class SlowStore(OrderStore):
    def __init__(self, *args, delay=1.0, commit_first=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = delay
        self.commit_first = commit_first

    async def transition(self, *args, **kwargs):
        if self.commit_first:
            result = await super().transition(*args, **kwargs)
            await asyncio.sleep(self.delay)
            return result
        await asyncio.sleep(self.delay)
        return await super().transition(*args, **kwargs)


class FlakyStore(OrderStore):
    def __init__(self, *args, failures=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures
        self.calls = 0

    async def transition(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise StoreUnavailable()
        return await super().transition(*args, **kwargs)


async def test_slow_store_times_out(session_factory, hub, clock, couriers, add_order, no_wait_policy):
    order = await add_order(HERE)
    slow = SlowStore(session_factory, hub=hub, clock=clock, delay=1.0)
    coordinator = ClaimCoordinator(slow, couriers, timeout_seconds=0.05, retry_policy=no_wait_policy)

    with pytest.raises(ClaimTimeout):
        await coordinator.claim(order.id, COURIER_X, HERE)

    stored = await slow.get_order(order.id)
    assert stored.status == OrderStatus.SEARCH_COURIER.value


async def test_retry_recovers_from_store_outage(session_factory, hub, clock, couriers, add_order, no_wait_policy):
    order = await add_order(HERE)
    flaky = FlakyStore(session_factory, hub=hub, clock=clock, failures=2)
    coordinator = ClaimCoordinator(flaky, couriers, retry_policy=no_wait_policy)

    claimed = await coordinator.claim_with_retry(order.id, COURIER_X, HERE)

    assert claimed.courier == COURIER_X
    assert flaky.calls == 3


async def test_retry_gives_up_after_max_attempts(session_factory, hub, clock, couriers, add_order, no_wait_policy):
    order = await add_order(HERE)
    flaky = FlakyStore(session_factory, hub=hub, clock=clock, failures=10)
    coordinator = ClaimCoordinator(flaky, couriers, retry_policy=no_wait_policy)

    with pytest.raises(StoreUnavailable):
        await coordinator.claim_with_retry(order.id, COURIER_X, HERE)
    assert flaky.calls == 3


async def test_retry_returns_claim_committed_by_timed_out_attempt(
    session_factory, hub, clock, couriers, add_order, no_wait_policy
):
    order = await add_order(HERE)
    slow = SlowStore(session_factory, hub=hub, clock=clock, delay=2.0, commit_first=True)
    coordinator = ClaimCoordinator(slow, couriers, timeout_seconds=0.5, retry_policy=no_wait_policy)

    claimed = await coordinator.claim_with_retry(order.id, COURIER_X, HERE)

    assert claimed.courier == COURIER_X
    assert claimed.version == 2


async def test_already_claimed_is_not_retried(coordinator, add_order):
    order = await add_order(HERE)
    await coordinator.claim(order.id, COURIER_Y, HERE)

    with pytest.raises(AlreadyClaimed):
        await coordinator.claim_with_retry(order.id, COURIER_X, HERE)
