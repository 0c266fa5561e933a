"""Лента заказов курьера.

Каждый снимок ленты пересчитывается целиком из двух множеств - ожидающие
заказы и активные заказы курьера - прочитанных одним запросом. Частичных
обновлений нет: пришло изменение, значит перечитываем и пересчитываем.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import AsyncIterator, Dict, Iterable, Mapping, Optional, Tuple

from courier_app.core.config import settings
from courier_app.schemas.order import OrderSnapshot
from courier_app.services.changes import OrderChangeHub
from courier_app.services.routing import is_on_route
from courier_app.services.store import OrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedSnapshot:
    version: int
    orders: Tuple[OrderSnapshot, ...]
    on_route: Mapping[int, bool] = field(default_factory=lambda: MappingProxyType({}))
    active_order_ids: Tuple[int, ...] = ()

    @property
    def has_active_orders(self) -> bool:
        return bool(self.active_order_ids)

    @property
    def order_ids(self) -> Tuple[int, ...]:
        return tuple(o.id for o in self.orders)


def project_feed(
    pending: Iterable[OrderSnapshot],
    active: Iterable[OrderSnapshot],
    *,
    version: int = 0,
    max_distance_km: Optional[float] = None,
    show_all_debug: bool = False,
) -> FeedSnapshot:
    """Какие ожидающие заказы показать курьеру.

    Без активных заказов - все ожидающие. С активными - только попутные;
    если попутных нет, лента пустая (``show_all_debug`` показывает все).
    """
    pending = tuple(pending)
    active = tuple(active)
    active_ids = tuple(o.id for o in active)

    if not active:
        return FeedSnapshot(
            version=version,
            orders=pending,
            on_route=MappingProxyType({o.id: False for o in pending}),
            active_order_ids=active_ids,
        )

    on_route: Dict[int, bool] = {}
    visible = []
    for order in pending:
        matched = is_on_route(order, active, max_distance_km)
        on_route[order.id] = matched
        if matched:
            visible.append(order)

    if not visible and show_all_debug:
        logger.debug("No orders on route, debug override shows all %s", len(pending))
        visible = list(pending)

    return FeedSnapshot(
        version=version,
        orders=tuple(visible),
        on_route=MappingProxyType(on_route),
        active_order_ids=active_ids,
    )


class FeedSubscription:
    """Асинхронный итератор снимков ленты.

    Первый снимок выдается сразу, следующие - после изменений, которые
    касаются ожидающих заказов или активных заказов этого курьера.
    """

    def __init__(self, feed: "OrderFeed", queue: asyncio.Queue) -> None:
        self._feed = feed
        self._queue = queue
        self._primed = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def __aiter__(self) -> "FeedSubscription":
        return self

    async def __anext__(self) -> FeedSnapshot:
        if self._closed:
            raise StopAsyncIteration
        if self._primed:
            await self._wait_for_relevant_change()
        self._primed = True
        return await self._feed.current()

    async def _wait_for_relevant_change(self) -> None:
        phone = self._feed.courier_phone
        while True:
            change = await self._queue.get()
            relevant = change.concerns(phone)
            # пачку изменений схлопываем в один пересчет
            while not self._queue.empty():
                relevant = self._queue.get_nowait().concerns(phone) or relevant
            if relevant:
                return


class OrderFeed:
    def __init__(
        self,
        store: OrderStore,
        courier_phone: str,
        *,
        hub: Optional[OrderChangeHub] = None,
        max_distance_km: Optional[float] = None,
        show_all_debug: Optional[bool] = None,
    ) -> None:
        self.store = store
        self.courier_phone = courier_phone
        self.hub = hub or store.hub
        self.max_distance_km = (
            settings.MAX_ROUTE_DISTANCE_KM if max_distance_km is None else max_distance_km
        )
        self.show_all_debug = (
            settings.SHOW_ALL_ORDERS_DEBUG if show_all_debug is None else show_all_debug
        )

    async def current(self) -> FeedSnapshot:
        """Снимок ленты на текущий момент."""
        version = self.hub.revision
        pending, active = await self.store.load_feed_sources(self.courier_phone)
        snapshot = project_feed(
            pending,
            active,
            version=version,
            max_distance_km=self.max_distance_km,
            show_all_debug=self.show_all_debug,
        )
        logger.debug(
            "Feed v%s for %s: %s visible of %s pending, %s active",
            version, self.courier_phone, len(snapshot.orders), len(pending), len(active),
        )
        return snapshot

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[FeedSubscription]:
        # подписываемся до первого чтения, чтобы не потерять изменения
        queue = await self.hub.subscribe()
        subscription = FeedSubscription(self, queue)
        try:
            yield subscription
        finally:
            subscription.close()
            await self.hub.unsubscribe(queue)
