"""Принятие заказа курьером.

Гонку между курьерами решает только хранилище: проверка статуса и запись
``status=courier`` выполняются одной условной записью внутри транзакции.
Из двух одновременных попыток фиксируется ровно одна, вторая получает
AlreadyClaimed и ничего не меняет.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from courier_app.core.config import settings
from courier_app.core.errors import (
    AlreadyClaimed,
    ClaimTimeout,
    DispatchError,
    LocationUnavailable,
    StoreUnavailable,
)
from courier_app.core.geo import Point, extract_point
from courier_app.core.retry import RetryPolicy, retry_async
from courier_app.models.order import OrderStatus
from courier_app.schemas.order import OrderSnapshot
from courier_app.services.couriers import CourierService
from courier_app.services.store import OrderStore

logger = logging.getLogger(__name__)


class ClaimCoordinator:
    def __init__(
        self,
        store: OrderStore,
        couriers: CourierService,
        *,
        timeout_seconds: Optional[float] = None,
        location_max_age_seconds: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.store = store
        self.couriers = couriers
        self.timeout_seconds = (
            settings.CLAIM_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )
        self.location_max_age_seconds = (
            settings.COURIER_LOCATION_MAX_AGE_SECONDS
            if location_max_age_seconds is None
            else location_max_age_seconds
        )
        self.retry_policy = retry_policy or RetryPolicy.from_settings()

    async def _resolve_position(self, courier_phone: str, position: Optional[object]) -> Point:
        point = extract_point(position)
        if point is not None:
            await self.couriers.update_location(courier_phone, point[0], point[1])
            return point
        point = await self.couriers.current_position(courier_phone, self.location_max_age_seconds)
        if point is None:
            logger.info("Claim refused for %s: position unknown", courier_phone)
            raise LocationUnavailable()
        return point

    async def _commit_claim(self, order_id: int, courier_phone: str) -> OrderSnapshot:
        def guard(order: OrderSnapshot, now: datetime) -> None:
            if order.status != OrderStatus.SEARCH_COURIER.value:
                raise AlreadyClaimed(order_id=order_id)

        return await self.store.transition(
            order_id,
            guard,
            lambda order, now: {
                "status": OrderStatus.COURIER.value,
                "courier": courier_phone,
                "accepted_at": now,
            },
            conflict=AlreadyClaimed,
        )

    async def claim(
        self,
        order_id: int,
        courier_phone: str,
        position: Optional[object] = None,
    ) -> OrderSnapshot:
        """Одна попытка принять заказ.

        ``position`` - текущая позиция курьера ``{lat, long}``; без неё
        используется сохраненная позиция, если она достаточно свежая.
        """
        await self._resolve_position(courier_phone, position)
        try:
            order = await asyncio.wait_for(
                self._commit_claim(order_id, courier_phone),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Claim of order %s by %s timed out", order_id, courier_phone)
            raise ClaimTimeout(order_id=order_id) from exc
        except AlreadyClaimed:
            logger.info("Order %s already claimed, %s lost", order_id, courier_phone)
            raise

        logger.info("Order %s claimed by %s", order_id, courier_phone)
        return order

    async def claim_with_retry(
        self,
        order_id: int,
        courier_phone: str,
        position: Optional[object] = None,
    ) -> OrderSnapshot:
        """``claim`` с повторами при Timeout/StoreUnavailable.

        Перед повтором заказ перечитывается: если предыдущая попытка все же
        зафиксировалась за этим курьером, возвращается она.
        """

        async def already_ours(_: DispatchError) -> Optional[OrderSnapshot]:
            try:
                current = await self.store.get_order(order_id)
            except StoreUnavailable:
                logger.warning("Could not re-read order %s before retry", order_id)
                return None
            if (
                current is not None
                and current.status == OrderStatus.COURIER.value
                and current.courier == courier_phone
            ):
                logger.info("Order %s turned out to be claimed by %s earlier", order_id, courier_phone)
                return current
            return None

        return await retry_async(
            lambda: self.claim(order_id, courier_phone, position),
            self.retry_policy,
            before_retry=already_ours,
        )
