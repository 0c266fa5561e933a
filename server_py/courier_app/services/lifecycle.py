"""Жизненный цикл заказа.

search_courier -> courier -> delivering -> delivered; отмена курьером
возвращает courier -> search_courier, но только в течение окна отмены
после принятия. Окно считается от acceptedAt и всегда перепроверяется
в момент записи: таймер на клиенте только показывает обратный отсчет.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional

from courier_app.core.config import settings
from courier_app.core.errors import InvalidTransition
from courier_app.models.order import OrderStatus
from courier_app.schemas.order import OrderSnapshot
from courier_app.services.store import OrderStore

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.SEARCH_COURIER: frozenset({OrderStatus.COURIER}),
    OrderStatus.COURIER: frozenset({OrderStatus.DELIVERING, OrderStatus.SEARCH_COURIER}),
    OrderStatus.DELIVERING: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    try:
        return OrderStatus(target) in TRANSITIONS.get(OrderStatus(current), frozenset())
    except ValueError:
        return False


def _window(window_seconds: Optional[int]) -> timedelta:
    if window_seconds is None:
        window_seconds = settings.CANCEL_WINDOW_SECONDS
    return timedelta(seconds=window_seconds)


def cancel_deadline(accepted_at: Optional[datetime], window_seconds: Optional[int] = None) -> Optional[datetime]:
    if accepted_at is None:
        return None
    return accepted_at + _window(window_seconds)


def is_within_cancel_window(
    now: datetime,
    accepted_at: Optional[datetime],
    window_seconds: Optional[int] = None,
) -> bool:
    if accepted_at is None:
        return False
    elapsed = now - accepted_at
    return timedelta(0) <= elapsed < _window(window_seconds)


def cancel_seconds_remaining(
    now: datetime,
    accepted_at: Optional[datetime],
    window_seconds: Optional[int] = None,
) -> int:
    """Сколько целых секунд осталось на отмену (0 - отмена недоступна)."""
    if not is_within_cancel_window(now, accepted_at, window_seconds):
        return 0
    remaining = cancel_deadline(accepted_at, window_seconds) - now
    return max(1, math.ceil(remaining.total_seconds()))


def is_cancellable(order: OrderSnapshot, now: datetime, window_seconds: Optional[int] = None) -> bool:
    return order.status == OrderStatus.COURIER.value and is_within_cancel_window(
        now, order.accepted_at, window_seconds
    )


def _require_owner(order: OrderSnapshot, courier_phone: Optional[str]) -> None:
    if courier_phone is not None and order.courier != courier_phone:
        raise InvalidTransition("Заказ принадлежит другому курьеру", order_id=order.id)


def _require_status(order: OrderSnapshot, expected: OrderStatus, target: OrderStatus) -> None:
    if order.status != expected.value:
        raise InvalidTransition(
            f"Переход {order.status} -> {target.value} недопустим",
            order_id=order.id,
        )


class OrderLifecycle:
    def __init__(self, store: OrderStore, cancel_window_seconds: Optional[int] = None) -> None:
        self.store = store
        self.cancel_window_seconds = (
            settings.CANCEL_WINDOW_SECONDS if cancel_window_seconds is None else cancel_window_seconds
        )

    async def advance_to_delivering(self, order_id: int, courier_phone: Optional[str] = None) -> OrderSnapshot:
        def guard(order: OrderSnapshot, now: datetime) -> None:
            _require_status(order, OrderStatus.COURIER, OrderStatus.DELIVERING)
            _require_owner(order, courier_phone)

        order = await self.store.transition(
            order_id, guard, lambda order, now: {"status": OrderStatus.DELIVERING.value}
        )
        logger.info("Order %s is being delivered by %s", order_id, order.courier)
        return order

    async def mark_delivered(self, order_id: int, courier_phone: Optional[str] = None) -> OrderSnapshot:
        def guard(order: OrderSnapshot, now: datetime) -> None:
            _require_status(order, OrderStatus.DELIVERING, OrderStatus.DELIVERED)
            _require_owner(order, courier_phone)

        order = await self.store.transition(
            order_id, guard, lambda order, now: {"status": OrderStatus.DELIVERED.value}
        )
        logger.info("Order %s delivered by %s", order_id, order.courier)
        return order

    async def cancel(self, order_id: int, courier_phone: Optional[str] = None) -> OrderSnapshot:
        window = self.cancel_window_seconds

        def guard(order: OrderSnapshot, now: datetime) -> None:
            _require_status(order, OrderStatus.COURIER, OrderStatus.SEARCH_COURIER)
            _require_owner(order, courier_phone)
            if not is_within_cancel_window(now, order.accepted_at, window):
                raise InvalidTransition("Время на отмену заказа истекло", order_id=order.id)

        order = await self.store.transition(
            order_id,
            guard,
            lambda order, now: {
                "status": OrderStatus.SEARCH_COURIER.value,
                "courier": None,
                "accepted_at": None,
            },
        )
        logger.info("Order %s cancelled by courier, back to search", order_id)
        return order
