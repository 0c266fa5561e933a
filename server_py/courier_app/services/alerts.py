from __future__ import annotations

import logging

from courier_app.core.errors import StoreUnavailable
from courier_app.models.order import OrderStatus
from courier_app.schemas.order import AlertDecision, NewOrderSignal
from courier_app.services.routing import is_on_route
from courier_app.services.store import OrderStore

logger = logging.getLogger(__name__)


class NewOrderAlerts:
    """Решает, стоит ли громко уведомлять курьера о новом заказе из push-сообщения.

    Курьер без активных заказов слышит о каждом новом заказе. Курьер с
    активными заказами - только о попутных.
    """

    def __init__(self, store: OrderStore, max_distance_km: float | None = None) -> None:
        self.store = store
        self.max_distance_km = max_distance_km

    async def evaluate(self, signal: NewOrderSignal, courier_phone: str) -> AlertDecision:
        order_id = signal.orderId
        if signal.status != OrderStatus.SEARCH_COURIER.value:
            return AlertDecision(orderId=order_id, onRoute=False, alert=True)

        try:
            active = await self.store.list_active(courier_phone)
            if not active:
                return AlertDecision(orderId=order_id, onRoute=False, alert=True)

            order = await self.store.get_order(order_id)
        except StoreUnavailable:
            # лучше лишний раз уведомить, чем пропустить заказ
            logger.warning("Could not check route for order %s, alerting anyway", order_id)
            return AlertDecision(orderId=order_id, onRoute=False, alert=True)

        if order is None:
            # заказ еще не виден в хранилище: уведомляем, как и при ошибке
            logger.info("Signalled order %s not found, alerting anyway", order_id)
            return AlertDecision(orderId=order_id, onRoute=False, alert=True)

        on_route = is_on_route(order, active, self.max_distance_km)
        logger.info("Order %s on route for %s: %s", order_id, courier_phone, on_route)
        return AlertDecision(orderId=order_id, onRoute=on_route, alert=on_route)
