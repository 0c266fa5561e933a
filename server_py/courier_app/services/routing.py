from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from courier_app.core.config import settings
from courier_app.core.geo import extract_point, point_distance_km

logger = logging.getLogger(__name__)


def _order_id(order: Any) -> Optional[Any]:
    return getattr(order, "id", None)


def is_on_route(
    candidate: Any,
    active_orders: Iterable[Any],
    max_distance_km: Optional[float] = None,
) -> bool:
    """Попутный ли заказ для курьера с активными заказами ``active_orders``.

    Сравниваются адреса клиентов (по прямой): кандидат попутный, если его
    точка доставки не дальше ``max_distance_km`` от точки доставки хотя бы
    одного активного заказа. Заказы без валидных координат не участвуют.
    """
    if max_distance_km is None:
        max_distance_km = settings.MAX_ROUTE_DISTANCE_KM

    target = extract_point(getattr(candidate, "location", None))
    if target is None:
        logger.debug("Order %s has no valid delivery location", _order_id(candidate))
        return False

    for active in active_orders or ():
        point = extract_point(getattr(active, "location", None))
        if point is None:
            logger.debug("Active order %s skipped: no valid delivery location", _order_id(active))
            continue
        distance = point_distance_km(point, target)
        if distance is not None and distance <= max_distance_km:
            logger.debug(
                "Order %s is on route with %s (%.1f km)",
                _order_id(candidate), _order_id(active), distance,
            )
            return True
    return False
