from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from courier_app.core.phone import format_phone_display
from courier_app.models.order import OrderStatus
from courier_app.schemas.courier import CourierSnapshot
from courier_app.schemas.order import OrderSnapshot
from courier_app.schemas.restaurant import RestaurantSnapshot
from courier_app.services.feed import FeedSnapshot
from courier_app.services.lifecycle import cancel_seconds_remaining
from courier_app.services.restaurants import UNKNOWN_RESTAURANT, restaurant_distance_km


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_order(
    order: OrderSnapshot,
    restaurants: Optional[Mapping[int, RestaurantSnapshot]] = None,
) -> Dict[str, Any]:
    """Заказ в формате мобильного клиента (camelCase)."""
    payload: Dict[str, Any] = {
        "id": order.id,
        "status": order.status,
        "courier": order.courier,
        "restaurantId": order.restaurant_id,
        "location": order.location,
        "deliveryPrice": order.delivery_price,
        "price": order.price,
        "servicePrice": order.service_price,
        "orderTotal": order.price + order.service_price,
        "products": order.products,
        "acceptedAt": _iso(order.accepted_at),
        "createdAt": _iso(order.created_at),
    }
    if restaurants is not None:
        restaurant = restaurants.get(order.restaurant_id) if order.restaurant_id is not None else None
        payload["restaurantName"] = restaurant.name if restaurant else UNKNOWN_RESTAURANT
        payload["restaurantDistanceKm"] = restaurant_distance_km(order, restaurant)
    return payload


def serialize_active_order(
    order: OrderSnapshot,
    now: datetime,
    window_seconds: int,
    restaurants: Optional[Mapping[int, RestaurantSnapshot]] = None,
) -> Dict[str, Any]:
    payload = serialize_order(order, restaurants)
    remaining = 0
    if order.status == OrderStatus.COURIER.value:
        remaining = cancel_seconds_remaining(now, order.accepted_at, window_seconds)
    payload["cancelSecondsRemaining"] = remaining
    payload["cancellable"] = remaining > 0
    return payload


def serialize_snapshot(
    snapshot: FeedSnapshot,
    restaurants: Optional[Mapping[int, RestaurantSnapshot]] = None,
) -> Dict[str, Any]:
    return {
        "version": snapshot.version,
        "orders": [serialize_order(o, restaurants) for o in snapshot.orders],
        "onRoute": {str(k): v for k, v in snapshot.on_route.items()},
        "activeOrderIds": list(snapshot.active_order_ids),
        "hasActiveOrders": snapshot.has_active_orders,
    }


def serialize_courier(courier: CourierSnapshot) -> Dict[str, Any]:
    return {
        "phoneNumber": courier.phone_number,
        "phoneDisplay": format_phone_display(courier.phone_number),
        "name": courier.name,
        "location": courier.location,
        "locationUpdatedAt": _iso(courier.location_updated_at),
        "online": courier.online,
    }
