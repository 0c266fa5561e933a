from fastapi import APIRouter, Depends, status
from typing import Awaitable, Callable, List, Optional

from courier_app.core.config import settings
from courier_app.core.dependencies import (
    get_alerts,
    get_claim_coordinator,
    get_lifecycle,
    get_order_store,
    get_restaurant_service,
    get_retry_policy,
    require_courier,
)
from courier_app.core.errors import DispatchError, NotFound, http_error
from courier_app.core.retry import RetryPolicy, retry_async
from courier_app.schemas.order import AlertDecision, ClaimRequest, NewOrderSignal, OrderCreate, OrderSnapshot
from courier_app.schemas.restaurant import ProductDetails
from courier_app.services.alerts import NewOrderAlerts
from courier_app.services.claim import ClaimCoordinator
from courier_app.services.feed import OrderFeed
from courier_app.services.lifecycle import OrderLifecycle
from courier_app.services.restaurants import RestaurantService
from courier_app.services.serializers import serialize_active_order, serialize_order, serialize_snapshot
from courier_app.services.store import OrderStore

router = APIRouter()


async def _run(operation: Callable[[], Awaitable[OrderSnapshot]], policy: RetryPolicy) -> OrderSnapshot:
    try:
        return await retry_async(operation, policy)
    except DispatchError as exc:
        raise http_error(exc)


@router.get("/feed")
async def get_feed(
    phone: str = Depends(require_courier),
    store: OrderStore = Depends(get_order_store),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Заказы, которые сейчас видит курьер"""
    try:
        snapshot = await OrderFeed(store, phone).current()
        names = await restaurants.get_many(o.restaurant_id for o in snapshot.orders)
    except DispatchError as exc:
        raise http_error(exc)
    return serialize_snapshot(snapshot, names)


@router.get("/active")
async def get_active_orders(
    phone: str = Depends(require_courier),
    store: OrderStore = Depends(get_order_store),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Активные заказы курьера с обратным отсчетом окна отмены"""
    try:
        active = await store.list_active(phone)
        names = await restaurants.get_many(o.restaurant_id for o in active)
    except DispatchError as exc:
        raise http_error(exc)
    now = store.now()
    return [
        serialize_active_order(order, now, settings.CANCEL_WINDOW_SECONDS, names)
        for order in active
    ]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    store: OrderStore = Depends(get_order_store),
):
    """Создание заказа внешней системой; заказ сразу попадает в поиск курьера"""
    try:
        order = await store.create_order(order_data)
    except DispatchError as exc:
        raise http_error(exc)
    return serialize_order(order)


@router.post("/signals/new-order", response_model=AlertDecision)
async def new_order_signal(
    signal: NewOrderSignal,
    phone: str = Depends(require_courier),
    alerts: NewOrderAlerts = Depends(get_alerts),
):
    """Нужно ли громко уведомить курьера о новом заказе из push-сообщения"""
    return await alerts.evaluate(signal, phone)


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    store: OrderStore = Depends(get_order_store),
):
    """Получение заказа по ID"""
    try:
        order = await store.get_order(order_id)
    except DispatchError as exc:
        raise http_error(exc)
    if order is None:
        raise http_error(NotFound(order_id=order_id))
    return serialize_order(order)


@router.get("/{order_id}/products", response_model=List[ProductDetails])
async def get_order_products(
    order_id: int,
    store: OrderStore = Depends(get_order_store),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Состав заказа с названиями и ценами из меню ресторана"""
    try:
        order = await store.get_order(order_id)
        if order is None:
            raise NotFound(order_id=order_id)
        return await restaurants.product_details(order)
    except DispatchError as exc:
        raise http_error(exc)


@router.post("/{order_id}/claim")
async def claim_order(
    order_id: int,
    payload: Optional[ClaimRequest] = None,
    phone: str = Depends(require_courier),
    coordinator: ClaimCoordinator = Depends(get_claim_coordinator),
):
    """Принять заказ. Из нескольких одновременных попыток успешна ровно одна."""
    position = payload.location if payload else None
    try:
        order = await coordinator.claim_with_retry(order_id, phone, position)
    except DispatchError as exc:
        raise http_error(exc)
    return serialize_order(order)


@router.post("/{order_id}/delivering")
async def start_delivering(
    order_id: int,
    phone: str = Depends(require_courier),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    order = await _run(lambda: lifecycle.advance_to_delivering(order_id, phone), policy)
    return serialize_order(order)


@router.post("/{order_id}/delivered")
async def mark_delivered(
    order_id: int,
    phone: str = Depends(require_courier),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    order = await _run(lambda: lifecycle.mark_delivered(order_id, phone), policy)
    return serialize_order(order)


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    phone: str = Depends(require_courier),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    """Отмена принятого заказа в течение окна отмены; заказ возвращается в поиск"""
    order = await _run(lambda: lifecycle.cancel(order_id, phone), policy)
    return serialize_order(order)
