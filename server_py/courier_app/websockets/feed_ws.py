from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Set

import anyio
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from courier_app.core.dependencies import get_order_store, get_restaurant_service
from courier_app.core.errors import DispatchError
from courier_app.core.security import decode_subject
from courier_app.services.feed import OrderFeed
from courier_app.services.restaurants import RestaurantService
from courier_app.services.serializers import serialize_snapshot
from courier_app.services.store import OrderStore

logger = logging.getLogger(__name__)

router = APIRouter()


class FeedConnectionManager:
    """Открытые сокеты ленты по телефону курьера."""

    def __init__(self) -> None:
        self._connections: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def register(self, phone: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.setdefault(phone, set()).add(websocket)

    async def unregister(self, phone: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._connections.get(phone)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._connections.pop(phone, None)

    async def connected_couriers(self) -> List[str]:
        async with self._lock:
            return list(self._connections)


feed_manager = FeedConnectionManager()


async def _push_snapshots(
    websocket: WebSocket,
    feed: OrderFeed,
    restaurants: RestaurantService,
) -> None:
    try:
        async with feed.subscribe() as subscription:
            async for snapshot in subscription:
                names = await restaurants.get_many(o.restaurant_id for o in snapshot.orders)
                await websocket.send_json({"type": "feed", "data": serialize_snapshot(snapshot, names)})
    except WebSocketDisconnect:
        return
    except DispatchError as exc:
        logger.warning("Feed for %s stopped: %s", feed.courier_phone, exc.code)
        try:
            await websocket.send_json({"type": "error", "data": exc.to_dict()})
            await websocket.close(code=1011)
        except Exception:  # noqa: BLE001
            pass


async def _watch_disconnect(websocket: WebSocket, scope: anyio.CancelScope) -> None:
    # входящие сообщения после авторизации не нужны, ждем только закрытия
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            scope.cancel()
            return


@router.websocket("/ws/orders/feed")
async def orders_feed_websocket(
    websocket: WebSocket,
    store: OrderStore = Depends(get_order_store),
    restaurants: RestaurantService = Depends(get_restaurant_service),
) -> None:
    await websocket.accept()
    try:
        init_payload = await websocket.receive_json()
    except WebSocketDisconnect:
        return
    token = init_payload.get("token") if isinstance(init_payload, dict) else None
    phone = decode_subject(token) if isinstance(token, str) else None
    if phone is None:
        await websocket.close(code=4403)
        return

    await feed_manager.register(phone, websocket)
    try:
        # закрытие сокета отменяет рассылку, а отмена снаружи доходит до обеих задач
        async with anyio.create_task_group() as tg:
            tg.start_soon(_watch_disconnect, websocket, tg.cancel_scope)
            await _push_snapshots(websocket, OrderFeed(store, phone), restaurants)
            tg.cancel_scope.cancel()
    except Exception:  # noqa: BLE001
        logger.exception("Orders feed websocket error")
        try:
            await websocket.close(code=1011)
        except Exception:  # noqa: BLE001
            pass
    finally:
        with anyio.CancelScope(shield=True):
            await feed_manager.unregister(phone, websocket)
        logger.debug("Feed socket for %s closed", phone)
