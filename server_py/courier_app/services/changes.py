from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Set

from courier_app.models.order import OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderChange:
    """Одна зафиксированная запись заказа."""

    order_id: int
    revision: int
    before_status: Optional[str]
    after_status: Optional[str]
    before_courier: Optional[str] = None
    after_courier: Optional[str] = None

    def concerns(self, courier_phone: str) -> bool:
        """Меняет ли запись ленту ожидающих заказов или активные заказы курьера."""
        pending = OrderStatus.SEARCH_COURIER.value
        if pending in (self.before_status, self.after_status):
            return True
        return courier_phone in (self.before_courier, self.after_courier)


class OrderChangeHub:
    """Рассылает изменения заказов подписчикам внутри процесса.

    Каждый подписчик получает собственную очередь; хранилище публикует
    изменение только после коммита транзакции.
    """

    def __init__(self) -> None:
        self._subscribers: Set[asyncio.Queue] = set()
        self._lock = asyncio.Lock()
        self._revision = 0

    @property
    def revision(self) -> int:
        return self._revision

    async def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        async with self._lock:
            self._subscribers.add(queue)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        async with self._lock:
            self._subscribers.discard(queue)

    async def subscriber_count(self) -> int:
        async with self._lock:
            return len(self._subscribers)

    async def publish(
        self,
        order_id: int,
        *,
        before_status: Optional[str],
        after_status: Optional[str],
        before_courier: Optional[str] = None,
        after_courier: Optional[str] = None,
    ) -> OrderChange:
        async with self._lock:
            self._revision += 1
            change = OrderChange(
                order_id=order_id,
                revision=self._revision,
                before_status=before_status,
                after_status=after_status,
                before_courier=before_courier,
                after_courier=after_courier,
            )
            subscribers = list(self._subscribers)
        for queue in subscribers:
            queue.put_nowait(change)
        logger.debug(
            "Order %s changed %s -> %s (rev %s, %s subscribers)",
            order_id, before_status, after_status, change.revision, len(subscribers),
        )
        return change


order_changes = OrderChangeHub()
