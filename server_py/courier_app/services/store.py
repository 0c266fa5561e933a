"""Хранилище заказов поверх асинхронного SQLAlchemy.

Единственный путь изменения заказа - ``OrderStore.transition``: чтение,
проверка условия и одна условная запись
``UPDATE ... WHERE status = :read_status AND version = :read_version``
в рамках одной транзакции. Если между чтением и записью заказ успел
измениться, UPDATE не затрагивает ни одной строки и транзакция
откатывается без побочных эффектов.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple, Type

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courier_app.core.database import AsyncSessionLocal
from courier_app.core.errors import DispatchError, InvalidTransition, NotFound, StoreUnavailable
from courier_app.models.order import Order, OrderStatus
from courier_app.models.restaurant import Restaurant  # noqa: F401  (relationship target)
from courier_app.schemas.order import OrderCreate, OrderSnapshot
from courier_app.services.changes import OrderChangeHub, order_changes

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Guard = Callable[[OrderSnapshot, datetime], None]
Changes = Callable[[OrderSnapshot, datetime], Dict[str, Any]]

ACTIVE_STATUSES = (OrderStatus.COURIER.value, OrderStatus.DELIVERING.value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@asynccontextmanager
async def store_session(session_factory: async_sessionmaker) -> AsyncIterator[AsyncSession]:
    """Сессия БД, в которой ошибки соединения превращаются в StoreUnavailable."""
    try:
        async with session_factory() as session:
            yield session
    except (OperationalError, InterfaceError) as exc:
        logger.warning("Store unavailable: %s", exc)
        raise StoreUnavailable() from exc


class OrderStore:
    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        hub: OrderChangeHub = order_changes,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.hub = hub
        self._clock = clock

    def now(self) -> datetime:
        """Время хранилища; им помечаются acceptedAt и проверяется окно отмены."""
        return self._clock()

    @staticmethod
    async def _read(session: AsyncSession, order_id: int) -> Optional[OrderSnapshot]:
        result = await session.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        return OrderSnapshot.model_validate(order) if order is not None else None

    async def get_order(self, order_id: int) -> Optional[OrderSnapshot]:
        async with store_session(self._session_factory) as session:
            return await self._read(session, order_id)

    async def list_pending(self) -> List[OrderSnapshot]:
        """Заказы в статусе search_courier в порядке поступления."""
        async with store_session(self._session_factory) as session:
            result = await session.execute(
                select(Order)
                .where(Order.status == OrderStatus.SEARCH_COURIER.value)
                .order_by(Order.id)
            )
            return [OrderSnapshot.model_validate(o) for o in result.scalars()]

    async def list_active(self, courier_phone: str) -> List[OrderSnapshot]:
        """Активные заказы курьера (courier, delivering)."""
        async with store_session(self._session_factory) as session:
            result = await session.execute(
                select(Order)
                .where(Order.courier == courier_phone, Order.status.in_(ACTIVE_STATUSES))
                .order_by(Order.id)
            )
            return [OrderSnapshot.model_validate(o) for o in result.scalars()]

    async def load_feed_sources(
        self, courier_phone: str
    ) -> Tuple[List[OrderSnapshot], List[OrderSnapshot]]:
        """Ожидающие и активные заказы одним запросом, то есть из одной ревизии."""
        async with store_session(self._session_factory) as session:
            result = await session.execute(
                select(Order)
                .where(
                    or_(
                        Order.status == OrderStatus.SEARCH_COURIER.value,
                        and_(
                            Order.courier == courier_phone,
                            Order.status.in_(ACTIVE_STATUSES),
                        ),
                    )
                )
                .order_by(Order.id)
            )
            pending: List[OrderSnapshot] = []
            active: List[OrderSnapshot] = []
            for row in result.scalars():
                snapshot = OrderSnapshot.model_validate(row)
                if snapshot.status == OrderStatus.SEARCH_COURIER.value:
                    pending.append(snapshot)
                else:
                    active.append(snapshot)
            return pending, active

    async def create_order(self, data: OrderCreate) -> OrderSnapshot:
        order = Order(
            status=OrderStatus.SEARCH_COURIER.value,
            restaurant_id=data.restaurantId,
            location=data.location.model_dump() if data.location else None,
            delivery_price=data.deliveryPrice,
            price=data.price,
            service_price=data.servicePrice,
            products=[line.model_dump() for line in data.products],
            version=1,
        )
        async with store_session(self._session_factory) as session:
            session.add(order)
            await session.commit()
            await session.refresh(order)
            snapshot = OrderSnapshot.model_validate(order)

        logger.info("Order %s created", snapshot.id)
        await self.hub.publish(
            snapshot.id,
            before_status=None,
            after_status=snapshot.status,
        )
        return snapshot

    async def transition(
        self,
        order_id: int,
        guard: Guard,
        changes: Changes,
        *,
        conflict: Type[DispatchError] = InvalidTransition,
    ) -> OrderSnapshot:
        """Атомарное чтение-проверка-запись одного заказа.

        ``guard`` бросает ошибку, если переход недопустим для прочитанного
        состояния. ``conflict`` бросается, когда условная запись не нашла
        строку: заказ изменил кто-то другой.
        """
        async with store_session(self._session_factory) as session:
            async with session.begin():
                current = await self._read(session, order_id)
                if current is None:
                    raise NotFound(order_id=order_id)

                now = self.now()
                guard(current, now)
                values = dict(changes(current, now))
                values["version"] = current.version + 1

                result = await session.execute(
                    update(Order)
                    .where(
                        Order.id == order_id,
                        Order.status == current.status,
                        Order.version == current.version,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    logger.info(
                        "Conditional write on order %s lost (read version %s)",
                        order_id, current.version,
                    )
                    raise conflict(order_id=order_id)

        updated = current.model_copy(update=values)
        await self.hub.publish(
            order_id,
            before_status=current.status,
            after_status=updated.status,
            before_courier=current.courier,
            after_courier=updated.courier,
        )
        return updated
