from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courier_app.core.database import AsyncSessionLocal
from courier_app.core.errors import NotFound
from courier_app.core.geo import Point, extract_point
from courier_app.core.phone import normalize_phone
from courier_app.models.courier import Courier
from courier_app.schemas.courier import CourierSnapshot
from courier_app.services.store import Clock, store_session, utcnow

logger = logging.getLogger(__name__)


class CourierService:
    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @staticmethod
    async def _get(session: AsyncSession, phone: str) -> Optional[Courier]:
        result = await session.execute(select(Courier).where(Courier.phone_number == phone))
        return result.scalar_one_or_none()

    async def get(self, phone: str) -> Optional[CourierSnapshot]:
        """Получение курьера по телефону"""
        async with store_session(self._session_factory) as session:
            courier = await self._get(session, phone)
            return CourierSnapshot.model_validate(courier) if courier else None

    async def login(self, phone: str) -> CourierSnapshot:
        """Вход по номеру: номер должен быть зарегистрирован в таблице курьеров."""
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValueError("invalid_phone")
        courier = await self.get(normalized)
        if courier is None:
            logger.info("Login rejected for unregistered phone %s", normalized)
            raise NotFound("Этот номер не зарегистрирован")
        return courier

    async def register(self, phone: str, name: Optional[str] = None) -> CourierSnapshot:
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValueError("invalid_phone")
        async with store_session(self._session_factory) as session:
            courier = await self._get(session, normalized)
            if courier is None:
                courier = Courier(phone_number=normalized, name=name, online=False)
                session.add(courier)
            elif name:
                courier.name = name
            await session.commit()
            await session.refresh(courier)
            return CourierSnapshot.model_validate(courier)

    async def update_location(self, phone: str, lat: float, long: float) -> CourierSnapshot:
        """Merge-обновление позиции: создает запись, если её еще нет."""
        point = extract_point({"lat": lat, "long": long})
        if point is None:
            raise ValueError("invalid_coordinates")

        async with store_session(self._session_factory) as session:
            courier = await self._get(session, phone)
            if courier is None:
                courier = Courier(phone_number=phone)
                session.add(courier)
            courier.location = {"lat": point[0], "long": point[1]}
            courier.location_updated_at = self._clock()
            courier.online = True
            await session.commit()
            await session.refresh(courier)
            return CourierSnapshot.model_validate(courier)

    async def set_online(self, phone: str, online: bool) -> CourierSnapshot:
        async with store_session(self._session_factory) as session:
            courier = await self._get(session, phone)
            if courier is None:
                raise NotFound("Курьер не найден")
            courier.online = online
            await session.commit()
            await session.refresh(courier)
            return CourierSnapshot.model_validate(courier)

    async def current_position(self, phone: str, max_age_seconds: int) -> Optional[Point]:
        """Последняя сохраненная позиция, если она не старше ``max_age_seconds``."""
        courier = await self.get(phone)
        if courier is None or courier.location_updated_at is None:
            return None
        if self._clock() - courier.location_updated_at > timedelta(seconds=max_age_seconds):
            return None
        return extract_point(courier.location)
