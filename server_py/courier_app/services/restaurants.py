from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from courier_app.core.database import AsyncSessionLocal
from courier_app.core.errors import NotFound
from courier_app.core.geo import extract_point, point_distance_km
from courier_app.models.restaurant import Restaurant
from courier_app.schemas.order import OrderSnapshot
from courier_app.schemas.restaurant import MenuItem, ProductDetails, RestaurantSnapshot
from courier_app.services.store import store_session

logger = logging.getLogger(__name__)

UNKNOWN_RESTAURANT = "Unknown restaurant"
UNKNOWN_PRODUCT = "Unknown product"


class RestaurantService:
    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal) -> None:
        self._session_factory = session_factory

    async def get(self, restaurant_id: int) -> Optional[RestaurantSnapshot]:
        async with store_session(self._session_factory) as session:
            result = await session.execute(select(Restaurant).where(Restaurant.id == restaurant_id))
            restaurant = result.scalar_one_or_none()
            return RestaurantSnapshot.model_validate(restaurant) if restaurant else None

    async def get_many(self, ids: Iterable[Optional[int]]) -> Dict[int, RestaurantSnapshot]:
        unique = {i for i in ids if i is not None}
        if not unique:
            return {}
        async with store_session(self._session_factory) as session:
            result = await session.execute(select(Restaurant).where(Restaurant.id.in_(unique)))
            return {r.id: RestaurantSnapshot.model_validate(r) for r in result.scalars()}

    async def names(self, ids: Iterable[Optional[int]]) -> Dict[int, str]:
        """Названия ресторанов; для отсутствующих - заглушка."""
        ids = [i for i in ids if i is not None]
        found = await self.get_many(ids)
        return {i: found[i].name if i in found else UNKNOWN_RESTAURANT for i in ids}

    async def product_details(self, order: OrderSnapshot) -> List[ProductDetails]:
        """Позиции заказа, сопоставленные с меню ресторана."""
        if order.restaurant_id is None:
            raise NotFound("У заказа нет ресторана", order_id=order.id)
        restaurant = await self.get(order.restaurant_id)
        if restaurant is None:
            raise NotFound("Ресторан не найден", order_id=order.id)

        menu: Dict[Any, MenuItem] = {}
        for raw in restaurant.menu:
            if isinstance(raw, dict) and "id" in raw:
                menu[raw["id"]] = MenuItem.model_validate(raw)

        details: List[ProductDetails] = []
        for line in order.products:
            product_id = line.get("id")
            count = int(line.get("count") or 0)
            item = menu.get(product_id)
            if item is None:
                logger.debug("Product %s missing from menu of %s", product_id, restaurant.id)
                item = MenuItem(id=product_id, title=UNKNOWN_PRODUCT, price=0.0)
            details.append(
                ProductDetails(
                    id=product_id,
                    count=count,
                    title=item.title,
                    price=item.price,
                    total=count * item.price,
                    img=item.img,
                    category=item.category,
                )
            )
        return details


def restaurant_distance_km(
    order: OrderSnapshot, restaurant: Optional[RestaurantSnapshot]
) -> Optional[float]:
    """Расстояние от ресторана до клиента по прямой (для карточки заказа)."""
    if restaurant is None:
        return None
    return point_distance_km(extract_point(restaurant.location), extract_point(order.location))
