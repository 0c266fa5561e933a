import sys
from pathlib import Path

# Добавляем корневую директорию проекта в PYTHONPATH
sys.path.append(str(Path(__file__).resolve().parent.parent))

import asyncio

from courier_app.core.database import AsyncSessionLocal
from courier_app.core.init_db import init_db
from courier_app.core.security import create_access_token
from courier_app.models.restaurant import Restaurant
from courier_app.schemas.order import OrderCreate
from courier_app.services.couriers import CourierService
from courier_app.services.store import OrderStore

PHONE = "901234567"

MENU = [
    {"id": 1, "title": "Плов", "price": 35000, "category": "main"},
    {"id": 2, "title": "Самса", "price": 8000, "category": "bakery"},
    {"id": 3, "title": "Чай", "price": 5000, "category": "drinks"},
]


async def main() -> None:
    await init_db()

    couriers = CourierService()
    courier = await couriers.register(PHONE, "Demo courier")

    async with AsyncSessionLocal() as session:
        restaurant = Restaurant(name="Demo kitchen", location={"lat": 41.311, "long": 69.279}, menu=MENU)
        session.add(restaurant)
        await session.commit()
        await session.refresh(restaurant)

    store = OrderStore()
    for lat, long in ((41.3000, 69.2000), (41.3050, 69.2050), (41.3500, 69.2500)):
        order = await store.create_order(
            OrderCreate(
                restaurantId=restaurant.id,
                location={"lat": lat, "long": long},
                deliveryPrice=12000,
                price=48000,
                servicePrice=2000,
                products=[{"id": 1, "count": 1}, {"id": 2, "count": 1}],
            )
        )
        print(f"Заказ {order.id} -> {lat}, {long}")

    print(f"Курьер {courier.phone_number}, токен: {create_access_token({'sub': courier.phone_number})}")


if __name__ == "__main__":
    asyncio.run(main())
