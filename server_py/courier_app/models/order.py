from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, JSON
from sqlalchemy.orm import relationship
from courier_app.core.database import Base

class OrderStatus(str, Enum):
    SEARCH_COURIER = "search_courier"
    COURIER = "courier"
    DELIVERING = "delivering"
    DELIVERED = "delivered"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    status = Column(String, default=OrderStatus.SEARCH_COURIER.value, nullable=False, index=True)
    courier = Column(String, nullable=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True)

    # Адрес клиента {"lat": ..., "long": ...}; может отсутствовать
    location = Column(JSON, nullable=True)

    # Стоимость
    delivery_price = Column(Float, default=0.0)
    price = Column(Float, default=0.0)
    service_price = Column(Float, default=0.0)

    # [{"id": ..., "count": ...}]
    products = Column(JSON, nullable=True)

    # Время принятия заказа курьером (UTC, ставит хранилище)
    accepted_at = Column(DateTime(timezone=True), nullable=True)

    # Увеличивается при каждой записи, используется как условие в UPDATE
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="orders")
