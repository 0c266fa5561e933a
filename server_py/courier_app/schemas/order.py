from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from courier_app.models.order import OrderStatus


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    long: float = Field(..., ge=-180.0, le=180.0)


class ProductLine(BaseModel):
    id: Any
    count: int = Field(1, ge=0)


class OrderSnapshot(BaseModel):
    """Неизменяемый снимок заказа, отвязанный от сессии БД."""

    id: int
    status: str
    courier: Optional[str] = None
    restaurant_id: Optional[int] = None
    # сырое значение: координаты могут быть битыми, фильтр маршрута их пропускает
    location: Optional[Any] = None
    delivery_price: float = 0.0
    price: float = 0.0
    service_price: float = 0.0
    products: List[Dict[str, Any]] = Field(default_factory=list)
    accepted_at: Optional[datetime] = None
    version: int = 1
    created_at: Optional[datetime] = None

    @field_validator("accepted_at", "created_at")
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite отдает naive datetime; храним всегда в UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("products", mode="before")
    @classmethod
    def default_products(cls, value: Any) -> Any:
        return value or []

    @field_validator("delivery_price", "price", "service_price", mode="before")
    @classmethod
    def default_price(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    class Config:
        from_attributes = True
        frozen = True


class OrderCreate(BaseModel):
    restaurantId: Optional[int] = None
    location: Optional[Coordinates] = None
    deliveryPrice: float = Field(0.0, ge=0)
    price: float = Field(0.0, ge=0)
    servicePrice: float = Field(0.0, ge=0)
    products: List[ProductLine] = Field(default_factory=list)


class ClaimRequest(BaseModel):
    # текущая позиция курьера; без неё берется последняя сохраненная
    location: Optional[Coordinates] = None


class NewOrderSignal(BaseModel):
    """Данные push-сообщения о новом заказе (поля приходят строками)."""

    orderId: int
    status: str = OrderStatus.SEARCH_COURIER.value
    deliveryPrice: Optional[float] = None
    price: Optional[float] = None
    servicePrice: Optional[float] = None

    @field_validator("deliveryPrice", "price", "servicePrice", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AlertDecision(BaseModel):
    orderId: int
    onRoute: bool
    alert: bool
