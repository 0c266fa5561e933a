from datetime import datetime, timezone
from pydantic import BaseModel, field_validator
from typing import Any, Optional

from courier_app.schemas.order import Coordinates


class CourierSnapshot(BaseModel):
    phone_number: str
    name: Optional[str] = None
    location: Optional[Any] = None
    location_updated_at: Optional[datetime] = None
    online: bool = False

    @field_validator("location_updated_at")
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("online", mode="before")
    @classmethod
    def default_online(cls, value: Any) -> Any:
        return bool(value)

    class Config:
        from_attributes = True
        frozen = True


# Обновление позиции курьера (merge)
class LocationUpdate(Coordinates):
    pass


class OnlineUpdate(BaseModel):
    online: bool
