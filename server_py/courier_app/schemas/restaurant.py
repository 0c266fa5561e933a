from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional


class MenuItem(BaseModel):
    id: Any
    title: str = ""
    price: float = 0.0
    img: Optional[str] = None
    category: Optional[str] = None


class RestaurantSnapshot(BaseModel):
    id: int
    name: str
    location: Optional[Any] = None
    menu: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("menu", mode="before")
    @classmethod
    def default_menu(cls, value: Any) -> Any:
        return value or []

    class Config:
        from_attributes = True
        frozen = True


class ProductDetails(BaseModel):
    id: Any
    count: int
    title: str
    price: float
    total: float
    img: Optional[str] = None
    category: Optional[str] = None
