from pydantic import BaseModel, field_validator
from typing import Any, Dict, Optional


# Вход курьера по номеру телефона
class LoginRequest(BaseModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def strip_phone(cls, value: str) -> str:
        return value.strip()


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    phone: str
    phone_display: Optional[str] = None
    courier: Optional[Dict[str, Any]] = None
