from fastapi import APIRouter, Depends, HTTPException, status

from courier_app.core.dependencies import get_courier_service
from courier_app.core.errors import DispatchError, http_error
from courier_app.core.phone import format_phone_display
from courier_app.core.security import create_access_token
from courier_app.schemas.auth import LoginRequest, TokenResponse
from courier_app.services.couriers import CourierService
from courier_app.services.serializers import serialize_courier

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    couriers: CourierService = Depends(get_courier_service),
):
    """
    Вход курьера по номеру телефона.
    Номер должен заранее быть в таблице курьеров.
    """
    try:
        courier = await couriers.login(request.phone)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Некорректный номер телефона"
        )
    except DispatchError as exc:
        raise http_error(exc)

    token = create_access_token({"sub": courier.phone_number})
    return {
        "access_token": token,
        "token_type": "bearer",
        "phone": courier.phone_number,
        "phone_display": format_phone_display(courier.phone_number),
        "courier": serialize_courier(courier),
    }


@router.post("/logout")
async def logout() -> dict:
    """Заглушка для совместимости с мобильным клиентом."""
    return {"ok": True}
