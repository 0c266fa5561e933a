from fastapi import APIRouter, Depends, HTTPException, status

from courier_app.core.dependencies import get_courier_service, require_courier
from courier_app.core.errors import DispatchError, NotFound, http_error
from courier_app.schemas.courier import LocationUpdate, OnlineUpdate
from courier_app.services.couriers import CourierService
from courier_app.services.serializers import serialize_courier

router = APIRouter()


@router.get("/me")
async def get_me(
    phone: str = Depends(require_courier),
    couriers: CourierService = Depends(get_courier_service),
):
    """Профиль текущего курьера"""
    try:
        courier = await couriers.get(phone)
    except DispatchError as exc:
        raise http_error(exc)
    if courier is None:
        raise http_error(NotFound("Курьер не найден"))
    return serialize_courier(courier)


@router.put("/me/location")
async def update_location(
    payload: LocationUpdate,
    phone: str = Depends(require_courier),
    couriers: CourierService = Depends(get_courier_service),
):
    """Обновление текущей позиции курьера; курьер считается онлайн."""
    try:
        courier = await couriers.update_location(phone, payload.lat, payload.long)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Некорректные координаты"
        )
    except DispatchError as exc:
        raise http_error(exc)
    return serialize_courier(courier)


@router.put("/me/online")
async def set_online(
    payload: OnlineUpdate,
    phone: str = Depends(require_courier),
    couriers: CourierService = Depends(get_courier_service),
):
    try:
        courier = await couriers.set_online(phone, payload.online)
    except DispatchError as exc:
        raise http_error(exc)
    return serialize_courier(courier)
