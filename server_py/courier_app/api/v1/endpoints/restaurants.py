from fastapi import APIRouter, Depends

from courier_app.core.dependencies import get_restaurant_service
from courier_app.core.errors import DispatchError, NotFound, http_error
from courier_app.schemas.restaurant import RestaurantSnapshot
from courier_app.services.restaurants import RestaurantService

router = APIRouter()


@router.get("/{restaurant_id}", response_model=RestaurantSnapshot)
async def get_restaurant(
    restaurant_id: int,
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Ресторан вместе с меню"""
    try:
        restaurant = await restaurants.get(restaurant_id)
    except DispatchError as exc:
        raise http_error(exc)
    if restaurant is None:
        raise http_error(NotFound("Ресторан не найден"))
    return restaurant
