from fastapi import APIRouter
from courier_app.api.v1.endpoints import auth, couriers, orders, restaurants

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(couriers.router, prefix="/couriers", tags=["couriers"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(restaurants.router, prefix="/restaurants", tags=["restaurants"])
