from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from courier_app.core.retry import RetryPolicy
from courier_app.core.security import decode_subject
from courier_app.services.alerts import NewOrderAlerts
from courier_app.services.claim import ClaimCoordinator
from courier_app.services.couriers import CourierService
from courier_app.services.lifecycle import OrderLifecycle
from courier_app.services.restaurants import RestaurantService
from courier_app.services.store import OrderStore

# Определяем схему безопасности
security = HTTPBearer(auto_error=False)

# Сервисы процесса; в тестах подменяются через app.dependency_overrides
order_store = OrderStore()
courier_service = CourierService()
restaurant_service = RestaurantService()


def get_order_store() -> OrderStore:
    return order_store


def get_courier_service() -> CourierService:
    return courier_service


def get_restaurant_service() -> RestaurantService:
    return restaurant_service


def get_retry_policy() -> RetryPolicy:
    return RetryPolicy.from_settings()


def get_claim_coordinator(
    store: OrderStore = Depends(get_order_store),
    couriers: CourierService = Depends(get_courier_service),
    policy: RetryPolicy = Depends(get_retry_policy),
) -> ClaimCoordinator:
    return ClaimCoordinator(store, couriers, retry_policy=policy)


def get_lifecycle(store: OrderStore = Depends(get_order_store)) -> OrderLifecycle:
    return OrderLifecycle(store)


def get_alerts(store: OrderStore = Depends(get_order_store)) -> NewOrderAlerts:
    return NewOrderAlerts(store)


async def get_current_courier_phone(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """
    Телефон курьера из JWT токена.
    Возвращает None если токен не предоставлен или невалиден.
    """
    if not credentials:
        return None
    return decode_subject(credentials.credentials)


async def require_courier(
    phone: Optional[str] = Depends(get_current_courier_phone),
) -> str:
    """
    Dependency для эндпоинтов, которые обязательно требуют авторизации курьера.
    """
    if phone is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Требуется авторизация",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return phone
