"""Ошибки диспетчеризации заказов.

Каждая ошибка несёт машинный код, признак повторяемости и HTTP-статус,
в который её переводят эндпоинты.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DispatchError(Exception):
    code = "dispatch_error"
    retryable = False
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Ошибка обработки заказа"

    def __init__(self, message: Optional[str] = None, *, order_id: Optional[int] = None) -> None:
        self.message = message or self.default_message
        self.order_id = order_id
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.order_id is not None:
            payload["orderId"] = self.order_id
        return payload


class NotFound(DispatchError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Заказ не найден"


class AlreadyClaimed(DispatchError):
    code = "already_claimed"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Заказ уже принят другим курьером"


class InvalidTransition(DispatchError):
    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Недопустимый переход статуса заказа"


class ClaimTimeout(DispatchError):
    code = "timeout"
    retryable = True
    http_status = status.HTTP_504_GATEWAY_TIMEOUT
    default_message = "Операция заняла слишком много времени"


class LocationUnavailable(DispatchError):
    code = "location_unavailable"
    # клиент должен заново получить координаты и повторить один раз
    retryable = True
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Не удалось определить местоположение курьера"


class StoreUnavailable(DispatchError):
    code = "store_unavailable"
    retryable = True
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Хранилище заказов недоступно"


def http_error(error: DispatchError) -> HTTPException:
    """Переводит ошибку диспетчеризации в HTTPException."""
    return HTTPException(status_code=error.http_status, detail=error.to_dict())
