from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from courier_app.core.config import settings
from courier_app.core.errors import ClaimTimeout, DispatchError, StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[DispatchError], ...] = (ClaimTimeout, StoreUnavailable)


@dataclass(frozen=True)
class RetryPolicy:
    """Ограниченный экспоненциальный backoff."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 4.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
        )

    def delay_for(self, attempt: int) -> float:
        """Пауза после неудачной попытки ``attempt`` (нумерация с 1)."""
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[DispatchError], ...] = TRANSIENT_ERRORS,
    before_retry: Optional[Callable[[DispatchError], Awaitable[Optional[T]]]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Выполняет ``operation``, повторяя её при временных ошибках.

    ``before_retry`` вызывается перед каждым повтором; если он вернул
    значение, оно считается результатом и повтор не выполняется.
    """
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= attempts:
                logger.warning("Giving up after %s attempts: %s", attempt, exc.code)
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                "Retrying after %s (attempt %s/%s, sleep %.2fs)",
                exc.code, attempt, attempts, delay,
            )
            await sleep(delay)
            if before_retry is not None:
                resolved = await before_retry(exc)
                if resolved is not None:
                    return resolved
    raise RuntimeError("unreachable")  # pragma: no cover
