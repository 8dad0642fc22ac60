"""
Reintentos acotados para una operacion de sincronizacion.

Politica: hasta 3 intentos; el primero inmediato y antes del intento k
se espera (k-1)^2 segundos (1s, 4s). Al agotarse, se registra el fallo
con todo el contexto y se traga: la sincronizacion es best-effort y
nunca propaga errores al webhook ni al scheduler.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger


T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_MAX_ATTEMPTS = 3


def backoff_delay(attempt: int) -> float:
    """Espera antes del intento `attempt` (1-based)."""
    if attempt <= 1:
        return 0.0
    return float((attempt - 1) ** 2)


class RetryController:
    """Envuelve una llamada de upsert con reintentos y backoff cuadratico."""

    def __init__(self, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS, sleep: Optional[Sleep] = None) -> None:
        self._max_attempts = max(1, max_attempts)
        self._sleep = sleep or asyncio.sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        kind: str,
        external_id: str,
    ) -> Optional[T]:
        """
        Ejecuta `operation` hasta tener exito o agotar intentos.

        Returns:
            El resultado de la operacion, o None si fallo definitivamente.
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self._max_attempts + 1):
            delay = backoff_delay(attempt)
            if delay:
                await self._sleep(delay)
            try:
                result = await operation()
                if attempt > 1:
                    logger.info(f"Sync {kind} {external_id} exitosa en el intento {attempt}")
                return result
            except Exception as e:
                last_error = e
                if not getattr(e, "retryable", True):
                    logger.error(f"Sync {kind} {external_id} fallo sin reintento: {e}")
                    return None
                logger.warning(
                    f"Sync {kind} {external_id} fallo (intento {attempt}/{self._max_attempts}): {e}"
                )

        logger.error(
            f"Sync {kind} {external_id} fallo tras {self._max_attempts} intentos. "
            f"Ultimo error: {last_error!r}"
        )
        return None
