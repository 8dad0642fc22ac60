"""
Lanzamiento de tareas en background con barrera de fallos.

Cada tarea corre envuelta: cualquier excepcion se registra y la tarea
termina. Nunca afecta al codigo que la lanzo.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Set

from loguru import logger


class BackgroundTaskRunner:
    """Lanza corutinas "fire-and-forget" y mantiene referencias vivas."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable[object], *, name: str) -> asyncio.Task:
        task = asyncio.create_task(self._supervised(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _supervised(self, coro: Awaitable[object], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.warning(f"Tarea en background cancelada: {name}")
            raise
        except Exception:
            logger.exception(f"Tarea en background fallo: {name}")

    async def drain(self) -> None:
        """Espera a que terminen todas las tareas lanzadas hasta ahora."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> int:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return len(tasks)


# Runner compartido por los handlers de eventos y los endpoints
background_tasks = BackgroundTaskRunner()
