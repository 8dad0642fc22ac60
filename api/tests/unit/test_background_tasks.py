"""
Tests del runner de tareas en background (barrera de fallos).
"""
from __future__ import annotations

import asyncio

import pytest

from app.application.services.background_tasks import BackgroundTaskRunner


@pytest.mark.asyncio
async def test_failure_does_not_reach_caller() -> None:
    runner = BackgroundTaskRunner()

    async def _boom() -> None:
        raise ValueError("boom")

    task = runner.spawn(_boom(), name="boom")
    await runner.drain()

    assert task.done()
    assert task.exception() is None
    assert runner.pending == 0


@pytest.mark.asyncio
async def test_drain_waits_for_tasks() -> None:
    runner = BackgroundTaskRunner()
    done = []

    async def _work() -> None:
        await asyncio.sleep(0)
        done.append(True)

    runner.spawn(_work(), name="a")
    runner.spawn(_work(), name="b")
    await runner.drain()

    assert done == [True, True]


@pytest.mark.asyncio
async def test_cancel_all() -> None:
    runner = BackgroundTaskRunner()
    started = asyncio.Event()

    async def _forever() -> None:
        started.set()
        await asyncio.sleep(3600)

    runner.spawn(_forever(), name="forever")
    await started.wait()

    assert await runner.cancel_all() == 1
    await asyncio.sleep(0)
    assert runner.pending == 0
