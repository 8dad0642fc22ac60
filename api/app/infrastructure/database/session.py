"""
Engine y sesiones de la replica local del directorio.

El sync solo lee de esta base; la escriben los procesos que reciben
los callbacks de WeCom.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy.orm import declarative_base

from app.core.config import settings


# Base para modelos de SQLAlchemy
Base = declarative_base()

SessionFactory = Callable[[], AsyncSession]


def _create_engine_args(database_url: str) -> dict:
    """
    Argumentos del engine segun el motor.
    PostgreSQL usa pool de conexiones, SQLite no lo soporta.
    """
    args = {"echo": settings.DEBUG}

    if database_url.startswith("postgresql"):
        args.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
        })

    return args


engine = create_async_engine(settings.DATABASE_URL, **_create_engine_args(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


@asynccontextmanager
async def readonly_session(factory: Optional[SessionFactory] = None) -> AsyncIterator[AsyncSession]:
    """
    Sesion corta de solo lectura: nunca hace commit y siempre
    descarta la transaccion al salir.
    """
    async with (factory or AsyncSessionLocal)() as session:
        try:
            yield session
        finally:
            await session.rollback()


async def init_db() -> None:
    """Crea las tablas del directorio si no existen."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Cierra las conexiones de la base de datos."""
    await engine.dispose()
