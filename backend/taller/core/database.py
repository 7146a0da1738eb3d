"""
Configuración de la base de datos - SQLAlchemy 2.0 Async
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Define engine, session factory y la dependency injection para FastAPI.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taller.core.config import settings

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Engine Async SQLAlchemy 2.0
# ------------------------------------------------------------
engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)


# ------------------------------------------------------------
# Session Factory
# ------------------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection para FastAPI.

    Abre una sesión por request y la cierra al terminar.
    Los services controlan sus propias transacciones
    (ver taller.core.transactions).

    Yields:
        AsyncSession: Sesión async de base de datos
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """
    Verifica que la base de datos sea alcanzable.
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Conexión a la base de datos establecida")
    except Exception as e:
        logger.error("Error de conexión a la base de datos: %s", e)
        raise


async def close_db() -> None:
    """
    Cierra las conexiones del pool. Se llama en el shutdown.
    """
    await engine.dispose()
    logger.info("Conexiones a la base de datos cerradas")
