"""
Configuración de Base de Datos - SQLAlchemy 2.0 Async
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Define engine, session factory y dependency injection para FastAPI.
"""

import logging
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taller.core.config import settings

# Logger de este módulo
logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict[str, Any]:
    """Opciones del engine según el driver (SQLite no admite pool_size)."""
    options: dict[str, Any] = {
        "echo": settings.debug,
        "pool_pre_ping": True,
    }
    if not database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


# ------------------------------------------------------------
# Engine Async SQLAlchemy 2.0
# ------------------------------------------------------------
engine: AsyncEngine = create_async_engine(
    settings.database_url,
    **_engine_options(settings.database_url),
)


# ------------------------------------------------------------
# Session Factory
# ------------------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection para FastAPI.

    Abre una sesión por petición y la cierra al terminar.

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


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Crea todas las tablas del modelo (desarrollo y tests)."""
    from taller.models import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tablas creadas")


async def init_db() -> None:
    """
    Inicializa la conexión a la base de datos.

    Ejecuta una consulta de prueba para verificar que
    la base de datos es alcanzable.
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Conexión a la base de datos establecida")
    except Exception as e:
        logger.error("Error de conexión a la base de datos: %s", e)
        raise

    if settings.db_auto_create:
        await create_tables()


async def close_db() -> None:
    """
    Cierra las conexiones a la base de datos.

    Se invoca durante el apagado de la aplicación.
    """
    await engine.dispose()
    logger.info("Conexiones a la base de datos cerradas")
