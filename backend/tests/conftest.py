"""
Configuración de pytest y fixtures del taller.

Las variables de entorno se fijan antes de importar el paquete para que
Settings use SQLite en memoria y un directorio temporal de fotos.
"""

import os
import tempfile
from decimal import Decimal
from typing import AsyncGenerator

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="taller-uploads-"))
os.environ.setdefault("MAX_PHOTOS_PER_PHASE", "3")
os.environ.setdefault("WORKSHOP_TAX_RATE", "19.00")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taller.core.database import create_tables, get_db
from taller.main import app
from taller.models import Customer, Product, Technician, Warehouse


# ============================================================
# Mocks de líneas (sin modelo)
# ============================================================


class MockLine:
    """Mock de una línea de la orden."""
    def __init__(self, item_type: str = "repuesto", total: str = "0"):
        self.item_type = item_type
        self.total = Decimal(total)


@pytest.fixture
def make_line():
    return MockLine


# ============================================================
# Base de datos SQLite en memoria
# ============================================================


@pytest.fixture
async def engine():
    """Engine aislado por test; StaticPool comparte la única conexión en memoria."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================
# Datos de referencia
# ============================================================


@pytest.fixture
async def customer(db) -> Customer:
    obj = Customer(name="Carlos Pérez", document_number="1020304050", phone="3001234567")
    db.add(obj)
    await db.commit()
    return obj


@pytest.fixture
async def technician(db) -> Technician:
    obj = Technician(name="Andrés Gómez", document_number="79000111", specialty="Motor")
    db.add(obj)
    await db.commit()
    return obj


@pytest.fixture
async def inactive_technician(db) -> Technician:
    obj = Technician(name="Luis Rojas", is_active=False)
    db.add(obj)
    await db.commit()
    return obj


@pytest.fixture
async def warehouse(db) -> Warehouse:
    obj = Warehouse(name="Bodega principal")
    db.add(obj)
    await db.commit()
    return obj


@pytest.fixture
async def oil_filter(db) -> Product:
    obj = Product(
        name="Filtro de aceite",
        sku="FIL-001",
        product_type="product",
        sale_price=Decimal("35000"),
    )
    db.add(obj)
    await db.commit()
    return obj


@pytest.fixture
async def alignment(db) -> Product:
    obj = Product(
        name="Alineación y balanceo",
        sku="SRV-010",
        product_type="service",
        sale_price=Decimal("80000"),
    )
    db.add(obj)
    await db.commit()
    return obj


# ============================================================
# Cliente HTTP sobre la aplicación
# ============================================================


@pytest.fixture
async def api(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Cliente httpx contra la app ASGI, con get_db apuntando a la base de prueba."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test/api/v1") as client:
        yield client
    app.dependency_overrides.clear()
