"""
Configuración de pytest y fixtures.

Los tests de services corren contra una base SQLite en archivo (aiosqlite),
creada de cero para cada test. Cada transacción abre con BEGIN IMMEDIATE,
así las sesiones concurrentes se serializan como lo harían con los
bloqueos de fila de PostgreSQL.
"""

from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taller.core.database import get_db
from taller.models import Base, WorkOrder
from taller.schemas.quote import (
    Acceptance,
    AcceptanceMethod,
    ItemKind,
    LineItem,
    QuoteCreate,
)
from taller.services.quote_service import QuoteService
from taller.services.work_order_service import WorkOrderService


# ============================================================
# Fixtures de AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock de AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


# ============================================================
# Fixtures de base de datos (SQLite en archivo)
# ============================================================


@pytest.fixture
async def engine(tmp_path):
    """Engine aiosqlite con el esquema completo creado."""
    db_path = tmp_path / "taller.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # El BEGIN lo emite el listener "begin"
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Factory de sesiones con la misma configuración que la aplicación."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sesión de base de datos para un test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Cliente HTTP contra la app FastAPI, con get_db apuntando a la base de test."""
    from taller.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================
# Datos de ejemplo
# ============================================================


def make_quote_data(**overrides) -> QuoteCreate:
    """
    Presupuesto de ejemplo.

    Subtotal 1000, descuento 10%, recargo 5%, IVA 21% → total 1143.45
    """
    data = {
        "client_name": "Juan Pérez",
        "items": [
            LineItem(
                kind=ItemKind.REPAIR,
                description="Cambio de pantalla",
                unit_price=Decimal("1000"),
                brand="Samsung",
                model="Galaxy A52",
                serial="356789101112131",
            )
        ],
        "rebate_pct": Decimal("10"),
        "surcharge_pct": Decimal("5"),
        "tax_pct": Decimal("21"),
    }
    data.update(overrides)
    return QuoteCreate(**data)


@pytest.fixture
def quote_data() -> QuoteCreate:
    return make_quote_data()


@pytest.fixture
def acceptance() -> Acceptance:
    return Acceptance(name="Juan Pérez", document_id="30111222", method=AcceptanceMethod.WHATSAPP)


@pytest.fixture
async def accepted_order(db, quote_data, acceptance) -> WorkOrder:
    """Orden creada al aceptar el presupuesto de ejemplo (total 1143.45)."""
    quotes = QuoteService()
    quote = await quotes.create(db, quote_data)
    result = await quotes.accept(db, quote.id, acceptance)
    order = await WorkOrderService(quotes).get_by_id(db, result.order_id)
    # Cierra la transacción de lectura para no bloquear otras sesiones
    await db.commit()
    return order


@pytest.fixture
def make_quote():
    """Factory de QuoteCreate con campos sobrescribibles."""
    return make_quote_data
