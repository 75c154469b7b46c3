"""
Pytest configuration and fixtures for the Field Service Manager tests.

- Factory per aggregati Job in memoria (componenti puri)
- Sessione aiosqlite in memoria (JobService)
- Client httpx sull'app FastAPI con get_db sovrascritto (API)
"""

import os

# Ambiente di test (database in memoria, aliquota 10%): va impostato
# prima di importare fieldservice
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TAX_RATE", "0.10")

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fieldservice.core.database import get_db
from fieldservice.main import app
from fieldservice.models import Appointment, Base, Invoice, InvoiceLine, Job
from fieldservice.services import billing_calculator


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    return db


# ============================================================
# Factory per aggregati in memoria
# ============================================================


def make_job(status: str = "NEW", **kwargs) -> Job:
    """Crea un Job transiente con snapshot cliente di default."""
    return Job(
        id=kwargs.get("id", uuid.uuid4()),
        title=kwargs.get("title", "Sostituzione caldaia"),
        description=kwargs.get("description", "Caldaia in perdita"),
        status=status,
        customer_id=kwargs.get("customer_id", "42"),
        customer_name=kwargs.get("customer_name", "Mario Rossi"),
        customer_email=kwargs.get("customer_email", "mario.rossi@example.com"),
        customer_phone=kwargs.get("customer_phone", None),
    )


def make_appointment(technician: str = "Alice") -> Appointment:
    return Appointment(
        technician=technician,
        start_time=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        end_time=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
    )


def make_invoice(
    total: str = "110.00",
    paid: str = "0.00",
    lines: Optional[list[InvoiceLine]] = None,
) -> Invoice:
    """Crea una Invoice transiente con totale e incassato dati."""
    total_amount = Decimal(total)
    paid_amount = Decimal(paid)
    if lines is None:
        lines = [
            InvoiceLine(
                line_number=1,
                description="Intervento",
                quantity=1,
                unit_price=total_amount,
            )
        ]
    return Invoice(
        id=uuid.uuid4(),
        status=billing_calculator.derive_invoice_status(total_amount, paid_amount).value,
        subtotal=total_amount,
        tax_rate=Decimal("0"),
        tax=Decimal("0.00"),
        total_amount=total_amount,
        paid_amount=paid_amount,
        issued_at=datetime.now(timezone.utc),
        lines=lines,
        payments=[],
    )


@pytest.fixture
def new_job() -> Job:
    """Intervento appena creato."""
    return make_job()


@pytest.fixture
def scheduled_job() -> Job:
    """Intervento con appuntamento assegnato."""
    job = make_job("SCHEDULED")
    job.appointment = make_appointment()
    return job


@pytest.fixture
def completed_job() -> Job:
    """Intervento completato, pronto per la fattura."""
    job = make_job("COMPLETED")
    job.appointment = make_appointment()
    return job


@pytest.fixture
def invoiced_job() -> Job:
    """Intervento fatturato per 110.00, nessun incasso."""
    job = make_job("INVOICED")
    job.appointment = make_appointment()
    job.invoice = make_invoice()
    return job


# ============================================================
# Database aiosqlite in memoria
# ============================================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Sessione su un database SQLite in memoria con lo schema creato."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Client HTTP sull'app con get_db sovrascritto."""

    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
