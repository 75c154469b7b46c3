"""
Tests for JobService.

Le operazioni girano su un database SQLite in memoria (aiosqlite);
il lock di riga è verificato sullo statement generato.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from fieldservice.core.exceptions import (
    AlreadyInvoicedError,
    ExceedsBalanceError,
    FieldValidationError,
    InvalidTransitionError,
    InvoiceAlreadyPaidError,
    NotFoundError,
    RequiresCompletedStatusError,
)
from fieldservice.schemas.invoice import InvoiceCreate, PaymentCreate
from fieldservice.schemas.job import AppointmentCreate, JobCreate, JobStatus
from fieldservice.services.job_service import JobService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service():
    return JobService(tax_rate=Decimal("0.10"))


def job_payload(title="Sostituzione caldaia", name="Mario Rossi"):
    return JobCreate(
        title=title,
        description="Caldaia in perdita",
        customer={"id": 42, "name": name, "email": "mario.rossi@example.com"},
    )


def appointment_payload(start="2024-01-01T09:00", end="2024-01-01T10:00", technician="Alice"):
    return AppointmentCreate.model_validate(
        {"technician": technician, "startTime": start, "endTime": end}
    )


def invoice_payload():
    return InvoiceCreate.model_validate(
        {"lineItems": [{"description": "Part", "quantity": 2, "unitPrice": "50"}]}
    )


async def completed_job(service, db):
    job = await service.create_job(db, job_payload())
    await service.attach_appointment(db, job.id, appointment_payload())
    return await service.mark_completed(db, job.id)


# ============================================================
# Tests for the lifecycle
# ============================================================


class TestJobLifecycle:
    """Tests for the full lifecycle on the database."""

    async def test_create_job(self, service, db_session):
        """Test creazione intervento in stato NEW."""
        job = await service.create_job(db_session, job_payload())
        await db_session.commit()

        assert job.status == "NEW"
        assert job.customer == {
            "id": "42",
            "name": "Mario Rossi",
            "email": "mario.rossi@example.com",
            "phone": None,
        }
        assert job.appointment is None
        assert job.invoice is None
        assert job.created_at is not None

    async def test_attach_appointment_schedules(self, service, db_session):
        """Test scenario 1: appuntamento su intervento NEW → SCHEDULED."""
        job = await service.create_job(db_session, job_payload())

        job = await service.attach_appointment(db_session, job.id, appointment_payload())
        await db_session.commit()

        assert job.status == "SCHEDULED"
        assert job.appointment.technician == "Alice"
        assert job.appointment.start_time.replace(tzinfo=None) == datetime(2024, 1, 1, 9, 0)

    async def test_reschedule_replaces_appointment(self, service, db_session):
        """Test un solo appuntamento attivo dopo la sostituzione."""
        job = await service.create_job(db_session, job_payload())
        await service.attach_appointment(db_session, job.id, appointment_payload())

        job = await service.attach_appointment(
            db_session,
            job.id,
            appointment_payload("2024-01-02T14:00", "2024-01-02T16:00", "Bob"),
        )
        await db_session.commit()

        assert job.status == "SCHEDULED"
        assert job.appointment.technician == "Bob"
        assert job.appointment.end_time.replace(tzinfo=None) == datetime(2024, 1, 2, 16, 0)

    async def test_invalid_appointment_keeps_status(self, service, db_session):
        """Test scenario 5: fine prima dell'inizio, stato invariato."""
        job = await service.create_job(db_session, job_payload())

        with pytest.raises(FieldValidationError) as exc_info:
            await service.attach_appointment(
                db_session,
                job.id,
                appointment_payload("2024-01-01T10:00", "2024-01-01T09:00"),
            )

        assert exc_info.value.field == "end_time"
        job = await service.get_job(db_session, job.id)
        assert job.status == "NEW"
        assert job.appointment is None

    async def test_complete_and_invoice(self, service, db_session):
        """Test scenario 2: completamento e fattura 100 + 10% = 110."""
        job = await completed_job(service, db_session)
        assert job.status == "COMPLETED"
        assert job.completed_at is not None

        job = await service.generate_invoice(db_session, job.id, invoice_payload())
        await db_session.commit()

        assert job.status == "INVOICED"
        assert job.invoice.subtotal == Decimal("100.00")
        assert job.invoice.tax == Decimal("10.00")
        assert job.invoice.total_amount == Decimal("110.00")
        assert job.invoice.status == "UNPAID"
        assert len(job.invoice.lines) == 1
        assert job.allowed_transitions == []

    async def test_partial_and_final_payment(self, service, db_session):
        """Test scenario 3: 60 con carta, poi 50 in contanti → PAID."""
        job = await completed_job(service, db_session)
        job = await service.generate_invoice(db_session, job.id, invoice_payload())
        invoice_id = job.invoice.id

        invoice = await service.record_payment(
            db_session, invoice_id, PaymentCreate(amount=Decimal("60"), method="Card")
        )
        await db_session.commit()

        assert invoice.paid_amount == Decimal("60.00")
        assert invoice.status == "PARTIALLY_PAID"
        assert (await service.get_job(db_session, job.id)).status == "INVOICED"

        invoice = await service.record_payment(
            db_session, invoice_id, PaymentCreate(amount=Decimal("50"), method="Cash")
        )
        await db_session.commit()

        assert invoice.paid_amount == Decimal("110.00")
        assert invoice.status == "PAID"
        assert len(invoice.payments) == 2
        assert sum(p.amount for p in invoice.payments) == invoice.paid_amount

        job = await service.get_job(db_session, job.id)
        assert job.status == "PAID"

        with pytest.raises(InvoiceAlreadyPaidError):
            await service.record_payment(
                db_session, invoice_id, PaymentCreate(amount=Decimal("1"), method="Cash")
            )

    async def test_overpayment_rejected(self, service, db_session):
        """Test scenario 4: 200 su fattura da 110, stato invariato."""
        job = await completed_job(service, db_session)
        job = await service.generate_invoice(db_session, job.id, invoice_payload())
        await db_session.commit()

        with pytest.raises(ExceedsBalanceError):
            await service.record_payment(
                db_session, job.invoice.id, PaymentCreate(amount=Decimal("200"), method="Card")
            )

        invoice = await service.get_invoice(db_session, job.invoice.id)
        assert invoice.paid_amount == Decimal("0.00")
        assert invoice.payments == []
        assert invoice.status == "UNPAID"


# ============================================================
# Tests for rejected operations
# ============================================================


class TestJobServiceErrors:
    """Tests for errors raised through the service."""

    async def test_invoice_requires_completed(self, service, db_session):
        """Test fattura su intervento NEW."""
        job = await service.create_job(db_session, job_payload())

        with pytest.raises(RequiresCompletedStatusError):
            await service.generate_invoice(db_session, job.id, invoice_payload())

    async def test_second_invoice_rejected(self, service, db_session):
        """Test seconda fattura sullo stesso intervento."""
        job = await completed_job(service, db_session)
        await service.generate_invoice(db_session, job.id, invoice_payload())

        with pytest.raises(AlreadyInvoicedError):
            await service.generate_invoice(db_session, job.id, invoice_payload())

    async def test_complete_requires_scheduled(self, service, db_session):
        """Test completamento di un intervento NEW."""
        job = await service.create_job(db_session, job_payload())

        with pytest.raises(InvalidTransitionError):
            await service.mark_completed(db_session, job.id)

    async def test_change_status_goes_through_guards(self, service, db_session):
        """Test cambio stato generico: la guard dell'appuntamento vale."""
        job = await service.create_job(db_session, job_payload())

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.change_status(db_session, job.id, JobStatus.SCHEDULED)

        assert "guard" in exc_info.value.extra

    async def test_change_status_to_completed(self, service, db_session):
        """Test cambio stato SCHEDULED → COMPLETED."""
        job = await service.create_job(db_session, job_payload())
        await service.attach_appointment(db_session, job.id, appointment_payload())

        job = await service.change_status(db_session, job.id, JobStatus.COMPLETED)

        assert job.status == "COMPLETED"

    async def test_unknown_job(self, service, db_session):
        """Test intervento inesistente."""
        with pytest.raises(NotFoundError):
            await service.get_job(db_session, uuid.uuid4())

        with pytest.raises(NotFoundError):
            await service.mark_completed(db_session, uuid.uuid4())

    async def test_unknown_invoice(self, service, db_session):
        """Test fattura inesistente."""
        with pytest.raises(NotFoundError):
            await service.record_payment(
                db_session, uuid.uuid4(), PaymentCreate(amount=Decimal("10"), method="Card")
            )

        with pytest.raises(NotFoundError):
            await service.get_invoice(db_session, uuid.uuid4())


# ============================================================
# Tests for listing and locking
# ============================================================


class TestJobListing:
    """Tests for the paginated jobs board."""

    async def test_filter_and_search(self, service, db_session):
        """Test filtro per stato e ricerca testuale."""
        boiler = await service.create_job(db_session, job_payload("Sostituzione caldaia"))
        await service.create_job(db_session, job_payload("Riparazione condizionatore", "Anna Bianchi"))
        await service.attach_appointment(db_session, boiler.id, appointment_payload())
        await db_session.commit()

        jobs, total = await service.get_all(db_session)
        assert total == 2
        assert len(jobs) == 2

        jobs, total = await service.get_all(db_session, status_filter=JobStatus.SCHEDULED)
        assert total == 1
        assert jobs[0].id == boiler.id

        jobs, total = await service.get_all(db_session, search="bianchi")
        assert total == 1
        assert jobs[0].customer_name == "Anna Bianchi"

    async def test_pagination(self, service, db_session):
        """Test paginazione con conteggio totale."""
        for i in range(3):
            await service.create_job(db_session, job_payload(f"Intervento {i}"))

        jobs, total = await service.get_all(db_session, page=2, per_page=2)

        assert total == 3
        assert len(jobs) == 1


class TestRowLocking:
    """Tests for the per-job row lock."""

    async def test_mutations_load_job_for_update(self, service, mock_db):
        """Test il caricamento per modifica usa SELECT ... FOR UPDATE."""
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = result

        with pytest.raises(NotFoundError):
            await service.mark_completed(mock_db, uuid.uuid4())

        stmt = mock_db.execute.call_args.args[0]
        assert stmt._for_update_arg is not None
        mock_db.flush.assert_not_called()

    async def test_reads_do_not_lock(self, service, mock_db):
        """Test la lettura non prende lock."""
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = result

        with pytest.raises(NotFoundError):
            await service.get_job(mock_db, uuid.uuid4())

        stmt = mock_db.execute.call_args.args[0]
        assert stmt._for_update_arg is None
