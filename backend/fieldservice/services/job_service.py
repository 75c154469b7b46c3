"""
Service Layer per gli Interventi
Progetto: Field Service Manager (Gestionale Interventi)

Definisce le operazioni esposte all'esterno sull'aggregato Job:
creazione, appuntamento, completamento, fatturazione, pagamenti
e consultazione. Ogni operazione che modifica l'aggregato carica
la riga dell'intervento con SELECT ... FOR UPDATE, così operazioni
concorrenti sullo stesso intervento vengono serializzate.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fieldservice.core.config import settings
from fieldservice.core.exceptions import ConflictError, NotFoundError
from fieldservice.models import Invoice, Job
from fieldservice.schemas.invoice import InvoiceCreate, PaymentCreate
from fieldservice.schemas.job import (
    AppointmentCreate,
    JobCreate,
    JobStatus,
)
from fieldservice.services import job_state_machine
from fieldservice.services.appointment_service import AppointmentService
from fieldservice.services.invoice_service import InvoiceService
from fieldservice.services.payment_service import PaymentService

# Logger per questo modulo
logger = logging.getLogger(__name__)


def _aggregate_options() -> list:
    """Opzioni di caricamento dell'aggregato completo."""
    return [
        selectinload(Job.appointment),
        selectinload(Job.invoice).selectinload(Invoice.lines),
        selectinload(Job.invoice).selectinload(Invoice.payments),
    ]


class JobService:
    """
    Service per la gestione degli interventi.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.
    Il commit è responsabilità del chiamante (router API).
    """

    def __init__(self, tax_rate: Optional[Decimal] = None) -> None:
        self.tax_rate = tax_rate
        self.appointment_service = AppointmentService()
        self.invoice_service = InvoiceService()
        self.payment_service = PaymentService()

    # -------------------------------------------------------------------
    # Caricamento aggregato
    # -------------------------------------------------------------------

    async def _load_for_update(self, db: AsyncSession, job_id: uuid.UUID) -> Job:
        """
        Carica l'intervento bloccandone la riga fino a fine transazione.

        Lo stato viene ricaricato dopo aver ottenuto il lock
        (populate_existing), non preso dall'identity map.

        Raises:
            NotFoundError: Se l'intervento non esiste
        """
        stmt = (
            select(Job)
            .where(Job.id == job_id)
            .with_for_update()
            .options(*_aggregate_options())
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        job = result.scalar_one_or_none()

        if not job:
            logger.warning("Intervento non trovato: %s", job_id)
            raise NotFoundError(f"Intervento con ID {job_id} non trovato")
        return job

    async def _flush(self, db: AsyncSession, job_id: uuid.UUID) -> None:
        """Flush delle modifiche; un vincolo violato diventa ConflictError."""
        try:
            await db.flush()
        except IntegrityError as e:
            logger.error("Errore di integrità sull'intervento %s: %s", job_id, e)
            raise ConflictError(
                "Modifica concorrente sull'intervento, riprovare",
                extra={"job_id": str(job_id)},
            ) from e

    # -------------------------------------------------------------------
    # Lettura
    # -------------------------------------------------------------------

    async def get_job(self, db: AsyncSession, job_id: uuid.UUID) -> Job:
        """
        Recupera un intervento con appuntamento, fattura, righe e pagamenti.

        Args:
            db: Sessione database
            job_id: UUID dell'intervento

        Returns:
            Job: L'intervento trovato

        Raises:
            NotFoundError: Se l'intervento non esiste
        """
        logger.debug("get_job: Retrieving job %s", job_id)
        stmt = (
            select(Job)
            .where(Job.id == job_id)
            .options(*_aggregate_options())
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        job = result.scalar_one_or_none()

        if not job:
            logger.warning("Intervento non trovato: %s", job_id)
            raise NotFoundError(f"Intervento con ID {job_id} non trovato")

        logger.debug("Recuperato intervento: %s", job_id)
        return job

    async def get_all(
        self,
        db: AsyncSession,
        status_filter: Optional[JobStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> tuple[list[Job], int]:
        """
        Recupera la lista paginata degli interventi (bacheca).

        Args:
            db: Sessione database
            status_filter: Filtro opzionale per stato
            search: Termine di ricerca su titolo, descrizione e cliente
            page: Numero pagina (default 1)
            per_page: Elementi per pagina (default 10)

        Returns:
            Tuple di (lista interventi, totale count)
        """
        conditions = []

        if status_filter:
            conditions.append(Job.status == JobStatus(status_filter).value)

        if search:
            search_term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Job.title.ilike(search_term),
                    Job.description.ilike(search_term),
                    Job.customer_name.ilike(search_term),
                )
            )

        query = select(Job)
        if conditions:
            query = query.where(and_(*conditions))

        # Più recenti prima
        offset = (page - 1) * per_page
        query = (
            query.order_by(Job.created_at.desc())
            .options(*_aggregate_options())
            .offset(offset)
            .limit(per_page)
        )

        result = await db.execute(query)
        jobs = list(result.scalars().all())

        count_query = select(func.count()).select_from(Job)
        if conditions:
            count_query = count_query.where(and_(*conditions))
        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        logger.debug("Recuperati %d interventi su %d totali", len(jobs), total)
        return jobs, total

    async def get_invoice(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Recupera una fattura con righe e pagamenti.

        Raises:
            NotFoundError: Se la fattura non esiste
        """
        stmt = (
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(selectinload(Invoice.lines), selectinload(Invoice.payments))
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        invoice = result.scalar_one_or_none()

        if not invoice:
            logger.warning("Fattura non trovata: %s", invoice_id)
            raise NotFoundError(f"Fattura con ID {invoice_id} non trovata")
        return invoice

    # -------------------------------------------------------------------
    # Scrittura
    # -------------------------------------------------------------------

    async def create_job(self, db: AsyncSession, data: JobCreate) -> Job:
        """
        Crea un nuovo intervento in stato NEW.

        Args:
            db: Sessione database
            data: Titolo, descrizione e snapshot del cliente

        Returns:
            Job: L'intervento creato
        """
        job = Job(
            title=data.title,
            description=data.description,
            status=JobStatus.NEW.value,  # Stato iniziale
            customer_id=data.customer.id,
            customer_name=data.customer.name,
            customer_email=str(data.customer.email),
            customer_phone=data.customer.phone,
        )
        db.add(job)
        await db.flush()  # Assicura che job.id sia disponibile

        logger.info("Creato intervento: %s (%s)", job.id, job.customer_name)
        return await self.get_job(db, job.id)

    async def attach_appointment(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        data: AppointmentCreate,
    ) -> Job:
        """
        Assegna (o sostituisce) l'appuntamento e porta l'intervento in SCHEDULED.

        Raises:
            NotFoundError: Se l'intervento non esiste
            FieldValidationError: technician vuoto o end_time <= start_time
        """
        job = await self._load_for_update(db, job_id)
        self.appointment_service.attach(job, data.technician, data.start_time, data.end_time)
        await self._flush(db, job_id)
        return await self.get_job(db, job_id)

    async def mark_completed(self, db: AsyncSession, job_id: uuid.UUID) -> Job:
        """
        Dichiara completato il lavoro (SCHEDULED → COMPLETED).

        Raises:
            NotFoundError: Se l'intervento non esiste
            InvalidTransitionError: Se l'intervento non è SCHEDULED
        """
        job = await self._load_for_update(db, job_id)
        job_state_machine.request_transition(job, JobStatus.COMPLETED)
        await self._flush(db, job_id)
        return await self.get_job(db, job_id)

    async def change_status(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        new_status: JobStatus,
    ) -> Job:
        """
        Cambia lo stato dell'intervento passando dalla macchina a stati.

        Le guard restano valide: ad esempio SCHEDULED richiede un
        appuntamento e PAID una fattura saldata.

        Raises:
            NotFoundError: Se l'intervento non esiste
            InvalidTransitionError: Se la transizione non è consentita
        """
        job = await self._load_for_update(db, job_id)
        job_state_machine.request_transition(job, new_status)
        await self._flush(db, job_id)
        return await self.get_job(db, job_id)

    async def generate_invoice(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        data: InvoiceCreate,
    ) -> Job:
        """
        Genera la fattura di un intervento COMPLETED.

        L'aliquota è quella configurata (settings.tax_rate) salvo
        diversa indicazione nel costruttore del service.

        Raises:
            NotFoundError: Se l'intervento non esiste
            AlreadyInvoicedError, RequiresCompletedStatusError,
            EmptyLineItemsError, InvalidLineItemError
            ConflictError: Fattura creata in concorrenza
        """
        job = await self._load_for_update(db, job_id)
        tax_rate = self.tax_rate if self.tax_rate is not None else settings.tax_rate
        self.invoice_service.generate(job, data.line_items, tax_rate)
        await self._flush(db, job_id)
        return await self.get_job(db, job_id)

    async def record_payment(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: PaymentCreate,
    ) -> Invoice:
        """
        Registra un pagamento sulla fattura.

        Il lock è preso sulla riga dell'intervento proprietario, lo
        stesso usato da tutte le altre operazioni sull'aggregato.

        Raises:
            NotFoundError: Se la fattura non esiste
            InvalidAmountError, FieldValidationError,
            InvoiceAlreadyPaidError, ExceedsBalanceError
        """
        result = await db.execute(select(Invoice.job_id).where(Invoice.id == invoice_id))
        job_id = result.scalar_one_or_none()
        if job_id is None:
            logger.warning("Fattura non trovata: %s", invoice_id)
            raise NotFoundError(f"Fattura con ID {invoice_id} non trovata")

        job = await self._load_for_update(db, job_id)
        self.payment_service.record_payment(job.invoice, data.amount, data.method)
        await self._flush(db, job_id)
        return await self.get_invoice(db, invoice_id)


# Istanza del service
job_service = JobService()
