"""
Router FastAPI per gli Interventi
Progetto: Field Service Manager (Gestionale Interventi)

Definisce gli endpoint API per il ciclo di vita dell'intervento:
creazione, appuntamento, completamento e generazione fattura.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.core.database import get_db
from fieldservice.schemas.invoice import InvoiceCreate
from fieldservice.schemas.job import (
    AppointmentCreate,
    JobCreate,
    JobList,
    JobRead,
    JobStatus,
    JobStatusUpdate,
)
from fieldservice.services.job_service import job_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/jobs",
    tags=["Interventi"],
)


# -------------------------------------------------------------------
# Endpoints per Interventi
# -------------------------------------------------------------------

@router.get(
    "",
    name="interventi_lista",
    summary="Lista interventi",
    description="Recupera la lista paginata degli interventi con eventuali filtri.",
    response_model=JobList,
    status_code=status.HTTP_200_OK,
)
async def get_jobs(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(10, ge=1, le=100, description="Elementi per pagina"),
    status_filter: Optional[JobStatus] = Query(
        None,
        description="Filtro per stato dell'intervento",
    ),
    search: Optional[str] = Query(None, description="Ricerca su titolo, descrizione e cliente"),
    db: AsyncSession = Depends(get_db),
) -> JobList:
    """
    Recupera la lista paginata degli interventi.

    Returns:
        JobList: Lista paginata con metadati
    """
    jobs, total = await job_service.get_all(
        db=db,
        status_filter=status_filter,
        search=search,
        page=page,
        per_page=per_page,
    )

    return JobList(
        items=[JobRead.model_validate(job) for job in jobs],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=0,  # calcolato automaticamente dal model_validator
    )


@router.post(
    "",
    name="intervento_crea",
    summary="Crea intervento",
    description="Crea un nuovo intervento in stato NEW con lo snapshot del cliente.",
    response_model=JobRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_job(
    data: JobCreate,
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Crea un nuovo intervento.

    Args:
        data: Titolo, descrizione e cliente
        db: Sessione database

    Returns:
        JobRead: L'intervento creato
    """
    job = await job_service.create_job(db, data)
    await db.commit()
    return JobRead.model_validate(job)


@router.get(
    "/{job_id}",
    name="intervento_dettaglio",
    summary="Dettaglio intervento",
    description="Recupera l'intervento con appuntamento, fattura, righe e pagamenti.",
    response_model=JobRead,
    status_code=status.HTTP_200_OK,
)
async def get_job(
    job_id: uuid.UUID = Path(..., description="UUID dell'intervento"),
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Recupera i dettagli di un intervento.

    Raises:
        NotFoundError: Se l'intervento non esiste
    """
    job = await job_service.get_job(db, job_id)
    return JobRead.model_validate(job)


@router.patch(
    "/{job_id}/status",
    name="intervento_cambia_stato",
    summary="Cambia stato intervento",
    description="Cambia lo stato di un intervento. Valida la transizione "
               "e la relativa condizione usando la macchina a stati.",
    response_model=JobRead,
    status_code=status.HTTP_200_OK,
)
async def change_job_status(
    job_id: uuid.UUID = Path(..., description="UUID dell'intervento"),
    data: JobStatusUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Cambia lo stato di un intervento.

    Raises:
        NotFoundError: Se l'intervento non esiste
        InvalidTransitionError: Se la transizione non è consentita
    """
    job = await job_service.change_status(db, job_id, data.status)
    await db.commit()
    return JobRead.model_validate(job)


# -------------------------------------------------------------------
# Endpoints del ciclo di vita
# -------------------------------------------------------------------

@router.post(
    "/{job_id}/appointment",
    name="intervento_appuntamento",
    summary="Assegna appuntamento",
    description="Assegna o sostituisce l'appuntamento; un intervento NEW passa a SCHEDULED.",
    response_model=JobRead,
    status_code=status.HTTP_200_OK,
)
async def attach_appointment(
    job_id: uuid.UUID = Path(..., description="UUID dell'intervento"),
    data: AppointmentCreate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Assegna l'appuntamento del tecnico.

    Raises:
        NotFoundError: Se l'intervento non esiste
        FieldValidationError: Tecnico vuoto o orari non validi
    """
    job = await job_service.attach_appointment(db, job_id, data)
    await db.commit()
    return JobRead.model_validate(job)


@router.post(
    "/{job_id}/complete",
    name="intervento_completa",
    summary="Completa intervento",
    description="Dichiara concluso il lavoro (SCHEDULED → COMPLETED).",
    response_model=JobRead,
    status_code=status.HTTP_200_OK,
)
async def complete_job(
    job_id: uuid.UUID = Path(..., description="UUID dell'intervento"),
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    job = await job_service.mark_completed(db, job_id)
    await db.commit()
    return JobRead.model_validate(job)


@router.post(
    "/{job_id}/invoice",
    name="intervento_fattura",
    summary="Genera fattura",
    description="Genera la fattura di un intervento COMPLETED a partire dalle righe indicate.",
    response_model=JobRead,
    status_code=status.HTTP_201_CREATED,
)
async def generate_invoice(
    job_id: uuid.UUID = Path(..., description="UUID dell'intervento"),
    data: InvoiceCreate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Genera la fattura dell'intervento.

    Args:
        job_id: UUID dell'intervento
        data: Righe della fattura
        db: Sessione database

    Returns:
        JobRead: L'intervento fatturato, con la fattura

    Raises:
        NotFoundError: Se l'intervento non esiste
        AlreadyInvoicedError: Fattura già presente
        RequiresCompletedStatusError: Intervento non completato
        EmptyLineItemsError, InvalidLineItemError: Righe non valide
    """
    job = await job_service.generate_invoice(db, job_id, data)
    await db.commit()
    return JobRead.model_validate(job)
