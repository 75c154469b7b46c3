"""
Router FastAPI per Fatture e Pagamenti
Progetto: Field Service Manager (Gestionale Interventi)

Consultazione della fattura e registrazione dei pagamenti.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.core.database import get_db
from fieldservice.schemas.invoice import InvoiceRead, PaymentCreate
from fieldservice.services.job_service import job_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/invoices",
    tags=["Fatture"],
)


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    description="Recupera la fattura con righe, pagamenti, residuo e possibilità di incasso.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await job_service.get_invoice(db, invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/payments",
    name="fattura_pagamento",
    summary="Registra pagamento",
    description="Registra un pagamento parziale o a saldo. Al saldo l'intervento passa a PAID.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    data: PaymentCreate = ...,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    """
    Registra un pagamento sulla fattura.

    Args:
        invoice_id: UUID della fattura
        data: Importo e metodo di pagamento
        db: Sessione database

    Returns:
        InvoiceRead: La fattura aggiornata

    Raises:
        NotFoundError: Se la fattura non esiste
        InvalidAmountError: Importo non valido
        InvoiceAlreadyPaidError: Fattura già saldata
        ExceedsBalanceError: Importo oltre il residuo
    """
    invoice = await job_service.record_payment(db, invoice_id, data)
    await db.commit()
    logger.debug("Pagamento registrato su fattura %s", invoice_id)
    return InvoiceRead.model_validate(invoice)
