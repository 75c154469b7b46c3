"""
Schemas Pydantic per la Fatturazione
Progetto: Field Service Manager (Gestionale Interventi)

Contiene:
- Enums: InvoiceStatus, PaymentMethod
- Schemas per le righe fattura
- Schemas per Payment
- Schemas per Invoice
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
)


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class InvoiceStatus(str, Enum):
    """Stato della fattura, derivato dai pagamenti registrati."""
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class PaymentMethod(str, Enum):
    """Metodi di pagamento supportati."""
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"
    CASH = "Cash"


# -------------------------------------------------------------------
# Schemas per le righe fattura
# -------------------------------------------------------------------

class LineItemCreate(BaseModel):
    """
    Riga fattura in ingresso.

    I campi non sono tipizzati: tipo, formato e vincoli di dominio
    (descrizione non vuota, quantità intera > 0, prezzo >= 0) sono
    verificati dal generatore fatture, che restituisce INVALID_LINE_ITEM
    con l'indice e il campo della riga non valida.
    """
    description: Any = Field(None, description="Descrizione della riga")
    quantity: Any = Field(None, description="Quantità (intero positivo)")
    unit_price: Any = Field(
        None,
        description="Prezzo unitario",
        validation_alias=AliasChoices("unit_price", "unitPrice"),
    )


class InvoiceCreate(BaseModel):
    """Richiesta di generazione fattura per un intervento completato."""
    line_items: list[LineItemCreate] = Field(
        ...,
        description="Righe della fattura, nell'ordine di stampa",
        validation_alias=AliasChoices("line_items", "lineItems"),
    )


class InvoiceLineRead(BaseModel):
    """Schema per la lettura di una riga fattura."""
    model_config = ConfigDict(from_attributes=True)

    line_number: int
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


# -------------------------------------------------------------------
# Schemas per Payment
# -------------------------------------------------------------------

class PaymentCreate(BaseModel):
    """
    Schema per registrare un pagamento su una fattura.

    `amount` e `method` non sono tipizzati: li valida il registro
    pagamenti (INVALID_AMOUNT, VALIDATION_ERROR sul campo method).
    """
    amount: Any = Field(None, description="Importo pagato")
    method: Any = Field(
        None,
        description="Metodo di pagamento: Card, Bank Transfer, Cash",
    )


class PaymentRead(BaseModel):
    """Schema per la lettura di un pagamento."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    amount: Decimal
    method: PaymentMethod
    paid_at: datetime


# -------------------------------------------------------------------
# Schemas per Invoice
# -------------------------------------------------------------------

class InvoiceRead(BaseModel):
    """
    Proiezione in sola lettura della fattura.

    `remaining_balance` e `can_pay` provengono dal calcolatore, la
    stessa logica usata dal registro pagamenti per accettare un incasso.
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    status: InvoiceStatus
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    remaining_balance: Decimal
    can_pay: bool
    issued_at: datetime
    line_items: list[InvoiceLineRead] = Field(
        default_factory=list,
        validation_alias=AliasChoices("line_items", "lines"),
    )
    payments: list[PaymentRead] = Field(default_factory=list)
