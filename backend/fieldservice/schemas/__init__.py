"""
Schemas Pydantic per il progetto Field Service Manager

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from fieldservice.schemas import JobRead, InvoiceRead, etc.

from fieldservice.schemas.invoice import (
    InvoiceCreate,
    InvoiceLineRead,
    InvoiceRead,
    InvoiceStatus,
    LineItemCreate,
    PaymentCreate,
    PaymentMethod,
    PaymentRead,
)
from fieldservice.schemas.job import (
    VALID_TRANSITIONS,
    AppointmentCreate,
    AppointmentRead,
    CustomerSnapshot,
    JobCreate,
    JobList,
    JobRead,
    JobStatus,
    JobStatusUpdate,
)

__all__ = [
    "InvoiceCreate",
    "InvoiceLineRead",
    "InvoiceRead",
    "InvoiceStatus",
    "LineItemCreate",
    "PaymentCreate",
    "PaymentMethod",
    "PaymentRead",
    "VALID_TRANSITIONS",
    "AppointmentCreate",
    "AppointmentRead",
    "CustomerSnapshot",
    "JobCreate",
    "JobList",
    "JobRead",
    "JobStatus",
    "JobStatusUpdate",
]
