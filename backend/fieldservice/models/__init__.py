"""
Modelli Database SQLAlchemy
Progetto: Field Service Manager (Gestionale Interventi)

Import centralizzato di tutti i modelli per la creazione dello schema.

Modelli:
- Job: Intervento (aggregato radice, con snapshot del cliente)
- Appointment: Appuntamento del tecnico (0..1 per intervento)
- Invoice: Fattura (0..1 per intervento)
- InvoiceLine: Righe fattura
- Payment: Pagamenti registrati sulla fattura
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from fieldservice.models.job import Appointment, Job
from fieldservice.models.invoice import Invoice, InvoiceLine, Payment

__all__ = [
    "Base",
    "Job",
    "Appointment",
    "Invoice",
    "InvoiceLine",
    "Payment",
]
