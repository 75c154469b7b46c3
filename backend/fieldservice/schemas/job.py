"""
Schemas Pydantic per gli Interventi
Progetto: Field Service Manager (Gestionale Interventi)

Definisce gli schemi di validazione e serializzazione per l'API,
l'enum degli stati e la matrice delle transizioni consentite.
"""

import datetime
import re
import uuid
from enum import Enum
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from fieldservice.schemas.invoice import InvoiceRead


# -------------------------------------------------------------------
# Enum per gli stati dell'intervento
# -------------------------------------------------------------------

class JobStatus(str, Enum):
    """
    Stati dell'intervento, in ordine di avanzamento.

    L'ordine di dichiarazione è l'ordine totale del ciclo di vita:
    NEW < SCHEDULED < COMPLETED < INVOICED < PAID.
    """
    NEW = "NEW"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    INVOICED = "INVOICED"
    PAID = "PAID"


# -------------------------------------------------------------------
# Matrice delle transizioni di stato valide
# -------------------------------------------------------------------

# Unica source of truth degli archi consentiti; le condizioni (guard)
# di ciascun arco sono in services/job_state_machine.py.
# La transizione verso lo stesso stato è sempre un no-op e non compare qui.
VALID_TRANSITIONS: dict[JobStatus, list[JobStatus]] = {
    JobStatus.NEW: [JobStatus.SCHEDULED],
    JobStatus.SCHEDULED: [JobStatus.COMPLETED],
    JobStatus.COMPLETED: [JobStatus.INVOICED],
    JobStatus.INVOICED: [JobStatus.PAID],
    JobStatus.PAID: [],  # Stato finale
}


# -------------------------------------------------------------------
# Funzioni di normalizzazione e validazione
# -------------------------------------------------------------------

def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalizza il numero di telefono.

    Rimuove spazi, trattini e parentesi; accetta + iniziale e cifre.

    Raises:
        ValueError: Se il formato non è valido
    """
    if phone is None:
        return None

    normalized = re.sub(r"[\s\-().]", "", phone)
    if not normalized:
        return None

    if not re.match(r"^\+?\d{5,20}$", normalized):
        raise ValueError("Numero di telefono non valido")

    return normalized


def validate_required_text(v: str, label: str) -> str:
    """Rimuove gli spazi e rifiuta stringhe vuote."""
    v = v.strip()
    if not v:
        raise ValueError(f"{label} è obbligatorio")
    return v


# -------------------------------------------------------------------
# Snapshot cliente
# -------------------------------------------------------------------

class CustomerSnapshot(BaseModel):
    """
    Dati del cliente copiati nell'intervento al momento della creazione.

    Attributes:
        id: Identificativo esterno del cliente (opzionale)
        name: Nome (obbligatorio)
        email: Email sintatticamente valida (obbligatoria)
        phone: Telefono (opzionale)
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = Field(None, max_length=64, description="Identificativo cliente")
    name: str = Field(..., max_length=200, description="Nome del cliente")
    email: EmailStr = Field(..., description="Email del cliente")
    phone: Optional[str] = Field(None, max_length=30, description="Telefono del cliente")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Accetta anche identificativi numerici."""
        if v is None:
            return v
        return str(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Il nome del cliente")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


# -------------------------------------------------------------------
# Schemas per Appointment
# -------------------------------------------------------------------

class AppointmentCreate(BaseModel):
    """
    Richiesta di assegnazione appuntamento.

    Tecnico vuoto e fine <= inizio sono verificati dal servizio
    appuntamenti (VALIDATION_ERROR con il nome del campo).
    """
    technician: str = Field(..., max_length=200, description="Tecnico assegnato")
    start_time: datetime.datetime = Field(
        ...,
        description="Inizio appuntamento",
        validation_alias=AliasChoices("start_time", "startTime", "start"),
    )
    end_time: datetime.datetime = Field(
        ...,
        description="Fine appuntamento",
        validation_alias=AliasChoices("end_time", "endTime", "end"),
    )


class AppointmentRead(BaseModel):
    """Schema per la lettura dell'appuntamento."""
    model_config = ConfigDict(from_attributes=True)

    technician: str
    start_time: datetime.datetime
    end_time: datetime.datetime


# -------------------------------------------------------------------
# Schemas per Job
# -------------------------------------------------------------------

class JobCreate(BaseModel):
    """
    Schema per la creazione di un intervento.

    Attributes:
        title: Titolo dell'intervento
        description: Descrizione del lavoro richiesto
        customer: Snapshot del cliente
    """
    title: str = Field(..., max_length=200, description="Titolo dell'intervento")
    description: str = Field(default="", max_length=5000, description="Descrizione del lavoro")
    customer: CustomerSnapshot

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return validate_required_text(v, "Il titolo")

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return v.strip()


class JobStatusUpdate(BaseModel):
    """
    Schema per il cambio di stato di un intervento.

    Usato esclusivamente per le transizioni di stato.
    """
    status: JobStatus = Field(..., description="Nuovo stato dell'intervento")


class JobRead(BaseModel):
    """
    Proiezione in sola lettura dell'intervento.

    Include appuntamento, fattura con righe e pagamenti, e gli stati
    raggiungibili con la prossima transizione.
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str
    status: JobStatus
    customer: CustomerSnapshot
    created_at: datetime.datetime
    updated_at: datetime.datetime
    completed_at: Optional[datetime.datetime] = None
    appointment: Optional[AppointmentRead] = None
    invoice: Optional[InvoiceRead] = None
    allowed_transitions: list[JobStatus] = Field(default_factory=list)


# -------------------------------------------------------------------
# Schema per lista paginata
# -------------------------------------------------------------------

class JobList(BaseModel):
    """
    Schema per la risposta paginata degli interventi.

    Attributes:
        items: Lista degli interventi
        total: Numero totale di record
        page: Pagina corrente
        per_page: Record per pagina
        total_pages: Numero totale di pagine (calcolato automaticamente)
    """
    items: list[JobRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "JobList":
        """Calcola automaticamente il numero totale di pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
