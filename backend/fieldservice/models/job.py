"""
Modelli SQLAlchemy per gli Interventi
Progetto: Field Service Manager (Gestionale Interventi)

Contiene:
- Job: Intervento, radice dell'aggregato (stato, snapshot cliente)
- Appointment: Appuntamento del tecnico associato all'intervento
"""


from __future__ import annotations
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldservice.models import Base
from fieldservice.models.mixins import TimestampMixin, UUIDMixin
from fieldservice.services import job_state_machine

if TYPE_CHECKING:
    from fieldservice.models.invoice import Invoice


# Gli stati sono definiti in fieldservice.schemas.job.JobStatus


class Job(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli interventi (jobs).

    Il cliente è memorizzato come snapshot denormalizzato al momento
    della creazione: modifiche successive all'anagrafica non alterano
    l'intervento.

    Attributes:
        id: UUID primary key, immutabile
        title: Titolo dell'intervento
        description: Descrizione del lavoro richiesto
        status: Stato corrente (NEW, SCHEDULED, COMPLETED, INVOICED, PAID)
        customer_id: Identificativo esterno del cliente (opzionale)
        customer_name: Nome del cliente
        customer_email: Email del cliente
        customer_phone: Telefono del cliente (opzionale)
        completed_at: Data/ora in cui l'intervento è stato completato
        created_at: Data/ora creazione record (immutabile)
        updated_at: Data/ora ultimo aggiornamento

    Relationships:
        appointment: Appuntamento attivo (0..1)
        invoice: Fattura (0..1)

    States (State Machine):
        NEW → SCHEDULED → COMPLETED → INVOICED → PAID
    """

    __tablename__ = "jobs"

    # ------------------------------------------------------------
    # Colonne Dati
    # ------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Titolo dell'intervento",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        doc="Descrizione del lavoro richiesto",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="NEW",
        doc="Stato corrente dell'intervento",
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora completamento intervento",
    )

    # ------------------------------------------------------------
    # Snapshot Cliente
    # ------------------------------------------------------------
    customer_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        doc="Identificativo del cliente nel sistema di anagrafica",
    )

    customer_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Nome del cliente al momento della creazione",
    )

    customer_email: Mapped[str] = mapped_column(
        String(254),
        nullable=False,
        doc="Email del cliente al momento della creazione",
    )

    customer_phone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        doc="Telefono del cliente al momento della creazione",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    appointment: Mapped[Optional["Appointment"]] = relationship(
        "Appointment",
        back_populates="job",
        uselist=False,  # relazione 1:1
        cascade="all, delete-orphan",
        lazy="selectin",
        doc="Appuntamento attivo dell'intervento",
    )

    invoice: Mapped[Optional["Invoice"]] = relationship(
        "Invoice",
        back_populates="job",
        uselist=False,  # relazione 1:1
        cascade="all, delete-orphan",
        lazy="selectin",
        doc="Fattura associata all'intervento",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_jobs_status", "status"),
        Index("ix_jobs_status_created", "status", "created_at"),
        CheckConstraint(
            "status IN ('NEW', 'SCHEDULED', 'COMPLETED', 'INVOICED', 'PAID')",
            name="ck_jobs_status",
        ),
    )

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def customer(self) -> dict[str, Any]:
        """Snapshot del cliente nel formato {id, name, email, phone}."""
        return {
            "id": self.customer_id,
            "name": self.customer_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
        }

    @property
    def allowed_transitions(self) -> list[str]:
        """Stati raggiungibili con la prossima transizione."""
        return [s.value for s in job_state_machine.allowed_targets(self)]

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, status={self.status}, title={self.title[:30]})>"


class Appointment(Base, UUIDMixin, TimestampMixin):
    """
    Modello per l'appuntamento del tecnico.

    Al massimo un appuntamento attivo per intervento: un nuovo
    appuntamento sostituisce il precedente (nessuno storico).

    Attributes:
        id: UUID primary key
        job_id: UUID dell'intervento (relazione 1:1)
        technician: Nome del tecnico assegnato
        start_time: Inizio appuntamento
        end_time: Fine appuntamento (strettamente successiva all'inizio)
    """

    __tablename__ = "appointments"

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        doc="UUID dell'intervento (relazione 1:1)",
    )

    technician: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Tecnico assegnato",
    )

    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Inizio appuntamento",
    )

    end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Fine appuntamento",
    )

    job: Mapped["Job"] = relationship(
        "Job",
        back_populates="appointment",
        doc="Intervento associato",
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointments_time_range"),
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment(job_id={self.job_id}, technician={self.technician}, "
            f"start={self.start_time}, end={self.end_time})>"
        )
