"""
Colonne comuni ai modelli
Progetto: Field Service Manager (Gestionale Interventi)

UUID generato lato applicazione e timestamp di creazione/modifica.
"""

import datetime
import uuid

from sqlalchemy import DateTime, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


def utcnow() -> datetime.datetime:
    """Istante corrente in UTC (unica lettura dell'orologio nel core)."""
    return datetime.datetime.now(datetime.timezone.utc)


class TimestampMixin:
    """
    Aggiunge `created_at` (immutabile) e `updated_at`.

    I valori sono generati lato Python, così sono già valorizzati
    dopo il flush e le risposte non richiedono un refresh asincrono;
    il server_default copre gli INSERT eseguiti fuori dall'ORM.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Istante di creazione",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Istante dell'ultima modifica",
    )


class UUIDMixin:
    """Chiave primaria UUID v4 assegnata alla creazione dell'oggetto."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="Identificativo immutabile",
    )


@event.listens_for(Session, "before_flush")
def touch_updated_at(session: Session, flush_context, instances) -> None:
    """Aggiorna `updated_at` sugli oggetti con colonne modificate."""
    now = utcnow()

    for obj in session.dirty:
        if isinstance(obj, TimestampMixin) and session.is_modified(obj, include_collections=False):
            obj.updated_at = now
