"""
Macchina a stati dell'intervento
Progetto: Field Service Manager (Gestionale Interventi)

Unica autorità che modifica `job.status`. Appuntamenti, fatture e
pagamenti aggiornano i propri sotto-record e poi chiedono qui la
transizione che il loro fatto rende possibile.

Ogni arco della matrice VALID_TRANSITIONS ha una condizione (guard)
valutata solo sui dati presenti nell'aggregato: mai sull'orologio
o su segnali esterni.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from fieldservice.core.exceptions import InvalidTransitionError
from fieldservice.schemas.job import VALID_TRANSITIONS, JobStatus

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Una guard restituisce None se soddisfatta, altrimenti il motivo del rifiuto
Guard = Callable[[Any], Optional[str]]


def _has_appointment(job: Any) -> Optional[str]:
    if job.appointment is None:
        return "nessun appuntamento assegnato"
    return None


def _operator_attestation(job: Any) -> Optional[str]:
    return None


def _has_invoice(job: Any) -> Optional[str]:
    if job.invoice is None:
        return "nessuna fattura generata"
    if not job.invoice.lines:
        return "la fattura non contiene righe"
    return None


def _invoice_settled(job: Any) -> Optional[str]:
    invoice = job.invoice
    if invoice is None:
        return "nessuna fattura generata"
    if Decimal(invoice.paid_amount) != Decimal(invoice.total_amount):
        return "la fattura non è stata saldata"
    return None


GUARDS: dict[tuple[JobStatus, JobStatus], Guard] = {
    (JobStatus.NEW, JobStatus.SCHEDULED): _has_appointment,
    (JobStatus.SCHEDULED, JobStatus.COMPLETED): _operator_attestation,
    (JobStatus.COMPLETED, JobStatus.INVOICED): _has_invoice,
    (JobStatus.INVOICED, JobStatus.PAID): _invoice_settled,
}


def current_status(job: Any) -> JobStatus:
    """Stato corrente come enum."""
    return JobStatus(job.status)


def _check(job: Any, target: JobStatus) -> Optional[InvalidTransitionError]:
    current = current_status(job)
    if target == current:
        return None
    if target not in VALID_TRANSITIONS.get(current, []):
        return InvalidTransitionError(current.value, target.value)
    reason = GUARDS[(current, target)](job)
    if reason is not None:
        return InvalidTransitionError(current.value, target.value, guard=reason)
    return None


def can_transition(job: Any, target_status: JobStatus) -> bool:
    """True se `request_transition(job, target_status)` avrebbe successo."""
    return _check(job, JobStatus(target_status)) is None


def allowed_targets(job: Any) -> list[JobStatus]:
    """Stati raggiungibili ora (guard soddisfatta), escluso lo stato corrente."""
    current = current_status(job)
    return [
        target
        for target in VALID_TRANSITIONS.get(current, [])
        if _check(job, target) is None
    ]


def request_transition(job: Any, target_status: JobStatus) -> Any:
    """
    Applica una transizione di stato all'intervento.

    La transizione verso lo stesso stato è un no-op sempre consentito.
    Qualsiasi altro arco deve comparire in VALID_TRANSITIONS e la sua
    guard deve essere soddisfatta.

    Args:
        job: Aggregato Job (status, appointment, invoice)
        target_status: Stato richiesto

    Returns:
        Il job (modificato solo nello status, e in completed_at
        all'ingresso in COMPLETED)

    Raises:
        InvalidTransitionError: Arco non consentito o guard non soddisfatta
    """
    target = JobStatus(target_status)
    current = current_status(job)

    error = _check(job, target)
    if error is not None:
        logger.warning(
            "Transizione rifiutata per intervento %s: %s -> %s (%s)",
            getattr(job, "id", None),
            current.value,
            target.value,
            error.guard or "arco non consentito",
        )
        raise error

    if target == current:
        return job

    job.status = target.value
    if target == JobStatus.COMPLETED:
        job.completed_at = datetime.now(timezone.utc)

    logger.info(
        "Cambiato stato intervento %s: %s -> %s",
        getattr(job, "id", None),
        current.value,
        target.value,
    )
    return job
