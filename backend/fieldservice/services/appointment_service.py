"""
Service Layer per gli Appuntamenti
Progetto: Field Service Manager (Gestionale Interventi)

Associa all'intervento al massimo un appuntamento attivo e chiede
alla macchina a stati il passaggio NEW → SCHEDULED.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fieldservice.core.exceptions import FieldValidationError
from fieldservice.models import Appointment, Job
from fieldservice.schemas.job import JobStatus
from fieldservice.services import job_state_machine

# Logger per questo modulo
logger = logging.getLogger(__name__)


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.tzinfo.utcoffset(value) is not None


class AppointmentService:
    """
    Service per l'assegnazione degli appuntamenti.

    Opera sull'aggregato Job già caricato; non accede al database.
    Un nuovo appuntamento sostituisce il precedente (l'ultima
    scrittura vince, nessuno storico).
    """

    def _validate(
        self,
        technician: Optional[str],
        start_time: datetime,
        end_time: datetime,
    ) -> tuple[str, datetime, datetime]:
        """
        Valida e normalizza i dati dell'appuntamento.

        Orari senza fuso sono interpretati come UTC; una coppia con un
        solo orario dotato di fuso non è confrontabile ed è rifiutata.

        Raises:
            FieldValidationError: technician vuoto o end_time <= start_time
        """
        technician = (technician or "").strip()
        if not technician:
            raise FieldValidationError("technician", "Il tecnico è obbligatorio")

        if _is_aware(start_time) != _is_aware(end_time):
            raise FieldValidationError(
                "end_time",
                "Inizio e fine devono essere entrambi con o senza fuso orario",
            )
        if not _is_aware(start_time):
            start_time = start_time.replace(tzinfo=timezone.utc)
            end_time = end_time.replace(tzinfo=timezone.utc)

        if end_time <= start_time:
            raise FieldValidationError(
                "end_time",
                "La fine dell'appuntamento deve essere successiva all'inizio",
            )
        return technician, start_time, end_time

    def attach(
        self,
        job: Job,
        technician: Optional[str],
        start_time: datetime,
        end_time: datetime,
    ) -> Job:
        """
        Assegna (o sostituisce) l'appuntamento dell'intervento.

        La validazione precede qualsiasi modifica: in caso di errore
        l'intervento resta invariato.

        Args:
            job: Intervento
            technician: Nome del tecnico
            start_time: Inizio appuntamento
            end_time: Fine appuntamento

        Returns:
            Job: L'intervento, in stato SCHEDULED o successivo

        Raises:
            FieldValidationError: Dati appuntamento non validi
        """
        technician, start_time, end_time = self._validate(technician, start_time, end_time)

        # Aggiornamento in place: evita INSERT prima del DELETE sul vincolo unique(job_id)
        if job.appointment is not None:
            job.appointment.technician = technician
            job.appointment.start_time = start_time
            job.appointment.end_time = end_time
            logger.info("Sostituito appuntamento dell'intervento %s", job.id)
        else:
            job.appointment = Appointment(
                technician=technician,
                start_time=start_time,
                end_time=end_time,
            )
            logger.info("Assegnato appuntamento all'intervento %s: %s", job.id, technician)

        if job_state_machine.current_status(job) == JobStatus.NEW:
            job_state_machine.request_transition(job, JobStatus.SCHEDULED)

        return job
