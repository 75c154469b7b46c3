"""
Service Layer per la Fatturazione
Progetto: Field Service Manager (Gestionale Interventi)

Genera la fattura di un intervento COMPLETED a partire dalle righe
indicate dall'operatore. Gli importi sono calcolati dal calcolatore;
il passaggio COMPLETED → INVOICED è chiesto alla macchina a stati.
"""

import logging
from decimal import Decimal
from typing import Any, Sequence

from fieldservice.core.exceptions import (
    AlreadyInvoicedError,
    EmptyLineItemsError,
    InvalidLineItemError,
    RequiresCompletedStatusError,
)
from fieldservice.models import Invoice, InvoiceLine, Job
from fieldservice.models.mixins import utcnow
from fieldservice.schemas.invoice import InvoiceStatus
from fieldservice.schemas.job import JobStatus
from fieldservice.services import billing_calculator, job_state_machine

# Logger per questo modulo
logger = logging.getLogger(__name__)


MAX_DESCRIPTION_LENGTH = 500


class InvoiceService:
    """
    Service per la generazione delle fatture.

    Opera sull'aggregato Job già caricato (e bloccato dal chiamante);
    non accede al database.
    """

    def _validate_line(self, index: int, item: Any) -> tuple[str, int, Decimal]:
        """
        Valida una riga e la restituisce normalizzata.

        Raises:
            InvalidLineItemError: con l'indice (0-based) e il campo non valido
        """
        description = getattr(item, "description", None)
        if not isinstance(description, str) or not description.strip():
            raise InvalidLineItemError(index, "description", "la descrizione è obbligatoria")
        if len(description.strip()) > MAX_DESCRIPTION_LENGTH:
            raise InvalidLineItemError(
                index,
                "description",
                f"la descrizione supera i {MAX_DESCRIPTION_LENGTH} caratteri",
            )

        quantity = getattr(item, "quantity", None)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidLineItemError(
                index, "quantity", "la quantità deve essere un intero positivo"
            )
        if quantity > billing_calculator.MAX_QUANTITY:
            raise InvalidLineItemError(
                index,
                "quantity",
                f"la quantità non può superare {billing_calculator.MAX_QUANTITY}",
            )

        unit_price = billing_calculator.to_money(getattr(item, "unit_price", None))
        if unit_price is None or unit_price < 0:
            raise InvalidLineItemError(
                index,
                "unit_price",
                "il prezzo unitario deve essere un importo non negativo al centesimo",
            )

        if not billing_calculator.fits_amount(Decimal(quantity) * unit_price):
            raise InvalidLineItemError(
                index, "quantity", "il totale della riga supera l'importo massimo"
            )

        return description.strip(), quantity, unit_price

    def generate(
        self,
        job: Job,
        line_items: Sequence[Any],
        tax_rate: Decimal,
    ) -> Job:
        """
        Genera la fattura dell'intervento.

        Controlli, nell'ordine:
        1. Fattura già presente → AlreadyInvoicedError
        2. Stato diverso da COMPLETED → RequiresCompletedStatusError
        3. Nessuna riga → EmptyLineItemsError
        4. Ogni riga valida, altrimenti InvalidLineItemError(index, field);
           righe e totale con imposta devono stare entro MAX_AMOUNT

        Una fattura a totale zero nasce già saldata: l'intervento
        prosegue fino a PAID.

        Args:
            job: Intervento COMPLETED
            line_items: Righe (description, quantity, unit_price)
            tax_rate: Aliquota come frazione (es. 0.10)

        Returns:
            Job: L'intervento, in stato INVOICED (o PAID se totale zero)
        """
        if job.invoice is not None:
            raise AlreadyInvoicedError(job.invoice.id)

        current = job_state_machine.current_status(job)
        if current != JobStatus.COMPLETED:
            raise RequiresCompletedStatusError(current.value)

        if not line_items:
            raise EmptyLineItemsError()

        validated = []
        running = billing_calculator.ZERO
        for index, item in enumerate(line_items):
            description, quantity, unit_price = self._validate_line(index, item)
            running += Decimal(quantity) * unit_price
            # Anche il totale con imposta deve stare in Numeric(12, 2)
            if not billing_calculator.fits_amount(
                running + billing_calculator.tax(running, tax_rate)
            ):
                raise InvalidLineItemError(
                    index, "quantity", "il totale della fattura supera l'importo massimo"
                )
            validated.append((description, quantity, unit_price))

        lines = [
            InvoiceLine(
                line_number=number,
                description=description,
                quantity=quantity,
                unit_price=unit_price,
            )
            for number, (description, quantity, unit_price) in enumerate(validated, start=1)
        ]

        subtotal = billing_calculator.subtotal(lines)
        tax = billing_calculator.tax(subtotal, tax_rate)
        total_amount = billing_calculator.total(subtotal, tax)
        paid_amount = billing_calculator.ZERO
        status = billing_calculator.derive_invoice_status(total_amount, paid_amount)

        job.invoice = Invoice(
            status=status.value,
            subtotal=subtotal,
            tax_rate=tax_rate,
            tax=tax,
            total_amount=total_amount,
            paid_amount=paid_amount,
            issued_at=utcnow(),
            lines=lines,
            payments=[],
        )

        job_state_machine.request_transition(job, JobStatus.INVOICED)
        logger.info(
            "Generata fattura per intervento %s: %d righe, totale %s",
            job.id,
            len(lines),
            total_amount,
        )

        if status == InvoiceStatus.PAID:
            job_state_machine.request_transition(job, JobStatus.PAID)

        return job
