"""
Registro Pagamenti
Progetto: Field Service Manager (Gestionale Interventi)

Unico punto in cui `paid_amount` cambia: ogni incasso è un nuovo
Payment in append, lo stato della fattura è derivato dal totale
incassato e, al saldo, l'intervento passa a PAID.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fieldservice.core.config import settings
from fieldservice.core.exceptions import (
    ExceedsBalanceError,
    FieldValidationError,
    InvalidAmountError,
    InvoiceAlreadyPaidError,
)
from fieldservice.models import Invoice, Payment
from fieldservice.models.mixins import utcnow
from fieldservice.schemas.invoice import InvoiceStatus, PaymentMethod
from fieldservice.schemas.job import JobStatus
from fieldservice.services import billing_calculator, job_state_machine

# Logger per questo modulo
logger = logging.getLogger(__name__)

PAYMENT_METHODS = [method.value for method in PaymentMethod]


class PaymentService:
    """Service per la registrazione dei pagamenti su una fattura."""

    def record_payment(
        self,
        invoice: Invoice,
        amount: Any,
        method: Any,
        paid_at: Optional[datetime] = None,
    ) -> Invoice:
        """
        Registra un pagamento (parziale o a saldo).

        Controlli, nell'ordine:
        1. Importo non finito, <= 0 o con frazioni di centesimo → InvalidAmountError
        2. Metodo sconosciuto → FieldValidationError(method)
        3. Fattura già saldata → InvoiceAlreadyPaidError
        4. Importo oltre il residuo → ExceedsBalanceError

        Args:
            invoice: Fattura (con l'intervento caricato)
            amount: Importo incassato
            method: Card, Bank Transfer o Cash
            paid_at: Data/ora del pagamento (default: ora corrente)

        Returns:
            Invoice: La fattura aggiornata
        """
        value = billing_calculator.to_money(amount)
        if value is None or value <= 0:
            raise InvalidAmountError(amount)

        method_value = method.value if isinstance(method, PaymentMethod) else method
        if method_value not in PAYMENT_METHODS:
            raise FieldValidationError(
                "method",
                f"Metodo di pagamento non valido. Valori ammessi: {', '.join(PAYMENT_METHODS)}",
            )

        if not billing_calculator.can_pay(invoice):
            raise InvoiceAlreadyPaidError(invoice.id)

        remaining = billing_calculator.remaining_balance(invoice)
        if value > remaining:
            raise ExceedsBalanceError(value, remaining)

        invoice.payments.append(
            Payment(
                amount=value,
                method=method_value,
                paid_at=paid_at or utcnow(),
            )
        )
        invoice.paid_amount = billing_calculator.quantize(invoice.paid_amount + value)
        status = billing_calculator.derive_invoice_status(
            invoice.total_amount, invoice.paid_amount
        )
        invoice.status = status.value

        logger.info(
            "Registrato pagamento %s%s (%s) su fattura %s: incassato %s/%s",
            settings.currency_symbol,
            value,
            method_value,
            invoice.id,
            invoice.paid_amount,
            invoice.total_amount,
        )

        if status == InvoiceStatus.PAID:
            job_state_machine.request_transition(invoice.job, JobStatus.PAID)

        return invoice
