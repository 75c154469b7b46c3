"""
Calcolatore importi fattura
Progetto: Field Service Manager (Gestionale Interventi)

Funzioni pure e deterministiche su Decimal: totale riga, imponibile,
imposta, totale, residuo e stato derivato della fattura.
Nessuno stato interno, nessun accesso al database.

Tutti gli importi sono arrotondati al centesimo con ROUND_HALF_UP;
non si usa mai aritmetica binaria in virgola mobile, così un saldo
che raggiunge esattamente il totale chiude la fattura senza residui.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from fieldservice.schemas.invoice import InvoiceStatus

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Limiti delle colonne: Numeric(12, 2) per gli importi, Integer per le quantità
MAX_AMOUNT = Decimal("9999999999.99")
MAX_QUANTITY = 2_147_483_647


def quantize(value: Decimal) -> Decimal:
    """Arrotonda al centesimo (ROUND_HALF_UP)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Converte un valore in ingresso in Decimal senza passare da float binari.

    I float vengono convertiti tramite `str` (0.1 → Decimal("0.1")).
    Restituisce None se il valore non è un numero finito.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def to_money(value: Any) -> Optional[Decimal]:
    """
    Converte un importo in Decimal al centesimo esatto.

    Restituisce None se il valore non è numerico, ha frazioni di
    centesimo (es. 10.005) o supera MAX_AMOUNT in valore assoluto:
    il core non arrotonda gli incassi.
    """
    result = to_decimal(value)
    if result is None or abs(result) > MAX_AMOUNT:
        return None
    try:
        rounded = quantize(result)
    except InvalidOperation:
        return None
    if result != rounded:
        return None
    return rounded


def fits_amount(value: Decimal) -> bool:
    """True se l'importo è rappresentabile in una colonna Numeric(12, 2)."""
    return abs(value) <= MAX_AMOUNT


def line_total(item: Any) -> Decimal:
    """Totale riga: quantity * unit_price."""
    return quantize(Decimal(item.quantity) * Decimal(item.unit_price))


def subtotal(items: Iterable[Any]) -> Decimal:
    """Imponibile: somma dei totali riga (indipendente dall'ordine)."""
    return quantize(sum((line_total(item) for item in items), ZERO))


def tax(amount: Decimal, tax_rate: Decimal) -> Decimal:
    """Imposta: imponibile * aliquota."""
    return quantize(amount * tax_rate)


def total(amount: Decimal, tax_amount: Decimal) -> Decimal:
    """Totale fattura: imponibile + imposta."""
    return quantize(amount + tax_amount)


def remaining_balance(invoice: Any) -> Decimal:
    """
    Residuo da incassare: total_amount - paid_amount.

    Limitato a zero per la visualizzazione; il registro pagamenti
    impedisce comunque che diventi negativo.
    """
    remaining = Decimal(invoice.total_amount) - Decimal(invoice.paid_amount)
    return max(quantize(remaining), ZERO)


def derive_invoice_status(total_amount: Decimal, paid_amount: Decimal) -> InvoiceStatus:
    """
    Stato della fattura in base all'incassato:
    - PAID: incassato == totale
    - PARTIALLY_PAID: 0 < incassato < totale
    - UNPAID: nessun incasso
    """
    if paid_amount >= total_amount:
        return InvoiceStatus.PAID
    if paid_amount > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.UNPAID


def can_pay(invoice: Any) -> bool:
    """
    True se la fattura accetta ancora pagamenti.

    Unico predicato usato sia dalla proiezione di lettura sia dal
    controllo del registro pagamenti.
    """
    return Decimal(invoice.paid_amount) < Decimal(invoice.total_amount)
