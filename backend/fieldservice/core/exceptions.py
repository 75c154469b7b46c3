"""
Eccezioni Custom per l'applicazione.
Progetto: Field Service Manager (Gestionale Interventi)

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori. Ogni eccezione porta un `error_code`
stabile e un dizionario `extra` (campo, indice, stati coinvolti)
che il chiamante mostra così com'è all'operatore.

NOTA: FieldValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (gestiti da FastAPI → 422)
- FieldValidationError: violazioni delle regole di business su un campo (gestiti dal nostro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "BusinessValidationError",
    "FieldValidationError",
    "ValidationError",       # alias di FieldValidationError
    "ConflictError",
    "InvalidTransitionError",
    "RequiresCompletedStatusError",
    "EmptyLineItemsError",
    "InvalidLineItemError",
    "AlreadyInvoicedError",
    "InvalidAmountError",
    "ExceedsBalanceError",
    "InvoiceAlreadyPaidError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    # Default values - overridden in subclasses
    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)

    def to_dict(self) -> Dict[str, Any]:
        """Risultato strutturato restituito al chiamante."""
        return {
            "detail": self.detail,
            "error_code": self.error_code,
            "extra": self.extra,
        }


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando un intervento o una fattura non esiste nel database.
    """

    status_code: int = 404
    error_code: str = "NOT_FOUND"

    def __init__(
        self,
        detail: str = "Risorsa non trovata",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "Il tecnico è obbligatorio"
        - "La riga 2 ha quantità non valida"
        - "L'importo supera il residuo da incassare"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Validazione dati fallita",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


class FieldValidationError(BusinessValidationError):
    """
    Violazione di una regola di business legata a un singolo campo.

    Il nome del campo è esposto sia come attributo `field` sia in
    `extra["field"]`, così il frontend può evidenziare l'input da correggere.
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, detail: str = "Valore non valido") -> None:
        self.field = field
        super().__init__(detail, extra={"field": field})


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato.

    Utilizzata quando un'operazione non può essere eseguita
    a causa dello stato corrente della risorsa.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"

    def __init__(
        self,
        detail: str = "Conflitto di stato",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


# ------------------------------------------------------------
# Ciclo di vita dell'intervento
# ------------------------------------------------------------
class InvalidTransitionError(ConflictError):
    """
    Transizione di stato non consentita.

    Sollevata sia per archi non presenti nella matrice delle transizioni
    (es. NEW → COMPLETED, qualsiasi passo all'indietro) sia per archi
    validi la cui condizione non è soddisfatta (es. INVOICED → PAID
    con saldo residuo). `extra` contiene `current_status`,
    `target_status` e, per le condizioni, `guard`.
    """

    error_code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        current_status: str,
        target_status: str,
        guard: Optional[str] = None,
    ) -> None:
        self.current_status = current_status
        self.target_status = target_status
        self.guard = guard
        extra: Dict[str, Any] = {
            "current_status": current_status,
            "target_status": target_status,
        }
        if guard:
            extra["guard"] = guard
            detail = (
                f"Transizione da '{current_status}' a '{target_status}' "
                f"non consentita: {guard}"
            )
        else:
            detail = f"Transizione da '{current_status}' a '{target_status}' non consentita"
        super().__init__(detail, extra=extra)


# ------------------------------------------------------------
# Fatturazione
# ------------------------------------------------------------
class RequiresCompletedStatusError(ConflictError):
    """La fattura può essere generata solo per interventi COMPLETED."""

    error_code: str = "REQUIRES_COMPLETED_STATUS"

    def __init__(self, current_status: str) -> None:
        self.current_status = current_status
        super().__init__(
            f"L'intervento deve essere completato per essere fatturato. "
            f"Stato attuale: {current_status}",
            extra={"current_status": current_status},
        )


class EmptyLineItemsError(BusinessValidationError):
    """Fattura richiesta senza righe."""

    error_code: str = "EMPTY_LINE_ITEMS"

    def __init__(self) -> None:
        super().__init__("La fattura deve contenere almeno una riga")


class InvalidLineItemError(BusinessValidationError):
    """Riga fattura non valida; `index` è la posizione (0-based) nella richiesta."""

    error_code: str = "INVALID_LINE_ITEM"

    def __init__(self, index: int, field: str, detail: str) -> None:
        self.index = index
        self.field = field
        super().__init__(
            f"Riga {index + 1}: {detail}",
            extra={"index": index, "field": field},
        )


class AlreadyInvoicedError(ConflictError):
    """Esiste già una fattura per l'intervento."""

    error_code: str = "ALREADY_INVOICED"

    def __init__(self, invoice_id: Any = None) -> None:
        super().__init__(
            "Una fattura esiste già per questo intervento",
            extra={"invoice_id": str(invoice_id)} if invoice_id is not None else None,
        )


# ------------------------------------------------------------
# Pagamenti
# ------------------------------------------------------------
class InvalidAmountError(BusinessValidationError):
    """Importo non positivo, non numerico o con frazioni di centesimo."""

    error_code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Any) -> None:
        super().__init__(
            "L'importo del pagamento deve essere un numero positivo (al centesimo)",
            extra={"amount": str(amount)},
        )


class ExceedsBalanceError(BusinessValidationError):
    """Il pagamento supera il residuo da incassare."""

    error_code: str = "EXCEEDS_BALANCE"

    def __init__(self, amount: Any, remaining_balance: Any) -> None:
        self.amount = amount
        self.remaining_balance = remaining_balance
        super().__init__(
            f"Il pagamento ({amount}) supera il residuo da incassare ({remaining_balance})",
            extra={
                "amount": str(amount),
                "remaining_balance": str(remaining_balance),
            },
        )


class InvoiceAlreadyPaidError(ConflictError):
    """La fattura è già saldata: nessun ulteriore pagamento è accettato."""

    error_code: str = "INVOICE_ALREADY_PAID"

    def __init__(self, invoice_id: Any = None) -> None:
        super().__init__(
            "La fattura è già stata saldata",
            extra={"invoice_id": str(invoice_id)} if invoice_id is not None else None,
        )
