"""
Eccezioni Custom per l'applicazione.
Progetto: Timesink (Fatturazione Freelance)

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori.

Tassonomia:
- NotFoundError: cliente/voce/fattura/riga inesistente
- BusinessValidationError: entità malformata o regola di business violata
- DuplicateError: vincolo di unicità violato
- ConflictError: operazione non ammessa nello stato corrente
  (voce bloccata, fattura non modificabile, timer nello stato sbagliato)
- StorageError: errore dello storage sottostante, con il contesto dell'operazione

NOTA: BusinessValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (gestiti da FastAPI → 422)
- BusinessValidationError: violazioni delle regole di business logic (gestiti dal nostro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "ClientNotFoundError",
    "EntryNotFoundError",
    "InvoiceNotFoundError",
    "LineItemNotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "ClientMismatchError",
    "EmptyInvoiceError",
    "ConflictError",
    "LockedError",
    "AlreadyLockedError",
    "NotEditableError",
    "InvalidTransitionError",
    "StateConflictError",
    "AlreadyRunningError",
    "NotRunningError",
    "NotPausedError",
    "NoActiveTimerError",
    "StorageError",
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
    default_detail: str = "Errore interno"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato (default: quello di classe)
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail if detail is not None else self.default_detail
        # Use provided error_code or fall back to class-level default
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)


# ------------------------------------------------------------
# Risorse inesistenti
# ------------------------------------------------------------
class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando un'entità cercata non esiste nel database.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Risorsa non trovata"


class ClientNotFoundError(NotFoundError):
    """Il cliente referenziato non esiste."""

    error_code: str = "CLIENT_NOT_FOUND"
    default_detail: str = "Cliente non trovato"


class EntryNotFoundError(NotFoundError):
    """La voce di tempo referenziata non esiste (o è stata eliminata)."""

    error_code: str = "ENTRY_NOT_FOUND"
    default_detail: str = "Voce di tempo non trovata"


class InvoiceNotFoundError(NotFoundError):
    """La fattura referenziata non esiste."""

    error_code: str = "INVOICE_NOT_FOUND"
    default_detail: str = "Fattura non trovata"


class LineItemNotFoundError(NotFoundError):
    """Nessuna riga fattura corrisponde alla richiesta."""

    error_code: str = "LINE_ITEM_NOT_FOUND"
    default_detail: str = "Riga fattura non trovata"


# ------------------------------------------------------------
# Duplicati
# ------------------------------------------------------------
class DuplicateError(AppException):
    """
    Eccezione sollevata quando si tenta di creare una risorsa duplicata.

    Utilizzata per violazioni di vincoli unique (es. nome cliente già esistente,
    voce già presente sulla stessa fattura).
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "Risorsa già esistente"


# ------------------------------------------------------------
# Validazione
# ------------------------------------------------------------
class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    NON confondere con pydantic.ValidationError che gestisce
    la validazione dello schema/formato dei dati in input.

    Esempi di utilizzo:
        - "La tariffa oraria non può essere negativa"
        - "L'ora di fine deve essere successiva all'ora di inizio"
        - "La voce non appartiene al cliente della fattura"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"
    default_detail: str = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class ClientMismatchError(BusinessValidationError):
    """La voce appartiene a un cliente diverso da quello della fattura."""

    error_code: str = "CLIENT_MISMATCH"
    default_detail: str = "La voce non appartiene al cliente della fattura"


class EmptyInvoiceError(BusinessValidationError):
    """Finalizzazione richiesta su una fattura senza righe."""

    error_code: str = "EMPTY_INVOICE"
    default_detail: str = "Impossibile finalizzare una fattura senza righe"


# ------------------------------------------------------------
# Conflitti di stato
# ------------------------------------------------------------
class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato.

    Utilizzata quando un'operazione non può essere eseguita
    a causa dello stato corrente della risorsa.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"
    default_detail: str = "Conflitto di stato"


class LockedError(ConflictError):
    """Modifica o eliminazione di una voce già agganciata a una fattura."""

    error_code: str = "ENTRY_LOCKED"
    default_detail: str = "La voce è bloccata da una fattura"


class AlreadyLockedError(ConflictError):
    """Tentativo di agganciare a una fattura una voce già bloccata."""

    error_code: str = "ENTRY_ALREADY_LOCKED"
    default_detail: str = "La voce è già bloccata da una fattura"


class NotEditableError(ConflictError):
    """La fattura non è in bozza e non accetta modifiche alle righe."""

    error_code: str = "INVOICE_NOT_EDITABLE"
    default_detail: str = "La fattura non è modificabile dopo la finalizzazione"


class InvalidTransitionError(ConflictError):
    """Transizione di stato della fattura non consentita."""

    error_code: str = "INVALID_TRANSITION"
    default_detail: str = "Transizione di stato non consentita"


class StateConflictError(ConflictError):
    """Operazione sul timer non valida per lo stato corrente."""

    error_code: str = "TIMER_STATE_CONFLICT"
    default_detail: str = "Operazione non valida per lo stato del timer"


class AlreadyRunningError(StateConflictError):
    error_code: str = "TIMER_ALREADY_RUNNING"
    default_detail: str = "Un timer è già attivo"


class NotRunningError(StateConflictError):
    error_code: str = "TIMER_NOT_RUNNING"
    default_detail: str = "Il timer non è in esecuzione"


class NotPausedError(StateConflictError):
    error_code: str = "TIMER_NOT_PAUSED"
    default_detail: str = "Il timer non è in pausa"


class NoActiveTimerError(StateConflictError):
    error_code: str = "NO_ACTIVE_TIMER"
    default_detail: str = "Nessun timer attivo"


# ------------------------------------------------------------
# Storage
# ------------------------------------------------------------
class StorageError(AppException):
    """
    Errore dello storage sottostante.

    Avvolge le eccezioni SQLAlchemy aggiungendo il nome dell'operazione
    in corso; lo stato persistito resta quello precedente all'operazione.
    """

    status_code: int = 500
    error_code: str = "STORAGE_ERROR"
    default_detail: str = "Errore di accesso ai dati"
