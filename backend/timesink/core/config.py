"""
Configurazione applicazione - Settings
Progetto: Timesink (Fatturazione Freelance)

Definisce le impostazioni dell'applicazione caricate da variabili d'ambiente.

I service di dominio (timer, fatture) non leggono mai queste impostazioni:
aliquota, giorni di scadenza e prefisso numerazione vengono passati come
parametri dal livello di wiring (core.deps / API).
"""


from __future__ import annotations
import logging
from functools import lru_cache
from typing import Literal
from decimal import Decimal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configurazione applicazione.

    Carica le impostazioni da variabili d'ambiente.
    Valori di default adatti per uso locale (database SQLite nella cartella corrente).

    Per ottenere un'istanza singleton:
    - In FastAPI: usa `Depends(get_settings)` per Dependency Injection
    - Altrove: usa `get_settings()` direttamente
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------
    # Configurazione Database
    # ------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./timesink.db",
        description="URL connessione database SQLite (formato async)",
    )

    # ------------------------------------------------------------
    # Configurazione Applicazione
    # ------------------------------------------------------------
    app_name: str = Field(
        default="Timesink",
        description="Nome applicazione",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Versione applicazione",
    )

    app_env: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Ambiente di esecuzione (development | production | testing)",
    )

    debug: bool = Field(
        default=False,
        description="Modalità debug",
    )

    # ------------------------------------------------------------
    # Configurazione CORS
    # ------------------------------------------------------------
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Origini CORS permesse",
    )

    # ------------------------------------------------------------
    # Configurazione Logging
    # ------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Livello logging",
    )

    # ------------------------------------------------------------
    # Configurazione Fatturazione
    # ------------------------------------------------------------
    invoice_number_prefix: str = Field(
        default="INV",
        description="Prefisso numerazione fatture (formato: PREFIX-YYYY-NNN)",
    )

    default_tax_rate: Decimal = Field(
        default=Decimal("0"),
        description="Aliquota di default come frazione (0.0825 = 8.25%)",
    )

    default_due_days: int = Field(
        default=30,
        description="Giorni alla scadenza applicati in finalizzazione",
    )

    invoice_export_dir: str = Field(
        default="./invoices",
        description="Cartella di destinazione degli export testuali",
    )

    invoice_sender_name: str = Field(
        default="",
        description="Nome del professionista riportato nell'export",
    )

    invoice_sender_email: str = Field(
        default="",
        description="Email riportata nell'export",
    )

    invoice_sender_address: str = Field(
        default="",
        description="Indirizzo riportato nell'export",
    )

    invoice_sender_phone: str = Field(
        default="",
        description="Telefono riportato nell'export",
    )

    invoice_currency_symbol: str = Field(
        default="€",
        description="Simbolo valuta usato negli importi dell'export",
    )

    @property
    def is_production(self) -> bool:
        """Verifica se l'applicazione è in produzione."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Verifica se l'applicazione è in sviluppo."""
        return self.app_env == "development"

    # ------------------------------------------------------------
    # Validatori
    # ------------------------------------------------------------

    @field_validator("default_tax_rate", mode="before")
    @classmethod
    def convert_decimal_from_string(cls, v) -> Decimal:
        """Gestisce input con virgola convertendolo in punto."""
        if v is None:
            return v
        if isinstance(v, str):
            # Sostituisci virgola con punto
            v = v.replace(",", ".")
        return Decimal(str(v))

    @field_validator("default_tax_rate")
    @classmethod
    def validate_tax_rate(cls, v: Decimal) -> Decimal:
        """L'aliquota è una frazione compresa tra 0 e 1."""
        if v < 0 or v > 1:
            raise ValueError("L'aliquota deve essere compresa tra 0 e 1 (es. 0.22)")
        return v

    @field_validator("invoice_number_prefix")
    @classmethod
    def validate_invoice_number_prefix(cls, v: str) -> str:
        """Il prefisso non può essere vuoto né contenere il separatore '-'."""
        v = v.strip()
        if not v:
            raise ValueError("Il prefisso fatture non può essere vuoto")
        if "-" in v:
            raise ValueError("Il prefisso fatture non può contenere '-'")
        return v

    @field_validator("default_due_days")
    @classmethod
    def validate_due_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("I giorni alla scadenza non possono essere negativi")
        return v

    @field_validator("invoice_export_dir")
    @classmethod
    def validate_export_dir(cls, v: str) -> str:
        """Emette warning se il path è relativo."""
        if v and not v.startswith("/"):
            logging.getLogger(__name__).warning(
                "invoice_export_dir è relativo: %s. Gli export dipendono dalla cartella corrente.",
                v,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validazione settings obbligatori in produzione."""
        if self.app_env != "production":
            return self

        errors = []

        if self.debug:
            errors.append("- debug: deve essere False in produzione")

        if ":memory:" in self.database_url or self.database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
            errors.append("- database_url: in produzione serve un database su file")

        if errors:
            error_msg = "Errore di configurazione in produzione:\n" + "\n".join(errors)
            raise ValueError(error_msg)

        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Restituisce l'istanza singleton delle impostazioni.

    Usa lru_cache per garantire che Settings() venga istanziato
    una sola volta e riutilizzato in tutta l'applicazione.
    In fase di test, usa get_settings.cache_clear() per resettare.

    Returns:
        Settings: Istanza delle impostazioni applicazione
    """
    return Settings()


# Istanza singleton delle impostazioni per uso diretto in modulo
settings = get_settings()
