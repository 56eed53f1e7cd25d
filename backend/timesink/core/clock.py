"""
Orologio dell'applicazione
Progetto: Timesink (Fatturazione Freelance)

Tutti i timestamp sono UTC naive: SQLite non conserva il fuso orario e
confrontare datetime aware con naive solleva TypeError.
"""

from datetime import date, datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Istante corrente in UTC, senza tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today(clock: Clock = utcnow) -> date:
    """Data corrente secondo l'orologio indicato."""
    return clock().date()
