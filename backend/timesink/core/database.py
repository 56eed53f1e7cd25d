"""
Configurazione Database - SQLAlchemy 2.0 Async
Progetto: Timesink (Fatturazione Freelance)

Definisce engine, session factory, unità atomiche e dependency injection per FastAPI.
Lo storage è un unico database SQLite locale con un solo scrittore.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from timesink.core.config import settings
from timesink.core.exceptions import StorageError

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Chiave in session.info per la profondità delle unità atomiche annidate
_ATOMIC_DEPTH_KEY = "timesink_atomic_depth"


def enable_sqlite_foreign_keys(target: AsyncEngine) -> None:
    """
    Attiva il controllo delle foreign key su ogni nuova connessione SQLite.

    SQLite le ignora di default; senza il PRAGMA una riga fattura potrebbe
    referenziare una voce inesistente.
    """

    @event.listens_for(target.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ------------------------------------------------------------
# Engine Async SQLAlchemy 2.0
# ------------------------------------------------------------
engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,  # Log query in modalità debug
)
enable_sqlite_foreign_keys(engine)


# ------------------------------------------------------------
# Session Factory
# ------------------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection per FastAPI.

    Crea una sessione database per ogni richiesta e la chiude
    automaticamente al termine.

    Yields:
        AsyncSession: Sessione database async
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Unità di scrittura tutto-o-niente.

    Il blocco più esterno esegue il commit alla fine e il rollback su
    qualsiasi eccezione; i blocchi annidati partecipano alla stessa
    transazione senza committare. Gli errori SQLAlchemy vengono avvolti
    in StorageError con il nome dell'operazione.

    Dopo un rollback le istanze della sessione sono scadute: il chiamante
    deve rileggerle dal repository prima di usarle.

    Args:
        db: Sessione database condivisa dai repository
        operation: Descrizione dell'operazione (per i messaggi di errore)

    Yields:
        AsyncSession: La stessa sessione ricevuta
    """
    depth = db.info.get(_ATOMIC_DEPTH_KEY, 0)
    outermost = depth == 0
    db.info[_ATOMIC_DEPTH_KEY] = depth + 1
    try:
        yield db
        if outermost:
            await db.commit()
    except SQLAlchemyError as exc:
        if outermost:
            await db.rollback()
        logger.error("Operazione '%s' fallita: %s", operation, exc)
        raise StorageError(f"{operation}: errore database ({exc.__class__.__name__})") from exc
    except Exception:
        if outermost:
            await db.rollback()
        raise
    finally:
        db.info[_ATOMIC_DEPTH_KEY] = depth


async def init_db() -> None:
    """
    Inizializza il database.

    Crea le tabelle mancanti (clienti, voci, storico, fatture, righe,
    timer attivo) ed esegue un test di connessione.
    """
    from timesink.models import Base

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text("SELECT 1"))
        logger.info("Database pronto: %s", settings.database_url)
    except Exception as e:
        logger.error("Errore inizializzazione database: %s", e)
        raise


async def close_db() -> None:
    """
    Chiude le connessioni al database.

    Da chiamare durante lo shutdown dell'applicazione.
    """
    await engine.dispose()
    logger.info("Connessioni database chiuse")
