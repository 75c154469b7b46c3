"""
Persistenza dell'aggregato Job - SQLAlchemy 2.0 Async
Progetto: Field Service Manager (Gestionale Interventi)

Engine e sessioni async. Ogni richiesta HTTP lavora in una sola
transazione: il router fa commit a operazione riuscita, `get_db`
annulla tutto se l'operazione solleva un'eccezione.
"""

import logging
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fieldservice.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict[str, Any]:
    """Opzioni del pool; SQLite (test/sviluppo) non accetta pool_size."""
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

# expire_on_commit=False: le risposte leggono l'aggregato dopo il commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Sessione per la singola richiesta (dependency FastAPI).

    Un'eccezione di dominio o imprevista annulla la transazione,
    quindi un'operazione fallita non lascia modifiche parziali.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def ping_db() -> bool:
    """True se il database risponde a una query banale."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database non raggiungibile: %s", e)
        return False
    return True


async def init_db() -> None:
    """Verifica all'avvio che il database sia raggiungibile."""
    if not await ping_db():
        raise RuntimeError(f"Impossibile connettersi al database ({engine.url.render_as_string()})")
    logger.info("Database raggiungibile: %s", engine.url.render_as_string())


async def close_db() -> None:
    """Rilascia il pool di connessioni allo shutdown."""
    await engine.dispose()
    logger.info("Pool di connessioni chiuso")
