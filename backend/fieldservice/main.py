"""
Applicazione FastAPI del Field Service Manager
Progetto: Field Service Manager (Gestionale Interventi)

Monta i router /api/v1, il middleware CORS e un unico gestore per
le eccezioni di dominio, che diventano risposte strutturate
{detail, error_code, extra}.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fieldservice.api.v1 import api_v1_router
from fieldservice.core.config import settings
from fieldservice.core.database import close_db, init_db, ping_db
from fieldservice.core.exceptions import AppException

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Apre il database all'avvio e rilascia il pool allo shutdown."""
    logger.info(
        "Avvio %s v%s (ambiente: %s, aliquota: %s)",
        settings.app_name,
        settings.app_version,
        settings.app_env,
        settings.tax_rate,
    )
    await init_db()

    yield

    await close_db()
    logger.info("%s arrestato", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Ciclo di vita degli interventi: appuntamento, completamento, fattura, pagamenti",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Errore di dominio: status HTTP e codice definiti dalla classe dell'eccezione."""
    logger.debug("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.error_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Errore imprevisto: viene loggato con lo stack e restituito come 500 generico."""
    logger.error("Errore non gestito su %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Errore interno del server",
            "error_code": "INTERNAL_SERVER_ERROR",
            "extra": None,
        },
    )


@app.get(
    "/health",
    name="Health Check",
    summary="Stato dell'applicazione e del database",
    tags=["System"],
)
async def health_check() -> dict[str, Any]:
    database_ok = await ping_db()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "ok" if database_ok else "unreachable",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


app.include_router(api_v1_router)
