"""
Main Entry Point - FastAPI Application
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Configura la aplicación FastAPI con middleware, routers y ciclo de vida.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taller.core.config import settings
from taller.core.database import close_db, init_db
from taller.core.exceptions import AppException

# ------------------------------------------------------------
# Configuración de logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Ciclo de vida de la aplicación.

    - Startup: verifica la conexión a la base
    - Shutdown: cierra el pool de conexiones
    """
    logger.info("Iniciando %s v%s", settings.app_name, settings.app_version)
    await init_db()
    logger.info("Aplicación iniciada")

    yield

    logger.info("Deteniendo la aplicación...")
    await close_db()
    logger.info("Aplicación detenida")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Presupuestos, órdenes de trabajo y cobranzas para servicio técnico - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Convierte las excepciones de dominio en respuestas JSON.

    El código HTTP y el error_code salen de la clase de la excepción.
    """
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.detail)
    content = {"detail": exc.detail, "error_code": exc.error_code}
    if exc.extra:
        content["extra"] = exc.extra
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handler genérico para excepciones no capturadas: responde 500 y registra el error.
    """
    logger.error("Excepción no manejada: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Error interno del servidor", "error_code": "INTERNAL_SERVER_ERROR"},
    )


# ------------------------------------------------------------
# Middleware CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/health",
    name="Health Check",
    summary="Estado de la aplicación",
    tags=["System"],
)
async def health_check() -> dict[str, str]:
    """
    Endpoint de health check.

    Returns:
        dict: Estado de la aplicación
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
from taller.api.v1 import api_v1_router

app.include_router(api_v1_router)
