"""
Main Entry Point - FastAPI Application
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Configura la aplicación FastAPI con middleware, routers y ciclo de vida.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from taller.api.v1 import api_v1_router
from taller.core.config import settings
from taller.core.database import close_db, init_db
from taller.core.exceptions import AppException

# ------------------------------------------------------------
# Configuración de Logging
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

    - Startup: verifica la conexión a la base de datos
    - Shutdown: cierra las conexiones
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
    description="Taller: órdenes de trabajo, remisiones y liquidación de comisiones - API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Convierte cualquier AppException en el sobre de error.

    El código HTTP y el error_code vienen de la propia excepción.
    """
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Errores de validación del cuerpo o de los parámetros (pydantic)."""
    errors = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
    first = errors[0]["msg"] if errors else "Datos inválidos"
    logger.debug("Solicitud inválida en %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": first,
            "error_code": "VALIDATION_ERROR",
            "extra": {"errors": errors},
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Manejador genérico de excepciones no capturadas.

    Registra el error con traza y responde HTTP 500.
    """
    logger.error("Excepción no controlada: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Error interno del servidor",
            "error_code": "INTERNAL_SERVER_ERROR",
            "extra": None,
        },
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
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


# ------------------------------------------------------------
# Routers y archivos
# ------------------------------------------------------------
app.include_router(api_v1_router)

# Fotos de las órdenes
app.mount(
    "/uploads",
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="uploads",
)


def run() -> None:
    """Arranca el servidor (script `taller-api`)."""
    import uvicorn

    uvicorn.run(
        "taller.main:app",
        host="0.0.0.0",
        port=settings.backend_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
