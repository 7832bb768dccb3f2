"""
API v1 Routes
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Router versión 1 de la API del taller.
"""

from fastapi import APIRouter

from taller.api.v1 import commission_settlements, vehicles, work_orders
from taller.schemas.common import ErrorResponse

# Sobre de error documentado en OpenAPI para todas las rutas
ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Recurso no encontrado"},
    409: {"model": ErrorResponse, "description": "Conflicto con el estado actual"},
    422: {"model": ErrorResponse, "description": "Datos inválidos o regla de negocio"},
}

api_v1_router = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)

api_v1_router.include_router(vehicles.router)
api_v1_router.include_router(work_orders.router)
api_v1_router.include_router(commission_settlements.router)

__all__ = ["api_v1_router"]
