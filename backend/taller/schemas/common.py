"""
Schemas Pydantic comunes
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Sobres de respuesta de la API y resúmenes de entidades colaboradoras
(cliente, bodega) que el taller solo referencia.
"""

import uuid
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

T = TypeVar("T")


# -------------------------------------------------------------------
# Sobres de respuesta
# -------------------------------------------------------------------

class ApiResponse(BaseModel, Generic[T]):
    """Sobre de éxito: {success, message, data}."""
    success: bool = True
    message: Optional[str] = None
    data: T


class ApiListResponse(BaseModel, Generic[T]):
    """
    Sobre de listas paginadas.

    Attributes:
        data: elementos de la página
        total: número total de registros
        page: página actual (desde 1)
        limit: registros por página
        total_pages: calculado a partir de total y limit
    """
    success: bool = True
    message: Optional[str] = None
    data: list[T]
    total: int
    page: int
    limit: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "ApiListResponse[T]":
        """Calcula automáticamente el número de páginas."""
        if self.limit > 0:
            self.total_pages = (self.total + self.limit - 1) // self.limit
        return self


class ErrorResponse(BaseModel):
    """Sobre de error devuelto por los manejadores de excepciones."""
    success: bool = False
    message: str
    error_code: str
    extra: Optional[dict] = None


# -------------------------------------------------------------------
# Resúmenes de colaboradores
# -------------------------------------------------------------------

class CustomerSummary(BaseModel):
    """Datos mínimos del cliente para mostrar en vehículos y órdenes."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    document_number: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class WarehouseSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str

