"""
Dependencias comunes de los routers
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)
"""

from typing import Optional
from uuid import UUID

from fastapi import Header

from taller.core.exceptions import BusinessValidationError


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> Optional[UUID]:
    """
    Identificador del usuario que ejecuta la operación.

    Se toma de la cabecera X-User-Id, sin autenticación; sirve solo
    para registrar `created_by` en las liquidaciones.
    """
    if not x_user_id:
        return None
    try:
        return UUID(x_user_id)
    except ValueError:
        raise BusinessValidationError(
            "Cabecera X-User-Id inválida",
            extra={"field": "X-User-Id"},
        )
