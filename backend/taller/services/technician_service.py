"""
Service Layer de la entidad Technician
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Los técnicos se administran fuera del taller; aquí solo se consultan.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import BusinessValidationError, NotFoundError
from taller.models.technician import Technician

logger = logging.getLogger(__name__)


class TechnicianService:
    """
    Consultas sobre técnicos.
    """

    async def get_all(self, db: AsyncSession) -> List[Technician]:
        """Lista de técnicos activos ordenada por nombre."""
        query = select(Technician).where(Technician.is_active == True).order_by(Technician.name)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, id: uuid.UUID) -> Technician:
        """Técnico por ID, activo o no."""
        result = await db.execute(select(Technician).where(Technician.id == id))
        technician = result.scalar_one_or_none()

        if not technician:
            logger.warning("Técnico no encontrado: %s", id)
            raise NotFoundError(f"Técnico {id} no encontrado")

        return technician

    async def get_active(self, db: AsyncSession, id: uuid.UUID) -> Technician:
        """Técnico por ID; debe estar activo para recibir órdenes."""
        technician = await self.get_by_id(db, id)
        if not technician.is_active:
            logger.warning("Técnico inactivo: %s", id)
            raise BusinessValidationError(
                f"El técnico {technician.name} no está activo",
                extra={"field": "technician_id"},
            )
        return technician


technician_service = TechnicianService()
