"""
Service del Checklist de ingreso
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import ReadOnlyViolationError
from taller.models import WorkOrder
from taller.schemas.checklist import Checklist
from taller.schemas.work_order import WorkOrderStatus
from taller.services.work_order_service import work_order_service

logger = logging.getLogger(__name__)


class ChecklistService:
    """El checklist solo se edita mientras la orden está en recibido."""

    async def save(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        checklist: Checklist,
    ) -> WorkOrder:
        """
        Reemplaza el checklist completo de la orden.

        Raises:
            NotFoundError: si la orden no existe
            ReadOnlyViolationError: si la orden ya no está en recibido
        """
        work_order = await work_order_service.get_by_id(db, work_order_id, for_update=True)

        if work_order.status != WorkOrderStatus.RECIBIDO.value:
            logger.warning(
                "Checklist de %s en solo lectura (estado %s)",
                work_order.order_number,
                work_order.status,
            )
            raise ReadOnlyViolationError(
                "El checklist solo puede modificarse con la orden en estado 'recibido'",
                extra={"status": work_order.status},
            )

        # Columna JSON: se asigna un objeto nuevo para que se detecte el cambio
        work_order.checklist_in = checklist.to_storage()
        await db.flush()

        logger.info(
            "Checklist guardado en %s: %d componentes",
            work_order.order_number,
            len(checklist.items),
        )
        return await work_order_service.get_by_id(db, work_order.id)


checklist_service = ChecklistService()
