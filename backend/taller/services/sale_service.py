"""
Service Layer de la generación de Ventas (remisiones)
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Convierte una orden de trabajo lista en una remisión. Cada orden
genera como máximo una remisión.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import (
    NotFoundError,
    SaleAlreadyGeneratedError,
    SaleNotReadyError,
)
from taller.core.timeutils import workshop_today
from taller.models import Sale, SaleItem, WorkOrder
from taller.schemas.work_order import BILLABLE_STATUSES, WorkOrderStatus
from taller.services.numbering import next_document_number
from taller.services.work_order_service import work_order_service

# Logger de este módulo
logger = logging.getLogger(__name__)


class SaleService:
    """
    Service de las remisiones generadas desde órdenes de trabajo.

    Implementa:
    - Generación idempotente por orden (una sola remisión)
    - Numeración anual REM-YYYY-NNNNN
    - Cierre de la orden: pasa a entregado si aún no lo estaba
    """

    async def get_by_id(self, db: AsyncSession, sale_id: uuid.UUID) -> Sale:
        """
        Raises:
            NotFoundError: si la remisión no existe
        """
        result = await db.execute(
            select(Sale)
            .where(Sale.id == sale_id)
            .execution_options(populate_existing=True)
        )
        sale = result.scalar_one_or_none()
        if sale is None:
            raise NotFoundError(f"Remisión con ID {sale_id} no encontrada")
        return sale

    async def generate_from_work_order(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
    ) -> tuple[Sale, WorkOrder]:
        """
        Genera la remisión de una orden lista o entregada.

        Steps:
        1. Bloquea la orden (SELECT ... FOR UPDATE)
        2. Verifica que no tenga remisión, que el estado lo permita y que tenga líneas
        3. Genera el número REM-YYYY-NNNNN
        4. Copia líneas y totales de la orden a la remisión
        5. Enlaza la orden con la remisión y la marca como entregada

        Returns:
            Tupla (remisión, orden actualizada)

        Raises:
            NotFoundError: si la orden no existe
            SaleAlreadyGeneratedError: si la orden ya tiene remisión
            SaleNotReadyError: estado distinto de listo/entregado o sin líneas
        """
        # Step 1: bloqueo de la orden
        work_order = await work_order_service.get_by_id(db, work_order_id, for_update=True)

        # Step 2: validaciones
        if work_order.sale_id is not None:
            logger.warning("Remisión ya generada para %s", work_order.order_number)
            raise SaleAlreadyGeneratedError(
                f"La orden {work_order.order_number} ya tiene una venta generada",
                extra={"sale_id": str(work_order.sale_id)},
            )

        if WorkOrderStatus(work_order.status) not in BILLABLE_STATUSES:
            raise SaleNotReadyError(
                f"La orden debe estar en 'listo' o 'entregado' para generar la venta. "
                f"Estado actual: {work_order.status}",
                extra={"status": work_order.status},
            )

        if not work_order.items:
            raise SaleNotReadyError(
                f"La orden {work_order.order_number} no tiene líneas para facturar"
            )

        # Step 3: número de remisión
        sale_number = await next_document_number(
            db, Sale.sale_number, "REM", workshop_today().year, 5
        )

        # Step 4: remisión con las líneas de la orden
        sale = Sale(
            id=uuid.uuid4(),
            sale_number=sale_number,
            work_order_id=work_order.id,
            customer_id=work_order.customer_id,
            warehouse_id=work_order.warehouse_id,
            subtotal=work_order.subtotal,
            discount_amount=work_order.discount_amount,
            tax_amount=work_order.tax_amount,
            total_amount=work_order.total_amount,
            notes=f"Generada desde la orden {work_order.order_number}",
            items=[
                SaleItem(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    item_type=item.item_type,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total=item.total,
                )
                for item in work_order.items
            ],
        )
        db.add(sale)

        # Step 5: cierre de la orden
        work_order.sale_id = sale.id
        if work_order.status != WorkOrderStatus.ENTREGADO.value:
            work_order_service.mark_delivered(work_order)

        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            logger.warning("Remisión concurrente para la orden %s: %s", work_order_id, e.orig)
            raise SaleAlreadyGeneratedError(
                "La orden ya tiene una venta generada (operación concurrente)"
            )

        logger.info(
            "Remisión %s generada desde %s: total=%s",
            sale.sale_number,
            work_order.order_number,
            sale.total_amount,
        )

        sale = await self.get_by_id(db, sale.id)
        work_order = await work_order_service.get_by_id(db, work_order.id)
        return sale, work_order


# Instancia global del service
sale_service = SaleService()
