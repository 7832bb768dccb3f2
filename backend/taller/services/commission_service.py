"""
Service Layer de la Liquidación de Comisiones
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Base de comisión de un técnico: suma de las líneas de mano de obra de
sus órdenes entregadas y aún no liquidadas dentro del período.

La fecha de una orden para el período es la fecha de entrega o, si
no la tiene, la de ingreso, en la zona horaria del taller.
Cada orden entra como máximo en una liquidación.
"""

import datetime
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    NoEligibleOrdersError,
    NotFoundError,
)
from taller.core.timeutils import as_utc, day_range_utc, workshop_today
from taller.models import CommissionSettlement, CommissionSettlementItem, WorkOrder, WorkOrderItem
from taller.models.mixins import utcnow
from taller.schemas.commission import (
    CommissionOrderRow,
    CommissionPreview,
    CommissionSettlementCreate,
)
from taller.schemas.technician import TechnicianSummary, TechnicianWithPending
from taller.schemas.work_order import WorkOrderStatus
from taller.services.numbering import next_document_number
from taller.services.technician_service import technician_service
from taller.services.work_order_totals import LABOR_ITEM_TYPE, ZERO, round2

# Logger de este módulo
logger = logging.getLogger(__name__)

WHOLE_PESOS = Decimal("1")


def compute_commission(base_amount: Decimal, percentage: Decimal) -> Decimal:
    """Comisión = base × porcentaje / 100, redondeada a pesos (ROUND_HALF_UP)."""
    return (Decimal(base_amount) * Decimal(percentage) / Decimal("100")).quantize(
        WHOLE_PESOS, rounding=ROUND_HALF_UP
    )


def _labor_subquery():
    """Mano de obra por orden (solo líneas mano_obra)."""
    return (
        select(
            WorkOrderItem.work_order_id.label("work_order_id"),
            func.sum(WorkOrderItem.total).label("labor_amount"),
        )
        .where(WorkOrderItem.item_type == LABOR_ITEM_TYPE)
        .group_by(WorkOrderItem.work_order_id)
        .subquery()
    )


class CommissionService:
    """
    Service de liquidaciones de comisión.

    Implementa:
    - Técnicos activos con órdenes pendientes de liquidar
    - Vista previa (sin modificar datos)
    - Creación atómica de la liquidación y marcado de las órdenes
    - Consulta de liquidaciones
    """

    # -------------------------------------------------------------------
    # Candidatas
    # -------------------------------------------------------------------

    async def _candidates(
        self,
        db: AsyncSession,
        technician_id: uuid.UUID,
        date_from: datetime.date,
        date_to: datetime.date,
    ) -> list[tuple[WorkOrder, Decimal]]:
        """
        Órdenes liquidables del técnico en el período, con su mano de obra.

        Returns:
            Lista de (orden, mano de obra) ordenada por número de orden
        """
        labor = _labor_subquery()
        start, end = day_range_utc(date_from, date_to)
        order_date = func.coalesce(WorkOrder.delivered_at, WorkOrder.received_at)

        query = (
            select(WorkOrder, labor.c.labor_amount)
            .join(labor, labor.c.work_order_id == WorkOrder.id)
            .where(
                WorkOrder.technician_id == technician_id,
                WorkOrder.status == WorkOrderStatus.ENTREGADO.value,
                WorkOrder.settled_at.is_(None),
                labor.c.labor_amount > 0,
                order_date >= start,
                order_date <= end,
            )
            .order_by(WorkOrder.order_number)
        )
        result = await db.execute(query)
        return [(work_order, round2(amount)) for work_order, amount in result.all()]

    def _validate_period(
        self,
        date_from: datetime.date,
        date_to: datetime.date,
        percentage: Optional[Decimal] = None,
    ) -> None:
        if date_from > date_to:
            raise BusinessValidationError(
                "La fecha inicial no puede ser posterior a la fecha final",
                extra={"field": "date_from"},
            )
        if percentage is not None and not (ZERO <= percentage <= Decimal("100")):
            raise BusinessValidationError(
                "El porcentaje de comisión debe estar entre 0 y 100",
                extra={"field": "commission_percentage"},
            )

    # -------------------------------------------------------------------
    # Consultas
    # -------------------------------------------------------------------

    async def list_technicians(self, db: AsyncSession) -> list[TechnicianWithPending]:
        """Técnicos activos con el número de órdenes pendientes de liquidar."""
        technicians = await technician_service.get_all(db)

        labor = _labor_subquery()
        pending_query = (
            select(WorkOrder.technician_id, func.count(WorkOrder.id))
            .join(labor, labor.c.work_order_id == WorkOrder.id)
            .where(
                WorkOrder.technician_id.is_not(None),
                WorkOrder.status == WorkOrderStatus.ENTREGADO.value,
                WorkOrder.settled_at.is_(None),
                labor.c.labor_amount > 0,
            )
            .group_by(WorkOrder.technician_id)
        )
        pending = dict((await db.execute(pending_query)).all())

        return [
            TechnicianWithPending(
                **TechnicianSummary.model_validate(t).model_dump(),
                pending_orders=pending.get(t.id, 0),
            )
            for t in technicians
        ]

    async def preview(
        self,
        db: AsyncSession,
        technician_id: uuid.UUID,
        date_from: datetime.date,
        date_to: datetime.date,
        commission_percentage: Optional[Decimal] = None,
    ) -> CommissionPreview:
        """
        Vista previa de la liquidación; no modifica datos.

        Raises:
            NotFoundError: si el técnico no existe
            BusinessValidationError: período invertido o porcentaje fuera de 0-100
        """
        self._validate_period(date_from, date_to, commission_percentage)
        technician = await technician_service.get_by_id(db, technician_id)

        candidates = await self._candidates(db, technician_id, date_from, date_to)
        base_amount = sum((amount for _, amount in candidates), ZERO)

        rows = [
            CommissionOrderRow(
                id=work_order.id,
                order_number=work_order.order_number,
                status=work_order.status,
                vehicle_plate=work_order.vehicle.plate if work_order.vehicle else None,
                received_at=as_utc(work_order.received_at),
                delivered_at=as_utc(work_order.delivered_at),
                labor_amount=amount,
            )
            for work_order, amount in candidates
        ]

        commission_amount = None
        if commission_percentage is not None:
            commission_amount = compute_commission(base_amount, commission_percentage)

        logger.debug(
            "Vista previa de comisión %s (%s - %s): %d órdenes, base=%s",
            technician.name,
            date_from,
            date_to,
            len(rows),
            base_amount,
        )
        return CommissionPreview(
            technician=TechnicianSummary.model_validate(technician),
            date_from=date_from,
            date_to=date_to,
            orders=rows,
            total_orders=len(rows),
            base_amount=base_amount,
            commission_percentage=commission_percentage,
            commission_amount=commission_amount,
        )

    async def get_all(
        self,
        db: AsyncSession,
        technician_id: Optional[uuid.UUID] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[CommissionSettlement], int]:
        """Liquidaciones, de la más reciente a la más antigua."""
        conditions = []
        if technician_id is not None:
            conditions.append(CommissionSettlement.technician_id == technician_id)

        query = (
            select(CommissionSettlement)
            .where(*conditions)
            .order_by(CommissionSettlement.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        settlements = list((await db.execute(query)).scalars().all())

        count_query = select(func.count(CommissionSettlement.id)).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        return settlements, total

    async def get_by_id(self, db: AsyncSession, settlement_id: uuid.UUID) -> CommissionSettlement:
        """
        Raises:
            NotFoundError: si la liquidación no existe
        """
        result = await db.execute(
            select(CommissionSettlement)
            .where(CommissionSettlement.id == settlement_id)
            .execution_options(populate_existing=True)
        )
        settlement = result.scalar_one_or_none()
        if settlement is None:
            logger.warning("Liquidación no encontrada: %s", settlement_id)
            raise NotFoundError(f"Liquidación con ID {settlement_id} no encontrada")
        return settlement

    # -------------------------------------------------------------------
    # Creación
    # -------------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        data: CommissionSettlementCreate,
        created_by: Optional[uuid.UUID] = None,
    ) -> CommissionSettlement:
        """
        Crea la liquidación y marca las órdenes como liquidadas.

        Steps:
        1. Recalcula las candidatas (nunca confía en la vista previa)
        2. Bloquea las órdenes y descarta las liquidadas en paralelo
        3. Genera el número LIQ-YYYY-NNNN
        4. Crea la liquidación con una línea por orden
        5. Marca settled_at en cada orden

        Raises:
            NotFoundError: si el técnico no existe
            NoEligibleOrdersError: si no hay órdenes liquidables en el período
            ConflictError: si otra liquidación tomó las mismas órdenes
        """
        self._validate_period(data.date_from, data.date_to, data.commission_percentage)
        technician = await technician_service.get_by_id(db, data.technician_id)

        # Step 1
        candidates = await self._candidates(db, data.technician_id, data.date_from, data.date_to)

        # Step 2
        if candidates:
            locked = await db.execute(
                select(WorkOrder.id)
                .where(
                    WorkOrder.id.in_([wo.id for wo, _ in candidates]),
                    WorkOrder.settled_at.is_(None),
                )
                .with_for_update()
            )
            still_open = set(locked.scalars().all())
            candidates = [(wo, amount) for wo, amount in candidates if wo.id in still_open]

        if not candidates:
            logger.info(
                "Sin órdenes liquidables para %s (%s - %s)",
                technician.name,
                data.date_from,
                data.date_to,
            )
            raise NoEligibleOrdersError(
                "No hay órdenes entregadas pendientes de liquidar en el período",
                extra={
                    "technician_id": str(data.technician_id),
                    "date_from": data.date_from.isoformat(),
                    "date_to": data.date_to.isoformat(),
                },
            )

        base_amount = sum((amount for _, amount in candidates), ZERO)
        commission_amount = compute_commission(base_amount, data.commission_percentage)

        # Step 3
        settlement_number = await next_document_number(
            db, CommissionSettlement.settlement_number, "LIQ", workshop_today().year, 4
        )

        # Step 4
        settlement = CommissionSettlement(
            settlement_number=settlement_number,
            technician_id=data.technician_id,
            date_from=data.date_from,
            date_to=data.date_to,
            base_amount=base_amount,
            commission_percentage=data.commission_percentage,
            commission_amount=commission_amount,
            notes=data.notes,
            created_by=created_by,
            items=[
                CommissionSettlementItem(
                    work_order_id=work_order.id,
                    order_number=work_order.order_number,
                    labor_amount=amount,
                )
                for work_order, amount in candidates
            ],
        )
        db.add(settlement)

        # Step 5
        settled_at = utcnow()
        for work_order, _ in candidates:
            work_order.settled_at = settled_at

        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            logger.warning("Liquidación concurrente para %s: %s", technician.name, e.orig)
            raise ConflictError(
                "Alguna de las órdenes ya fue liquidada por otra operación; repita la vista previa"
            )

        logger.info(
            "Liquidación %s creada: técnico=%s órdenes=%d base=%s comisión=%s",
            settlement.settlement_number,
            technician.name,
            len(candidates),
            base_amount,
            commission_amount,
        )
        return await self.get_by_id(db, settlement.id)


# Instancia global del service
commission_service = CommissionService()
