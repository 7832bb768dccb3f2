"""
Service de reportes del taller
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Reporte de órdenes por período y productividad por técnico.
El período se aplica sobre la fecha de ingreso de la orden.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import BusinessValidationError
from taller.core.timeutils import day_range_utc, local_date
from taller.models import WorkOrder
from taller.schemas.report import (
    TechnicianProductivity,
    WorkshopReport,
    WorkshopReportRow,
    WorkshopReportSummary,
)
from taller.schemas.work_order import WorkOrderStatus, is_terminal
from taller.services.work_order_totals import labor_total, parts_total

logger = logging.getLogger(__name__)

UNASSIGNED_LABEL = "Sin asignar"


class WorkshopReportService:

    async def _orders_in_period(
        self,
        db: AsyncSession,
        date_from: datetime.date,
        date_to: datetime.date,
        technician_id: Optional[uuid.UUID] = None,
        status_filter: Optional[WorkOrderStatus] = None,
    ) -> list[WorkOrder]:
        if date_from > date_to:
            raise BusinessValidationError(
                "La fecha inicial no puede ser posterior a la fecha final",
                extra={"field": "date_from"},
            )
        start, end = day_range_utc(date_from, date_to)

        query = select(WorkOrder).where(
            WorkOrder.received_at >= start,
            WorkOrder.received_at <= end,
        )
        if technician_id is not None:
            query = query.where(WorkOrder.technician_id == technician_id)
        if status_filter is not None:
            query = query.where(WorkOrder.status == WorkOrderStatus(status_filter).value)

        result = await db.execute(query.order_by(WorkOrder.received_at.asc()))
        return list(result.scalars().all())

    async def report(
        self,
        db: AsyncSession,
        date_from: datetime.date,
        date_to: datetime.date,
        technician_id: Optional[uuid.UUID] = None,
        status_filter: Optional[WorkOrderStatus] = None,
    ) -> WorkshopReport:
        """
        Órdenes recibidas en el período con su resumen.

        total_revenue suma solo las órdenes entregadas; mano de obra y
        repuestos excluyen las canceladas.
        """
        orders = await self._orders_in_period(db, date_from, date_to, technician_id, status_filter)

        rows: list[WorkshopReportRow] = []
        summary = WorkshopReportSummary()
        resolution: list[int] = []

        for order in orders:
            received = local_date(order.received_at)
            delivered = local_date(order.delivered_at)
            days = (delivered - received).days if delivered else None
            labor = labor_total(order.items)
            parts = parts_total(order.items)

            rows.append(
                WorkshopReportRow(
                    id=order.id,
                    order_number=order.order_number,
                    status=order.status,
                    customer=order.customer.name if order.customer else None,
                    vehicle=order.vehicle.display_name if order.vehicle else None,
                    technician=order.technician.name if order.technician else None,
                    received_at=received,
                    delivered_at=delivered,
                    resolution_days=days,
                    labor_total=labor,
                    parts_total=parts,
                    total_amount=order.total_amount,
                    work_performed=order.work_performed,
                )
            )

            summary.total_orders += 1
            if order.status == WorkOrderStatus.ENTREGADO.value:
                summary.completed += 1
                summary.total_revenue += order.total_amount
                if days is not None:
                    resolution.append(days)
            elif order.status == WorkOrderStatus.CANCELADO.value:
                summary.cancelled += 1
                continue
            else:
                summary.in_progress += 1
            summary.total_labor += labor
            summary.total_parts += parts

        if resolution:
            summary.avg_resolution_days = (
                Decimal(sum(resolution)) / Decimal(len(resolution))
            ).quantize(Decimal("0.1"))

        logger.debug("Reporte %s - %s: %d órdenes", date_from, date_to, len(rows))
        return WorkshopReport(date_from=date_from, date_to=date_to, rows=rows, summary=summary)

    async def productivity(
        self,
        db: AsyncSession,
        date_from: datetime.date,
        date_to: datetime.date,
    ) -> list[TechnicianProductivity]:
        """
        Productividad por técnico, de mayor a menor ingreso.

        Los ingresos cuentan solo órdenes entregadas; las órdenes sin
        técnico se agrupan en "Sin asignar".
        """
        orders = await self._orders_in_period(db, date_from, date_to)

        groups: dict[Optional[uuid.UUID], TechnicianProductivity] = {}
        for order in orders:
            key = order.technician_id
            entry = groups.get(key)
            if entry is None:
                entry = TechnicianProductivity(
                    technician_id=key,
                    technician_name=order.technician.name if order.technician else UNASSIGNED_LABEL,
                )
                groups[key] = entry

            entry.total_orders += 1
            if order.status == WorkOrderStatus.ENTREGADO.value:
                entry.completed_orders += 1
                entry.labor_revenue += labor_total(order.items)
                entry.total_revenue += order.total_amount
            elif not is_terminal(order.status):
                entry.in_progress_orders += 1

        result = sorted(
            groups.values(),
            key=lambda e: (-e.total_revenue, e.technician_name),
        )
        logger.debug("Productividad %s - %s: %d técnicos", date_from, date_to, len(result))
        return result


workshop_report_service = WorkshopReportService()
