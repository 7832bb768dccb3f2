"""
Schemas Pydantic de los reportes del taller
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class WorkshopReportRow(BaseModel):
    id: uuid.UUID
    order_number: str
    status: str
    customer: Optional[str] = None
    vehicle: Optional[str] = None
    technician: Optional[str] = None
    received_at: datetime.date
    delivered_at: Optional[datetime.date] = None
    resolution_days: Optional[int] = None
    labor_total: Decimal
    parts_total: Decimal
    total_amount: Decimal
    work_performed: Optional[str] = None


class WorkshopReportSummary(BaseModel):
    """
    Resumen del período.

    total_revenue solo suma órdenes entregadas.
    """
    total_orders: int = 0
    completed: int = 0
    in_progress: int = 0
    cancelled: int = 0
    total_revenue: Decimal = Decimal("0")
    total_labor: Decimal = Decimal("0")
    total_parts: Decimal = Decimal("0")
    avg_resolution_days: Optional[Decimal] = None


class WorkshopReport(BaseModel):
    date_from: datetime.date
    date_to: datetime.date
    rows: list[WorkshopReportRow]
    summary: WorkshopReportSummary


class TechnicianProductivity(BaseModel):
    """Productividad por técnico; technician_id nulo agrupa las órdenes sin asignar."""
    technician_id: Optional[uuid.UUID] = None
    technician_name: str
    total_orders: int = 0
    completed_orders: int = 0
    in_progress_orders: int = 0
    labor_revenue: Decimal = Decimal("0")
    total_revenue: Decimal = Decimal("0")
