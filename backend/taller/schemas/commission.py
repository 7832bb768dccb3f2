"""
Schemas Pydantic de la Liquidación de Comisiones
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from taller.core.timeutils import as_utc
from taller.schemas.technician import TechnicianSummary


def validate_date_range(date_from: datetime.date, date_to: datetime.date) -> None:
    """
    Raises:
        ValueError: si la fecha inicial es posterior a la final
    """
    if date_from > date_to:
        raise ValueError("La fecha inicial no puede ser posterior a la fecha final")


# -------------------------------------------------------------------
# Vista previa
# -------------------------------------------------------------------

class CommissionOrderRow(BaseModel):
    """Orden candidata a liquidar, con su valor de mano de obra."""
    id: uuid.UUID
    order_number: str
    status: str
    vehicle_plate: Optional[str] = None
    received_at: datetime.datetime
    delivered_at: Optional[datetime.datetime] = None
    labor_amount: Decimal


class CommissionPreview(BaseModel):
    """
    Resultado de la vista previa (no modifica datos).

    commission_amount solo se informa cuando se envía el porcentaje.
    """
    technician: TechnicianSummary
    date_from: datetime.date
    date_to: datetime.date
    orders: list[CommissionOrderRow]
    total_orders: int
    base_amount: Decimal
    commission_percentage: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None


# -------------------------------------------------------------------
# Creación
# -------------------------------------------------------------------

class CommissionSettlementCreate(BaseModel):
    technician_id: uuid.UUID
    date_from: datetime.date
    date_to: datetime.date
    commission_percentage: Decimal = Field(..., ge=Decimal("0"), le=Decimal("100"))
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_range(self) -> "CommissionSettlementCreate":
        validate_date_range(self.date_from, self.date_to)
        return self


# -------------------------------------------------------------------
# Lectura
# -------------------------------------------------------------------

class CommissionSettlementItemRead(BaseModel):
    """Orden liquidada; incluye las fechas de la orden de origen."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    work_order_id: uuid.UUID
    order_number: str
    labor_amount: Decimal
    received_at: Optional[datetime.datetime] = None
    delivered_at: Optional[datetime.datetime] = None

    @model_validator(mode="before")
    @classmethod
    def flatten_work_order(cls, data: Any) -> Any:
        work_order = getattr(data, "work_order", None)
        if work_order is None:
            return data
        return {
            "id": data.id,
            "work_order_id": data.work_order_id,
            "order_number": data.order_number,
            "labor_amount": data.labor_amount,
            "received_at": work_order.received_at,
            "delivered_at": work_order.delivered_at,
        }

    @field_validator("received_at", "delivered_at")
    @classmethod
    def normalize_utc(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return as_utc(v)


class CommissionSettlementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    settlement_number: str
    technician_id: uuid.UUID
    technician: Optional[TechnicianSummary] = None
    date_from: datetime.date
    date_to: datetime.date
    base_amount: Decimal
    commission_percentage: Decimal
    commission_amount: Decimal
    notes: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime.datetime
    items: list[CommissionSettlementItemRead] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def normalize_utc(cls, v: datetime.datetime) -> datetime.datetime:
        return as_utc(v)

    @computed_field
    @property
    def total_orders(self) -> int:
        return len(self.items)
