"""
Schemas Pydantic de la Venta (remisión)
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PaymentStatus(str, Enum):
    """Estado de pago de la remisión."""
    PENDIENTE = "pendiente"
    PARCIAL = "parcial"
    PAGADO = "pagado"


class SaleSummary(BaseModel):
    """Resumen de la remisión mostrado en la orden y en el historial."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sale_number: str
    total_amount: Decimal
    payment_status: PaymentStatus
    paid_amount: Decimal


class SaleItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    item_type: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal


class SaleRead(SaleSummary):
    """Remisión completa devuelta por generate-sale."""

    work_order_id: uuid.UUID
    customer_id: Optional[uuid.UUID] = None
    warehouse_id: Optional[uuid.UUID] = None
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    notes: Optional[str] = None
    created_at: datetime.datetime
    items: list[SaleItemRead] = []
