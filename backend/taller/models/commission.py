"""
Modelos SQLAlchemy de la Liquidación de Comisiones
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Contiene:
- CommissionSettlement: liquidación de un técnico para un período
- CommissionSettlementItem: una fila por orden liquidada
"""


from __future__ import annotations
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taller.models import Base
from taller.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from taller.models.technician import Technician
    from taller.models.work_order import WorkOrder


class CommissionSettlement(Base, UUIDMixin, TimestampMixin):
    """
    Liquidación de comisión de un técnico.

    Es inmutable: no existen operaciones de modificación ni borrado.

    Attributes:
        settlement_number: número LIQ-YYYY-NNNN
        technician_id: técnico liquidado
        date_from / date_to: período (fechas de calendario, inclusivo)
        base_amount: suma de mano de obra de las órdenes incluidas
        commission_percentage: porcentaje aplicado
        commission_amount: round(base_amount × porcentaje / 100) a pesos enteros
        notes: observaciones
        created_by: usuario que registró la liquidación
    """

    __tablename__ = "commission_settlements"

    settlement_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    technician_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("technicians.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    date_from: Mapped[date] = mapped_column(Date, nullable=False)
    date_to: Mapped[date] = mapped_column(Date, nullable=False)

    base_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    commission_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    technician: Mapped["Technician"] = relationship("Technician", lazy="selectin")

    items: Mapped[List["CommissionSettlementItem"]] = relationship(
        "CommissionSettlementItem",
        back_populates="settlement",
        cascade="all, delete-orphan",
        order_by="CommissionSettlementItem.order_number",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_commission_settlements_technician_created", "technician_id", "created_at"),
        CheckConstraint("date_from <= date_to", name="ck_commission_settlements_range"),
        CheckConstraint(
            "commission_percentage >= 0 AND commission_percentage <= 100",
            name="ck_commission_settlements_percentage",
        ),
    )

    def __repr__(self) -> str:
        return f"<CommissionSettlement(number={self.settlement_number}, amount={self.commission_amount})>"


class CommissionSettlementItem(Base, UUIDMixin):
    """
    Orden incluida en una liquidación.

    La restricción única sobre work_order_id garantiza que una orden
    se liquide como máximo una vez.
    """

    __tablename__ = "commission_settlement_items"

    settlement_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commission_settlements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    work_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("work_orders.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    order_number: Mapped[str] = mapped_column(String(20), nullable=False)
    labor_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    settlement: Mapped["CommissionSettlement"] = relationship(
        "CommissionSettlement",
        back_populates="items",
    )

    work_order: Mapped["WorkOrder"] = relationship("WorkOrder", lazy="selectin")
