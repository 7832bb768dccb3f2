"""
Modelos SQLAlchemy de la Venta (remisión)
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Contiene:
- Sale: remisión generada a partir de una orden de trabajo
- SaleItem: líneas copiadas de la orden
"""


from __future__ import annotations
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taller.models import Base
from taller.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from taller.models.work_order import WorkOrder


class Sale(Base, UUIDMixin, TimestampMixin):
    """
    Remisión de venta.

    Se crea una única vez por orden de trabajo; la restricción única
    sobre work_order_id impide duplicados concurrentes.

    Attributes:
        sale_number: número REM-YYYY-NNNNN
        work_order_id: orden de origen
        customer_id / warehouse_id: tomados de la orden
        subtotal / discount_amount / tax_amount / total_amount: copiados de la orden
        payment_status: pendiente | parcial | pagado
        paid_amount: valor abonado
    """

    __tablename__ = "sales"

    sale_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    work_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("work_orders.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        doc="Orden de trabajo de origen",
    )

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
    )

    warehouse_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("warehouses.id", ondelete="SET NULL"),
        nullable=True,
    )

    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pendiente")
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    work_order: Mapped["WorkOrder"] = relationship(
        "WorkOrder",
        foreign_keys=[work_order_id],
        lazy="noload",
    )

    items: Mapped[List["SaleItem"]] = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "payment_status IN ('pendiente', 'parcial', 'pagado')",
            name="ck_sales_payment_status",
        ),
        CheckConstraint("paid_amount >= 0", name="ck_sales_paid_amount"),
    )

    def __repr__(self) -> str:
        return f"<Sale(number={self.sale_number}, total={self.total_amount})>"


class SaleItem(Base, UUIDMixin):
    """Línea de la remisión, copia fiel de la línea de la orden."""

    __tablename__ = "sale_items"

    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    sale: Mapped["Sale"] = relationship("Sale", back_populates="items")
