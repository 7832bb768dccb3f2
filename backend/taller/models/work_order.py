"""
Modelos SQLAlchemy de las Órdenes de Trabajo
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Contiene:
- WorkOrder: orden de trabajo (raíz del agregado)
- WorkOrderItem: líneas de la orden (repuestos, servicios, mano de obra)
"""


from __future__ import annotations
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taller.models import Base
from taller.models.mixins import TimestampMixin, UUIDMixin, utcnow

# Import para type hinting de relaciones (evita import circular)
if TYPE_CHECKING:
    from taller.models.customer import Customer
    from taller.models.product import Product
    from taller.models.sale import Sale
    from taller.models.technician import Technician
    from taller.models.vehicle import Vehicle
    from taller.models.warehouse import Warehouse


# Los estados están definidos en taller.schemas.work_order.WorkOrderStatus
# Los tipos de línea están definidos en taller.schemas.work_order.ItemType


class WorkOrder(Base, UUIDMixin, TimestampMixin):
    """
    Orden de trabajo (OT) de un vehículo, desde el ingreso hasta la entrega.

    Attributes:
        order_number: número de sistema OT-YYYY-NNNNN
        vehicle_id / customer_id / technician_id / warehouse_id: referencias
        status: estado actual (ver WorkOrderStatus)
        received_at / promised_at / delivered_at: fechas del ciclo
        mileage_in / mileage_out: kilometraje al ingreso y a la entrega
        problem_description / diagnosis / work_performed: textos técnicos
        checklist_in: inspección de ingreso (estado por componente, combustible, observaciones)
        photos_in / photos_out: evidencias fotográficas por fase
        tax_rate: tarifa de IVA fijada al crear la orden
        subtotal / discount_amount / tax_amount / total_amount: totales derivados de las líneas
        sale_id: remisión generada (una sola vez)
        settled_at: momento en que la orden se liquidó en una comisión
        notes: observaciones

    States (State Machine):
        recibido → en_proceso ⇄ en_espera → listo → entregado
            (cancelado desde cualquier estado no terminal)
    """

    __tablename__ = "work_orders"

    order_number: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        doc="Número de la orden (OT-YYYY-NNNNN)",
    )

    # ------------------------------------------------------------
    # Columnas Relaciones
    # ------------------------------------------------------------
    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("vehicles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del vehículo",
    )

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="UUID del cliente",
    )

    technician_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("technicians.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="UUID del técnico asignado",
    )

    warehouse_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("warehouses.id", ondelete="SET NULL"),
        nullable=True,
        doc="UUID de la bodega",
    )

    # ------------------------------------------------------------
    # Columnas Estado y Fechas
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="recibido",
        doc="Estado actual de la orden",
    )

    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc="Fecha/hora de ingreso del vehículo",
    )

    promised_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Fecha/hora prometida de entrega",
    )

    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Fecha/hora de entrega",
    )

    mileage_in: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    mileage_out: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ------------------------------------------------------------
    # Columnas Técnicas
    # ------------------------------------------------------------
    problem_description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Problema reportado por el cliente",
    )

    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    work_performed: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    checklist_in: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        doc="Inspección de ingreso",
    )

    photos_in: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Fotos de ingreso",
    )

    photos_out: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Fotos de salida",
    )

    # ------------------------------------------------------------
    # Columnas Totales
    # ------------------------------------------------------------
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    # ------------------------------------------------------------
    # Cierre
    # ------------------------------------------------------------
    # Sin FK: la restricción única vive en sales.work_order_id
    sale_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        unique=True,
        doc="UUID de la remisión generada",
    )

    settled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Fecha/hora de liquidación de la comisión",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    vehicle: Mapped["Vehicle"] = relationship(
        "Vehicle",
        back_populates="work_orders",
        lazy="selectin",
    )

    customer: Mapped[Optional["Customer"]] = relationship("Customer", lazy="selectin")

    technician: Mapped[Optional["Technician"]] = relationship(
        "Technician",
        back_populates="work_orders",
        lazy="selectin",
    )

    warehouse: Mapped[Optional["Warehouse"]] = relationship("Warehouse", lazy="selectin")

    items: Mapped[List["WorkOrderItem"]] = relationship(
        "WorkOrderItem",
        back_populates="work_order",
        cascade="all, delete-orphan",
        order_by="WorkOrderItem.created_at",
        lazy="selectin",
        doc="Líneas de la orden",
    )

    sale: Mapped[Optional["Sale"]] = relationship(
        "Sale",
        uselist=False,
        viewonly=True,
        lazy="selectin",
        doc="Remisión generada a partir de la orden",
    )

    # ------------------------------------------------------------
    # Índices y Restricciones
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_work_orders_status", "status"),
        Index("ix_work_orders_status_received", "status", "received_at"),
        Index("ix_work_orders_technician_settled", "technician_id", "settled_at"),
        CheckConstraint(
            "status IN ('recibido', 'en_proceso', 'en_espera', 'listo', 'entregado', 'cancelado')",
            name="ck_work_orders_status",
        ),
        CheckConstraint(
            "(mileage_out IS NULL OR mileage_in IS NULL OR mileage_out >= mileage_in)",
            name="ck_work_orders_mileage",
        ),
        CheckConstraint("discount_amount >= 0", name="ck_work_orders_discount"),
    )

    def __repr__(self) -> str:
        return f"<WorkOrder(number={self.order_number}, status={self.status})>"

    @property
    def is_closed(self) -> bool:
        """La orden ya no admite cambios en líneas ni checklist."""
        return self.sale_id is not None or self.status in ("entregado", "cancelado")


class WorkOrderItem(Base, UUIDMixin, TimestampMixin):
    """
    Línea de una orden de trabajo.

    Attributes:
        work_order_id: orden padre
        product_id: producto del catálogo (nulo para texto libre)
        product_name: descripción mostrada (copiada del catálogo si no se envía)
        item_type: repuesto | servicio | mano_obra
        quantity / unit_price: cantidad y precio unitario
        total: quantity × unit_price
    """

    __tablename__ = "work_order_items"

    work_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("work_orders.id", ondelete="CASCADE"),
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

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("1"),
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    work_order: Mapped["WorkOrder"] = relationship("WorkOrder", back_populates="items")

    product: Mapped[Optional["Product"]] = relationship("Product", lazy="noload")

    __table_args__ = (
        CheckConstraint(
            "item_type IN ('repuesto', 'servicio', 'mano_obra')",
            name="ck_work_order_items_item_type",
        ),
        CheckConstraint("quantity > 0", name="ck_work_order_items_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_work_order_items_unit_price"),
    )

    @hybrid_property
    def line_total(self) -> Decimal:
        """quantity × unit_price calculado al vuelo."""
        return self.quantity * self.unit_price

    @line_total.expression
    def line_total(cls):
        from sqlalchemy import cast

        return cast(cls.quantity * cls.unit_price, Numeric(14, 2))

    def __repr__(self) -> str:
        return f"<WorkOrderItem(type={self.item_type}, product={self.product_name[:30]})>"
