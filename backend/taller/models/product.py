"""
Modelo SQLAlchemy de la entidad Product
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Catálogo de productos y servicios; el CRUD vive fuera del taller.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from taller.models import Base
from taller.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Product(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Producto del catálogo.

    Attributes:
        name: nombre mostrado en la línea de la orden
        sku: código interno (opcional)
        product_type: 'product' (repuesto) o 'service' (servicio)
        sale_price: precio de venta sugerido
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    product_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="product",
        doc="product | service",
    )
    sale_price: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
    )

    __table_args__ = (
        CheckConstraint(
            "product_type IN ('product', 'service')",
            name="ck_products_product_type",
        ),
    )

    def __repr__(self) -> str:
        return f"Product(name={self.name!r}, type={self.product_type!r})"
