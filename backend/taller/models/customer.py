"""
Modelo SQLAlchemy de la entidad Customer
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

El cliente se administra en otro módulo del sistema; aquí solo se
modela lo que el taller necesita para referenciarlo.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taller.models import Base
from taller.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from taller.models.vehicle import Vehicle


class Customer(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Cliente propietario de vehículos."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    document_number: Mapped[str | None] = mapped_column(String(30), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    vehicles: Mapped[List["Vehicle"]] = relationship(
        "Vehicle",
        back_populates="customer",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"Customer(name={self.name!r})"
