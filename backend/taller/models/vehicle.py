"""
Modelo SQLAlchemy de la entidad Vehicle
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Vehículos atendidos por el taller, con sus documentos obligatorios
(SOAT y revisión tecnomecánica).
"""

import uuid
from datetime import date
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taller.models import Base
from taller.models.mixins import TimestampMixin, UUIDMixin

# Import para type hinting de relaciones (evita import circular)
if TYPE_CHECKING:
    from taller.models.customer import Customer
    from taller.models.work_order import WorkOrder


class Vehicle(Base, UUIDMixin, TimestampMixin):
    """
    Vehículo registrado en el taller.

    Existe independientemente de las órdenes: puede crearse solo o
    en línea al abrir una orden de trabajo.

    Attributes:
        customer_id: propietario (referencia débil, SET NULL al borrar el cliente)
        plate: placa en mayúsculas y sin espacios (única)
        brand / model / year / color: datos generales
        fuel_type: gasolina | diesel | gas | hibrido | electrico | otro
        vin: número de chasis (único, opcional)
        engine / engine_number: cilindraje y número de motor
        ownership_card: número de tarjeta de propiedad
        soat_number / soat_expiry: póliza SOAT
        tecnomecanica_number / tecnomecanica_expiry: certificado de revisión
        current_mileage: último kilometraje conocido (nunca disminuye)
        notes: observaciones

    Relationships:
        customer: propietario
        work_orders: órdenes de trabajo del vehículo
    """

    __tablename__ = "vehicles"

    # ------------------------------------------------------------
    # Columnas Relación Cliente
    # ------------------------------------------------------------
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="UUID del propietario",
    )

    # ------------------------------------------------------------
    # Columnas Datos del Vehículo
    # ------------------------------------------------------------
    plate: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        doc="Placa del vehículo",
    )

    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, doc="Marca")

    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, doc="Línea/modelo")

    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, doc="Año modelo")

    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, doc="Color")

    fuel_type: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Tipo de combustible",
    )

    # ------------------------------------------------------------
    # Columnas Identificación Técnica
    # ------------------------------------------------------------
    vin: Mapped[Optional[str]] = mapped_column(
        String(17),
        unique=True,
        nullable=True,
        doc="Número de chasis (Vehicle Identification Number)",
    )

    engine: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, doc="Cilindraje / motor")

    engine_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, doc="Número de motor")

    ownership_card: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Número de tarjeta de propiedad",
    )

    # ------------------------------------------------------------
    # Columnas Documentos
    # ------------------------------------------------------------
    soat_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, doc="Número de póliza SOAT")

    soat_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True, doc="Vencimiento del SOAT")

    tecnomecanica_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Número del certificado tecnomecánico",
    )

    tecnomecanica_expiry: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        doc="Vencimiento de la revisión tecnomecánica",
    )

    current_mileage: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Kilometraje actual",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, doc="Observaciones")

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    customer: Mapped[Optional["Customer"]] = relationship(
        "Customer",
        back_populates="vehicles",
        lazy="selectin",
        doc="Propietario del vehículo",
    )

    work_orders: Mapped[List["WorkOrder"]] = relationship(
        "WorkOrder",
        back_populates="vehicle",
        lazy="noload",
        doc="Órdenes de trabajo del vehículo",
    )

    # ------------------------------------------------------------
    # Índices y Restricciones
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_vehicles_customer_plate", "customer_id", "plate"),
        CheckConstraint("current_mileage >= 0", name="ck_vehicles_current_mileage"),
        CheckConstraint(
            "fuel_type IS NULL OR fuel_type IN "
            "('gasolina', 'diesel', 'gas', 'hibrido', 'electrico', 'otro')",
            name="ck_vehicles_fuel_type",
        ),
    )

    # ------------------------------------------------------------
    # Métodos
    # ------------------------------------------------------------
    def __repr__(self) -> str:
        return f"<Vehicle(id={self.id}, plate={self.plate}, brand={self.brand}, model={self.model})>"

    @property
    def display_name(self) -> str:
        """Nombre para mostrar: "Marca Modelo (Placa)"."""
        name = " ".join(part for part in (self.brand, self.model) if part)
        return f"{name} ({self.plate})" if name else self.plate

    def register_mileage(self, mileage: Optional[int]) -> None:
        """Actualiza el kilometraje solo si es mayor al registrado."""
        if mileage is not None and mileage > (self.current_mileage or 0):
            self.current_mileage = mileage
