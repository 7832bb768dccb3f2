"""
Mixins SQLAlchemy para los modelos
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Mixins reutilizables que agregan columnas comunes a los modelos.
"""

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


def utcnow() -> datetime.datetime:
    """Fecha/hora actual en UTC."""
    return datetime.datetime.now(datetime.timezone.utc)


class SoftDeleteMixin:
    """
    Borrado lógico.

    Agrega el campo is_active; False indica que el registro fue
    "eliminado" pero se conserva físicamente.

    Usage:
        class MyModel(Base, SoftDeleteMixin):
            __tablename__ = "my_table"
            ...
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Borrado lógico: False = eliminado, True = activo",
    )


class TimestampMixin:
    """
    Fechas de creación y de última modificación.

    El valor se asigna también del lado de Python para que el objeto
    no quede expirado después del flush (sesiones async).
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Fecha/hora de creación del registro",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Fecha/hora de la última modificación del registro",
    )


class UUIDMixin:
    """Clave primaria UUID generada en la aplicación."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Actualiza updated_at antes de cada flush.

    Se aplica a los objetos nuevos y a los modificados (dirty) que
    tengan la columna updated_at.
    """
    now = utcnow()

    for obj in session.dirty:
        if hasattr(obj, "updated_at") and session.is_modified(obj, include_collections=False):
            obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now
