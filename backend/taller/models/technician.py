from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taller.models import Base
from taller.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from taller.models.work_order import WorkOrder


class Technician(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Técnicos/mecánicos del taller.
    """
    __tablename__ = "technicians"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    document_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    specialty: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Relationships
    work_orders: Mapped[List["WorkOrder"]] = relationship(
        "WorkOrder",
        back_populates="technician",
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"Technician(name={self.name!r})"
