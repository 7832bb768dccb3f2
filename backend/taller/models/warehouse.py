from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from taller.models import Base
from taller.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Warehouse(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Bodega desde la que se despachan los repuestos de la orden."""

    __tablename__ = "warehouses"

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    def __repr__(self) -> str:
        return f"Warehouse(name={self.name!r})"
