import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TechnicianSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    document_number: Optional[str] = None
    phone: Optional[str] = None
    specialty: Optional[str] = None


class TechnicianWithPending(TechnicianSummary):
    """Técnico activo con el número de órdenes pendientes de liquidar."""
    pending_orders: int = 0
