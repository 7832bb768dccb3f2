"""
Schemas Pydantic del proyecto Taller

Esquemas de validación y serialización de la API, reexportados para
import directo: from taller.schemas import WorkOrderRead, ...
"""

from taller.schemas.checklist import Checklist, ChecklistState
from taller.schemas.commission import (
    CommissionPreview,
    CommissionSettlementCreate,
    CommissionSettlementRead,
)
from taller.schemas.common import ApiListResponse, ApiResponse, ErrorResponse
from taller.schemas.report import TechnicianProductivity, WorkshopReport
from taller.schemas.sale import SaleRead, SaleSummary
from taller.schemas.technician import TechnicianSummary, TechnicianWithPending
from taller.schemas.vehicle import (
    DocumentStatus,
    FuelType,
    VehicleCreate,
    VehicleRead,
    VehicleUpdate,
)
from taller.schemas.work_order import (
    ItemType,
    PhotoPhase,
    SaleGenerationResult,
    VehicleHistory,
    WorkOrderCreate,
    WorkOrderItemCreate,
    WorkOrderRead,
    WorkOrderStatus,
    WorkOrderStatusUpdate,
    WorkOrderUpdate,
    next_states,
)

__all__ = [
    "ApiListResponse",
    "ApiResponse",
    "Checklist",
    "ChecklistState",
    "CommissionPreview",
    "CommissionSettlementCreate",
    "CommissionSettlementRead",
    "DocumentStatus",
    "ErrorResponse",
    "FuelType",
    "ItemType",
    "PhotoPhase",
    "SaleGenerationResult",
    "SaleRead",
    "SaleSummary",
    "TechnicianProductivity",
    "TechnicianSummary",
    "TechnicianWithPending",
    "VehicleCreate",
    "VehicleHistory",
    "VehicleRead",
    "VehicleUpdate",
    "WorkOrderCreate",
    "WorkOrderItemCreate",
    "WorkOrderRead",
    "WorkOrderStatus",
    "WorkOrderStatusUpdate",
    "WorkOrderUpdate",
    "WorkshopReport",
    "next_states",
]
