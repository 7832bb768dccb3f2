"""
Schemas Pydantic de las Órdenes de Trabajo
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Define la máquina de estados de la orden y los esquemas de
validación y serialización para la API.
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from taller.core.config import settings
from taller.core.exceptions import InvalidTransitionError
from taller.core.timeutils import as_utc
from taller.schemas.checklist import Checklist
from taller.schemas.common import CustomerSummary, WarehouseSummary
from taller.schemas.sale import SaleRead, SaleSummary
from taller.schemas.technician import TechnicianSummary
from taller.schemas.vehicle import VehicleCreate, VehicleRead, VehicleSummary


# -------------------------------------------------------------------
# Enum de estados de la orden
# -------------------------------------------------------------------

class WorkOrderStatus(str, Enum):
    """Estados posibles de una orden de trabajo."""
    RECIBIDO = "recibido"
    EN_PROCESO = "en_proceso"
    EN_ESPERA = "en_espera"
    LISTO = "listo"
    ENTREGADO = "entregado"
    CANCELADO = "cancelado"


# -------------------------------------------------------------------
# Enum de tipos de línea
# -------------------------------------------------------------------

class ItemType(str, Enum):
    """Tipos de línea; solo mano_obra entra en la base de comisión."""
    REPUESTO = "repuesto"
    SERVICIO = "servicio"
    MANO_OBRA = "mano_obra"


class PhotoPhase(str, Enum):
    """Fase de la evidencia fotográfica."""
    IN = "in"
    OUT = "out"


# -------------------------------------------------------------------
# Matriz de transiciones válidas
# -------------------------------------------------------------------

# Única fuente de verdad: la usan el service layer y el cliente.
# cancelado se agrega a todo estado no terminal en next_states().
VALID_TRANSITIONS: dict[WorkOrderStatus, frozenset[WorkOrderStatus]] = {
    WorkOrderStatus.RECIBIDO: frozenset({WorkOrderStatus.EN_PROCESO, WorkOrderStatus.EN_ESPERA}),
    WorkOrderStatus.EN_PROCESO: frozenset({WorkOrderStatus.EN_ESPERA, WorkOrderStatus.LISTO}),
    WorkOrderStatus.EN_ESPERA: frozenset({WorkOrderStatus.EN_PROCESO, WorkOrderStatus.LISTO}),
    WorkOrderStatus.LISTO: frozenset({WorkOrderStatus.ENTREGADO}),
    WorkOrderStatus.ENTREGADO: frozenset(),  # Estado final
    WorkOrderStatus.CANCELADO: frozenset(),  # Estado final
}

TERMINAL_STATUSES = frozenset({WorkOrderStatus.ENTREGADO, WorkOrderStatus.CANCELADO})

# Estados desde los que se puede generar la remisión
BILLABLE_STATUSES = frozenset({WorkOrderStatus.LISTO, WorkOrderStatus.ENTREGADO})


def next_states(status: WorkOrderStatus | str) -> frozenset[WorkOrderStatus]:
    """
    Estados a los que puede pasar una orden desde `status`.

    Args:
        status: estado actual

    Returns:
        frozenset con los estados destino permitidos
    """
    current = WorkOrderStatus(status)
    if current in TERMINAL_STATUSES:
        return frozenset()
    return VALID_TRANSITIONS[current] | {WorkOrderStatus.CANCELADO}


def can_transition(current: WorkOrderStatus | str, target: WorkOrderStatus | str) -> bool:
    """Indica si la transición current → target es válida."""
    return WorkOrderStatus(target) in next_states(current)


def ensure_transition(current: WorkOrderStatus | str, target: WorkOrderStatus | str) -> None:
    """
    Valida una transición de estado.

    Raises:
        InvalidTransitionError: si target no está entre los estados permitidos
    """
    if not can_transition(current, target):
        current_value = WorkOrderStatus(current).value
        target_value = WorkOrderStatus(target).value
        allowed = sorted(s.value for s in next_states(current))
        raise InvalidTransitionError(
            f"Transición de '{current_value}' a '{target_value}' no permitida",
            extra={"from": current_value, "to": target_value, "allowed": allowed},
        )


def is_terminal(status: WorkOrderStatus | str) -> bool:
    return WorkOrderStatus(status) in TERMINAL_STATUSES


# -------------------------------------------------------------------
# Funciones de validación
# -------------------------------------------------------------------

def validate_mileage_coherence(mileage_in: Optional[int], mileage_out: Optional[int]) -> None:
    """
    Raises:
        ValueError: si el kilometraje de salida es menor al de ingreso
    """
    if mileage_in is not None and mileage_out is not None and mileage_out < mileage_in:
        raise ValueError("El kilometraje de salida no puede ser menor al de ingreso")


def validate_text_field(v: Optional[str]) -> Optional[str]:
    """Elimina espacios sobrantes; la cadena vacía se rechaza."""
    if v is not None:
        v = v.strip()
        if not v:
            raise ValueError("El campo no puede estar vacío")
    return v


# -------------------------------------------------------------------
# Schemas de WorkOrderItem (líneas)
# -------------------------------------------------------------------

class WorkOrderItemCreate(BaseModel):
    """
    Línea a agregar a la orden.

    Se requiere un producto del catálogo o un nombre en texto libre;
    si solo se envía el producto, el nombre se copia del catálogo.
    """
    product_id: Optional[uuid.UUID] = None
    product_name: Optional[str] = Field(None, max_length=255)
    item_type: ItemType = Field(default=ItemType.REPUESTO)
    quantity: Decimal = Field(..., gt=Decimal("0"), description="Cantidad (> 0)")
    unit_price: Decimal = Field(..., ge=Decimal("0"), description="Precio unitario (>= 0)")

    @field_validator("product_name")
    @classmethod
    def strip_product_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def require_product_or_name(self) -> "WorkOrderItemCreate":
        if self.product_id is None and not self.product_name:
            raise ValueError("Seleccione un producto o escriba la descripción de la línea")
        return self


class WorkOrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    work_order_id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    item_type: ItemType
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    created_at: datetime.datetime


# -------------------------------------------------------------------
# Fotos
# -------------------------------------------------------------------

class WorkOrderPhoto(BaseModel):
    url: str
    filename: str
    content_type: Optional[str] = None
    uploaded_at: Optional[datetime.datetime] = None


# -------------------------------------------------------------------
# Totales (presentación)
# -------------------------------------------------------------------

class TotalsView(BaseModel):
    """
    Totales tal como se muestran en la orden y la remisión.

    Con el IVA oculto solo se informa el total (IVA incluido);
    los valores guardados no cambian.
    """
    tax_hidden: bool
    subtotal: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total: Decimal


def build_totals_view(
    subtotal: Decimal,
    discount_amount: Decimal,
    tax_rate: Decimal,
    tax_amount: Decimal,
    total_amount: Decimal,
    hide_tax: bool,
) -> TotalsView:
    if hide_tax:
        return TotalsView(tax_hidden=True, total=total_amount)
    return TotalsView(
        tax_hidden=False,
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total=total_amount,
    )


# -------------------------------------------------------------------
# Schemas de WorkOrder
# -------------------------------------------------------------------

class WorkOrderCreate(BaseModel):
    """
    Creación de una orden de trabajo.

    El vehículo se indica con `vehicle_id` o se crea en línea con `vehicle`.
    Si no se envía cliente se usa el propietario del vehículo.
    """
    vehicle_id: Optional[uuid.UUID] = None
    vehicle: Optional[VehicleCreate] = None
    customer_id: Optional[uuid.UUID] = None
    technician_id: Optional[uuid.UUID] = None
    warehouse_id: Optional[uuid.UUID] = None
    promised_at: Optional[datetime.datetime] = None
    mileage_in: Optional[int] = Field(None, ge=0)
    problem_description: str = Field(..., max_length=5000, description="Problema reportado")
    notes: Optional[str] = Field(None, max_length=5000)
    checklist: Optional[Checklist] = Field(None, description="Checklist de ingreso")
    items: Optional[list[WorkOrderItemCreate]] = Field(None, description="Líneas iniciales")

    _validate_problem = field_validator("problem_description")(validate_text_field)

    @model_validator(mode="after")
    def require_one_vehicle(self) -> "WorkOrderCreate":
        if (self.vehicle_id is None) == (self.vehicle is None):
            raise ValueError("Indique vehicle_id o los datos de un vehículo nuevo (solo uno)")
        return self


class WorkOrderUpdate(BaseModel):
    """
    Actualización parcial de la orden.

    El estado NO se cambia aquí (usar change_status).
    """
    customer_id: Optional[uuid.UUID] = None
    technician_id: Optional[uuid.UUID] = None
    warehouse_id: Optional[uuid.UUID] = None
    promised_at: Optional[datetime.datetime] = None
    mileage_in: Optional[int] = Field(None, ge=0)
    mileage_out: Optional[int] = Field(None, ge=0)
    problem_description: Optional[str] = Field(None, max_length=5000)
    diagnosis: Optional[str] = Field(None, max_length=5000)
    work_performed: Optional[str] = Field(None, max_length=5000)
    discount_amount: Optional[Decimal] = Field(None, ge=Decimal("0"))
    notes: Optional[str] = Field(None, max_length=5000)

    _validate_problem = field_validator("problem_description")(validate_text_field)

    @model_validator(mode="after")
    def validate_mileage(self) -> "WorkOrderUpdate":
        validate_mileage_coherence(self.mileage_in, self.mileage_out)
        return self


class WorkOrderStatusUpdate(BaseModel):
    """Cambio de estado; mileage_out se registra al entregar."""
    status: WorkOrderStatus = Field(..., description="Nuevo estado")
    mileage_out: Optional[int] = Field(None, ge=0)


class WorkOrderRead(BaseModel):
    """
    Orden de trabajo completa (agregado).

    Incluye líneas, vehículo, técnico, remisión y las cifras derivadas:
    totales de mano de obra y repuestos, vista de totales y estados siguientes.
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    status: WorkOrderStatus
    vehicle_id: uuid.UUID
    customer_id: Optional[uuid.UUID] = None
    technician_id: Optional[uuid.UUID] = None
    warehouse_id: Optional[uuid.UUID] = None
    received_at: datetime.datetime
    promised_at: Optional[datetime.datetime] = None
    delivered_at: Optional[datetime.datetime] = None
    mileage_in: Optional[int] = None
    mileage_out: Optional[int] = None
    problem_description: str
    diagnosis: Optional[str] = None
    work_performed: Optional[str] = None
    checklist_in: Optional[Checklist] = None
    photos_in: list[WorkOrderPhoto] = Field(default_factory=list)
    photos_out: list[WorkOrderPhoto] = Field(default_factory=list)
    tax_rate: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    sale_id: Optional[uuid.UUID] = None
    settled_at: Optional[datetime.datetime] = None
    notes: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    vehicle: Optional[VehicleSummary] = None
    customer: Optional[CustomerSummary] = None
    technician: Optional[TechnicianSummary] = None
    warehouse: Optional[WarehouseSummary] = None
    items: list[WorkOrderItemRead] = Field(default_factory=list)
    sale: Optional[SaleSummary] = None

    @field_validator(
        "received_at", "promised_at", "delivered_at", "settled_at", "created_at", "updated_at"
    )
    @classmethod
    def normalize_utc(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return as_utc(v)

    @field_validator("photos_in", "photos_out", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []

    @computed_field
    @property
    def labor_total(self) -> Decimal:
        """Suma de las líneas de mano de obra (base de comisión)."""
        return sum(
            (item.total for item in self.items if item.item_type == ItemType.MANO_OBRA),
            Decimal("0"),
        )

    @computed_field
    @property
    def parts_total(self) -> Decimal:
        """Suma de repuestos y servicios."""
        return sum(
            (item.total for item in self.items if item.item_type != ItemType.MANO_OBRA),
            Decimal("0"),
        )

    @computed_field
    @property
    def totals_view(self) -> TotalsView:
        return build_totals_view(
            self.subtotal,
            self.discount_amount,
            self.tax_rate,
            self.tax_amount,
            self.total_amount,
            settings.hide_remision_tax,
        )

    @computed_field
    @property
    def next_states(self) -> list[WorkOrderStatus]:
        return sorted(next_states(self.status), key=lambda s: list(WorkOrderStatus).index(s))

    @computed_field
    @property
    def is_closed(self) -> bool:
        """Líneas y checklist congelados."""
        return self.sale_id is not None or self.status in TERMINAL_STATUSES

    @computed_field
    @property
    def checklist_editable(self) -> bool:
        return self.status == WorkOrderStatus.RECIBIDO

    @computed_field
    @property
    def can_generate_sale(self) -> bool:
        return self.sale_id is None and self.status in BILLABLE_STATUSES and bool(self.items)


class VehicleHistory(BaseModel):
    """Vehículo con sus órdenes, de la más reciente a la más antigua."""
    vehicle: VehicleRead
    history: list[WorkOrderRead]


class SaleGenerationResult(BaseModel):
    """Resultado de generate-sale: la remisión y la orden ya cerrada."""
    sale: SaleRead
    work_order: WorkOrderRead
