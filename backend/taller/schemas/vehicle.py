"""
Schemas Pydantic de la entidad Vehicle
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Define los esquemas de validación y serialización para la API.
"""

from enum import Enum
import datetime
import re
import uuid
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

from taller.core.config import settings
from taller.core.timeutils import workshop_today
from taller.schemas.common import CustomerSummary


class FuelType(str, Enum):
    """Tipos de combustible válidos."""
    GASOLINA = "gasolina"
    DIESEL = "diesel"
    GAS = "gas"
    HIBRIDO = "hibrido"
    ELECTRICO = "electrico"
    OTRO = "otro"


class DocumentStatus(str, Enum):
    """Vigencia de un documento obligatorio (SOAT, tecnomecánica)."""
    VENCIDO = "vencido"
    POR_VENCER = "por_vencer"
    VIGENTE = "vigente"


class DocumentStatusInfo(BaseModel):
    status: DocumentStatus
    days_remaining: int
    expiry_date: datetime.date


# Caracteres no válidos en el VIN (estándar: sin I, O, Q)
VIN_INVALID_CHARS = set("IOQ")


# -------------------------------------------------------------------
# Funciones de normalización y validación
# -------------------------------------------------------------------

def normalize_plate(plate: Optional[str]) -> Optional[str]:
    """
    Normaliza la placa del vehículo.

    Convierte a mayúsculas, elimina espacios y guiones y valida el formato.
    Acepta placas colombianas ("ABC 123", "abc-12d") y de otros países.

    Args:
        plate: placa a normalizar

    Returns:
        Placa normalizada o None

    Raises:
        ValueError: si el formato no es válido
    """
    if plate is None:
        return None

    normalized = re.sub(r"[\s\-]", "", plate).upper()

    if not normalized:
        raise ValueError("La placa es obligatoria")

    if not re.match(r"^[A-Z0-9]{2,20}$", normalized):
        raise ValueError("Placa no válida: debe contener de 2 a 20 caracteres alfanuméricos")

    return normalized


def normalize_vin(vin: Optional[str]) -> Optional[str]:
    """
    Normaliza el número de chasis (VIN).

    Debe tener exactamente 17 caracteres alfanuméricos, sin I, O, Q.
    Una cadena vacía se interpreta como "sin VIN".
    """
    if vin is None:
        return None

    normalized = vin.strip().upper().replace(" ", "")
    if not normalized:
        return None

    if len(normalized) != 17:
        raise ValueError("El VIN debe tener exactamente 17 caracteres")

    if not re.match(r"^[A-Z0-9]+$", normalized):
        raise ValueError("El VIN solo puede contener caracteres alfanuméricos")

    if any(c in VIN_INVALID_CHARS for c in normalized):
        raise ValueError("El VIN no puede contener las letras I, O, Q")

    return normalized


def validate_year(year: Optional[int]) -> Optional[int]:
    """
    Valida el año modelo: entre 1900 y el año actual + 1.
    """
    if year is None:
        return None

    max_year = workshop_today().year + 1

    if year < 1900:
        raise ValueError("El año modelo debe ser >= 1900")

    if year > max_year:
        raise ValueError(f"El año modelo no puede ser mayor que {max_year}")

    return year


def document_status(
    expiry: Optional[datetime.date],
    today: datetime.date,
    warning_days: int = 30,
) -> Optional[DocumentStatusInfo]:
    """
    Calcula la vigencia de un documento a partir de su fecha de vencimiento.

    - vencido: la fecha ya pasó (días restantes < 0)
    - por_vencer: vence dentro de la ventana de aviso (0..warning_days)
    - vigente: en cualquier otro caso

    Args:
        expiry: fecha de vencimiento (None si no está registrada)
        today: fecha de referencia
        warning_days: ventana de aviso en días

    Returns:
        DocumentStatusInfo o None si no hay fecha registrada
    """
    if expiry is None:
        return None

    days = (expiry - today).days
    if days < 0:
        status = DocumentStatus.VENCIDO
    elif days <= warning_days:
        status = DocumentStatus.POR_VENCER
    else:
        status = DocumentStatus.VIGENTE

    return DocumentStatusInfo(status=status, days_remaining=days, expiry_date=expiry)


# -------------------------------------------------------------------
# Mixin con validadores comunes
# -------------------------------------------------------------------
class VehicleValidatorsMixin(BaseModel):
    """
    Validadores comunes de los campos del vehículo (plate, vin, year).

    Los campos se declaran aquí como Optional solo para que Pydantic
    registre los field_validator; las clases hijas los redefinen con
    sus propios tipos y restricciones.
    """

    plate: Optional[str] = None
    vin: Optional[str] = None
    year: Optional[int] = None

    _normalize_plate = field_validator("plate", mode="before")(normalize_plate)
    _normalize_vin = field_validator("vin", mode="before")(normalize_vin)
    _validate_year = field_validator("year", mode="before")(validate_year)


# -------------------------------------------------------------------
# Schemas Base
# -------------------------------------------------------------------
class VehicleBase(VehicleValidatorsMixin):
    """Campos compartidos entre creación y lectura."""

    customer_id: Optional[uuid.UUID] = Field(None, description="UUID del propietario")
    plate: str = Field(..., min_length=2, max_length=20, description="Placa")
    brand: Optional[str] = Field(None, max_length=100, description="Marca")
    model: Optional[str] = Field(None, max_length=100, description="Línea/modelo")
    year: Optional[int] = Field(None, description="Año modelo")
    color: Optional[str] = Field(None, max_length=50)
    fuel_type: Optional[FuelType] = Field(None, description="Tipo de combustible")
    vin: Optional[str] = Field(None, max_length=17, description="Número de chasis (VIN)")
    engine: Optional[str] = Field(None, max_length=50)
    engine_number: Optional[str] = Field(None, max_length=50)
    ownership_card: Optional[str] = Field(None, max_length=50, description="Tarjeta de propiedad")
    soat_number: Optional[str] = Field(None, max_length=50)
    soat_expiry: Optional[datetime.date] = None
    tecnomecanica_number: Optional[str] = Field(None, max_length=50)
    tecnomecanica_expiry: Optional[datetime.date] = None
    current_mileage: int = Field(default=0, ge=0, description="Kilometraje actual")
    notes: Optional[str] = None


class VehicleCreate(VehicleBase):
    """Creación de un vehículo (también usado en línea al crear una orden)."""
    pass


class VehicleUpdate(VehicleValidatorsMixin):
    """
    Actualización parcial de un vehículo.

    El kilometraje enviado solo se aplica si es mayor al registrado.
    """

    customer_id: Optional[uuid.UUID] = None
    plate: Optional[str] = Field(None, min_length=2, max_length=20)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = None
    color: Optional[str] = Field(None, max_length=50)
    fuel_type: Optional[FuelType] = None
    vin: Optional[str] = Field(None, max_length=17)
    engine: Optional[str] = Field(None, max_length=50)
    engine_number: Optional[str] = Field(None, max_length=50)
    ownership_card: Optional[str] = Field(None, max_length=50)
    soat_number: Optional[str] = Field(None, max_length=50)
    soat_expiry: Optional[datetime.date] = None
    tecnomecanica_number: Optional[str] = Field(None, max_length=50)
    tecnomecanica_expiry: Optional[datetime.date] = None
    current_mileage: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


# -------------------------------------------------------------------
# Schemas de lectura
# -------------------------------------------------------------------
class VehicleSummary(BaseModel):
    """Resumen del vehículo para listados de órdenes."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    plate: str
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    current_mileage: int = 0


class VehicleRead(VehicleBase):
    """
    Respuesta de la API para un vehículo.

    Incluye el propietario y la vigencia de SOAT y tecnomecánica
    calculada con la fecha del taller.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime.datetime
    updated_at: datetime.datetime
    customer: Optional[CustomerSummary] = None

    @computed_field
    @property
    def soat_status(self) -> Optional[DocumentStatusInfo]:
        return document_status(
            self.soat_expiry, workshop_today(), settings.document_expiry_warning_days
        )

    @computed_field
    @property
    def tecnomecanica_status(self) -> Optional[DocumentStatusInfo]:
        return document_status(
            self.tecnomecanica_expiry, workshop_today(), settings.document_expiry_warning_days
        )
