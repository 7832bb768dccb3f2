"""
Schemas Pydantic del Checklist de ingreso
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Cada componente inspeccionado tiene un estado explícito:
ok, defective, not_applicable o unset (aún no registrado).

Formato de entrada aceptado:
- {"fuel_level": 2, "items": {"frenos": "ok"}, "observations": "..."}
- formato plano heredado: {"fuel_level": 2, "frenos": true, "pito": null}
  con true → ok, false → defective, null → not_applicable
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator


class ChecklistState(str, Enum):
    """Estado de un componente del checklist."""
    OK = "ok"
    DEFECTIVE = "defective"
    NOT_APPLICABLE = "not_applicable"
    UNSET = "unset"


# Catálogo estándar de componentes (clave → etiqueta)
CHECKLIST_COMPONENTS: dict[str, str] = {
    "luces_delanteras": "Luces delanteras",
    "luces_traseras": "Luces traseras",
    "direccionales": "Direccionales",
    "frenos": "Frenos",
    "llantas": "Llantas",
    "llanta_repuesto": "Llanta de repuesto",
    "espejos": "Espejos",
    "parabrisas": "Parabrisas",
    "limpiabrisas": "Limpiabrisas",
    "pito": "Pito",
    "bateria": "Batería",
    "radio": "Radio",
    "aire_acondicionado": "Aire acondicionado",
    "tapiceria": "Tapicería",
    "carroceria": "Carrocería",
    "gato": "Gato",
    "herramienta": "Herramienta",
    "extintor": "Extintor",
    "botiquin": "Botiquín",
    "documentos": "Documentos del vehículo",
}

FUEL_LEVELS: dict[int, str] = {
    0: "Vacío",
    1: "1/4",
    2: "1/2",
    3: "3/4",
    4: "Lleno",
}

COMPONENT_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,49}$")

_RESERVED_KEYS = {"fuel_level", "observations", "items", "is_completed"}


def parse_checklist_state(value: Any) -> ChecklistState:
    """
    Convierte un valor de entrada al estado explícito.

    Raises:
        ValueError: si el valor no corresponde a ningún estado
    """
    if isinstance(value, ChecklistState):
        return value
    if value is True:
        return ChecklistState.OK
    if value is False:
        return ChecklistState.DEFECTIVE
    if value is None:
        return ChecklistState.NOT_APPLICABLE
    if isinstance(value, str):
        try:
            return ChecklistState(value.strip().lower())
        except ValueError:
            pass
    raise ValueError(f"Estado de checklist no válido: {value!r}")


class Checklist(BaseModel):
    """
    Checklist de ingreso del vehículo.

    Ningún campo es obligatorio; un checklist vacío es válido.
    Los componentes en estado `unset` se descartan.
    """

    fuel_level: Optional[int] = Field(None, ge=0, le=4, description="Nivel de combustible (0-4)")
    items: dict[str, ChecklistState] = Field(default_factory=dict, description="Estado por componente")
    observations: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="before")
    @classmethod
    def collect_flat_components(cls, data: Any) -> Any:
        """Admite el formato plano: claves de componente al nivel raíz."""
        if not isinstance(data, dict):
            return data
        flat = {k: v for k, v in data.items() if k not in _RESERVED_KEYS}
        if not flat:
            return data
        merged = dict(data.get("items") or {})
        merged.update(flat)
        result = {k: v for k, v in data.items() if k in _RESERVED_KEYS}
        result["items"] = merged
        return result

    @field_validator("items", mode="before")
    @classmethod
    def normalize_items(cls, v: Any) -> dict[str, ChecklistState]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("items debe ser un objeto componente → estado")
        normalized: dict[str, ChecklistState] = {}
        for key, raw in v.items():
            if not isinstance(key, str) or not COMPONENT_KEY_PATTERN.match(key):
                raise ValueError(f"Componente no válido: {key!r}")
            state = parse_checklist_state(raw)
            if state is not ChecklistState.UNSET:
                normalized[key] = state
        return normalized

    @field_validator("observations")
    @classmethod
    def strip_observations(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @computed_field
    @property
    def is_completed(self) -> bool:
        """True cuando se registró al menos un componente o el combustible."""
        return bool(self.items) or self.fuel_level is not None

    def state_of(self, component: str) -> ChecklistState:
        """Estado de un componente; `unset` si no fue registrado."""
        return self.items.get(component, ChecklistState.UNSET)

    def to_storage(self) -> dict[str, Any]:
        """Representación JSON guardada en work_orders.checklist_in."""
        return {
            "fuel_level": self.fuel_level,
            "items": {key: state.value for key, state in self.items.items()},
            "observations": self.observations,
        }


class ChecklistComponent(BaseModel):
    key: str
    label: str


def checklist_catalog() -> list[ChecklistComponent]:
    """Catálogo estándar en el orden de presentación."""
    return [ChecklistComponent(key=k, label=v) for k, v in CHECKLIST_COMPONENTS.items()]
