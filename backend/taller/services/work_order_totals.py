"""
Cálculo de totales de la orden de trabajo
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Funciones puras, sin acceso a base de datos:
- subtotal = Σ total de las líneas
- tax_amount = round2((subtotal − descuento) × tarifa / 100)
- total_amount = subtotal − descuento + tax_amount
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple, Protocol

from taller.core.exceptions import BusinessValidationError

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

LABOR_ITEM_TYPE = "mano_obra"


class _Line(Protocol):
    item_type: str
    total: Decimal


class WorkOrderTotals(NamedTuple):
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def round2(value: Decimal) -> Decimal:
    """Redondeo a centavos (ROUND_HALF_UP)."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """Total de una línea: cantidad × precio unitario."""
    return round2(Decimal(quantity) * Decimal(unit_price))


def _type_of(line: _Line) -> str:
    item_type = line.item_type
    return getattr(item_type, "value", item_type)


def labor_total(lines: Iterable[_Line]) -> Decimal:
    """Suma de las líneas de mano de obra (base de comisión)."""
    return sum((Decimal(l.total) for l in lines if _type_of(l) == LABOR_ITEM_TYPE), ZERO)


def parts_total(lines: Iterable[_Line]) -> Decimal:
    """Suma de repuestos y servicios."""
    return sum((Decimal(l.total) for l in lines if _type_of(l) != LABOR_ITEM_TYPE), ZERO)


def calculate_totals(
    lines: Iterable[_Line],
    discount_amount: Decimal,
    tax_rate: Decimal,
) -> WorkOrderTotals:
    """
    Calcula los totales de la orden.

    Args:
        lines: líneas con item_type y total
        discount_amount: descuento sobre el subtotal (0 <= descuento <= subtotal)
        tax_rate: tarifa de IVA en porcentaje (ej. 19.00)

    Returns:
        WorkOrderTotals

    Raises:
        BusinessValidationError: si el descuento es negativo o supera el subtotal
    """
    subtotal = round2(sum((Decimal(l.total) for l in lines), ZERO))
    discount = round2(discount_amount or ZERO)

    if discount < ZERO:
        raise BusinessValidationError(
            "El descuento no puede ser negativo",
            extra={"field": "discount_amount"},
        )
    if discount > subtotal:
        raise BusinessValidationError(
            f"El descuento ({discount}) no puede superar el subtotal ({subtotal})",
            extra={"field": "discount_amount", "subtotal": str(subtotal)},
        )

    taxable = subtotal - discount
    tax_amount = round2(taxable * Decimal(tax_rate) / Decimal("100"))
    total_amount = taxable + tax_amount

    return WorkOrderTotals(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax_amount,
        total_amount=total_amount,
    )
