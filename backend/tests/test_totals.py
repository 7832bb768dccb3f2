"""
Tests del cálculo de totales y de comisiones.

Lógica pura con líneas mock (sin modelos ni base de datos).
"""

from decimal import Decimal

import pytest

from taller.core.exceptions import BusinessValidationError
from taller.schemas.work_order import build_totals_view
from taller.services.commission_service import compute_commission
from taller.services.work_order_totals import (
    calculate_totals,
    labor_total,
    line_total,
    parts_total,
    round2,
)


# ============================================================
# Tests de calculate_totals
# ============================================================


class TestCalculateTotals:
    """subtotal, IVA y total de la orden."""

    def test_standard_rate_without_discount(self, make_line):
        """Subtotal 150.000 al 19%: IVA 28.500, total 178.500."""
        lines = [
            make_line("repuesto", "70000"),
            make_line("mano_obra", "80000"),
        ]

        totals = calculate_totals(lines, Decimal("0"), Decimal("19.00"))

        assert totals.subtotal == Decimal("150000.00")
        assert totals.tax_amount == Decimal("28500.00")
        assert totals.total_amount == Decimal("178500.00")

    def test_discount_reduces_taxable_base(self, make_line):
        lines = [make_line("repuesto", "100000")]

        totals = calculate_totals(lines, Decimal("10000"), Decimal("19"))

        assert totals.discount_amount == Decimal("10000.00")
        assert totals.tax_amount == Decimal("17100.00")
        assert totals.total_amount == Decimal("107100.00")

    def test_total_matches_components(self, make_line):
        lines = [make_line("servicio", "33333.33"), make_line("mano_obra", "12345.67")]

        totals = calculate_totals(lines, Decimal("999.99"), Decimal("19"))

        assert totals.total_amount == (
            totals.subtotal - totals.discount_amount + totals.tax_amount
        )

    def test_empty_order_is_zero(self):
        totals = calculate_totals([], Decimal("0"), Decimal("19"))
        assert totals.subtotal == Decimal("0")
        assert totals.total_amount == Decimal("0")

    def test_discount_greater_than_subtotal_rejected(self, make_line):
        with pytest.raises(BusinessValidationError) as exc_info:
            calculate_totals([make_line("repuesto", "1000")], Decimal("1000.01"), Decimal("19"))
        assert exc_info.value.extra["field"] == "discount_amount"

    def test_negative_discount_rejected(self, make_line):
        with pytest.raises(BusinessValidationError):
            calculate_totals([make_line("repuesto", "1000")], Decimal("-1"), Decimal("19"))


# ============================================================
# Tests de líneas
# ============================================================


class TestLineTotals:
    """Totales por línea y separación mano de obra / repuestos."""

    def test_line_total_rounds_half_up(self):
        assert line_total(Decimal("3"), Decimal("0.335")) == Decimal("1.01")
        assert line_total(Decimal("1.5"), Decimal("20000")) == Decimal("30000.00")

    def test_round2(self):
        assert round2(Decimal("2.675")) == Decimal("2.68")

    def test_labor_and_parts_split(self, make_line):
        lines = [
            make_line("mano_obra", "80000"),
            make_line("mano_obra", "120000"),
            make_line("repuesto", "35000"),
            make_line("servicio", "15000"),
        ]
        assert labor_total(lines) == Decimal("200000")
        assert parts_total(lines) == Decimal("50000")


# ============================================================
# Tests de presentación de totales
# ============================================================


class TestTotalsView:

    def test_visible_tax(self):
        view = build_totals_view(
            Decimal("150000"), Decimal("0"), Decimal("19"), Decimal("28500"), Decimal("178500"),
            hide_tax=False,
        )
        assert view.tax_hidden is False
        assert view.tax_amount == Decimal("28500")
        assert view.total == Decimal("178500")

    def test_hidden_tax_shows_only_total(self):
        view = build_totals_view(
            Decimal("150000"), Decimal("0"), Decimal("19"), Decimal("28500"), Decimal("178500"),
            hide_tax=True,
        )
        assert view.tax_hidden is True
        assert view.subtotal is None
        assert view.tax_amount is None
        assert view.total == Decimal("178500")


# ============================================================
# Tests de compute_commission
# ============================================================


class TestComputeCommission:
    """Comisión redondeada a pesos."""

    def test_ten_percent_of_two_hundred_thousand(self):
        assert compute_commission(Decimal("200000"), Decimal("10")) == Decimal("20000")

    def test_rounds_half_up_to_whole_pesos(self):
        assert compute_commission(Decimal("12345"), Decimal("10")) == Decimal("1235")
        assert compute_commission(Decimal("12344"), Decimal("10")) == Decimal("1234")

    def test_zero_percentage(self):
        assert compute_commission(Decimal("500000"), Decimal("0")) == Decimal("0")
