"""Tests for cell and KPI formatting."""

from datetime import date, datetime

import pytest

from crm_reports.catalog.kpis import KpiFormat, KpiIcon, KpiValue
from crm_reports.reporting.config import ReportingConfig
from crm_reports.reporting.formatting import (
    EMPTY_CELL,
    BadgeVariant,
    TableCell,
    format_cell,
    format_kpi,
    is_date_field,
    is_money_field,
    is_status_field,
    status_badge_variant,
)


def kpi(value, value_format: KpiFormat) -> KpiValue:
    return KpiValue("Label", value, value_format, KpiIcon.TARGET)


class TestFieldClassification:
    """Tests for field name heuristics."""

    def test_date_fields(self):
        assert is_date_field("created_at")
        assert is_date_field("expected_close_date")
        assert not is_date_field("name")

    def test_money_fields(self):
        assert is_money_field("value")
        assert is_money_field("calculated_amount")
        assert not is_money_field("probability")

    def test_status_fields(self):
        assert is_status_field("status")
        assert is_status_field("stage_name")
        assert not is_status_field("customer_name")


class TestStatusBadge:
    """Tests for status badge colors."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("won", BadgeVariant.POSITIVE),
            ("Active", BadgeVariant.POSITIVE),
            ("pending", BadgeVariant.NEUTRAL),
            ("lost", BadgeVariant.NEGATIVE),
            ("draft", BadgeVariant.OUTLINE),
            ("something else", BadgeVariant.OUTLINE),
            (None, BadgeVariant.OUTLINE),
        ],
    )
    def test_variants(self, status, expected):
        assert status_badge_variant(status) is expected


class TestFormatCell:
    """Tests for table cell formatting."""

    def test_null(self):
        assert format_cell(None, "status") == TableCell(EMPTY_CELL)
        assert format_cell(None, "value") == TableCell("-")

    def test_booleans(self):
        assert format_cell(True, "is_primary") == TableCell("Yes", BadgeVariant.POSITIVE)
        assert format_cell(False, "is_primary") == TableCell("No", BadgeVariant.OUTLINE)

    def test_dates(self):
        config = ReportingConfig(date_format="%d/%m/%Y")

        assert format_cell("2024-03-01", "signed_date", config).text == "01/03/2024"
        assert format_cell("2024-03-01T10:30:00Z", "created_at", config).text == "01/03/2024"
        assert format_cell(date(2024, 1, 2), "due_date", config).text == "02/01/2024"
        assert format_cell(datetime(2024, 1, 2, 5), "created_at").text == "01/02/2024"

    def test_unparseable_date_kept(self):
        assert format_cell("soon", "expected_close_date").text == "soon"

    def test_money(self):
        assert format_cell(1234.5, "value").text == "$1,234.50"
        assert format_cell(12000, "calculated_amount").text == "$12,000.00"
        assert format_cell(50, "amount_value", ReportingConfig(currency_symbol="€")).text == (
            "€50.00"
        )

    def test_money_field_with_text(self):
        assert format_cell("fixed", "amount_type") == TableCell("fixed")

    def test_status_badge(self):
        assert format_cell("won", "status") == TableCell("won", BadgeVariant.POSITIVE)
        assert format_cell("Proposal", "stage_name") == TableCell(
            "Proposal", BadgeVariant.OUTLINE
        )

    def test_plain_values(self):
        assert format_cell("Acme", "customer_name") == TableCell("Acme")
        assert format_cell(40, "probability") == TableCell("40")


class TestFormatKpi:
    """Tests for KPI display values."""

    def test_currency(self):
        assert format_kpi(kpi(18000.0, KpiFormat.CURRENCY)) == "$18,000.00"

    @pytest.mark.parametrize(
        "value,expected",
        [(50.0, "50%"), (49.5, "50%"), (33.333, "33%"), (0.0, "0%"), (66.7, "67%")],
    )
    def test_percent_rounds_half_up(self, value, expected):
        assert format_kpi(kpi(value, KpiFormat.PERCENT)) == expected

    def test_count(self):
        assert format_kpi(kpi(1234, KpiFormat.COUNT)) == "1,234"
        assert format_kpi(kpi(3.0, KpiFormat.COUNT)) == "3"

    def test_text(self):
        assert format_kpi(kpi("Deals", KpiFormat.TEXT)) == "Deals"

    @pytest.mark.parametrize(
        "value_format,expected",
        [
            (KpiFormat.PERCENT, "0%"),
            (KpiFormat.COUNT, "0"),
            (KpiFormat.CURRENCY, "$0.00"),
        ],
    )
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_values_show_zero(self, value, value_format, expected):
        assert format_kpi(kpi(value, value_format)) == expected
