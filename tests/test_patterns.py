import pytest

from pharmacy_stock.patterns import (
    BALANCE_DATE_PATTERNS,
    BALANCE_DEPARTMENT_PATTERNS,
    SALES_DATE_PATTERNS,
    SALES_DEPARTMENT_PATTERNS,
    first_match,
)


@pytest.mark.parametrize(
    "text, pattern_name, token",
    [
        ("SRST-IP PHARMACY - Daily Sales", "srst-title", "IP"),
        ("SRDPS-OT PHARMACY", "srdps-title", "OT"),
        ("OP PHARMACY daily sales", "bare-title", "OP"),
        ("srst-op pharmacy", "srst-title", "op"),
    ],
)
def test_sales_department_patterns(text, pattern_name, token):
    pattern, found = first_match(SALES_DEPARTMENT_PATTERNS, text)
    assert pattern.name == pattern_name
    assert found == token


def test_sales_department_pattern_rejects_unknown_department():
    assert first_match(SALES_DEPARTMENT_PATTERNS, "SRST-ICU PHARMACY") is None


def test_balance_department_pattern():
    pattern, found = first_match(BALANCE_DEPARTMENT_PATTERNS, "SRST-OT PHARMACY")
    assert pattern.name == "srst-location"
    assert found == "OT"


def test_balance_date_prefers_labelled_date():
    pattern, found = first_match(BALANCE_DATE_PATTERNS, "Printed 01-01-2025 From Date : 08-10-2024")
    assert pattern.name == "from-date-label"
    assert found == "08-10-2024"


def test_balance_date_falls_back_to_bare_date():
    pattern, found = first_match(BALANCE_DATE_PATTERNS, "Stock as on 08/10/2024")
    assert pattern.name == "bare-date"
    assert found == "08/10/2024"


def test_sales_date_needs_from_date_label():
    assert first_match(SALES_DATE_PATTERNS, "08-10-2024") is None
    _, found = first_match(SALES_DATE_PATTERNS, "From Date: 08-10-2024 To Date: 09-10-2024")
    assert found == "08-10-2024"
