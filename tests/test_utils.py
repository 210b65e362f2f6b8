from datetime import date, datetime, timezone

import pytest

from pharmacy_stock import utils
from pharmacy_stock.errors import StructuralError


def test_both_separators_give_noon_utc():
    expected = datetime(2024, 10, 8, 12, 0, tzinfo=timezone.utc)
    assert utils.parse_report_date("08-10-2024") == expected
    assert utils.parse_report_date("08/10/2024") == expected
    assert utils.parse_report_date("08-10-2024").isoformat() == "2024-10-08T12:00:00+00:00"


@pytest.mark.parametrize("text", ["", "08-10", "08-10-2024-01", "aa-10-2024", "08.10.2024", "31-02-2024", None])
def test_invalid_dates_return_none(text):
    assert utils.parse_report_date(text) is None


def test_cell_text_renders_excel_dates():
    assert utils.cell_text(datetime(2024, 10, 8, 0, 0)) == "08-10-2024"
    assert utils.cell_text(date(2024, 10, 8)) == "08-10-2024"
    assert utils.cell_text(None) == ""
    assert utils.cell_text(12) == "12"


@pytest.mark.parametrize(
    "raw, expected",
    [(" A1 ", "A1"), (1001, "1001"), (1001.0, "1001"), (12.5, "12.5"), ("  ", None), (None, None), (float("nan"), None)],
)
def test_clean_item_code(raw, expected):
    assert utils.clean_item_code(raw) == expected


def test_open_workbook_rejects_non_excel_bytes():
    with pytest.raises(StructuralError) as exc:
        utils.open_workbook(b"not a workbook", "stock balance")
    assert "stock balance" in exc.value.message
