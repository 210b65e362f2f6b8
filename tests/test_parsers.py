from datetime import datetime, timezone

import pytest

from conftest import (
    AS_OF,
    make_balance_workbook,
    make_item_master_workbook,
    make_sales_workbook,
    make_transfer_workbook,
)
from pharmacy_stock import parsers
from pharmacy_stock.errors import (
    DateMismatchError,
    DepartmentMismatchError,
    HeaderNotFoundError,
    SheetNotFoundError,
)


# ---------------------------------------------------------------------------
# Stock balance
# ---------------------------------------------------------------------------


def test_balance_sums_batch_rows_per_item_code():
    content = make_balance_workbook(
        rows=[
            ("A1", "Paracetamol", 5, "Tablet", "Analgesic"),
            ("A1", "Paracetamol", 3, "Tablet", "Analgesic"),
            ("A2", "Ibuprofen", 4, None, None),
        ]
    )
    sheet = parsers.parse_stock_balance(content, "IP")

    assert sheet.as_of_date == AS_OF
    assert sheet.department == "IP"
    assert sheet.entries["A1"].total_qty == 8
    assert sheet.entries["A1"].item_name == "Paracetamol"
    assert sheet.entries["A1"].category == "Tablet"
    assert sheet.entries["A2"].category == "N/A"
    assert sheet.entries["A2"].sub_category == "N/A"


def test_balance_skips_text_quantities_and_blank_codes():
    content = make_balance_workbook(
        rows=[
            ("A1", "Paracetamol", 10, None, None),
            ("A1", "Paracetamol", "12", None, None),
            (None, "Orphan", 7, None, None),
            ("  ", "Blank", 7, None, None),
            ("A3", "Cetirizine", None, None, None),
        ]
    )
    sheet = parsers.parse_stock_balance(content, "IP")
    assert list(sheet.entries) == ["A1"]
    assert sheet.entries["A1"].total_qty == 10


def test_balance_department_mismatch():
    content = make_balance_workbook("OP", rows=[("A1", "Paracetamol", 1, None, None)])
    with pytest.raises(DepartmentMismatchError) as exc:
        parsers.parse_stock_balance(content, "IP")
    assert exc.value.expected == "IP"
    assert exc.value.found == "OP"
    assert exc.value.to_dict()["code"] == "department_mismatch"


def test_balance_falls_back_to_first_sheet():
    content = make_balance_workbook(sheet_name="Report", rows=[("A1", "Paracetamol", 2, None, None)])
    assert parsers.parse_stock_balance(content, "IP").entries["A1"].total_qty == 2


def test_balance_reads_real_excel_date():
    content = make_balance_workbook(date_text=datetime(2024, 10, 8), rows=[("A1", "Paracetamol", 2, None, None)])
    assert parsers.parse_stock_balance(content, "IP").as_of_date == AS_OF


def test_balance_without_date_fails():
    content = make_balance_workbook(date_text="Stock Balance", rows=[("A1", "Paracetamol", 2, None, None)])
    with pytest.raises(HeaderNotFoundError):
        parsers.parse_stock_balance(content, "IP")


# ---------------------------------------------------------------------------
# Sales report
# ---------------------------------------------------------------------------


def test_sales_aggregates_per_item_code():
    content = make_sales_workbook(
        rows=[
            ("A1", "Paracetamol", 20),
            ("A1", "Paracetamol", 10),
            ("A2", "Ibuprofen", "4"),
            ("A2", "Ibuprofen", "n/a"),
            (None, "No code", 9),
        ]
    )
    assert parsers.parse_sales_report(content, "IP", AS_OF) == {"A1": 30, "A2": 4}


def test_sales_accepts_srdps_title():
    content = make_sales_workbook(title="SRDPS-IP PHARMACY", rows=[("A1", "Paracetamol", 1)])
    assert parsers.parse_sales_report(content, "IP", AS_OF) == {"A1": 1}


def test_sales_department_mismatch():
    content = make_sales_workbook(title="SRST-OT PHARMACY", rows=[("A1", "Paracetamol", 1)])
    with pytest.raises(DepartmentMismatchError):
        parsers.parse_sales_report(content, "IP", AS_OF)


def test_sales_date_mismatch():
    content = make_sales_workbook(date_line="From Date: 09-10-2024 To Date: 09-10-2024")
    with pytest.raises(DateMismatchError) as exc:
        parsers.parse_sales_report(content, "IP", AS_OF)
    assert exc.value.found == datetime(2024, 10, 9, 12, 0, tzinfo=timezone.utc)
    assert exc.value.expected == AS_OF


def test_sales_without_from_date_fails():
    content = make_sales_workbook(date_line="Report for 08-10-2024")
    with pytest.raises(HeaderNotFoundError):
        parsers.parse_sales_report(content, "IP", AS_OF)


# ---------------------------------------------------------------------------
# Stock transfer
# ---------------------------------------------------------------------------


def test_transfer_filters_by_from_store():
    content = make_transfer_workbook(
        rows=[
            ("SRST-IP PHARMACY", "A1", 6),
            ("SRST-IP PHARMACY", "A1", 4),
            ("SRST-OP PHARMACY", "A1", 100),
            ("SRST-IP PHARMACY", "A2", "bad"),
        ]
    )
    assert parsers.parse_stock_transfer(content, "IP") == {"A1": 10}
    assert parsers.parse_stock_transfer(content, "OP") == {"A1": 100}
    assert parsers.parse_stock_transfer(content, "OT") == {}


def test_transfer_requires_named_sheet():
    content = make_transfer_workbook(rows=[("SRST-IP PHARMACY", "A1", 1)], sheet_name="Sheet1")
    with pytest.raises(SheetNotFoundError):
        parsers.parse_stock_transfer(content, "IP")


def test_transfer_missing_column():
    content = make_sales_workbook(sheet_name="stocktransferstatistics")
    with pytest.raises(HeaderNotFoundError):
        parsers.parse_stock_transfer(content, "IP")


# ---------------------------------------------------------------------------
# Item master
# ---------------------------------------------------------------------------


def test_item_master_keeps_latest_grn_row():
    content = make_item_master_workbook(
        rows=[
            ("A1", "Paracetamol 500", "01-09-2024", "Old Maker", "Vendor A"),
            ("A1", "Paracetamol 650", "15/09/2024", "New Maker", "Vendor B"),
            ("A2", "Ibuprofen", datetime(2024, 9, 1), "Brufen Labs", "Vendor A"),
            ("A3", "No date", "", "Nobody", "Nobody"),
        ]
    )
    items = {item.item_code: item for item in parsers.parse_item_master(content)}

    assert set(items) == {"A1", "A2"}
    assert items["A1"].item_name == "Paracetamol 650"
    assert items["A1"].manufacturer == "New Maker"
    assert items["A2"].vendor == "Vendor A"


# ---------------------------------------------------------------------------
# Missing columns
# ---------------------------------------------------------------------------


def test_balance_without_qty_column():
    content = make_balance_workbook(
        rows=[("A1", "Paracetamol", 5, None, None)],
        headers=("Item Code", "Item Name", "Quantity", "Category", "SubCategory", "Location"),
    )
    with pytest.raises(HeaderNotFoundError) as exc:
        parsers.parse_stock_balance(content, "IP")
    assert "Qty" in exc.value.message


def test_sales_without_sales_qty_column():
    content = make_sales_workbook(rows=[("A1", "Paracetamol", 3)], headers=("Item code ", "Item Name", "Qty Sold"))
    with pytest.raises(HeaderNotFoundError) as exc:
        parsers.parse_sales_report(content, "IP", AS_OF)
    assert "Sales Qty" in exc.value.message
