from datetime import datetime, timezone
from io import BytesIO

import pytest
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from pharmacy_stock.database import init_db, make_session_factory
from pharmacy_stock.schemas import CatalogItem
from pharmacy_stock.store import LedgerStore

AS_OF = datetime(2024, 10, 8, 12, 0, tzinfo=timezone.utc)


def _to_bytes(wb: Workbook) -> bytes:
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _write_rows(ws, start_row: int, rows: list[list]):
    for offset, row in enumerate(rows):
        for col, value in enumerate(row, start=1):
            ws.cell(row=start_row + offset, column=col, value=value)


def make_balance_workbook(
    department: str = "IP",
    date_text="From Date : 08-10-2024",
    rows: list[tuple] = (),
    sheet_name: str = "stockbalance",
    location: str | None = None,
    headers: tuple = ("Item Code", "Item Name", "Qty", "Category", "SubCategory", "Location"),
) -> bytes:
    """rows: (item_code, item_name, qty, category, sub_category)"""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws["A1"] = "Stock Balance Report"
    ws["A3"] = "Date"
    ws["B3"] = date_text
    location = location if location is not None else f"SRST-{department} PHARMACY"
    _write_rows(ws, 4, [list(headers)])
    _write_rows(ws, 5, [[*row, location] for row in rows])
    return _to_bytes(wb)


def make_sales_workbook(
    title: str = "SRST-IP PHARMACY - Daily Sales Report",
    date_line: str = "From Date: 08-10-2024 To Date: 08-10-2024",
    rows: list[tuple] = (),
    sheet_name: str = "pharmacy_daily_sales_report",
    headers: tuple = ("Item code ", "Item Name", "Sales Qty"),
) -> bytes:
    """rows: (item_code, item_name, sales_qty)"""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws["A1"] = "Pharmacy Daily Sales Report"
    ws["A3"] = title
    ws["A4"] = date_line
    _write_rows(ws, 5, [list(headers)])
    _write_rows(ws, 6, [list(row) for row in rows])
    return _to_bytes(wb)


def make_transfer_workbook(
    rows: list[tuple] = (),
    sheet_name: str = "stocktransferstatistics",
) -> bytes:
    """rows: (from_store, item_code, qty)"""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws["A1"] = "Stock Transfer Statistics"
    _write_rows(ws, 4, [["Transfer No", "From store", "To store", "Item Code", "Qty"]])
    _write_rows(
        ws,
        5,
        [[f"TR-{i}", store, "SRST-MAIN STORE", code, qty] for i, (store, code, qty) in enumerate(rows, 1)],
    )
    return _to_bytes(wb)


def make_item_master_workbook(rows: list[tuple] = (), sheet_name: str = "Sheet1") -> bytes:
    """rows: (item_code, item_name, grn_date, manufacturer, vendor)"""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    _write_rows(ws, 1, [["Item Code", "Item Name", "GRN Date", "Manufacturer", "Vendor"]])
    _write_rows(ws, 2, [list(row) for row in rows])
    return _to_bytes(wb)


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(engine)
    yield LedgerStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def catalog():
    return [
        CatalogItem(item_code="A1", item_name="Paracetamol", manufacturer="Acme Pharma"),
        CatalogItem(item_code="A2", item_name="Ibuprofen", manufacturer="Brufen Labs"),
    ]


@pytest.fixture
def seeded_store(store, catalog):
    store.upsert_items(catalog)
    return store


@pytest.fixture
def ip_files():
    """The worked example: A1 100/30/10, A2 50/0/0 for IP on 08-10-2024."""
    return {
        "balance": make_balance_workbook("IP", rows=[("A1", "Paracetamol", 100, "Tablet", "Analgesic"),
                                                     ("A2", "Ibuprofen", 50, None, None)]),
        "sales": make_sales_workbook(rows=[("A1", "Paracetamol", 30)]),
        "transfer": make_transfer_workbook(rows=[("SRST-IP PHARMACY", "A1", 10),
                                                 ("SRST-OP PHARMACY", "A2", 7)]),
    }
