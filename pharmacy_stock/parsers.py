import logging
from datetime import datetime

import pandas as pd

from . import settings, utils
from .errors import DateMismatchError, DepartmentMismatchError, HeaderNotFoundError
from .patterns import (
    BALANCE_DATE_PATTERNS,
    BALANCE_DEPARTMENT_PATTERNS,
    SALES_DATE_PATTERNS,
    SALES_DEPARTMENT_PATTERNS,
    HeaderPattern,
    first_match,
)
from .schemas import BalanceEntry, BalanceSheet, CatalogItem

_log = logging.getLogger(__name__)


def _is_number(value) -> bool:
    """True for real numeric cells only; numbers stored as text do not count."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not pd.isna(value)


def _text(value, default: str = "") -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    text = str(value).strip()
    return text or default


def _first(series: pd.Series):
    return series.iloc[0]


def _store_label(department: str) -> str:
    return settings.STORE_LABEL_TEMPLATE.format(department=department)


def _extract_date(
    patterns: list[HeaderPattern], raw: str, cell: str, report: str, logger: logging.Logger
) -> datetime:
    found = first_match(patterns, raw)
    parsed = utils.parse_report_date(found[1]) if found else None
    if parsed is None:
        raise HeaderNotFoundError(
            f"Could not find a valid date (dd-mm-yyyy) in cell {cell} of the {report}.",
            detail=f"{report}: cell {cell} holds {raw!r}",
        )
    logger.debug(f"  > Date matched by pattern '{found[0].name}' ({found[0].source_format})")
    return parsed


def _extract_department(patterns: list[HeaderPattern], raw: str, logger: logging.Logger) -> str:
    found = first_match(patterns, raw)
    if not found:
        return ""
    logger.debug(f"  > Department matched by pattern '{found[0].name}' ({found[0].source_format})")
    return found[1].upper()


def _aggregate_quantities(df: pd.DataFrame) -> dict[str, float]:
    """Sums `qty` per item code, skipping rows with a blank code or a non-numeric quantity."""
    df = df.copy()
    df["item_code"] = df["item_code"].map(utils.clean_item_code)
    df["qty"] = pd.to_numeric(
        df["qty"].map(lambda v: v.strip() if isinstance(v, str) else v), errors="coerce"
    )
    df = df[df["item_code"].notna() & df["qty"].notna()]
    if df.empty:
        return {}
    return df.groupby("item_code", sort=False)["qty"].sum().astype(float).to_dict()


def parse_stock_balance(
    content: bytes, expected_dept: str, logger: logging.Logger = _log
) -> BalanceSheet:
    """
    Parses the stock balance export: the as-of date, the department named in
    the location column, and the opening quantity per item code. One item can
    span several batch rows, so quantities are summed per code.
    """
    report = "stock balance"
    logger.info("[Parser] 1. Parsing Stock Balance Sheet...")
    workbook = utils.open_workbook(content, report)
    sheet = utils.get_sheet(workbook, settings.BALANCE_SHEET_NAME, report)

    date_raw = utils.cell_text(sheet[settings.BALANCE_DATE_CELL].value)
    logger.info(f'[Parser-StockBalance] Reading date from cell {settings.BALANCE_DATE_CELL}: "{date_raw}"')
    as_of_date = _extract_date(BALANCE_DATE_PATTERNS, date_raw, settings.BALANCE_DATE_CELL, report, logger)
    logger.info(f"[Parser-StockBalance]  => Parsed 'asOfDate': {as_of_date.isoformat()}")

    location_raw = utils.cell_text(sheet[settings.BALANCE_LOCATION_CELL].value)
    logger.info(
        f'[Parser-StockBalance] Reading location from cell {settings.BALANCE_LOCATION_CELL}: "{location_raw}"'
    )
    actual_dept = _extract_department(BALANCE_DEPARTMENT_PATTERNS, location_raw, logger)
    logger.info(f'[Parser-StockBalance]  => Extracted department: "{actual_dept}"')
    if actual_dept != expected_dept.upper():
        raise DepartmentMismatchError("Stock Balance sheet", expected_dept, actual_dept)

    df = utils.sheet_to_frame(
        sheet,
        settings.BALANCE_HEADER_ROW,
        settings.BALANCE_COLUMNS,
        required=["item_code", "qty"],
        report=report,
    )
    logger.info(f"[Parser-StockBalance]  => Found {len(df)} total entries. Aggregating by Item Code...")

    df["item_code"] = df["item_code"].map(utils.clean_item_code)
    keep = (df["item_code"].notna() & df["qty"].map(_is_number)).astype(bool)
    df = df.loc[keep].copy()
    df["qty"] = df["qty"].astype(float)

    entries: dict[str, BalanceEntry] = {}
    if not df.empty:
        aggregated = df.groupby("item_code", sort=False).agg(
            item_name=("item_name", _first),
            total_qty=("qty", "sum"),
            category=("category", _first),
            sub_category=("sub_category", _first),
        )
        for code, row in aggregated.iterrows():
            entries[code] = BalanceEntry(
                item_name=_text(row["item_name"]),
                total_qty=float(row["total_qty"]),
                category=_text(row["category"], settings.DEFAULT_CATEGORY),
                sub_category=_text(row["sub_category"], settings.DEFAULT_CATEGORY),
            )

    logger.info(f"[Parser-StockBalance]  => Aggregation complete. Total unique items: {len(entries)}.")
    return BalanceSheet(as_of_date=as_of_date, department=actual_dept, entries=entries)


def parse_sales_report(
    content: bytes,
    expected_dept: str,
    expected_date: datetime,
    logger: logging.Logger = _log,
) -> dict[str, float]:
    """
    Parses the daily sales report into sold quantity per item code. The
    report must be for the same department and start on the same date as
    the stock balance it is reconciled with.
    """
    report = "sales report"
    logger.info("[Parser] 2. Parsing Sales Report...")
    workbook = utils.open_workbook(content, report)
    sheet = utils.get_sheet(workbook, settings.SALES_SHEET_NAME, report)

    dept_raw = utils.cell_text(sheet[settings.SALES_DEPARTMENT_CELL].value)
    logger.info(f'[Parser-Sales] Reading department from cell {settings.SALES_DEPARTMENT_CELL}: "{dept_raw}"')
    actual_dept = _extract_department(SALES_DEPARTMENT_PATTERNS, dept_raw, logger)
    if actual_dept != expected_dept.upper():
        raise DepartmentMismatchError("Sales Report", expected_dept, actual_dept)

    date_raw = utils.cell_text(sheet[settings.SALES_DATE_CELL].value)
    report_date = _extract_date(SALES_DATE_PATTERNS, date_raw, settings.SALES_DATE_CELL, report, logger)
    if report_date != expected_date:
        raise DateMismatchError("Sales report start", expected_date, report_date)
    logger.info("[Parser-Sales]  => Dates match successfully.")

    df = utils.sheet_to_frame(
        sheet,
        settings.SALES_HEADER_ROW,
        settings.SALES_COLUMNS,
        required=["item_code", "qty"],
        report=report,
    )
    logger.info(f"[Parser-Sales]  => Found {len(df)} total sales entries. Aggregating by Item Code...")

    sales = _aggregate_quantities(df)
    logger.info(f"[Parser-Sales]  => Aggregation complete. Total unique items sold: {len(sales)}.")
    return sales


def parse_stock_transfer(
    content: bytes, department: str, logger: logging.Logger = _log
) -> dict[str, float]:
    """
    Sums the quantity moved out of `department` per item code. The same
    workbook covers every department; rows from other stores are filtered out.
    """
    report = "stock transfer"
    logger.info("[Parser] 3. Parsing Stock Transfer Sheet...")
    workbook = utils.open_workbook(content, report)
    sheet = utils.get_sheet(workbook, settings.TRANSFER_SHEET_NAME, report, fallback_to_first=False)

    df = utils.sheet_to_frame(
        sheet,
        settings.TRANSFER_HEADER_ROW,
        settings.TRANSFER_COLUMNS,
        required=["from_store", "item_code", "qty"],
        report=report,
    )
    logger.info(f"[Parser-Transfer]  => Found {len(df)} total transfer entries. Aggregating by Item Code...")

    from_store = _store_label(department)
    transfers = _aggregate_quantities(df[df["from_store"] == from_store])
    logger.info(
        f"[Parser-Transfer]  => Aggregation complete. Total unique items transferred out of "
        f"'{from_store}': {len(transfers)}."
    )
    return transfers


def parse_item_master(content: bytes, logger: logging.Logger = _log) -> list[CatalogItem]:
    """
    Builds catalog entries from a GRN export. When an item code was received
    more than once, the most recent GRN row describes the item.
    """
    report = "item master"
    logger.info("[Parser] Parsing Item Master (GRN) workbook...")
    workbook = utils.open_workbook(content, report)
    sheet = utils.get_sheet(workbook, settings.ITEM_MASTER_SHEET_NAME, report, fallback_to_first=False)

    df = utils.sheet_to_frame(
        sheet,
        settings.ITEM_MASTER_HEADER_ROW,
        settings.ITEM_MASTER_COLUMNS,
        required=["item_code", "item_name", "grn_date"],
        report=report,
    )
    df["item_code"] = df["item_code"].map(utils.clean_item_code)
    df["grn_date"] = df["grn_date"].map(lambda v: utils.parse_report_date(utils.cell_text(v)))
    df = df[df["item_code"].notna() & df["grn_date"].notna()]

    # Ties on GRN date keep the earliest row in the file
    latest = (
        df.sort_values("grn_date", ascending=False, kind="stable")
        .drop_duplicates("item_code", keep="first")
        .sort_index()
    )

    items = [
        CatalogItem(
            item_code=row.item_code,
            item_name=_text(row.item_name),
            manufacturer=_text(row.manufacturer),
            vendor=_text(row.vendor),
            item_type=_text(row.item_type),
        )
        for row in latest.itertuples(index=False)
    ]
    logger.info(f"[Parser-ItemMaster]  => {len(df)} GRN rows, {len(items)} unique items.")
    return items
