"""
Read-side views over the stock ledger: the stock analysis table, the
dashboard summary and the reorder analysis. All of them look at the most
recent as-of date.
"""

import math
from datetime import datetime

import pandas as pd

from . import settings
from .models import Department, Item, ReorderAnalysis, ReorderAnalysisItem, StockLedger
from .schemas import ReorderItem
from .store import LEDGER_FIELDS, LedgerStore, from_db_datetime, to_db_datetime


def _ledger_frame(store: LedgerStore, as_of_date: datetime, department: str | None = None) -> pd.DataFrame:
    columns = ["item_id", "item_code", "item_name", "manufacturer", "vendor", "department", *LEDGER_FIELDS]
    with store.session_factory() as session:
        query = (
            session.query(
                Item.id,
                Item.item_code,
                Item.item_name,
                Item.manufacturer,
                Item.vendor,
                Department.name,
                *[getattr(StockLedger, f) for f in LEDGER_FIELDS],
            )
            .join(StockLedger, StockLedger.item_id == Item.id)
            .join(Department, StockLedger.department_id == Department.id)
            .filter(StockLedger.as_of_date == to_db_datetime(as_of_date))
        )
        if department is not None:
            query = query.filter(Department.name == department)
        rows = [tuple(row) for row in query.all()]
    return pd.DataFrame(rows, columns=columns)


def _sum_by_item(df: pd.DataFrame) -> pd.DataFrame:
    return df.groupby(
        ["item_id", "item_code", "item_name", "manufacturer", "vendor"], as_index=False
    )[LEDGER_FIELDS].sum()


def _page(df: pd.DataFrame, page: int, limit: int) -> tuple[pd.DataFrame, int]:
    total_pages = math.ceil(len(df) / limit) if limit > 0 else 0
    start = (max(page, 1) - 1) * limit
    return df.iloc[start:start + limit], total_pages


def stock_analysis(
    store: LedgerStore, department: str, page: int = 1, limit: int = settings.DEFAULT_PAGE_SIZE
) -> dict:
    """
    Ledger rows of one department, or summed per item for "All Departments".
    Items with no opening stock, sales or transfers are left out.
    """
    all_departments = department == settings.ALL_DEPARTMENTS
    last_updated = store.department_last_updated(None if all_departments else department)

    as_of_date = store.latest_as_of_date()
    if as_of_date is None:
        return {"results": [], "total_pages": 0, "last_updated": last_updated, "as_of_date": None}

    df = _ledger_frame(store, as_of_date, None if all_departments else department)
    if all_departments:
        df = _sum_by_item(df)

    active = (df["initial_stock"] != 0) | (df["stock_sold"] != 0) | (df["stock_transferred"] != 0)
    df = df[active].sort_values("item_name", kind="stable")
    page_df, total_pages = _page(df, page, limit)

    results = page_df[["item_code", "item_name", *LEDGER_FIELDS]].to_dict("records")
    return {
        "results": results,
        "total_pages": total_pages,
        "last_updated": last_updated,
        "as_of_date": as_of_date,
    }


def _top_items(per_item: pd.DataFrame, column: str) -> list[dict]:
    top = per_item.nlargest(settings.DASHBOARD_TOP_ITEMS, column)
    return [{"name": row.item_name, "value": float(getattr(row, column))} for row in top.itertuples(index=False)]


def dashboard_summary(store: LedgerStore) -> dict:
    """Headline figures for the latest as-of date: totals, low stock count, stock per department, top items."""
    as_of_date = store.latest_as_of_date()
    if as_of_date is None:
        return {
            "as_of_date": None,
            "total_stock": 0.0,
            "total_sold": 0.0,
            "low_stock_count": 0,
            "stock_by_department": [],
            "top_sold_items": [],
            "top_stocked_items": [],
        }

    df = _ledger_frame(store, as_of_date)
    # Counted per ledger row, so an item can be low in several departments
    low_stock = df[(df["stock_left"] > 0) & (df["stock_left"] <= settings.LOW_STOCK_THRESHOLD)]
    by_department = df.groupby("department")["stock_left"].sum()
    per_item = _sum_by_item(df)

    return {
        "as_of_date": as_of_date,
        "total_stock": float(df["stock_left"].sum()),
        "total_sold": float(df["stock_sold"].sum()),
        "low_stock_count": int(len(low_stock)),
        "stock_by_department": [
            {"name": name, "value": float(value)} for name, value in by_department.items()
        ],
        "top_sold_items": _top_items(per_item, "stock_sold"),
        "top_stocked_items": _top_items(per_item, "stock_left"),
    }


def reorder_candidates(store: LedgerStore, surplus_percentage: float | None = None) -> list[ReorderItem]:
    """
    Items whose stock across all departments went negative, or that used more
    than they have left. reorder_quantity = ceil(stock_used * (1 + surplus) - stock_left).
    """
    surplus = settings.DEFAULT_SURPLUS_PERCENTAGE if surplus_percentage is None else surplus_percentage
    as_of_date = store.latest_as_of_date()
    if as_of_date is None:
        return []

    df = _sum_by_item(_ledger_frame(store, as_of_date))
    df = df[(df["stock_left"] < 0) | (df["stock_used"] > df["stock_left"])].copy()
    df["reorder_quantity"] = (df["stock_used"] * (1 + surplus) - df["stock_left"]).apply(math.ceil)
    df = df.sort_values("item_name", kind="stable")

    return [
        ReorderItem(
            item_code=row.item_code,
            item_name=row.item_name,
            manufacturer=row.manufacturer or "",
            vendor=row.vendor or "",
            stock_left=row.stock_left,
            stock_used=row.stock_used,
            reorder_quantity=int(row.reorder_quantity),
        )
        for row in df.itertuples(index=False)
    ]


def reorder_analysis(
    store: LedgerStore,
    surplus_percentage: float | None = None,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
) -> dict:
    items = reorder_candidates(store, surplus_percentage)
    start = (max(page, 1) - 1) * limit
    total_pages = math.ceil(len(items) / limit) if limit > 0 else 0
    return {"results": items[start:start + limit], "total_pages": total_pages}


def save_reorder_analysis(store: LedgerStore, surplus_percentage: float, items: list[ReorderItem]) -> int:
    """Stores a reorder analysis snapshot and returns its id."""
    with store.session_factory.begin() as session:
        item_ids = dict(session.query(Item.item_code, Item.id).all())
        analysis = ReorderAnalysis(surplus_percentage=surplus_percentage)
        analysis.items = [
            ReorderAnalysisItem(
                item_id=item_ids[item.item_code],
                item_code=item.item_code,
                item_name=item.item_name,
                manufacturer=item.manufacturer,
                vendor=item.vendor,
                stock_left=item.stock_left,
                stock_used=item.stock_used,
                reorder_quantity=item.reorder_quantity,
            )
            for item in items
            if item.item_code in item_ids
        ]
        session.add(analysis)
        session.flush()
        return analysis.id


def latest_reorder_analysis(store: LedgerStore) -> dict | None:
    with store.session_factory() as session:
        analysis = (
            session.query(ReorderAnalysis)
            .order_by(ReorderAnalysis.created_at.desc(), ReorderAnalysis.id.desc())
            .first()
        )
        if analysis is None:
            return None
        return {
            "id": analysis.id,
            "created_at": from_db_datetime(analysis.created_at),
            "surplus_percentage": analysis.surplus_percentage,
            "items": [
                ReorderItem(
                    item_code=row.item_code,
                    item_name=row.item_name,
                    manufacturer=row.manufacturer or "",
                    vendor=row.vendor or "",
                    stock_left=row.stock_left,
                    stock_used=row.stock_used,
                    reorder_quantity=row.reorder_quantity,
                )
                for row in analysis.items
            ],
        }
