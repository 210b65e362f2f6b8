"""
Merges parsed report data onto the item catalog and derives the stock ledger.

Every step is a pure function from one frame to a new frame, composed left to
right: catalog seed -> balance -> sales -> transfers -> ledger. The catalog is
the source of truth for which items exist, so codes that only appear in a
report are reported back as warnings and never added.
"""

from datetime import datetime

import pandas as pd

from . import settings
from .errors import MissingInputError
from .schemas import BalanceSheet, CatalogItem, LedgerRecord

CALCULATION_COLUMNS = [
    "item_code",
    "item_name",
    "manufacturer",
    "item_type",
    "category",
    "sub_category",
    "initial_stock",
    "sold",
    "transferred",
]

LEDGER_COLUMNS = [
    "item_code",
    "item_name",
    "initial_stock",
    "stock_sold",
    "stock_transferred",
    "stock_used",
    "stock_left",
]


def _unknown_codes(seed: pd.DataFrame, codes, source: str) -> list[str]:
    missing = sorted(set(codes) - set(seed["item_code"]))
    return [
        f"Item code '{code}' from the {source} is not in the item master. Skipped."
        for code in missing
    ]


def seed_from_catalog(catalog: list[CatalogItem]) -> pd.DataFrame:
    """One zeroed calculation row per catalog item code."""
    if not catalog:
        raise MissingInputError(
            "The item master is empty. Upload the item master before updating stock.",
            detail="catalog: no items",
        )

    seed = pd.DataFrame(
        [
            {
                "item_code": item.item_code,
                "item_name": item.item_name,
                "manufacturer": item.manufacturer,
                "item_type": item.item_type,
            }
            for item in catalog
        ]
    ).drop_duplicates("item_code", keep="first")
    seed["category"] = settings.DEFAULT_CATEGORY
    seed["sub_category"] = settings.DEFAULT_CATEGORY
    seed["initial_stock"] = 0.0
    seed["sold"] = 0.0
    seed["transferred"] = 0.0
    return seed[CALCULATION_COLUMNS].reset_index(drop=True)


def overlay_balance(seed: pd.DataFrame, balance: BalanceSheet) -> tuple[pd.DataFrame, list[str]]:
    """Sets initial stock, category and sub-category from the stock balance."""
    balance_data = pd.DataFrame(
        [
            {
                "item_code": code,
                "initial_stock": entry.total_qty,
                "category": entry.category,
                "sub_category": entry.sub_category,
            }
            for code, entry in balance.entries.items()
        ],
        columns=["item_code", "initial_stock", "category", "sub_category"],
    )
    merged = pd.merge(
        seed.drop(columns=["initial_stock", "category", "sub_category"]),
        balance_data,
        on="item_code",
        how="left",
    )
    merged["initial_stock"] = merged["initial_stock"].fillna(0.0).astype(float)
    merged["category"] = merged["category"].fillna(settings.DEFAULT_CATEGORY)
    merged["sub_category"] = merged["sub_category"].fillna(settings.DEFAULT_CATEGORY)
    return merged[CALCULATION_COLUMNS], _unknown_codes(seed, balance.entries, "stock balance")


def _overlay_quantity(
    seed: pd.DataFrame, quantities: dict[str, float], column: str, source: str
) -> tuple[pd.DataFrame, list[str]]:
    data = pd.DataFrame(list(quantities.items()), columns=["item_code", column])
    merged = pd.merge(seed.drop(columns=[column]), data, on="item_code", how="left")
    merged[column] = merged[column].fillna(0.0).astype(float)
    return merged[CALCULATION_COLUMNS], _unknown_codes(seed, quantities, source)


def overlay_sales(seed: pd.DataFrame, sales: dict[str, float]) -> tuple[pd.DataFrame, list[str]]:
    return _overlay_quantity(seed, sales, "sold", "sales report")


def overlay_transfers(seed: pd.DataFrame, transfers: dict[str, float]) -> tuple[pd.DataFrame, list[str]]:
    return _overlay_quantity(seed, transfers, "transferred", "stock transfer")


def compute_ledger(calculation: pd.DataFrame) -> pd.DataFrame:
    """stock_used = sold + transferred; stock_left = initial_stock - stock_used (unbounded)."""
    ledger = calculation.rename(columns={"sold": "stock_sold", "transferred": "stock_transferred"})
    ledger["stock_used"] = ledger["stock_sold"] + ledger["stock_transferred"]
    ledger["stock_left"] = ledger["initial_stock"] - ledger["stock_used"]
    return ledger


def reconcile(
    catalog: list[CatalogItem],
    balance: BalanceSheet,
    sales: dict[str, float],
    transfers: dict[str, float] | None = None,
) -> tuple[pd.DataFrame, list[str]]:
    """Runs the full overlay chain for one department and returns (ledger, warnings)."""
    warnings: list[str] = []

    calculation = seed_from_catalog(catalog)
    calculation, skipped = overlay_balance(calculation, balance)
    warnings.extend(skipped)
    calculation, skipped = overlay_sales(calculation, sales)
    warnings.extend(skipped)
    if transfers is not None:
        calculation, skipped = overlay_transfers(calculation, transfers)
        warnings.extend(skipped)

    return compute_ledger(calculation), warnings


def patch_transfers(existing: pd.DataFrame, transfers: dict[str, float]) -> pd.DataFrame:
    """
    Applies a new transfer aggregate to existing ledger rows. Only rows whose
    item code is in `transfers` are returned; initial stock and sold quantity
    keep their persisted values.
    """
    patched = existing[existing["item_code"].isin(list(transfers))].copy()
    patched["stock_transferred"] = patched["item_code"].map(transfers).astype(float)
    patched["stock_used"] = patched["stock_sold"] + patched["stock_transferred"]
    patched["stock_left"] = patched["initial_stock"] - patched["stock_used"]
    return patched


def to_ledger_records(ledger: pd.DataFrame, department: str, as_of_date: datetime) -> list[LedgerRecord]:
    """Validates ledger rows against the LedgerRecord contract. Raises pydantic.ValidationError."""
    return [
        LedgerRecord(department=department, as_of_date=as_of_date, **row)
        for row in ledger[LEDGER_COLUMNS].to_dict("records")
    ]
