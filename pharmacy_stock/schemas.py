from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from . import settings


class BalanceEntry(BaseModel):
    """One item code from the stock balance report, summed across its batch rows."""

    item_name: str = ""
    total_qty: float = 0
    category: str = settings.DEFAULT_CATEGORY
    sub_category: str = settings.DEFAULT_CATEGORY


class BalanceSheet(BaseModel):
    as_of_date: datetime
    department: str
    entries: dict[str, BalanceEntry] = Field(default_factory=dict)


class CatalogItem(BaseModel):
    """An entry of the item master. The catalog decides which items exist."""

    item_code: str = Field(..., alias="Item Code")
    item_name: str = Field(..., alias="Item Name")
    manufacturer: str = Field(default="", alias="Manufacturer")
    vendor: str = Field(default="", alias="Vendor")
    item_type: str = Field(default="", alias="Item Type")

    class Config:
        populate_by_name = True


class LedgerRecord(BaseModel):
    """
    Defines the data contract for one computed stock ledger row:
    one item, one department, one as-of date.
    """

    item_code: str = Field(..., alias="Item Code")
    item_name: str = Field(..., alias="Item Name")
    department: str = Field(..., alias="Department")
    as_of_date: datetime = Field(..., alias="As Of Date")
    initial_stock: float = Field(default=0, alias="Initial Stock")
    stock_sold: float = Field(default=0, alias="Stock Sold")
    stock_transferred: float = Field(default=0, alias="Stock Transferred")
    stock_used: float = Field(default=0, alias="Stock Used")
    # May go negative; that signals a reconciliation discrepancy, not bad data.
    stock_left: float = Field(default=0, alias="Stock Left")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def check_ledger_arithmetic(self):
        if self.stock_used != self.stock_sold + self.stock_transferred:
            raise ValueError("stock_used must equal stock_sold + stock_transferred")
        if self.stock_left != self.initial_stock - self.stock_used:
            raise ValueError("stock_left must equal initial_stock - stock_used")
        return self


class UpdateSummary(BaseModel):
    """What an update pass did. Doubles as the processing trace for the caller."""

    mode: str
    as_of_date: datetime | None = None
    departments: dict[str, datetime | None] = Field(default_factory=dict)
    records_written: int = 0
    warnings: list[str] = Field(default_factory=list)


class ReorderItem(BaseModel):
    item_code: str
    item_name: str
    manufacturer: str = ""
    vendor: str = ""
    stock_left: float
    stock_used: float
    reorder_quantity: int
