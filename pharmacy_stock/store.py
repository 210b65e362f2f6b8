"""
Persistence for the item catalog, departments and the stock ledger.

Every write for a batch of (department, as-of date) ledgers runs inside one
transaction, so a failed update never leaves a half replaced ledger behind.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

import pandas as pd
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, sessionmaker

from . import settings
from .models import Department, Item, StockLedger
from .schemas import CatalogItem, LedgerRecord

LEDGER_FIELDS = ["initial_stock", "stock_sold", "stock_transferred", "stock_used", "stock_left"]


def to_db_datetime(value: datetime) -> datetime:
    """The database keeps naive UTC timestamps."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_db_datetime(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class LedgerBatch:
    """Computed ledger rows for one department and as-of date."""

    department: str
    as_of_date: datetime
    ledger: pd.DataFrame
    records: list[LedgerRecord] = field(default_factory=list)


class LedgerStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    # -------------------------
    # Catalog
    # -------------------------
    @staticmethod
    def _catalog_item(item: Item) -> CatalogItem:
        return CatalogItem(
            item_code=item.item_code,
            item_name=item.item_name,
            manufacturer=item.manufacturer or "",
            vendor=item.vendor or "",
            item_type=item.item_type or "",
        )

    def get_catalog(self) -> list[CatalogItem]:
        with self.session_factory() as session:
            return [self._catalog_item(item) for item in session.query(Item).order_by(Item.id).all()]

    def list_items(
        self,
        search: str = "",
        page: int = 1,
        limit: int = settings.ITEM_PAGE_SIZE,
        fetch_all: bool = False,
    ) -> dict:
        """
        Catalog listing sorted by item name. `search` matches a substring of the
        name or the code, ignoring case. `fetch_all` returns every match on one page.
        """
        with self.session_factory() as session:
            query = session.query(Item)
            search = (search or "").strip()
            if search:
                like = f"%{search}%"
                query = query.filter(or_(Item.item_name.ilike(like), Item.item_code.ilike(like)))
            query = query.order_by(Item.item_name, Item.id)

            if fetch_all:
                items = [self._catalog_item(item) for item in query.all()]
                return {"items": items, "total_pages": 1, "total_items": len(items)}

            total_items = query.count()
            total_pages = math.ceil(total_items / limit) if limit > 0 else 0
            rows = query.offset((max(page, 1) - 1) * limit).limit(limit).all()
            return {
                "items": [self._catalog_item(item) for item in rows],
                "total_pages": total_pages,
                "total_items": total_items,
            }

    def upsert_items(self, items: list[CatalogItem]) -> int:
        """Inserts new catalog items and updates existing ones by item code."""
        if not items:
            return 0
        codes = [item.item_code for item in items]
        with self.session_factory.begin() as session:
            existing = {
                row.item_code: row
                for row in session.query(Item).filter(Item.item_code.in_(codes)).all()
            }
            for item in items:
                row = existing.get(item.item_code)
                if row is None:
                    row = Item(item_code=item.item_code)
                    session.add(row)
                    existing[item.item_code] = row
                row.item_name = item.item_name
                row.manufacturer = item.manufacturer
                row.vendor = item.vendor
                row.item_type = item.item_type
        return len(items)

    # -------------------------
    # Departments
    # -------------------------
    def _department(self, session: Session, name: str) -> Department:
        department = session.query(Department).filter(Department.name == name).first()
        if department is None:
            department = Department(name=name)
            session.add(department)
            session.flush()
        return department

    def department_last_updated(self, name: str | None = None) -> datetime | None:
        """Last update of one department, or the most recent one across all departments."""
        with self.session_factory() as session:
            query = session.query(func.max(Department.last_updated))
            if name is not None:
                query = query.filter(Department.name == name)
            return from_db_datetime(query.scalar())

    # -------------------------
    # Ledger
    # -------------------------
    def latest_as_of_date(self) -> datetime | None:
        with self.session_factory() as session:
            return from_db_datetime(session.query(func.max(StockLedger.as_of_date)).scalar())

    def load_ledger(self, department: str, as_of_date: datetime) -> pd.DataFrame:
        with self.session_factory() as session:
            rows = (
                session.query(Item.item_code, Item.item_name, *[getattr(StockLedger, f) for f in LEDGER_FIELDS])
                .join(StockLedger, StockLedger.item_id == Item.id)
                .join(Department, StockLedger.department_id == Department.id)
                .filter(
                    Department.name == department,
                    StockLedger.as_of_date == to_db_datetime(as_of_date),
                )
                .order_by(Item.id)
                .all()
            )
        return pd.DataFrame(
            [tuple(row) for row in rows], columns=["item_code", "item_name", *LEDGER_FIELDS]
        )

    def replace_ledgers(self, batches: list[LedgerBatch]) -> int:
        """
        Deletes every ledger row for each batch's (department, as-of date) and
        inserts the batch in its place. All batches share one transaction.
        """
        written = 0
        now = datetime.utcnow()
        with self.session_factory.begin() as session:
            item_ids = dict(session.query(Item.item_code, Item.id).all())
            for batch in batches:
                department = self._department(session, batch.department)
                as_of_date = to_db_datetime(batch.as_of_date)
                session.query(StockLedger).filter(
                    StockLedger.department_id == department.id,
                    StockLedger.as_of_date == as_of_date,
                ).delete(synchronize_session=False)

                rows = [
                    StockLedger(
                        item_id=item_ids[row["item_code"]],
                        department_id=department.id,
                        as_of_date=as_of_date,
                        **{f: float(row[f]) for f in LEDGER_FIELDS},
                    )
                    for row in batch.ledger.to_dict("records")
                    if row["item_code"] in item_ids
                ]
                session.add_all(rows)
                department.last_updated = now
                written += len(rows)
        return written

    def patch_ledgers(self, batches: list[LedgerBatch]) -> int:
        """Updates the transfer columns of existing rows in place; other columns are untouched."""
        patched = 0
        now = datetime.utcnow()
        with self.session_factory.begin() as session:
            item_ids = dict(session.query(Item.item_code, Item.id).all())
            for batch in batches:
                department = self._department(session, batch.department)
                as_of_date = to_db_datetime(batch.as_of_date)
                for row in batch.ledger.to_dict("records"):
                    patched += (
                        session.query(StockLedger)
                        .filter(
                            StockLedger.item_id == item_ids.get(row["item_code"]),
                            StockLedger.department_id == department.id,
                            StockLedger.as_of_date == as_of_date,
                        )
                        .update(
                            {
                                StockLedger.stock_transferred: float(row["stock_transferred"]),
                                StockLedger.stock_used: float(row["stock_used"]),
                                StockLedger.stock_left: float(row["stock_left"]),
                            },
                            synchronize_session=False,
                        )
                    )
                department.last_updated = now
        return patched
