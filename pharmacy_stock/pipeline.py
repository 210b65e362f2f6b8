import logging
import threading
from abc import ABC, abstractmethod
from contextlib import ExitStack, contextmanager
from typing import Any, Iterator

from pydantic import ValidationError

from . import data_handler, parsers, reconciliation, settings
from .errors import MissingInputError, StructuralError
from .schemas import CatalogItem, LedgerRecord, UpdateSummary
from .store import LedgerBatch, LedgerStore

_DEPARTMENT_LOCKS: dict[str, threading.Lock] = {}
_REGISTRY_LOCK = threading.Lock()


def _lock_for(department: str) -> threading.Lock:
    with _REGISTRY_LOCK:
        return _DEPARTMENT_LOCKS.setdefault(department, threading.Lock())


@contextmanager
def department_locks(departments: list[str]) -> Iterator[None]:
    """
    Serializes updates per department. Locks are always taken in the
    configured department order so two full updates cannot deadlock.
    """
    order = {name: index for index, name in enumerate(settings.DEPARTMENTS)}
    ordered = sorted(set(departments), key=lambda name: (order.get(name, len(order)), name))
    with ExitStack() as stack:
        for department in ordered:
            stack.enter_context(_lock_for(department))
        yield


def require_department(department: str | None) -> str:
    if not department or department.upper() not in settings.DEPARTMENTS:
        raise MissingInputError(
            f"Select one of the departments: {', '.join(settings.DEPARTMENTS)}.",
            detail=f"department: got {department!r}",
        )
    return department.upper()


def require_file(content: bytes | None, label: str) -> bytes:
    if not content:
        raise MissingInputError(f"The {label} file is required.", detail=f"missing file: {label}")
    return content


class StockUpdatePipeline(ABC):
    """
    Abstract base class for stock ledger updates (single department, full, transfer only).
    Follows an Extract -> Transform -> Load pattern. Any failure propagates to
    the caller; nothing is written unless extract and transform both succeed.
    """

    def __init__(
        self,
        mode: str,
        store: LedgerStore,
        departments: list[str],
        logger: logging.Logger | None = None,
        save_outputs: bool = False,
        notify: bool = False,
    ):
        self.mode = mode
        self.store = store
        self.departments = departments
        self.logger = logger or logging.getLogger(__name__)
        self.save_outputs = save_outputs
        self.notify = notify
        self.summary = UpdateSummary(mode=mode)

    def run(self) -> UpdateSummary:
        """Orchestrates the update and returns its summary."""
        self.logger.info(f"🚀 STEP: {self.mode.upper()} STOCK UPDATE ({', '.join(self.departments)})")
        self.logger.info("-" * 30)

        with department_locks(self.departments):
            # --- 1. EXTRACT ---
            extracted = self.extract()
            # --- 2. TRANSFORM ---
            batches = self.transform(extracted)
            # --- 3. LOAD ---
            self.load(batches)

        self.logger.info(f"✅ {self.mode.capitalize()} update finished ({self.summary.records_written} records).")
        self.logger.info("=" * 60)
        return self.summary

    @abstractmethod
    def extract(self) -> Any:
        """Validates inputs and parses every workbook the update needs."""

    @abstractmethod
    def transform(self, extracted: Any) -> list[LedgerBatch]:
        """Turns parsed data into validated ledger batches."""

    def write(self, batches: list[LedgerBatch]) -> int:
        return self.store.replace_ledgers(batches)

    def load(self, batches: list[LedgerBatch]) -> None:
        self.summary.records_written = self.write(batches)

        self.logger.info("\n--- Final Status Summary ---")
        for department, as_of_date in self.summary.departments.items():
            self.logger.info(f"{department}: {as_of_date.isoformat() if as_of_date else 'No data'}")
        for warning in self.summary.warnings:
            self.logger.warning(f"⚠️ {warning}")

        if self.save_outputs:
            records = [record for batch in batches for record in batch.records]
            data_handler.save_outputs(records, f"{self.mode}_stock_update", logger=self.logger)
        if self.notify:
            data_handler.post_to_webhook(self.summary, logger=self.logger)

    # -------------------------
    # Shared steps
    # -------------------------
    def load_catalog(self) -> list[CatalogItem]:
        catalog = self.store.get_catalog()
        if not catalog:
            raise MissingInputError(
                "The item master is empty. Upload the item master before updating stock.",
                detail="catalog: no items",
            )
        self.logger.info(f"Loaded item master: {len(catalog)} items.")
        return catalog

    def parse_department(
        self,
        department: str,
        balance_file: bytes,
        sales_file: bytes,
        transfer_file: bytes | None,
    ) -> dict:
        """Parses one department's reports in dependency order: balance, sales, transfer."""
        self.logger.info(f"\n-- Processing Department: {department} --")
        balance = parsers.parse_stock_balance(balance_file, department, logger=self.logger)
        sales = parsers.parse_sales_report(sales_file, department, balance.as_of_date, logger=self.logger)
        transfers = (
            parsers.parse_stock_transfer(transfer_file, department, logger=self.logger)
            if transfer_file
            else None
        )
        return {"department": department, "balance": balance, "sales": sales, "transfers": transfers}

    def build_batch(self, catalog: list[CatalogItem], parsed: dict, as_of_date) -> LedgerBatch:
        department = parsed["department"]
        ledger, warnings = reconciliation.reconcile(
            catalog, parsed["balance"], parsed["sales"], parsed["transfers"]
        )
        for warning in warnings:
            self.logger.warning(f"  > [{department}] {warning}")
        self.summary.warnings.extend(f"[{department}] {warning}" for warning in warnings)

        records = self.validate_records(ledger, department, as_of_date)
        self.summary.departments[department] = as_of_date
        return LedgerBatch(department=department, as_of_date=as_of_date, ledger=ledger, records=records)

    def validate_records(self, ledger, department: str, as_of_date) -> list[LedgerRecord]:
        try:
            return reconciliation.to_ledger_records(ledger, department, as_of_date)
        except ValidationError as e:
            self.logger.error(f"❌ Data validation failed for {department}!")
            raise StructuralError(
                "The computed stock ledger failed validation.", detail=str(e)
            ) from e
