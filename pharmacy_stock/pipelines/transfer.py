from pharmacy_stock import parsers, reconciliation, settings
from pharmacy_stock.errors import LedgerNotFoundError
from pharmacy_stock.pipeline import StockUpdatePipeline, require_department, require_file
from pharmacy_stock.store import LedgerBatch, LedgerStore


class TransferUpdatePipeline(StockUpdatePipeline):
    """
    Patches only the transfer dimension of the most recent ledger. Stock
    balance and sales are not re-read; initial stock and sold quantities
    keep their persisted values.
    """

    def __init__(
        self,
        store: LedgerStore,
        transfer_file: bytes | None,
        departments: list[str] | None = None,
        **kwargs,
    ):
        departments = [require_department(d) for d in (departments or settings.DEPARTMENTS)]
        super().__init__("transfer", store, departments, **kwargs)
        self.transfer_file = transfer_file

    def extract(self) -> dict:
        transfer_file = require_file(self.transfer_file, "stock transfer")

        as_of_date = self.store.latest_as_of_date()
        if as_of_date is None:
            raise LedgerNotFoundError(
                "No existing stock data found to update. Please perform a full update first.",
                detail="stock_ledger: no rows",
            )
        self.logger.info(f"Patching transfers for as-of date {as_of_date.isoformat()}")

        extracted = {"as_of_date": as_of_date, "departments": []}
        for department in self.departments:
            self.logger.info(f"\n-- Processing Department: {department} --")
            transfers = parsers.parse_stock_transfer(transfer_file, department, logger=self.logger)
            existing = self.store.load_ledger(department, as_of_date)
            extracted["departments"].append(
                {"department": department, "transfers": transfers, "existing": existing}
            )
        return extracted

    def transform(self, extracted: dict) -> list[LedgerBatch]:
        as_of_date = extracted["as_of_date"]
        self.summary.as_of_date = as_of_date

        batches = []
        for entry in extracted["departments"]:
            department = entry["department"]
            existing = entry["existing"]
            if existing.empty:
                message = f"[{department}] No ledger rows for {as_of_date:%d-%m-%Y}; nothing to patch."
                self.logger.warning(f"⚠️ {message}")
                self.summary.warnings.append(message)
                continue

            patched = reconciliation.patch_transfers(existing, entry["transfers"])
            unmatched = sorted(set(entry["transfers"]) - set(existing["item_code"]))
            for code in unmatched:
                message = f"[{department}] Item code '{code}' from the stock transfer has no ledger row. Skipped."
                self.logger.warning(f"  > {message}")
                self.summary.warnings.append(message)

            self.logger.info(f"  > {len(patched)} ledger rows to patch for {department}.")
            self.summary.departments[department] = as_of_date
            records = self.validate_records(patched, department, as_of_date)
            batches.append(
                LedgerBatch(department=department, as_of_date=as_of_date, ledger=patched, records=records)
            )
        return batches

    def write(self, batches: list[LedgerBatch]) -> int:
        return self.store.patch_ledgers(batches)
