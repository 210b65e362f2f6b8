from pharmacy_stock.pipeline import StockUpdatePipeline, require_department, require_file
from pharmacy_stock.store import LedgerBatch, LedgerStore


class DepartmentUpdatePipeline(StockUpdatePipeline):
    """Replaces one department's ledger for the stock balance's as-of date."""

    def __init__(
        self,
        store: LedgerStore,
        department: str,
        balance_file: bytes | None,
        sales_file: bytes | None,
        transfer_file: bytes | None = None,
        **kwargs,
    ):
        self.department = require_department(department)
        super().__init__("single", store, [self.department], **kwargs)
        self.balance_file = balance_file
        self.sales_file = sales_file
        self.transfer_file = transfer_file

    def extract(self) -> dict:
        balance_file = require_file(self.balance_file, f"{self.department} stock balance")
        sales_file = require_file(self.sales_file, f"{self.department} sales report")
        catalog = self.load_catalog()

        parsed = self.parse_department(self.department, balance_file, sales_file, self.transfer_file)
        if parsed["transfers"] is None:
            self.logger.info("  > INFO: No stock transfer file supplied. Transfers count as zero.")
        return {"catalog": catalog, "parsed": parsed}

    def transform(self, extracted: dict) -> list[LedgerBatch]:
        parsed = extracted["parsed"]
        as_of_date = parsed["balance"].as_of_date
        self.summary.as_of_date = as_of_date
        return [self.build_batch(extracted["catalog"], parsed, as_of_date)]
