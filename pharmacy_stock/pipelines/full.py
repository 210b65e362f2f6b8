from pharmacy_stock import settings
from pharmacy_stock.errors import MissingInputError
from pharmacy_stock.pipeline import StockUpdatePipeline, require_file
from pharmacy_stock.store import LedgerBatch, LedgerStore


class FullUpdatePipeline(StockUpdatePipeline):
    """
    Rebuilds the ledger of every department in one pass. Each department
    needs its own stock balance and sales report; the transfer workbook is
    shared and filtered per department.
    """

    def __init__(
        self,
        store: LedgerStore,
        department_files: dict[str, dict[str, bytes | None]],
        transfer_file: bytes | None,
        **kwargs,
    ):
        super().__init__("full", store, list(settings.DEPARTMENTS), **kwargs)
        self.department_files = {name.upper(): files for name, files in (department_files or {}).items()}
        self.transfer_file = transfer_file

    def _check_inputs(self) -> None:
        """Every required file must be present before anything is parsed or written."""
        missing = []
        for department in self.departments:
            files = self.department_files.get(department) or {}
            for key, label in (("balance", "stock balance"), ("sales", "sales report")):
                if not files.get(key):
                    missing.append(f"{department} {label}")
        if not self.transfer_file:
            missing.append("stock transfer")
        if missing:
            raise MissingInputError(
                f"A full update needs every department's files. Missing: {', '.join(missing)}.",
                detail=f"missing files: {missing}",
            )

    def extract(self) -> dict:
        self._check_inputs()
        catalog = self.load_catalog()

        parsed = []
        for department in self.departments:
            files = self.department_files[department]
            parsed.append(
                self.parse_department(
                    department,
                    require_file(files.get("balance"), f"{department} stock balance"),
                    require_file(files.get("sales"), f"{department} sales report"),
                    self.transfer_file,
                )
            )
        return {"catalog": catalog, "parsed": parsed}

    def transform(self, extracted: dict) -> list[LedgerBatch]:
        parsed = extracted["parsed"]
        # The first department's as-of date is the date of the whole batch
        unified_date = parsed[0]["balance"].as_of_date
        self.summary.as_of_date = unified_date
        self.logger.info(f"\nUnified as-of date for this update: {unified_date.isoformat()}")

        batches = []
        for entry in parsed:
            own_date = entry["balance"].as_of_date
            if own_date != unified_date:
                message = (
                    f"[{entry['department']}] Stock balance date {own_date:%d-%m-%Y} differs from "
                    f"the batch date {unified_date:%d-%m-%Y}; the batch date is used."
                )
                self.logger.warning(f"⚠️ {message}")
                self.summary.warnings.append(message)
            batches.append(self.build_batch(extracted["catalog"], entry, unified_date))
        return batches
