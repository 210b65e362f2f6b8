import logging

from . import settings
from .errors import MissingInputError
from .pipelines.department import DepartmentUpdatePipeline
from .pipelines.full import FullUpdatePipeline
from .pipelines.transfer import TransferUpdatePipeline
from .schemas import UpdateSummary
from .store import LedgerStore

UPDATE_MODES = ("single", "full", "transfer")


def run_stock_update(
    store: LedgerStore,
    department: str,
    mode: str = "single",
    balance_file: bytes | None = None,
    sales_file: bytes | None = None,
    transfer_file: bytes | None = None,
    department_files: dict[str, dict[str, bytes | None]] | None = None,
    logger: logging.Logger | None = None,
    save_outputs: bool = False,
    notify: bool = False,
) -> UpdateSummary:
    """
    Entry point used by the upload boundary. A single department always
    runs in "single" mode; "All Departments" runs a "full" or "transfer" update.
    """
    options = {"logger": logger, "save_outputs": save_outputs, "notify": notify}

    if department != settings.ALL_DEPARTMENTS:
        pipeline = DepartmentUpdatePipeline(
            store, department, balance_file, sales_file, transfer_file, **options
        )
    elif mode == "full":
        pipeline = FullUpdatePipeline(store, department_files or {}, transfer_file, **options)
    elif mode == "transfer":
        pipeline = TransferUpdatePipeline(store, transfer_file, **options)
    else:
        raise MissingInputError(
            f"Choose a 'full' or 'transfer' update for {settings.ALL_DEPARTMENTS}.",
            detail=f"update mode: got {mode!r}, expected one of {UPDATE_MODES[1:]}",
        )

    return pipeline.run()
