import argparse
import sys
from pathlib import Path

from pharmacy_stock import settings
from pharmacy_stock.database import init_db, make_engine, make_session_factory
from pharmacy_stock.engine import UPDATE_MODES, run_stock_update
from pharmacy_stock.errors import StockUpdateError
from pharmacy_stock.logger import setup_logger
from pharmacy_stock.store import LedgerStore


def _read(path: str | None) -> bytes | None:
    """Reads an uploaded report. Relative paths are looked up in INPUT_DIR."""
    if not path:
        return None
    file_path = Path(path)
    if not file_path.is_absolute() and not file_path.exists():
        file_path = settings.INPUT_DIR / file_path
    return file_path.read_bytes()


def run_process(argv: list[str] | None = None) -> int:
    """Main orchestration function: one stock update pass from the command line."""
    ap = argparse.ArgumentParser(description="Update the pharmacy stock ledger from report exports.")
    ap.add_argument("--department", required=True, help=f"IP, OP, OT or '{settings.ALL_DEPARTMENTS}'")
    ap.add_argument("--mode", choices=UPDATE_MODES, default="single", help="Update type for All Departments")
    ap.add_argument("--balance", help="Stock balance workbook (single department)")
    ap.add_argument("--sales", help="Sales report workbook (single department)")
    ap.add_argument("--transfer", help="Stock transfer workbook")
    for dept in settings.DEPARTMENTS:
        ap.add_argument(f"--{dept.lower()}-balance", help=f"{dept} stock balance workbook (full update)")
        ap.add_argument(f"--{dept.lower()}-sales", help=f"{dept} sales report workbook (full update)")
    ap.add_argument("--database-url", default=settings.DATABASE_URL)
    ap.add_argument("--save-outputs", action="store_true", help="Write the computed ledger to OUTPUT_DIR")
    ap.add_argument("--notify", action="store_true", help="Post the update summary to WEBHOOK_URL")
    args = ap.parse_args(argv)

    logger = setup_logger()
    engine = make_engine(args.database_url)
    init_db(engine)
    store = LedgerStore(make_session_factory(engine))

    department_files = {
        dept: {
            "balance": _read(getattr(args, f"{dept.lower()}_balance")),
            "sales": _read(getattr(args, f"{dept.lower()}_sales")),
        }
        for dept in settings.DEPARTMENTS
    }

    try:
        summary = run_stock_update(
            store,
            department=args.department,
            mode=args.mode,
            balance_file=_read(args.balance),
            sales_file=_read(args.sales),
            transfer_file=_read(args.transfer),
            department_files=department_files,
            logger=logger,
            save_outputs=args.save_outputs,
            notify=args.notify,
        )
    except StockUpdateError as e:
        logger.error(f"❌ Update failed: {e.message}")
        logger.error(f"   Detail: {e.detail}")
        return 1

    logger.info(f"Stock data updated successfully for {args.department}. {summary.records_written} records written.")
    return 0


if __name__ == "__main__":
    sys.exit(run_process())
