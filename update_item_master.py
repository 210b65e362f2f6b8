import argparse
import sys
from pathlib import Path

from pharmacy_stock import settings
from pharmacy_stock.database import init_db, make_engine, make_session_factory
from pharmacy_stock.errors import StockUpdateError
from pharmacy_stock.logger import setup_logger
from pharmacy_stock.pipelines.item_master import run_item_master_update
from pharmacy_stock.store import LedgerStore


def run_process(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Load the item master from a GRN export.")
    ap.add_argument("grn_file", help="GRN workbook with an item row per receipt")
    ap.add_argument("--database-url", default=settings.DATABASE_URL)
    args = ap.parse_args(argv)

    logger = setup_logger()
    engine = make_engine(args.database_url)
    init_db(engine)
    store = LedgerStore(make_session_factory(engine))

    try:
        run_item_master_update(store, Path(args.grn_file).read_bytes(), logger=logger)
    except StockUpdateError as e:
        logger.error(f"❌ Item master update failed: {e.message}")
        logger.error(f"   Detail: {e.detail}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run_process())
