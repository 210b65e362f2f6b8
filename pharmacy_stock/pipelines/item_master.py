import logging

from pharmacy_stock import parsers
from pharmacy_stock.pipeline import require_file
from pharmacy_stock.store import LedgerStore


def run_item_master_update(store: LedgerStore, content: bytes | None, logger: logging.Logger | None = None) -> int:
    """Parses a GRN export and upserts its items into the catalog. Returns the number of items written."""
    logger = logger or logging.getLogger(__name__)
    logger.info("🚀 STEP: ITEM MASTER UPDATE")
    logger.info("-" * 30)

    items = parsers.parse_item_master(require_file(content, "item master"), logger=logger)
    written = store.upsert_items(items)

    logger.info(f"✅ File processed successfully. {written} records updated/inserted.")
    return written
