import json
import logging

import pandas as pd
import requests

from . import settings
from . import utils
from .schemas import LedgerRecord, UpdateSummary

_log = logging.getLogger(__name__)


def save_outputs(
    validated_data: list[LedgerRecord], report_name: str, logger: logging.Logger = _log
):
    """Saves an update's ledger rows to CSV and conditionally to JSON, with dated filenames."""
    if not validated_data:
        logger.warning("No ledger rows to save to disk.")
        return

    settings.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename()
    base_name = f"{settings.LEDGER_FILENAME_BASE}_{report_name}_{date_suffix}"

    csv_path = settings.OUTPUT_DIR / f"{base_name}.csv"
    df_for_csv = pd.DataFrame([item.model_dump(by_alias=True) for item in validated_data])
    df_for_csv.to_csv(csv_path, index=False)
    logger.info(f"✅ Ledger saved to: {csv_path}")

    if settings.SAVE_JSON_OUTPUT:
        json_path = settings.OUTPUT_DIR / f"{base_name}.json"
        with open(json_path, "w") as f:
            json_data = [item.model_dump(mode="json", by_alias=True) for item in validated_data]
            json.dump(json_data, f, indent=2, default=str)
        logger.info(f"✅ JSON output saved to: {json_path}")
    else:
        logger.info("INFO: Skipping JSON file save as per configuration.")


def post_to_webhook(summary: UpdateSummary, logger: logging.Logger = _log):
    """Posts the update summary (mode, dates per department, warnings) to the webhook."""
    if not settings.WEBHOOK_URL:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return

    logger.info(f"🚀 Posting update summary to webhook: {settings.WEBHOOK_URL}")
    payload = {"updateSummary": summary.model_dump(mode="json")}

    # A failed notification does not undo a committed update
    try:
        response = requests.post(settings.WEBHOOK_URL, json=payload, timeout=15)
        response.raise_for_status()
        logger.info("✅ Update summary successfully posted to webhook.")
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
