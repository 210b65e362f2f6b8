import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
INPUT_DIR = BASE_DIR / os.getenv("INPUT_DIR", "input")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'pharmacy.db'}")

# --- Output Configuration ---
LEDGER_FILENAME_BASE = os.getenv("LEDGER_FILENAME", "stock_ledger")
SAVE_JSON_OUTPUT = os.getenv("SAVE_JSON_OUTPUT", "false").lower() in ("1", "true", "yes")

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")

# --- Departments ---
# Processing order for a full update. The first entry supplies the batch date.
DEPARTMENTS = ["IP", "OP", "OT"]
ALL_DEPARTMENTS = "All Departments"

# "From store" value in the transfer report and the location text in the
# stock balance report.
STORE_LABEL_TEMPLATE = "SRST-{department} PHARMACY"

# --- Stock Balance Layout ---
BALANCE_SHEET_NAME = "stockbalance"
BALANCE_DATE_CELL = "B3"
BALANCE_LOCATION_CELL = "F5"
BALANCE_HEADER_ROW = 4  # 1-based worksheet row

# --- Sales Report Layout ---
SALES_SHEET_NAME = "pharmacy_daily_sales_report"
SALES_DEPARTMENT_CELL = "A3"
SALES_DATE_CELL = "A4"
SALES_HEADER_ROW = 5

# --- Stock Transfer Layout ---
TRANSFER_SHEET_NAME = "stocktransferstatistics"
TRANSFER_HEADER_ROW = 4

# --- Item Master (GRN export) Layout ---
ITEM_MASTER_SHEET_NAME = "Sheet1"
ITEM_MASTER_HEADER_ROW = 1

# Raw header text -> canonical field name, one table per report.
BALANCE_COLUMNS = {
    "Item Code": "item_code",
    "Item Name": "item_name",
    "Qty": "qty",
    "Category": "category",
    "SubCategory": "sub_category",
}
SALES_COLUMNS = {
    "Item code": "item_code",
    "Sales Qty": "qty",
}
TRANSFER_COLUMNS = {
    "From store": "from_store",
    "Item Code": "item_code",
    "Qty": "qty",
}
ITEM_MASTER_COLUMNS = {
    "Item Code": "item_code",
    "Item Name": "item_name",
    "GRN Date": "grn_date",
    "Manufacturer": "manufacturer",
    "Vendor": "vendor",
    "Item Type": "item_type",
}

DEFAULT_CATEGORY = "N/A"

# --- Reporting ---
DEFAULT_SURPLUS_PERCENTAGE = float(os.getenv("DEFAULT_SURPLUS_PERCENTAGE", "0.1"))
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "30"))
ITEM_PAGE_SIZE = int(os.getenv("ITEM_PAGE_SIZE", "100"))
LOW_STOCK_THRESHOLD = float(os.getenv("LOW_STOCK_THRESHOLD", "10"))
DASHBOARD_TOP_ITEMS = 10
