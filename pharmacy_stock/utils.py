import re
from datetime import date, datetime, timezone
from io import BytesIO
from zipfile import BadZipFile

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .errors import HeaderNotFoundError, SheetNotFoundError, StructuralError

_DATE_SEPARATORS = re.compile(r"[-/]")


def get_date_suffix_for_filename() -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return datetime.now().strftime("%Y-%m-%d")


def parse_report_date(date_str: str | None) -> datetime | None:
    """
    Parses 'dd-mm-yyyy' or 'dd/mm/yyyy' into a UTC datetime fixed at noon.
    Dates are join keys across three reports, so the same calendar day must
    always produce the same instant. Returns None when the text is not a date.
    """
    if date_str is None:
        return None

    parts = _DATE_SEPARATORS.split(str(date_str).strip())
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return None

    day, month, year = (int(part) for part in parts)
    try:
        return datetime(year, month, day, 12, 0, 0, tzinfo=timezone.utc)
    except ValueError:
        return None


def cell_text(value) -> str:
    """Formatted text of a cell, with real Excel dates rendered as dd-mm-yyyy."""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d-%m-%Y")
    return str(value)


def clean_item_code(value) -> str | None:
    """Standardizes an item code so it can be used as a dictionary key."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    code = str(value).strip()
    return code or None


def open_workbook(content: bytes, report: str) -> Workbook:
    """Loads workbook bytes, turning unreadable uploads into a StructuralError."""
    try:
        return load_workbook(BytesIO(content), data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError) as e:
        raise StructuralError(
            f"The {report} file could not be read as an Excel workbook.",
            detail=f"{report}: {e}",
        ) from e


def get_sheet(workbook: Workbook, sheet_name: str, report: str, fallback_to_first: bool = True) -> Worksheet:
    if sheet_name in workbook.sheetnames:
        return workbook[sheet_name]
    if fallback_to_first and workbook.worksheets:
        return workbook.worksheets[0]
    if fallback_to_first:
        raise SheetNotFoundError(
            f"No sheets found in the {report} workbook.",
            detail=f"{report}: workbook has no sheets",
        )
    raise SheetNotFoundError(
        f"Sheet named '{sheet_name}' not found.",
        detail=f"{report}: missing sheet {sheet_name!r}, found {workbook.sheetnames}",
    )


def sheet_to_frame(
    sheet: Worksheet,
    header_row: int,
    column_map: dict[str, str],
    required: list[str],
    report: str,
) -> pd.DataFrame:
    """
    Reads the table that starts at `header_row` (1-based) into a DataFrame.
    Raw header text is trimmed and translated to canonical field names with
    `column_map`; unmapped columns are dropped.
    """
    rows = list(sheet.iter_rows(min_row=header_row, values_only=True))
    headers = [str(h).strip() if h is not None else "" for h in (rows[0] if rows else [])]

    positions = {}
    for index, header in enumerate(headers):
        field = column_map.get(header)
        if field and field not in positions:
            positions[field] = index

    missing = [field for field in required if field not in positions]
    if missing:
        raw_names = [raw for raw, field in column_map.items() if field in missing]
        raise HeaderNotFoundError(
            f"The {report} is missing the column(s): {', '.join(raw_names)}.",
            detail=f"{report}: header row {header_row} is {headers}",
        )

    records = []
    for row in rows[1:]:
        records.append(
            {
                field: (row[index] if index < len(row) else None)
                for field, index in positions.items()
            }
        )

    all_fields = list(dict.fromkeys(column_map.values()))
    df = pd.DataFrame(records, columns=list(positions.keys()), dtype=object)
    # Optional columns that are absent from the sheet come through as blanks
    return df.reindex(columns=all_fields)
