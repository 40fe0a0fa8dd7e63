"""Google Sheets record store for pairwise judgments."""

from pairwise_elicit.sheets.utils import (
    load_config,
    get_gspread_client,
    get_credentials_path,
    open_spreadsheet,
    get_worksheet,
    SCOPES,
    SHEETS_DIR,
    CONFIG_PATH,
)

from pairwise_elicit.sheets.record_store import (
    SheetsRecordStore,
    get_header_row,
    judgment_row,
    parse_row_number,
    parse_previous_comparison,
)

__all__ = [
    # Utils
    "load_config",
    "get_gspread_client",
    "get_credentials_path",
    "open_spreadsheet",
    "get_worksheet",
    "SCOPES",
    "SHEETS_DIR",
    "CONFIG_PATH",
    # Record store
    "SheetsRecordStore",
    "get_header_row",
    "judgment_row",
    "parse_row_number",
    "parse_previous_comparison",
]
