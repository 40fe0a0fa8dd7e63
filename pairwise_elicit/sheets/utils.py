"""
Shared utilities for Google Sheets integration.

This module provides common functionality used by the record store and the
setup check:
- Configuration loading (YAML plus environment overrides)
- Authentication and gspread client creation
- Spreadsheet and worksheet lookup
"""

import os
from pathlib import Path
from typing import Optional

import yaml
import gspread
from dotenv import load_dotenv
from google.oauth2.service_account import Credentials


# Google API scopes required for sheets operations
SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive"
]

TOKEN_URI = "https://oauth2.googleapis.com/token"

# Module paths
SHEETS_DIR = Path(__file__).parent
CONFIG_PATH = SHEETS_DIR / "sheets_config.yaml"
PROJECT_ROOT = Path.cwd()


def load_config(path: Optional[Path] = None) -> dict:
    """
    Load sheets configuration from sheets_config.yaml.
    
    GOOGLE_SHEET_ID and GOOGLE_APPLICATION_CREDENTIALS (from the environment
    or a .env file) override spreadsheet_id and credentials_path.
    
    Returns:
        Dictionary containing the configuration
        
    Raises:
        FileNotFoundError: If the config file doesn't exist
    """
    load_dotenv()
    
    path = path or CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    
    if os.getenv("GOOGLE_SHEET_ID"):
        config["spreadsheet_id"] = os.environ["GOOGLE_SHEET_ID"]
    if os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
        config["credentials_path"] = os.environ["GOOGLE_APPLICATION_CREDENTIALS"]
    
    return config


def get_credentials_path(config: Optional[dict] = None) -> Path:
    """
    Get the absolute path to the credentials file.
    
    Relative paths resolve against the current working directory.
    """
    if config is None:
        config = load_config()
    
    credentials_path = Path(config.get("credentials_path", "credentials/service_account.json"))
    if credentials_path.is_absolute():
        return credentials_path
    return PROJECT_ROOT / credentials_path


def get_env_service_account_info() -> Optional[dict]:
    """
    Build service account info from GOOGLE_SERVICE_ACCOUNT_EMAIL and
    GOOGLE_PRIVATE_KEY, or return None if either is unset.
    """
    email = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL")
    private_key = os.getenv("GOOGLE_PRIVATE_KEY")
    if not email or not private_key:
        return None
    return {
        "type": "service_account",
        "client_email": email,
        # Keys pasted into .env files usually carry literal "\n" sequences
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": TOKEN_URI,
    }


def get_gspread_client(config: Optional[dict] = None) -> gspread.Client:
    """
    Create an authenticated gspread client.
    
    Uses the credentials file when it exists, otherwise the service account
    from the environment.
        
    Raises:
        FileNotFoundError: If neither a credentials file nor environment
            credentials are available
    """
    creds_path = get_credentials_path(config)
    
    if creds_path.exists():
        credentials = Credentials.from_service_account_file(
            str(creds_path),
            scopes=SCOPES
        )
    else:
        info = get_env_service_account_info()
        if info is None:
            raise FileNotFoundError(
                f"Credentials file not found: {creds_path}\n"
                "Set GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY, or run "
                "'python -m pairwise_elicit.sheets.verify_setup' for setup instructions."
            )
        credentials = Credentials.from_service_account_info(info, scopes=SCOPES)
    
    return gspread.authorize(credentials)


def open_spreadsheet(
    config: Optional[dict] = None,
    client: Optional[gspread.Client] = None
) -> gspread.Spreadsheet:
    """
    Open the configured spreadsheet.
        
    Raises:
        ValueError: If no spreadsheet_id is configured
        gspread.exceptions.SpreadsheetNotFound: If spreadsheet not found or not shared
    """
    if config is None:
        config = load_config()
    
    spreadsheet_id = config.get("spreadsheet_id")
    if not spreadsheet_id:
        raise ValueError(
            "No spreadsheet_id configured in sheets_config.yaml\n"
            "Set GOOGLE_SHEET_ID or add the sheet's ID to the config file."
        )
    
    if client is None:
        client = get_gspread_client(config)
    
    return client.open_by_key(spreadsheet_id)


def get_worksheet(
    spreadsheet: gspread.Spreadsheet,
    sheet_name: str,
    create_if_missing: bool = False,
    rows: int = 1000,
    cols: int = 12
) -> gspread.Worksheet:
    """
    Get a worksheet from the spreadsheet.
    
    Args:
        spreadsheet: The gspread Spreadsheet object
        sheet_name: Name of the worksheet
        create_if_missing: If True, create the worksheet if it doesn't exist.
        rows: Number of rows if creating new worksheet.
        cols: Number of columns if creating new worksheet.
        
    Raises:
        gspread.exceptions.WorksheetNotFound: If worksheet not found and create_if_missing is False
    """
    try:
        return spreadsheet.worksheet(sheet_name)
    except gspread.exceptions.WorksheetNotFound:
        if create_if_missing:
            return spreadsheet.add_worksheet(title=sheet_name, rows=rows, cols=cols)
        raise
