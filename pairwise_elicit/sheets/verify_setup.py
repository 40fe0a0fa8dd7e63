"""
Verify Google Sheets API setup and credentials.

Run with: python -m pairwise_elicit.sheets.verify_setup
"""

import json
import sys
from typing import Optional

import gspread

from pairwise_elicit.sheets.record_store import get_header_row
from pairwise_elicit.sheets.utils import (
    get_credentials_path,
    get_env_service_account_info,
    get_gspread_client,
    get_worksheet,
    load_config,
    open_spreadsheet,
)


def verify_credentials(config: dict) -> bool:
    """Verify that a credentials file or environment credentials are available."""
    creds_path = get_credentials_path(config)
    
    if not creds_path.exists():
        if get_env_service_account_info() is not None:
            print("✅ Using service account from GOOGLE_SERVICE_ACCOUNT_EMAIL / GOOGLE_PRIVATE_KEY")
            return True
        print(f"❌ Credentials file not found at: {creds_path}")
        print("\n   To fix this:")
        print("   1. Go to Google Cloud Console (https://console.cloud.google.com)")
        print("   2. Create or select a project")
        print("   3. Enable the Google Sheets API")
        print("   4. Create a Service Account and download the JSON key")
        print(f"   5. Save the JSON file to: {creds_path}")
        print("      (or set GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY)")
        return False
    
    try:
        with open(creds_path) as f:
            creds_data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ Credentials file is not valid JSON: {e}")
        return False
    
    required_fields = ["type", "project_id", "private_key_id", "private_key", "client_email"]
    missing = [f for f in required_fields if f not in creds_data]
    
    if missing:
        print(f"❌ Credentials file is missing required fields: {missing}")
        return False
    
    if creds_data.get("type") != "service_account":
        print(f"❌ Credentials must be for a service account, got: {creds_data.get('type')}")
        return False
    
    print("✅ Credentials file found and valid")
    print(f"   Project ID: {creds_data.get('project_id')}")
    print(f"   Service Account: {creds_data.get('client_email')}")
    return True


def verify_gspread_auth(config: dict) -> bool:
    """Test authentication with Google Sheets API."""
    try:
        get_gspread_client(config)
    except Exception as e:
        print(f"❌ Failed to authenticate with Google Sheets API: {e}")
        return False
    print("✅ Successfully authenticated with Google Sheets API")
    return True


def open_configured_spreadsheet(config: dict) -> Optional[gspread.Spreadsheet]:
    """Open the configured spreadsheet, or print why it cannot be opened."""
    spreadsheet_id = config.get("spreadsheet_id")
    if not spreadsheet_id:
        print("❌ No spreadsheet_id configured (set GOOGLE_SHEET_ID or edit sheets_config.yaml)")
        return None
    
    try:
        spreadsheet = open_spreadsheet(config)
    except gspread.exceptions.SpreadsheetNotFound:
        print("❌ Spreadsheet not found or not shared with service account")
        print("   Share the spreadsheet with the service account email as an Editor")
        return None
    except Exception as e:
        print(f"❌ Failed to access spreadsheet: {e}")
        return None
    
    print(f"✅ Opened spreadsheet: {spreadsheet.title}")
    print(f"   URL: https://docs.google.com/spreadsheets/d/{spreadsheet_id}")
    return spreadsheet


def verify_invites_sheet(spreadsheet: gspread.Spreadsheet, config: dict) -> bool:
    """Check that the invites worksheet exists and has invite codes in its code column."""
    name = config.get("invites_sheet", "juros")
    column = config.get("invite_code_column", "D")
    try:
        invites = get_worksheet(spreadsheet, name)
    except gspread.exceptions.WorksheetNotFound:
        print(f"❌ Invites worksheet '{name}' missing")
        return False
    
    codes = [row[0] for row in invites.get(f"{column}:{column}") if row and row[0]]
    if not codes:
        print(f"❌ No invite codes in column {column} of '{name}'")
        return False
    # First row is the header
    print(f"✅ Worksheet '{name}' has {len(codes) - 1} invite code(s) in column {column}")
    return True


def verify_responses_sheet(spreadsheet: gspread.Spreadsheet, config: dict) -> bool:
    """Check that the responses worksheet, if present, starts with the expected header."""
    name = config.get("responses_sheet", "responses")
    try:
        responses = get_worksheet(spreadsheet, name)
    except gspread.exceptions.WorksheetNotFound:
        print(f"⚠️  Worksheet '{name}' missing; it will be created on first use")
        return True
    
    header = responses.row_values(1)
    expected = get_header_row()
    if header and header != expected:
        print(f"❌ Worksheet '{name}' header does not match the judgment columns")
        print(f"   Expected: {expected}")
        print(f"   Found:    {header}")
        return False
    print(f"✅ Worksheet '{name}' ready ({responses.row_count} rows)")
    return True


def main():
    """Run all verification checks."""
    print("=" * 60)
    print("Google Sheets Record Store - Setup Verification")
    print("=" * 60)
    print()
    
    try:
        config = load_config()
    except FileNotFoundError:
        print("❌ sheets_config.yaml not found")
        return 1
    
    print("1. Checking credentials...")
    passed = verify_credentials(config)
    print()
    
    print("2. Testing Google Sheets API authentication...")
    passed = verify_gspread_auth(config) and passed
    print()
    
    print("3. Opening spreadsheet...")
    spreadsheet = open_configured_spreadsheet(config) if passed else None
    print()
    
    if spreadsheet is not None:
        print("4. Checking worksheets...")
        passed = verify_invites_sheet(spreadsheet, config) and passed
        passed = verify_responses_sheet(spreadsheet, config) and passed
        print()
    else:
        passed = False
    
    print("=" * 60)
    if passed:
        print("✅ All checks passed! Sessions can use --store sheets.")
    else:
        print("⚠️  Some checks failed. See above for details.")
    print("=" * 60)
    
    return 0 if passed else 1


if __name__ == "__main__":
    sys.exit(main())
