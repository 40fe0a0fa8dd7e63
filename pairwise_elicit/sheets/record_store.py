"""
Google Sheets record store.

Judgments are rows of the responses worksheet, one row per judgment key, and
the sheet row number is the record identifier. Invite codes live in a
separate worksheet whose "submitted" column is set to "yes" when a respondent
finishes.

Responses columns (A..L):
    Timestamp, Name, Email, Invite Code, Item A Index, Item B Index,
    Item A, Item B, Choice, Multiplier, Log Multiplier, Reasoning
"""

import logging
import re
import threading
from datetime import datetime, timezone
from typing import List, Optional

import gspread

from pairwise_elicit.errors import PersistenceFailure
from pairwise_elicit.record_store import BaseRecordStore
from pairwise_elicit.response_models.judgment import Judgment, PreviousComparison
from pairwise_elicit.response_models.session import IdentityCheck, Respondent
from pairwise_elicit.scoring import format_repo_name
from pairwise_elicit.sheets.utils import get_worksheet, load_config, open_spreadsheet

logger = logging.getLogger(__name__)

FIRST_COLUMN = "A"
LAST_COLUMN = "L"
# Columns read back by find_by_key: item names through reasoning
PREVIOUS_COMPARISONS_RANGE = "G:L"

ROW_NUMBER_PATTERN = re.compile(r"[A-Za-z]+(\d+)")

# Errors raised by gspread itself and by the HTTP layer (requests errors are OSErrors)
STORE_ERRORS = (gspread.exceptions.GSpreadException, OSError)


def get_header_row() -> List[str]:
    """Return the header row for the responses worksheet."""
    return [
        "Timestamp",
        "Name",
        "Email",
        "Invite Code",
        "Item A Index",
        "Item B Index",
        "Item A",
        "Item B",
        "Choice",
        "Multiplier",
        "Log Multiplier",
        "Reasoning",
    ]


def judgment_row(respondent: Respondent, judgment: Judgment) -> list:
    """Lay out one judgment in responses column order."""
    return [
        datetime.now(timezone.utc).isoformat(),
        respondent.name,
        respondent.email,
        respondent.invite_code,
        judgment.item_a_index,
        judgment.item_b_index,
        format_repo_name(judgment.item_a),
        format_repo_name(judgment.item_b),
        judgment.choice,
        judgment.intensity,
        judgment.log_score,
        judgment.reasoning,
    ]


def parse_row_number(updated_range: Optional[str]) -> Optional[int]:
    """
    Extract the first row number from an A1 range.

    Example:
        >>> parse_row_number("responses!A15:L15")
        15
    """
    if not updated_range:
        return None
    cells = updated_range.rsplit("!", 1)[-1]
    match = ROW_NUMBER_PATTERN.match(cells)
    return int(match.group(1)) if match else None


def _parse_or_default(value: str, parse, default):
    try:
        return parse(value)
    except (TypeError, ValueError):
        return default


def parse_previous_comparison(row: list) -> Optional[PreviousComparison]:
    """
    Parse a G..L row into a PreviousComparison.

    Returns None for rows missing either item name. Unparsable choices and
    multipliers default to 1.
    """
    cells = list(row) + [""] * (6 - len(row))
    item_a, item_b, choice, multiplier, _, reasoning = cells[:6]
    item_a = str(item_a).strip()
    item_b = str(item_b).strip()
    if not item_a or not item_b:
        return None
    return PreviousComparison(
        item_a_name=item_a,
        item_b_name=item_b,
        choice=_parse_or_default(choice, lambda v: int(float(v)), 1),
        multiplier=_parse_or_default(multiplier, float, 1.0),
        reasoning=str(reasoning).strip(),
    )


class SheetsRecordStore(BaseRecordStore):
    """
    Record store backed by two worksheets of one Google spreadsheet.

    Attributes:
        responses: Worksheet holding judgment rows
        invites: Worksheet holding invite codes
        invite_code_column: Column letter of the invite codes
        submitted_column: Column letter of the submitted flag
        reject_submitted: Refuse invites already marked as submitted
    """

    def __init__(
        self,
        responses: gspread.Worksheet,
        invites: gspread.Worksheet,
        invite_code_column: str = "D",
        submitted_column: str = "E",
        reject_submitted: bool = False,
    ):
        self.responses = responses
        self.invites = invites
        self.invite_code_column = invite_code_column
        self.submitted_column = submitted_column
        self.reject_submitted = reject_submitted
        # One authorized HTTP session is shared by every worksheet handle
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Optional[dict] = None,
        client: Optional[gspread.Client] = None,
    ) -> "SheetsRecordStore":
        """
        Open the configured spreadsheet and build a store on it.

        Creates the responses worksheet, with a header row, if it is missing.
        """
        if config is None:
            config = load_config()

        spreadsheet = open_spreadsheet(config, client)
        responses_name = config.get("responses_sheet", "responses")

        try:
            responses = get_worksheet(spreadsheet, responses_name)
        except gspread.exceptions.WorksheetNotFound:
            logger.info("Creating worksheet %r", responses_name)
            responses = get_worksheet(spreadsheet, responses_name, create_if_missing=True)
            responses.append_row(get_header_row(), value_input_option="RAW")

        invites = get_worksheet(spreadsheet, config.get("invites_sheet", "juros"))

        return cls(
            responses,
            invites,
            invite_code_column=config.get("invite_code_column", "D"),
            submitted_column=config.get("submitted_column", "E"),
            reject_submitted=bool(config.get("reject_submitted", False)),
        )

    def upsert(
        self,
        respondent: Respondent,
        judgment: Judgment,
        existing_record_id: Optional[int] = None,
    ) -> int:
        row = judgment_row(respondent, judgment)
        action = "append" if existing_record_id is None else "update"

        try:
            with self._lock:
                if existing_record_id is None:
                    response = self.responses.append_row(
                        row,
                        value_input_option="RAW",
                        insert_data_option="INSERT_ROWS",
                        include_values_in_response=True,
                    )
                else:
                    self.responses.update(
                        values=[row],
                        range_name=f"{FIRST_COLUMN}{existing_record_id}:{LAST_COLUMN}{existing_record_id}",
                        value_input_option="RAW",
                    )
        except STORE_ERRORS as e:
            raise PersistenceFailure(f"Failed to {action} row: {e}", key=judgment.key) from e

        if existing_record_id is not None:
            logger.debug("Updated row %d for %s", existing_record_id, judgment.key)
            return existing_record_id

        updated_range = (response or {}).get("updates", {}).get("updatedRange")
        row_number = parse_row_number(updated_range)
        if row_number is None:
            raise PersistenceFailure(
                f"Appended row but could not read its position from {updated_range!r}",
                key=judgment.key,
            )
        logger.debug("Appended row %d for %s", row_number, judgment.key)
        return row_number

    def find_by_key(self, item_a: str, item_b: str) -> List[PreviousComparison]:
        wanted = {format_repo_name(item_a), format_repo_name(item_b)}
        try:
            with self._lock:
                values = self.responses.get(PREVIOUS_COMPARISONS_RANGE)
        except STORE_ERRORS as e:
            raise PersistenceFailure(f"Failed to fetch sheet data: {e}") from e

        comparisons = []
        # First row is the header
        for row in list(values)[1:]:
            comparison = parse_previous_comparison(row)
            if comparison is None:
                continue
            if {comparison.item_a_name, comparison.item_b_name} == wanted:
                comparisons.append(comparison)
        return comparisons

    def _invite_rows(self) -> list:
        column_range = f"{self.invite_code_column}:{self.submitted_column}"
        try:
            with self._lock:
                return list(self.invites.get(column_range))
        except STORE_ERRORS as e:
            raise PersistenceFailure(f"Failed to fetch invite codes: {e}") from e

    def validate_identity(self, code: str) -> IdentityCheck:
        for index, row in enumerate(self._invite_rows()):
            if not row or row[0] != code:
                continue
            submitted = len(row) > 1 and str(row[1]).strip().lower() == "yes"
            if self.reject_submitted and submitted:
                return IdentityCheck(valid=False, reason="Response already submitted")
            # Sheet rows are 1-based
            return IdentityCheck(valid=True, row_index=index + 1)
        return IdentityCheck(valid=False, reason="Invalid invite code")

    def mark_submitted(self, respondent: Respondent) -> None:
        row_index = None
        for index, row in enumerate(self._invite_rows()):
            if row and row[0] == respondent.invite_code:
                row_index = index + 1
                break
        if row_index is None:
            raise PersistenceFailure(f"Invite code {respondent.invite_code!r} not found")

        try:
            with self._lock:
                self.invites.update(
                    values=[["yes"]],
                    range_name=f"{self.submitted_column}{row_index}",
                    value_input_option="RAW",
                )
        except STORE_ERRORS as e:
            raise PersistenceFailure(f"Failed to update submission status: {e}") from e
        logger.info("Marked invite row %d as submitted", row_index)
