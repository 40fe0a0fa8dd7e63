"""
Record Store Interface

The engine persists judgments through a record store collaborator. This
module defines the interface and an in-process implementation used by the
CLI's offline mode and by the tests. The Google Sheets implementation lives
in `pairwise_elicit.sheets.record_store`.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from pairwise_elicit.errors import PersistenceFailure
from pairwise_elicit.response_models.judgment import Judgment, PreviousComparison
from pairwise_elicit.response_models.session import IdentityCheck, Respondent
from pairwise_elicit.scoring import format_repo_name

logger = logging.getLogger(__name__)


class BaseRecordStore(ABC):
    """
    Abstract record store.
    
    Subclasses must implement:
    - upsert(): create a record, or overwrite one by its identifier
    - find_by_key(): read back every respondent's judgments of a pair
    - validate_identity(): check an invite code
    - mark_submitted(): flag a respondent's invite as used
    """
    
    @abstractmethod
    def upsert(
        self,
        respondent: Respondent,
        judgment: Judgment,
        existing_record_id: Optional[int] = None,
    ) -> int:
        """
        Create or overwrite the record for a judgment.
        
        Args:
            respondent: Who made the judgment
            judgment: The judgment content to write
            existing_record_id: Record to overwrite; None creates a new record
            
        Returns:
            The record identifier (the existing one when updating)
            
        Raises:
            PersistenceFailure: If the store rejects or fails the write
        """
        pass
    
    @abstractmethod
    def find_by_key(self, item_a: str, item_b: str) -> List[PreviousComparison]:
        """Return all stored judgments of the unordered pair (item_a, item_b)."""
        pass
    
    @abstractmethod
    def validate_identity(self, code: str) -> IdentityCheck:
        """Look up an invite code."""
        pass
    
    @abstractmethod
    def mark_submitted(self, respondent: Respondent) -> None:
        """Record that the respondent finished the exercise."""
        pass


class InMemoryRecordStore(BaseRecordStore):
    """
    Record store kept in process memory.
    
    Records are numbered from 1 in creation order, like sheet rows below a
    header. Safe to call from the persistence worker threads.
    
    Attributes:
        records: record_id -> stored row dict
        invite_codes: invite code -> submitted flag
    """
    
    def __init__(self, invite_codes: Optional[List[str]] = None, reject_submitted: bool = False):
        self.records: Dict[int, dict] = {}
        self.invite_codes: Dict[str, bool] = {code: False for code in (invite_codes or [])}
        self.reject_submitted = reject_submitted
        self.create_calls = 0
        self.update_calls = 0
        self._next_id = 1
        self._lock = threading.Lock()
    
    def _row(self, respondent: Respondent, judgment: Judgment) -> dict:
        return {
            "timestamp": datetime.now().isoformat(),
            "name": respondent.name,
            "email": respondent.email,
            "invite_code": respondent.invite_code,
            "item_a_index": judgment.item_a_index,
            "item_b_index": judgment.item_b_index,
            "item_a_name": format_repo_name(judgment.item_a),
            "item_b_name": format_repo_name(judgment.item_b),
            "choice": judgment.choice,
            "multiplier": judgment.intensity,
            "log_multiplier": judgment.log_score,
            "reasoning": judgment.reasoning,
        }
    
    def upsert(
        self,
        respondent: Respondent,
        judgment: Judgment,
        existing_record_id: Optional[int] = None,
    ) -> int:
        row = self._row(respondent, judgment)
        with self._lock:
            if existing_record_id is None:
                record_id = self._next_id
                self._next_id += 1
                self.create_calls += 1
            else:
                if existing_record_id not in self.records:
                    raise PersistenceFailure(
                        f"No record {existing_record_id} to update", key=judgment.key
                    )
                record_id = existing_record_id
                self.update_calls += 1
            self.records[record_id] = row
        logger.debug("Stored record %d for %s", record_id, judgment.key)
        return record_id
    
    def find_by_key(self, item_a: str, item_b: str) -> List[PreviousComparison]:
        wanted = {format_repo_name(item_a), format_repo_name(item_b)}
        with self._lock:
            rows = list(self.records.values())
        return [
            PreviousComparison(
                item_a_name=row["item_a_name"],
                item_b_name=row["item_b_name"],
                choice=row["choice"],
                multiplier=row["multiplier"],
                reasoning=row["reasoning"],
            )
            for row in rows
            if {row["item_a_name"], row["item_b_name"]} == wanted
        ]
    
    def validate_identity(self, code: str) -> IdentityCheck:
        with self._lock:
            codes = list(self.invite_codes)
            submitted = self.invite_codes.get(code, False)
        if code not in codes:
            return IdentityCheck(valid=False, reason="Invalid invite code")
        if self.reject_submitted and submitted:
            return IdentityCheck(valid=False, reason="Response already submitted")
        return IdentityCheck(valid=True, row_index=codes.index(code) + 1)
    
    def mark_submitted(self, respondent: Respondent) -> None:
        with self._lock:
            if respondent.invite_code not in self.invite_codes:
                raise PersistenceFailure(f"Unknown invite code {respondent.invite_code!r}")
            self.invite_codes[respondent.invite_code] = True
