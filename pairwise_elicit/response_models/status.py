"""Lifecycle enumerations for judgments and elicitation sessions."""

from enum import Enum


class PersistenceStatus(str, Enum):
    """
    Remote persistence state of a single judgment.
    
    The local copy of a judgment is always authoritative for the respondent;
    this flag records whether the record store has caught up with it.
    
    Attributes:
        UNCONFIRMED: Applied locally, the upsert has not returned yet
        CONFIRMED: The latest local revision was written to the record store
        FAILED: The latest upsert failed; the judgment needs a retry
    """
    
    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    
    def __str__(self) -> str:
        """Return the string value for compatibility with string comparisons."""
        return self.value


class SessionState(str, Enum):
    """
    States of the elicitation session state machine.
    
    Attributes:
        UNAUTHENTICATED: No respondent has been admitted yet
        ROUND_IN_PROGRESS: Pairs of the current round are being judged
        ROUND_REVIEW: The round is complete; judgments may be reviewed or edited
        EDIT_IN_PROGRESS: A past judgment is being re-submitted
        FINISHED: The respondent ended the exercise; no further mutation
    """
    
    UNAUTHENTICATED = "unauthenticated"
    ROUND_IN_PROGRESS = "round_in_progress"
    ROUND_REVIEW = "round_review"
    EDIT_IN_PROGRESS = "edit_in_progress"
    FINISHED = "finished"
    
    def __str__(self) -> str:
        return self.value
