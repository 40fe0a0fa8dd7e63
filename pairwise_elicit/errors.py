"""
Error taxonomy for the elicitation engine.

- InsufficientItems: the catalog cannot supply the requested pairs
- InvalidInput: a local validation failure, always raised before any mutation
- PersistenceFailure: the record store rejected or failed a call
- IdentityRejected: the external invite gate refused the respondent
- InvalidTransition: an action was issued in the wrong session state
"""

from typing import Optional


class PairwiseError(Exception):
    """Base class for all elicitation errors."""
    pass


class InsufficientItems(PairwiseError):
    """Raised when the catalog is too small for the requested pairs."""
    pass


class InvalidInput(PairwiseError):
    """Raised when a submitted value fails local validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PersistenceFailure(PairwiseError):
    """Raised when the record store fails to read or write."""

    def __init__(self, message: str, key=None):
        super().__init__(message)
        self.key = key


class IdentityRejected(PairwiseError):
    """Raised when the invite code is refused by the record store."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidTransition(PairwiseError):
    """Raised when a session action is not allowed in the current state."""
    pass
