"""
Session Models

Respondent identity and the small value objects the session engine passes
around: pre-fill drafts, saved continuations and identity check results.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# An index pair into the catalog, in presentation order
IndexPair = Tuple[int, int]


class Respondent(BaseModel):
    """The person taking part in the exercise, admitted by invite code."""
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Contact email address")
    invite_code: str = Field(..., description="Invite code checked against the invites sheet")
    
    @field_validator("name", "invite_code")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("All fields are required")
        return v.strip()
    
    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError(f"Invalid email format: {v}")
        return v


class IdentityCheck(BaseModel):
    """Result of looking an invite code up in the record store."""
    valid: bool
    reason: Optional[str] = None
    row_index: Optional[int] = Field(None, description="1-based row of the invite, when found")


@dataclass(frozen=True)
class Continuation:
    """Where a round stood when the respondent jumped into edit mode."""
    round: int
    pair_index: int
    pairs: Tuple[IndexPair, ...]


@dataclass(frozen=True)
class Draft:
    """Values used to pre-fill the answer form for a pair."""
    choice: Optional[int] = None
    intensity: str = ""
    reasoning: str = ""
