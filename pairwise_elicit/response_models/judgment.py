"""
Judgment Models

Pydantic models for a respondent's pairwise judgments and for the
judgments of other respondents shown alongside a pair.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from pairwise_elicit.response_models.status import PersistenceStatus
from pairwise_elicit.scoring import comparison_result


@dataclass(frozen=True)
class JudgmentKey:
    """Identity of a judgment within a session: one pair in one round."""
    round: int
    item_a_index: int
    item_b_index: int

    def __str__(self) -> str:
        return f"r{self.round}:{self.item_a_index}-{self.item_b_index}"


class Judgment(BaseModel):
    """
    A respondent's choice, intensity and reasoning for one pair in one round.
    
    Judgments are created on the first submission of a pair and revised in
    place afterwards. `record_id` is the record store's handle; it stays None
    until the first successful create and never changes after that.
    """
    round: int = Field(..., ge=1, description="Round the pair was presented in (1-based)")
    item_a_index: int = Field(..., ge=0, description="Catalog index of the first item")
    item_b_index: int = Field(..., ge=0, description="Catalog index of the second item")
    item_a: str = Field(..., description="First item, snapshotted at presentation time")
    item_b: str = Field(..., description="Second item, snapshotted at presentation time")
    
    choice: Literal[1, 2] = Field(..., description="1 favors item A, 2 favors item B")
    intensity: float = Field(..., ge=1, le=999, description="How many times better the favored item is")
    intensity_raw: str = Field(..., description="Intensity exactly as entered")
    log_score: float = Field(..., description="Signed natural log of the intensity")
    reasoning: str = Field(..., description="Free-text justification")
    
    record_id: Optional[int] = Field(None, description="Record store handle, None until created")
    persistence: PersistenceStatus = Field(default=PersistenceStatus.UNCONFIRMED)
    persistence_error: Optional[str] = Field(None, description="Message of the last failed upsert")
    revision: int = Field(default=1, description="Local write counter, bumped on every edit")
    
    submitted_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    
    @field_validator("reasoning")
    @classmethod
    def validate_reasoning(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Reasoning must not be empty")
        return v.strip()
    
    @model_validator(mode="after")
    def validate_distinct_items(self) -> "Judgment":
        if self.item_a_index == self.item_b_index:
            raise ValueError(
                f"A judgment needs two distinct items, got index {self.item_a_index} twice"
            )
        return self
    
    @property
    def key(self) -> JudgmentKey:
        return JudgmentKey(self.round, self.item_a_index, self.item_b_index)
    
    @property
    def is_persisted(self) -> bool:
        """True once the latest revision is confirmed by the record store."""
        return self.persistence == PersistenceStatus.CONFIRMED
    
    def revise(
        self,
        choice: int,
        intensity: float,
        intensity_raw: str,
        log_score: float,
        reasoning: str,
    ) -> None:
        """
        Overwrite the judgment's answer in place.
        
        Keeps the key and record_id, bumps the revision and marks the new
        revision as not yet confirmed.
        """
        self.choice = choice
        self.intensity = intensity
        self.intensity_raw = intensity_raw
        self.log_score = log_score
        self.reasoning = reasoning.strip()
        self.revision += 1
        self.updated_at = datetime.now()
        self.persistence = PersistenceStatus.UNCONFIRMED
        self.persistence_error = None


class PreviousComparison(BaseModel):
    """Another respondent's judgment of the same pair, as read back from the store."""
    item_a_name: str
    item_b_name: str
    choice: int = Field(default=1)
    multiplier: float = Field(default=1.0)
    reasoning: str = Field(default="")
    
    def summary(self) -> dict:
        """Return which project was rated more valuable and by how much."""
        return comparison_result(
            self.item_a_name, self.item_b_name, self.choice, self.multiplier
        )
