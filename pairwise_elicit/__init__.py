"""Pairwise preference elicitation: pair sampling, log scoring and sessions."""

from pairwise_elicit.errors import (
    IdentityRejected,
    InsufficientItems,
    InvalidInput,
    InvalidTransition,
    PairwiseError,
    PersistenceFailure,
)
from pairwise_elicit.scoring import (
    comparison_result,
    format_repo_name,
    log_multiplier,
    process_comparison_results,
)
from pairwise_elicit.pairing import generate_index_pairs, generate_pairs, pair_key
from pairwise_elicit.validation import is_valid_intensity, validate_answer, validate_respondent
from pairwise_elicit.catalog import Catalog, load_catalog
from pairwise_elicit.record_store import BaseRecordStore, InMemoryRecordStore
from pairwise_elicit.persistence import PersistenceDispatcher
from pairwise_elicit.session_engine import SessionEngine

__all__ = [
    "IdentityRejected",
    "InsufficientItems",
    "InvalidInput",
    "InvalidTransition",
    "PairwiseError",
    "PersistenceFailure",
    "comparison_result",
    "format_repo_name",
    "log_multiplier",
    "process_comparison_results",
    "generate_index_pairs",
    "generate_pairs",
    "pair_key",
    "is_valid_intensity",
    "validate_answer",
    "validate_respondent",
    "Catalog",
    "load_catalog",
    "BaseRecordStore",
    "InMemoryRecordStore",
    "PersistenceDispatcher",
    "SessionEngine",
]
