# Response models package

from pairwise_elicit.response_models.judgment import Judgment, JudgmentKey, PreviousComparison
from pairwise_elicit.response_models.session import (
    Continuation,
    Draft,
    IdentityCheck,
    IndexPair,
    Respondent,
)
from pairwise_elicit.response_models.status import PersistenceStatus, SessionState

__all__ = [
    'Judgment',
    'JudgmentKey',
    'PreviousComparison',
    'Continuation',
    'Draft',
    'IdentityCheck',
    'IndexPair',
    'Respondent',
    'PersistenceStatus',
    'SessionState',
]
