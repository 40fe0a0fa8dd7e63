"""
Session Engine Module

Drives one respondent through rounds of pairwise comparisons.

State machine:
    UNAUTHENTICATED -> ROUND_IN_PROGRESS -> ROUND_REVIEW
        -> ROUND_IN_PROGRESS (next round) | FINISHED
    ROUND_REVIEW <-> EDIT_IN_PROGRESS

Each submitted answer is applied to local state immediately and written to
the record store in the background. The judgment carries its persistence
status, so a failed write stays visible and can be retried without the
respondent's answer being lost.
"""

import logging
import math
import threading
from concurrent.futures import Future
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pairwise_elicit.errors import (
    IdentityRejected,
    InvalidInput,
    InvalidTransition,
    PersistenceFailure,
)
from pairwise_elicit.pairing import DEFAULT_PAIR_COUNT, generate_index_pairs, total_pairs
from pairwise_elicit.persistence import PersistenceDispatcher
from pairwise_elicit.record_store import BaseRecordStore
from pairwise_elicit.response_models.judgment import Judgment, JudgmentKey, PreviousComparison
from pairwise_elicit.response_models.session import Continuation, Draft, IndexPair, Respondent
from pairwise_elicit.response_models.status import PersistenceStatus, SessionState
from pairwise_elicit.scoring import log_multiplier, process_comparison_results
from pairwise_elicit.validation import validate_answer

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState, SessionState], None]


class SessionEngine:
    """
    Stateful controller for one elicitation session.

    The engine owns the judgment collection; nothing else writes it. Record
    store calls are the only operations that may block, and they run on the
    dispatcher's worker threads.

    Attributes:
        items: The read-only catalog
        record_store: Where judgments are persisted
        pairs_per_round: Number of pairs drawn for each round
        state: Current SessionState
        respondent: The admitted respondent, None before start()
        round: Current round number (0 before start)
        pairs: Working pair list (the round's pairs, or the edited pair)
        pair_index: Position of the current pair in `pairs`
        rounds: Pair list drawn for each round
        draft: Values to pre-fill the answer form with
        submission_error: Message of a failed invite submission, None otherwise
    """

    def __init__(
        self,
        items: Sequence[str],
        record_store: BaseRecordStore,
        pairs_per_round: int = DEFAULT_PAIR_COUNT,
        dispatcher: Optional[PersistenceDispatcher] = None,
    ):
        self.items: Tuple[str, ...] = tuple(items)
        self.record_store = record_store
        self.pairs_per_round = pairs_per_round
        self.dispatcher = dispatcher or PersistenceDispatcher()

        self.state = SessionState.UNAUTHENTICATED
        self.respondent: Optional[Respondent] = None
        self.round = 0
        self.pairs: List[IndexPair] = []
        self.pair_index = 0
        self.rounds: Dict[int, List[IndexPair]] = {}
        self.draft = Draft()

        self._judgments: Dict[JudgmentKey, Judgment] = {}
        self._continuation: Optional[Continuation] = None
        self._edit_key: Optional[JudgmentKey] = None
        self.submission_error: Optional[str] = None
        self._listeners: List[StateListener] = []
        # Guards judgment state against completion updates from worker threads
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> None:
        """Register a callback invoked as listener(old_state, new_state)."""
        self._listeners.append(listener)

    def _set_state(self, new_state: SessionState) -> None:
        old_state = self.state
        self.state = new_state
        if old_state != new_state:
            logger.debug("Session state %s -> %s", old_state, new_state)
            for listener in list(self._listeners):
                listener(old_state, new_state)

    def _require(self, action: str, *states: SessionState) -> None:
        if self.state not in states:
            raise InvalidTransition(f"Cannot {action} while session is {self.state}")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def current_pair(self) -> Optional[IndexPair]:
        """Index pair awaiting an answer, or None outside of answering states."""
        if self.state not in (SessionState.ROUND_IN_PROGRESS, SessionState.EDIT_IN_PROGRESS):
            return None
        return self.pairs[self.pair_index]

    @property
    def current_items(self) -> Optional[Tuple[str, str]]:
        pair = self.current_pair
        if pair is None:
            return None
        return self.items[pair[0]], self.items[pair[1]]

    @property
    def current_key(self) -> Optional[JudgmentKey]:
        """Key the next submit will write to."""
        if self.state == SessionState.EDIT_IN_PROGRESS:
            return self._edit_key
        pair = self.current_pair
        if pair is None:
            return None
        return JudgmentKey(self.round, pair[0], pair[1])

    @property
    def is_editing(self) -> bool:
        return self.state == SessionState.EDIT_IN_PROGRESS

    def get_judgment(self, key: JudgmentKey) -> Optional[Judgment]:
        return self._judgments.get(key)

    def all_judgments(self) -> List[Judgment]:
        """All judgments across rounds, in first-submission order."""
        with self._lock:
            return list(self._judgments.values())

    def judgments_for_round(self, round_number: int) -> List[Judgment]:
        return [j for j in self.all_judgments() if j.round == round_number]

    def failed_judgments(self) -> List[Judgment]:
        """Judgments whose latest write failed and needs a retry."""
        return [j for j in self.all_judgments() if j.persistence == PersistenceStatus.FAILED]

    def pending_judgments(self) -> List[Judgment]:
        return [j for j in self.all_judgments() if j.persistence == PersistenceStatus.UNCONFIRMED]

    def is_pending(self, key: JudgmentKey) -> bool:
        """True while a write for this key is queued or in flight."""
        return self.dispatcher.is_pending(key)

    def get_statistics(self) -> Dict[str, object]:
        """Summarize the session for review screens."""
        judgments = self.all_judgments()
        per_round: Dict[int, int] = {}
        for judgment in judgments:
            per_round[judgment.round] = per_round.get(judgment.round, 0) + 1
        return {
            "rounds_started": self.round,
            "total_judgments": len(judgments),
            "judgments_per_round": per_round,
            "confirmed": sum(1 for j in judgments if j.persistence == PersistenceStatus.CONFIRMED),
            "unconfirmed": sum(1 for j in judgments if j.persistence == PersistenceStatus.UNCONFIRMED),
            "failed": sum(1 for j in judgments if j.persistence == PersistenceStatus.FAILED),
        }

    def export_scores(self) -> List[dict]:
        """Log-score rows for every judgment, for the rank aggregation model."""
        return process_comparison_results(self.all_judgments())

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, respondent: Respondent) -> None:
        """
        Admit a respondent and begin round 1.

        Raises:
            IdentityRejected: If the record store refuses the invite code
            PersistenceFailure: If the invite lookup itself fails
            InsufficientItems: If the catalog cannot supply a round of pairs
        """
        self._require("start", SessionState.UNAUTHENTICATED)

        try:
            check = self.record_store.validate_identity(respondent.invite_code)
        except PersistenceFailure:
            raise
        except Exception as e:
            raise PersistenceFailure(f"Failed to validate invite code: {e}") from e

        if not check.valid:
            logger.info("Invite code rejected: %s", check.reason)
            raise IdentityRejected(check.reason or "Invalid invite code")

        pairs = generate_index_pairs(len(self.items), self.pairs_per_round)
        self.respondent = respondent
        logger.info("Session started for %s", respondent.email)
        self._begin_round(1, pairs)

    def _begin_round(self, round_number: int, pairs: List[IndexPair]) -> None:
        self.round = round_number
        self.rounds[round_number] = list(pairs)
        self.pairs = list(pairs)
        self.pair_index = 0
        self.draft = Draft()
        logger.info("Round %d started with %d pairs", round_number, len(pairs))
        self._set_state(SessionState.ROUND_IN_PROGRESS)

    def submit(self, choice, intensity: str, reasoning: str) -> Judgment:
        """
        Record an answer for the current pair and move on.

        Validation happens first; nothing changes if it fails. The judgment
        is then created or overwritten at its key, the engine advances, and
        the upsert is queued in the background.

        Args:
            choice: 1 or 2
            intensity: Raw intensity string as typed
            reasoning: Free-text justification

        Returns:
            The live Judgment (its record_id fills in once the store confirms)

        Raises:
            InvalidInput: If the choice, intensity or reasoning is not acceptable
            InvalidTransition: If no pair is awaiting an answer
        """
        with self._lock:
            self._require("submit", SessionState.ROUND_IN_PROGRESS, SessionState.EDIT_IN_PROGRESS)
            choice, number, reasoning = validate_answer(choice, intensity, reasoning)
            log_score = log_multiplier(choice, number)
            if math.isnan(log_score):
                raise InvalidInput("Intensity cannot be scored", field="intensity")

            key = self.current_key
            judgment = self._judgments.get(key)
            if judgment is None:
                judgment = Judgment(
                    round=key.round,
                    item_a_index=key.item_a_index,
                    item_b_index=key.item_b_index,
                    item_a=self.items[key.item_a_index],
                    item_b=self.items[key.item_b_index],
                    choice=choice,
                    intensity=number,
                    intensity_raw=intensity,
                    log_score=log_score,
                    reasoning=reasoning,
                )
                self._judgments[key] = judgment
                logger.info("Recorded judgment %s (log score %.4f)", key, log_score)
            else:
                judgment.revise(choice, number, intensity, log_score, reasoning)
                logger.info(
                    "Revised judgment %s to revision %d (log score %.4f)",
                    key, judgment.revision, log_score,
                )

            snapshot = judgment.model_copy()
            self._advance()

        self._persist(key, snapshot)
        return judgment

    def _advance(self) -> None:
        if self.state == SessionState.EDIT_IN_PROGRESS:
            self._restore_continuation()
            return
        self.pair_index += 1
        self.draft = Draft()
        if self.pair_index >= len(self.pairs):
            logger.info("Round %d complete", self.round)
            self._set_state(SessionState.ROUND_REVIEW)

    def refresh_pairs(self) -> Optional[IndexPair]:
        """
        Discard the unanswered current pair and redraw the rest of the round.

        Pairs already answered in this round are kept and never redrawn. The
        discarded pair is not drawn again unless the catalog has no other
        unused pair. Any stored judgment at the discarded pair's exact key
        is removed.

        Returns:
            The new current pair
        """
        with self._lock:
            self._require("refresh pairs", SessionState.ROUND_IN_PROGRESS)
            discarded = self.pairs[self.pair_index]
            kept = self.pairs[:self.pair_index]
            remaining = len(self.pairs) - self.pair_index
            exclude = list(kept)
            # The discarded pair may only come back when nothing else is left
            if total_pairs(len(self.items)) - len(kept) > remaining:
                exclude.append(discarded)
            fresh = generate_index_pairs(len(self.items), remaining, exclude=exclude)

            removed = self._judgments.pop(JudgmentKey(self.round, *discarded), None)
            if removed is not None:
                logger.info("Removed judgment %s for discarded pair", removed.key)

            self.pairs = kept + fresh
            self.rounds[self.round] = list(self.pairs)
            self.draft = Draft()
            logger.debug("Refreshed round %d from position %d", self.round, self.pair_index)
            return self.current_pair

    def begin_edit(self, key: JudgmentKey) -> Draft:
        """
        Reopen a past judgment from any round for editing.

        Saves the current position, swaps in a one-pair list for the judged
        pair and pre-fills the draft from the stored answer.

        Raises:
            InvalidInput: If no judgment exists at `key`
        """
        with self._lock:
            self._require("edit", SessionState.ROUND_REVIEW)
            judgment = self._judgments.get(key)
            if judgment is None:
                raise InvalidInput(f"No judgment recorded for {key}", field="key")

            self._continuation = Continuation(
                round=self.round,
                pair_index=self.pair_index,
                pairs=tuple(self.pairs),
            )
            self._edit_key = key
            self.round = key.round
            self.pairs = [(key.item_a_index, key.item_b_index)]
            self.pair_index = 0
            self.draft = Draft(
                choice=judgment.choice,
                intensity=judgment.intensity_raw,
                reasoning=judgment.reasoning,
            )
            self._set_state(SessionState.EDIT_IN_PROGRESS)
            return self.draft

    def cancel_edit(self) -> None:
        """Leave edit mode without writing anything."""
        with self._lock:
            self._require("cancel edit", SessionState.EDIT_IN_PROGRESS)
            self._restore_continuation()

    def _restore_continuation(self) -> None:
        continuation = self._continuation
        self.round = continuation.round
        self.pair_index = continuation.pair_index
        self.pairs = list(continuation.pairs)
        self._continuation = None
        self._edit_key = None
        self.draft = Draft()
        self._set_state(SessionState.ROUND_REVIEW)

    def continue_to_next_round(self) -> None:
        """Draw a fresh set of pairs and start the next round."""
        with self._lock:
            self._require("continue", SessionState.ROUND_REVIEW)
            pairs = generate_index_pairs(len(self.items), self.pairs_per_round)
            self._begin_round(self.round + 1, pairs)

    def finish(self) -> Future:
        """
        End the exercise. No further answers are accepted afterwards.

        Returns:
            Future for the background call that marks the invite as used
        """
        with self._lock:
            self._require("finish", SessionState.ROUND_REVIEW)
            self._set_state(SessionState.FINISHED)
        logger.info("Session finished after %d rounds", self.round)
        respondent = self.respondent
        return self.dispatcher.submit(
            ("submitted", respondent.invite_code), self._submit_invite, respondent
        )

    def _submit_invite(self, respondent: Respondent) -> None:
        """Worker-side call that marks the invite as used."""
        try:
            self.record_store.mark_submitted(respondent)
        except Exception as e:
            failure = e if isinstance(e, PersistenceFailure) else PersistenceFailure(
                f"Failed to mark invite as submitted: {e}"
            )
            logger.error("Marking invite %s as submitted failed: %s", respondent.invite_code, e)
            with self._lock:
                self.submission_error = str(failure)
            if failure is e:
                raise
            raise failure from e
        with self._lock:
            self.submission_error = None
        logger.info("Invite %s marked as submitted", respondent.invite_code)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, key: JudgmentKey, snapshot: Judgment) -> Future:
        return self.dispatcher.submit(key, self._write, key, snapshot)

    def _write(self, key: JudgmentKey, snapshot: Judgment) -> int:
        """Worker-side upsert of one judgment revision."""
        # The record id is read when the call runs, not when it was queued,
        # so an edit queued behind a create updates the created record.
        with self._lock:
            live = self._judgments.get(key)
            record_id = live.record_id if live is not None else snapshot.record_id

        try:
            new_id = self.record_store.upsert(self.respondent, snapshot, record_id)
        except Exception as e:
            failure = e if isinstance(e, PersistenceFailure) else PersistenceFailure(
                f"Failed to persist judgment {key}: {e}", key=key
            )
            logger.error("Persisting %s (revision %d) failed: %s", key, snapshot.revision, e)
            self._mark_failed(key, snapshot.revision, str(failure))
            if failure is e:
                raise
            raise failure from e

        self._mark_confirmed(key, snapshot.revision, new_id)
        return new_id

    def _mark_confirmed(self, key: JudgmentKey, revision: int, record_id: int) -> None:
        with self._lock:
            judgment = self._judgments.get(key)
            if judgment is None:
                logger.debug("Judgment %s was removed before its write returned", key)
                return
            if judgment.record_id is None:
                judgment.record_id = record_id
            elif judgment.record_id != record_id:
                logger.warning(
                    "Record store returned id %s for %s, keeping %s",
                    record_id, key, judgment.record_id,
                )
            # A newer revision still in the queue decides the final status
            if judgment.revision == revision:
                judgment.persistence = PersistenceStatus.CONFIRMED
                judgment.persistence_error = None

    def _mark_failed(self, key: JudgmentKey, revision: int, message: str) -> None:
        with self._lock:
            judgment = self._judgments.get(key)
            if judgment is not None and judgment.revision == revision:
                judgment.persistence = PersistenceStatus.FAILED
                judgment.persistence_error = message

    def retry_persistence(self, key: JudgmentKey) -> Future:
        """
        Re-send a judgment whose last write failed.

        Raises:
            InvalidInput: If there is no judgment at `key` or it did not fail
        """
        with self._lock:
            if self.state == SessionState.UNAUTHENTICATED:
                raise InvalidTransition("Cannot retry before the session has started")
            judgment = self._judgments.get(key)
            if judgment is None:
                raise InvalidInput(f"No judgment recorded for {key}", field="key")
            if judgment.persistence != PersistenceStatus.FAILED:
                raise InvalidInput(f"Judgment {key} has no failed write to retry", field="key")
            judgment.persistence = PersistenceStatus.UNCONFIRMED
            judgment.persistence_error = None
            snapshot = judgment.model_copy()
        logger.info("Retrying write for %s", key)
        return self._persist(key, snapshot)

    def previous_comparisons(self) -> List[PreviousComparison]:
        """
        Other respondents' judgments of the current pair.

        Raises:
            PersistenceFailure: If the record store cannot be read
        """
        items = self.current_items
        if items is None:
            return []
        try:
            return self.record_store.find_by_key(*items)
        except PersistenceFailure:
            raise
        except Exception as e:
            raise PersistenceFailure(f"Failed to fetch previous comparisons: {e}") from e

    def wait_for_persistence(self, timeout: Optional[float] = None) -> bool:
        """Block until queued writes finish. Returns False on timeout."""
        return self.dispatcher.wait(timeout)

    def close(self) -> None:
        """Stop issuing writes; in-flight writes finish on their own."""
        self.dispatcher.shutdown(wait_for_pending=False)
