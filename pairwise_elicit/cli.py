#!/usr/bin/env python3
"""
Interactive terminal session for pairwise repository comparisons.

Usage:
    # Offline session against an in-memory store (invite code DEMO2024)
    pairwise-elicit

    # Persist to the configured Google Sheet
    pairwise-elicit --store sheets

    # Five pairs per round, write log scores to a file when finished
    pairwise-elicit --pairs-per-round 5 --export scores.json

Each pair asks which repository is more valuable, how many times more
valuable (1 to 999, up to two decimals) and why. After each round the
answers can be reviewed and edited before continuing or finishing.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

import gspread
from google.auth.exceptions import GoogleAuthError

from pairwise_elicit.catalog import Catalog, load_catalog
from pairwise_elicit.settings import load_session_config
from pairwise_elicit.errors import (
    IdentityRejected,
    InsufficientItems,
    InvalidInput,
    PersistenceFailure,
)
from pairwise_elicit.persistence import PersistenceDispatcher
from pairwise_elicit.record_store import BaseRecordStore, InMemoryRecordStore
from pairwise_elicit.response_models.judgment import Judgment
from pairwise_elicit.response_models.status import PersistenceStatus, SessionState
from pairwise_elicit.session_engine import SessionEngine
from pairwise_elicit.scoring import format_repo_name
from pairwise_elicit.validation import validate_respondent

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]

DEMO_INVITE_CODE = "DEMO2024"

STATUS_MARKERS = {
    PersistenceStatus.CONFIRMED: "✓",
    PersistenceStatus.UNCONFIRMED: "⏳",
    PersistenceStatus.FAILED: "❌",
}


def print_header(title: str):
    print("=" * 70)
    print(title)
    print("=" * 70)


def sign_in(engine: SessionEngine, input_fn: InputFn) -> bool:
    """Prompt for identity until the engine admits the respondent. False on quit."""
    while True:
        name = input_fn("\nName (or 'q' to quit): ").strip()
        if name.lower() == "q":
            return False
        email = input_fn("Email: ").strip()
        invite_code = input_fn("Invite code: ").strip()

        try:
            respondent = validate_respondent(name, email, invite_code)
            engine.start(respondent)
        except InvalidInput as e:
            print(f"⚠️  {e}")
            continue
        except IdentityRejected as e:
            print(f"❌ {e.reason}")
            continue
        except PersistenceFailure as e:
            print(f"❌ Could not check the invite code: {e}")
            continue

        print(f"\n✓ Welcome, {respondent.name}")
        return True


def show_previous_comparisons(engine: SessionEngine):
    """Print other evaluators' judgments of the current pair."""
    try:
        comparisons = engine.previous_comparisons()
    except PersistenceFailure as e:
        print(f"❌ {e}")
        return

    if not comparisons:
        print("\nNo previous evaluations for this pair yet")
        return

    print(f"\n{len(comparisons)} evaluation{'' if len(comparisons) == 1 else 's'} found")
    for index, comparison in enumerate(comparisons, 1):
        summary = comparison.summary()
        print(
            f"  Evaluator {index}: {summary['more_valuable_project']} rated "
            f"{summary['multiplier']:g}x more valuable than {summary['less_valuable_project']}"
        )
        if comparison.reasoning:
            print(f"    \"{comparison.reasoning}\"")


def answer_pair(engine: SessionEngine, input_fn: InputFn) -> str:
    """
    Collect one answer for the current pair.

    Returns:
        "submitted", "refreshed", "retry" (invalid input) or "quit"
    """
    item_a, item_b = engine.current_items
    draft = engine.draft

    print("\n" + "─" * 70)
    if engine.is_editing:
        print(f"EDITING ROUND {engine.round} JUDGMENT")
    else:
        print(f"ROUND {engine.round} - PAIR {engine.pair_index + 1}/{len(engine.pairs)}")
    print("─" * 70)
    print(f"  [1] {format_repo_name(item_a)}")
    print(f"  [2] {format_repo_name(item_b)}")

    print("\nOptions: [1]/[2] more valuable project", end="")
    if not engine.is_editing:
        print(", [r] refresh pairs", end="")
    print(", [o] others' evaluations, [q] quit")

    default_choice = f" [{draft.choice}]" if draft.choice else ""
    selection = input_fn(f"\nYour choice{default_choice}: ").strip().lower()
    if not selection and draft.choice:
        selection = str(draft.choice)

    if selection == "q":
        return "quit"
    if selection == "o":
        show_previous_comparisons(engine)
        return "retry"
    if selection == "r" and not engine.is_editing:
        engine.refresh_pairs()
        print("✓ Pairs refreshed")
        return "refreshed"

    choice = int(selection) if selection in ("1", "2") else None

    default_intensity = f" [{draft.intensity}]" if draft.intensity else ""
    intensity = input_fn(f"How many times more valuable? (1-999){default_intensity}: ").strip()
    intensity = intensity or draft.intensity

    default_reasoning = " (Enter keeps previous)" if draft.reasoning else ""
    reasoning = input_fn(f"Reasoning{default_reasoning}: ").strip() or draft.reasoning

    try:
        judgment = engine.submit(choice, intensity, reasoning)
    except InvalidInput as e:
        print(f"⚠️  {e}")
        return "retry"

    print(f"✓ Saved (log score {judgment.log_score:+.4f})")
    return "submitted"


def describe_judgment(judgment: Judgment) -> str:
    chosen = judgment.item_a if judgment.choice == 1 else judgment.item_b
    other = judgment.item_b if judgment.choice == 1 else judgment.item_a
    return (
        f"{format_repo_name(chosen)} is {judgment.intensity:g}x more valuable than "
        f"{format_repo_name(other)}"
    )


def review_round(engine: SessionEngine, input_fn: InputFn) -> str:
    """
    Show every judgment so far and ask what to do next.

    Returns:
        "edit", "retry", "continue", "finish", "invalid" or "quit"
    """
    judgments: List[Judgment] = engine.all_judgments()

    print("\n" + "=" * 70)
    print(f"ROUND {engine.round} COMPLETE - YOUR EVALUATIONS")
    print("=" * 70)
    for index, judgment in enumerate(judgments, 1):
        marker = STATUS_MARKERS[judgment.persistence]
        print(f"  {index:>2}. {marker} Round {judgment.round}: {describe_judgment(judgment)}")
        if judgment.persistence == PersistenceStatus.FAILED:
            print(f"      ❌ Not saved: {judgment.persistence_error}")

    print("\nOptions: [e N] edit, [t N] retry saving, [c] continue, [f] finish, [q] quit")
    command = input_fn("\nYour choice: ").strip().lower().split()
    if not command:
        return "invalid"

    action = command[0]
    if action in ("e", "t"):
        try:
            judgment = judgments[int(command[1]) - 1]
        except (IndexError, ValueError):
            print("⚠️  Give the number of a judgment, e.g. 'e 2'")
            return "invalid"
        if action == "e":
            engine.begin_edit(judgment.key)
            return "edit"
        try:
            engine.retry_persistence(judgment.key)
        except InvalidInput as e:
            print(f"⚠️  {e}")
            return "invalid"
        print("✓ Retrying")
        return "retry"
    if action == "c":
        engine.continue_to_next_round()
        return "continue"
    if action == "f":
        engine.finish()
        return "finish"
    if action == "q":
        return "quit"

    print("⚠️  Invalid option")
    return "invalid"


def run_session(engine: SessionEngine, input_fn: Optional[InputFn] = None) -> bool:
    """
    Drive a session from sign-in to finish.

    Args:
        engine: A fresh, unauthenticated engine
        input_fn: Prompt function, the builtin input() by default

    Returns:
        True if the respondent finished, False if they quit early
    """
    if input_fn is None:
        input_fn = input
    print_header("PAIRWISE REPOSITORY COMPARISON")
    print(f"{len(engine.items)} repositories, {engine.pairs_per_round} pairs per round")

    if not sign_in(engine, input_fn):
        return False

    while engine.state != SessionState.FINISHED:
        if engine.state in (SessionState.ROUND_IN_PROGRESS, SessionState.EDIT_IN_PROGRESS):
            outcome = answer_pair(engine, input_fn)
        else:
            outcome = review_round(engine, input_fn)
        if outcome == "quit":
            return False
    return True


def show_statistics(engine: SessionEngine):
    """Display session statistics."""
    stats = engine.get_statistics()
    print("\n📈 Statistics:")
    print(f"  Rounds:      {stats['rounds_started']}")
    print(f"  Judgments:   {stats['total_judgments']}")
    print(f"  ✓ Saved:     {stats['confirmed']}")
    if stats["unconfirmed"]:
        print(f"  ⏳ Pending:   {stats['unconfirmed']}")
    if stats["failed"]:
        print(f"  ❌ Failed:    {stats['failed']}")


def build_store(store: str, invite_codes: List[str]) -> BaseRecordStore:
    if store == "sheets":
        from pairwise_elicit.sheets.record_store import SheetsRecordStore
        return SheetsRecordStore.from_config()
    return InMemoryRecordStore(invite_codes=invite_codes)


def export_scores(engine: SessionEngine, path: Path):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(engine.export_scores(), f, indent=2)
    print(f"✓ Exported {len(engine.all_judgments())} log scores to {path}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Compare repositories pairwise and record log-scale judgments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--store", choices=["memory", "sheets"], default="memory",
                        help="Where judgments are persisted (default: memory)")
    parser.add_argument("--invite-code", action="append", dest="invite_codes",
                        help=f"Accepted invite code for the memory store (default: {DEMO_INVITE_CODE})")
    parser.add_argument("--pairs-per-round", type=int, help="Override pairs per round")
    parser.add_argument("--catalog", type=Path, help="Catalog YAML file")
    parser.add_argument("--config", type=Path, help="Session config YAML file")
    parser.add_argument("--export", type=Path, help="Write log scores as JSON when finished")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - [%(threadName)s] - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_session_config(args.config)
        catalog: Catalog = load_catalog(args.catalog or config.catalog_path)
        store = build_store(args.store, args.invite_codes or [DEMO_INVITE_CODE])
    except (FileNotFoundError, ValueError, InsufficientItems) as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        return 1
    except (gspread.exceptions.GSpreadException, GoogleAuthError) as e:
        print(f"\n✗ Error: Could not open the Google Sheet ({type(e).__name__}: {e})", file=sys.stderr)
        return 1

    pairs_per_round = args.pairs_per_round or config.pairs_per_round
    engine = SessionEngine(
        catalog,
        store,
        pairs_per_round=pairs_per_round,
        dispatcher=PersistenceDispatcher(max_workers=config.max_workers),
    )

    try:
        finished = run_session(engine)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.")
        finished = False
    except InsufficientItems as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        return 1

    print("\nWaiting for answers to finish saving...")
    if not engine.wait_for_persistence(timeout=30):
        print("⚠️  Some answers are still saving")

    show_statistics(engine)
    for judgment in engine.failed_judgments():
        print(f"  ❌ Round {judgment.round}: {describe_judgment(judgment)} - {judgment.persistence_error}")
    if engine.submission_error:
        print(f"  ❌ Submission not recorded: {engine.submission_error}")

    if finished and args.export:
        export_scores(engine, args.export)

    engine.close()
    return 0 if finished else 2


if __name__ == "__main__":
    sys.exit(main())
