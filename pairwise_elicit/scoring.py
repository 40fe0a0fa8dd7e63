"""
Preference-to-score transform and helpers for downstream ranking.

A judgment "item B is m times better than item A" becomes ln(m); the same
magnitude in favor of item A becomes -ln(m). Invalid inputs yield NaN.
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Union

GITHUB_PREFIX = "github.com/"


def _is_real(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def log_multiplier(choice: Any, multiplier: Any) -> float:
    """
    Calculate the signed log score for a choice and an intensity multiplier.
    
    Args:
        choice: 1 for the first item, 2 for the second item
        multiplier: How many times more valuable the chosen item is (positive)
        
    Returns:
        -ln(multiplier) for choice 1, ln(multiplier) for choice 2, and NaN if
        the choice is not exactly 1 or 2 or the multiplier is not a positive
        finite number. Works across the whole positive float range, including
        subnormals.
    """
    if not _is_real(choice) or choice not in (1, 2):
        return math.nan
    if not _is_real(multiplier):
        return math.nan
    # Ints are exact and may exceed the float range; math.log handles them
    if isinstance(multiplier, float) and not math.isfinite(multiplier):
        return math.nan
    if multiplier <= 0:
        return math.nan
    
    log_value = math.log(multiplier)
    return log_value if choice == 2 else -log_value


def _field(row: Union[Mapping[str, Any], Any], name: str) -> Any:
    if isinstance(row, Mapping):
        return row[name]
    return getattr(row, name)


def process_comparison_results(comparisons: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Turn judgments into the rows a rank aggregation model consumes.
    
    Each comparison may be a Judgment or a mapping with item_a_index,
    item_b_index, choice and intensity.
    """
    results = []
    for comparison in comparisons:
        results.append({
            "item_a_index": _field(comparison, "item_a_index"),
            "item_b_index": _field(comparison, "item_b_index"),
            "log_multiplier": log_multiplier(
                _field(comparison, "choice"), _field(comparison, "intensity")
            ),
        })
    return results


def normalize_choice(choice: Union[int, str]) -> int:
    """Map "A"/"B", "1"/"2" and 1/2 onto 1/2."""
    if choice == "A":
        return 1
    if choice == "B":
        return 2
    return int(choice)


def comparison_result(
    item_a_name: str,
    item_b_name: str,
    choice: Union[int, str],
    multiplier: float,
) -> Dict[str, Any]:
    """Describe a judgment as which project is more valuable than which."""
    first_chosen = normalize_choice(choice) == 1
    return {
        "more_valuable_project": item_a_name if first_chosen else item_b_name,
        "less_valuable_project": item_b_name if first_chosen else item_a_name,
        "multiplier": multiplier,
    }


def format_repo_name(repo_url: str) -> str:
    """Shorten a GitHub repository URL to owner/name."""
    name = repo_url
    if name.startswith("https://"):
        name = name[len("https://"):]
    if name.startswith(GITHUB_PREFIX):
        name = name[len(GITHUB_PREFIX):]
    return name
