"""
Pair Sampler

Draws comparison pairs from a fixed catalog without replacement within a
round. Every unordered pair is equally likely on each draw; indices come
from the operating system's CSPRNG via `secrets`.
"""

import logging
import secrets
from typing import Iterable, List, Sequence, Set, Tuple, TypeVar

from pairwise_elicit.errors import InsufficientItems

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAIR_COUNT = 3


def pair_key(index_a: int, index_b: int) -> Tuple[int, int]:
    """Order-insensitive key for a pair of indices: (x, y) and (y, x) collide."""
    return (index_a, index_b) if index_a <= index_b else (index_b, index_a)


def total_pairs(n: int) -> int:
    """Number of unordered pairs of distinct items among n items."""
    return n * (n - 1) // 2


def _random_index_pair(n: int) -> Tuple[int, int]:
    """Draw two distinct indices in [0, n), each uniformly at random."""
    first = secrets.randbelow(n)
    second = secrets.randbelow(n)
    while second == first:
        second = secrets.randbelow(n)
    return first, second


def generate_index_pairs(
    n: int,
    count: int = DEFAULT_PAIR_COUNT,
    exclude: Iterable[Tuple[int, int]] = (),
) -> List[Tuple[int, int]]:
    """
    Draw `count` distinct index pairs over a catalog of `n` items.
    
    Rejection sampling: draw a random ordered pair, normalize it with
    `pair_key` and retry if that key is already taken or excluded. Each
    accepted pair is uniform over the keys still available.
    
    Args:
        n: Catalog size
        count: Number of pairs to return
        exclude: Unordered keys (as produced by `pair_key`) that must not be drawn
        
    Returns:
        List of (index_a, index_b) tuples in the order they were drawn.
        The order inside each tuple is random.
        
    Raises:
        InsufficientItems: If n < 2 or fewer than `count` pairs are available
    """
    if n < 2:
        raise InsufficientItems("Need at least 2 items to generate pairs")
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    
    taken: Set[Tuple[int, int]] = {pair_key(a, b) for a, b in exclude}
    available = total_pairs(n) - len(taken)
    if count > available:
        raise InsufficientItems(
            f"Requested {count} pairs but only {available} unused pairs remain "
            f"among {n} items"
        )
    
    pairs: List[Tuple[int, int]] = []
    attempts = 0
    while len(pairs) < count:
        attempts += 1
        index_a, index_b = _random_index_pair(n)
        key = pair_key(index_a, index_b)
        if key in taken:
            continue
        taken.add(key)
        pairs.append((index_a, index_b))
    
    logger.debug("Drew %d pairs over %d items in %d attempts", count, n, attempts)
    return pairs


def generate_pairs(items: Sequence[T], count: int = DEFAULT_PAIR_COUNT) -> List[Tuple[T, T]]:
    """
    Generate random, non-repeating pairs of items for pairwise comparison.
    
    Items are assumed to be distinct (the catalog enforces this), so two
    pairs are duplicates exactly when they share the same two positions.
    
    Args:
        items: The items to compare
        count: Number of pairs to generate
        
    Returns:
        List of (item_a, item_b) tuples
        
    Raises:
        InsufficientItems: If fewer than 2 items are given
    """
    index_pairs = generate_index_pairs(len(items), count)
    return [(items[a], items[b]) for a, b in index_pairs]
