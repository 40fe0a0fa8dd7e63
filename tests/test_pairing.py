"""
Tests for the pair sampler in pairwise_elicit/pairing.py

Tests are organized into three sections:
1. Structural guarantees (count, uniqueness, distinct items)
2. Failure modes (too few items, too many pairs requested)
3. Statistical fairness over many single-pair draws
"""

import math
from collections import Counter
from itertools import combinations

import pytest

from pairwise_elicit.errors import InsufficientItems
from pairwise_elicit.pairing import (
    generate_index_pairs,
    generate_pairs,
    pair_key,
    total_pairs,
)

ITEMS = ["A", "B", "C", "D"]


# =============================================================================
# Structural guarantees
# =============================================================================

class TestPairKey:
    """Tests for the order-insensitive pair key."""
    
    def test_key_ignores_order(self):
        """(x, y) and (y, x) share a key"""
        assert pair_key(3, 1) == pair_key(1, 3) == (1, 3)
    
    def test_total_pairs(self):
        """C(n, 2) unordered pairs"""
        assert total_pairs(2) == 1
        assert total_pairs(4) == 6
        assert total_pairs(20) == 190


class TestGeneratePairs:
    """Tests for generate_pairs over item lists."""
    
    def test_generates_requested_number_of_pairs(self):
        """Exactly `count` pairs come back"""
        assert len(generate_pairs(ITEMS, 3)) == 3
    
    def test_default_count_is_three(self):
        """Without a count, a round has three pairs"""
        assert len(generate_pairs(ITEMS)) == 3
    
    def test_pairs_are_unique_regardless_of_order(self):
        """No pair repeats, in either orientation"""
        pairs = generate_pairs(ITEMS, 6)
        keys = {frozenset(pair) for pair in pairs}
        assert len(keys) == len(pairs)
    
    def test_never_pairs_an_item_with_itself(self):
        """Both items of a pair are distinct"""
        for _ in range(50):
            for item_a, item_b in generate_pairs(ITEMS, 3):
                assert item_a != item_b
    
    def test_uses_catalog_items(self):
        """Every item comes from the input list"""
        for item_a, item_b in generate_pairs(ITEMS, 3):
            assert item_a in ITEMS
            assert item_b in ITEMS
    
    def test_two_items_yield_the_only_pair(self):
        """With N=2 the single pair is returned"""
        (pair,) = generate_pairs(["x", "y"], 1)
        assert set(pair) == {"x", "y"}
    
    @pytest.mark.parametrize("n", [2, 3, 5, 8])
    def test_can_exhaust_all_pairs(self, n):
        """Asking for C(N, 2) pairs returns every pair once"""
        pairs = generate_index_pairs(n, total_pairs(n))
        assert {pair_key(a, b) for a, b in pairs} == set(combinations(range(n), 2))
    
    def test_zero_pairs(self):
        """count=0 is an empty round"""
        assert generate_index_pairs(5, 0) == []


class TestExclusions:
    """Tests for drawing around pairs that are already taken."""
    
    def test_excluded_pairs_are_never_drawn(self):
        """Excluded keys never appear, in either orientation"""
        exclude = [(0, 1), (2, 1)]
        for _ in range(50):
            pairs = generate_index_pairs(4, 4, exclude=exclude)
            keys = {pair_key(a, b) for a, b in pairs}
            assert (0, 1) not in keys
            assert (1, 2) not in keys
    
    def test_fills_exactly_the_remaining_pairs(self):
        """Excluding all but k pairs and asking for k returns exactly those"""
        exclude = [(0, 1), (0, 2), (0, 3)]
        pairs = generate_index_pairs(4, 3, exclude=exclude)
        assert {pair_key(a, b) for a, b in pairs} == {(1, 2), (1, 3), (2, 3)}


# =============================================================================
# Failure modes
# =============================================================================

class TestInsufficientItems:
    """Tests for catalogs that cannot supply the pairs."""
    
    @pytest.mark.parametrize("items", [[], ["only"]])
    def test_fewer_than_two_items(self, items):
        """N < 2 fails with InsufficientItems"""
        with pytest.raises(InsufficientItems):
            generate_pairs(items, 1)
    
    def test_more_pairs_than_exist(self):
        """Asking for more than C(N, 2) pairs fails instead of looping"""
        with pytest.raises(InsufficientItems):
            generate_pairs(["a", "b", "c"], 4)
    
    def test_more_pairs_than_remain_after_exclusion(self):
        """Exclusions count against the available pairs"""
        with pytest.raises(InsufficientItems):
            generate_index_pairs(3, 2, exclude=[(0, 1), (1, 2)])


# =============================================================================
# Statistical fairness
# =============================================================================

class TestUniformity:
    """Repeated single-pair draws cover every pair at the uniform rate."""
    
    TRIALS = 10_000
    N = 5
    
    @pytest.fixture(scope="class")
    def counts(self):
        counter = Counter()
        for _ in range(self.TRIALS):
            (pair,) = generate_index_pairs(self.N, 1)
            counter[pair_key(*pair)] += 1
        return counter
    
    def test_every_pair_appears(self, counts):
        """All C(N, 2) unordered pairs show up"""
        assert set(counts) == set(combinations(range(self.N), 2))
    
    def test_frequencies_match_uniform_expectation(self, counts):
        """Per-pair counts stay near TRIALS / C(N, 2)
        
        Each count is binomial; with 10 pairs a single 3-sigma excursion
        happens a few percent of the time by chance, so at most one pair may
        fall outside 3 sigma and none may fall outside 4 sigma.
        """
        p = 1 / total_pairs(self.N)
        expected = self.TRIALS * p
        sigma = math.sqrt(self.TRIALS * p * (1 - p))
        
        deviations = [abs(count - expected) / sigma for count in counts.values()]
        assert max(deviations) < 4
        assert sum(1 for d in deviations if d > 3) <= 1
    
    def test_both_orientations_occur(self):
        """The order inside a pair is random too"""
        orientations = Counter()
        for _ in range(2_000):
            (pair,) = generate_index_pairs(2, 1)
            orientations[pair] += 1
        assert set(orientations) == {(0, 1), (1, 0)}
