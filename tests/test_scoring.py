"""
Tests for the preference-to-score transform in pairwise_elicit/scoring.py
"""

import math
import sys

import pytest

from pairwise_elicit.scoring import (
    comparison_result,
    format_repo_name,
    log_multiplier,
    normalize_choice,
    process_comparison_results,
)

MIN_SUBNORMAL = 5e-324
MIN_NORMAL = sys.float_info.min
MAX_FLOAT = sys.float_info.max


class TestLogMultiplier:
    """Tests for log_multiplier on valid inputs."""
    
    def test_first_choice_is_negative_log(self):
        """Choosing item A gives -ln(m)"""
        assert log_multiplier(1, 2) == -0.6931471805599453
    
    def test_second_choice_is_positive_log(self):
        """Choosing item B gives ln(m)"""
        assert log_multiplier(2, 2) == 0.6931471805599453
    
    def test_decimal_multiplier(self):
        assert log_multiplier(1, 1.5) == pytest.approx(-0.4054651081081644)
    
    def test_multiplier_of_one_is_zero(self):
        """Equal value scores zero either way"""
        assert log_multiplier(1, 1) == 0
        assert log_multiplier(2, 1) == 0
    
    @pytest.mark.parametrize("multiplier", [100, 999, 99.5, 999.99, 45.67])
    def test_matches_natural_log(self, multiplier):
        assert log_multiplier(2, multiplier) == math.log(multiplier)
        assert log_multiplier(1, multiplier) == -math.log(multiplier)
    
    def test_smallest_subnormal(self):
        """The smallest positive float still gives a finite score"""
        result = log_multiplier(2, MIN_SUBNORMAL)
        assert math.isfinite(result)
        assert result == pytest.approx(-744.4400719213812)
    
    def test_largest_float(self):
        """The largest finite float still gives a finite score"""
        result = log_multiplier(2, MAX_FLOAT)
        assert math.isfinite(result)
        assert result == pytest.approx(709.782712893384)
    
    def test_integer_beyond_float_range(self):
        """Integers too large for a float are still scored, not rejected"""
        huge = 10 ** 400
        assert log_multiplier(2, huge) == pytest.approx(400 * math.log(10))
        assert log_multiplier(1, huge) == -log_multiplier(2, huge)

    def test_values_just_above_one(self):
        """Precision is kept for multipliers close to 1"""
        m = 1 + sys.float_info.epsilon
        assert abs(log_multiplier(1, m) - (-math.log(m))) < sys.float_info.epsilon
    
    @pytest.mark.parametrize("multiplier", [
        1.5, 10, 100, 999, MIN_SUBNORMAL, MIN_NORMAL, MAX_FLOAT,
    ])
    def test_symmetry(self, multiplier):
        """log_multiplier(1, m) == -log_multiplier(2, m) exactly"""
        assert log_multiplier(1, multiplier) == -log_multiplier(2, multiplier)


class TestLogMultiplierInvalid:
    """Invalid inputs produce NaN."""
    
    @pytest.mark.parametrize("choice", [0, 3, -1, 1.5, "1", None, True])
    def test_invalid_choice(self, choice):
        assert math.isnan(log_multiplier(choice, 2))
    
    @pytest.mark.parametrize("multiplier", [
        0, -1, -500, math.nan, math.inf, -math.inf, "abc", None,
    ])
    def test_invalid_multiplier(self, multiplier):
        assert math.isnan(log_multiplier(1, multiplier))
    
    def test_out_of_form_range_is_still_scored(self):
        """The transform itself does not enforce the 1-999 form range"""
        assert not math.isnan(log_multiplier(1, 1000))


class TestProcessComparisonResults:
    """Tests for the downstream ranking export."""
    
    def test_processes_mappings(self):
        comparisons = [
            {"item_a_index": 0, "item_b_index": 1, "choice": 1, "intensity": 2},
            {"item_a_index": 2, "item_b_index": 3, "choice": 2, "intensity": 3},
        ]
        assert process_comparison_results(comparisons) == [
            {"item_a_index": 0, "item_b_index": 1, "log_multiplier": -0.6931471805599453},
            {"item_a_index": 2, "item_b_index": 3, "log_multiplier": 1.0986122886681098},
        ]
    
    def test_empty_input(self):
        assert process_comparison_results([]) == []


class TestComparisonResult:
    """Tests for describing a judgment as more/less valuable projects."""
    
    @pytest.mark.parametrize("choice", [1, "1", "A"])
    def test_first_item_chosen(self, choice):
        result = comparison_result("ethereum/go-ethereum", "grandinetech/grandine", choice, 140)
        assert result == {
            "more_valuable_project": "ethereum/go-ethereum",
            "less_valuable_project": "grandinetech/grandine",
            "multiplier": 140,
        }
    
    @pytest.mark.parametrize("choice", [2, "2", "B"])
    def test_second_item_chosen(self, choice):
        result = comparison_result("ethereum/go-ethereum", "grandinetech/grandine", choice, 140)
        assert result["more_valuable_project"] == "grandinetech/grandine"
        assert result["less_valuable_project"] == "ethereum/go-ethereum"
    
    def test_normalize_choice(self):
        assert normalize_choice("A") == 1
        assert normalize_choice("B") == 2
        assert normalize_choice("2") == 2


class TestFormatRepoName:
    """Tests for shortening repository URLs."""
    
    def test_removes_github_prefix(self):
        assert format_repo_name("https://github.com/user/repo") == "user/repo"
    
    def test_handles_urls_without_scheme(self):
        assert format_repo_name("github.com/user/repo") == "user/repo"
    
    def test_leaves_other_names_alone(self):
        assert format_repo_name("user/repo") == "user/repo"
