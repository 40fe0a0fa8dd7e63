"""
Tests for answer and sign-in validation in pairwise_elicit/validation.py

Tests are organized into three sections:
1. Intensity strings accepted and rejected by the answer form
2. Full answer validation (choice, intensity, reasoning)
3. Respondent sign-in validation
"""

import pytest

from pairwise_elicit.errors import InvalidInput
from pairwise_elicit.validation import (
    is_valid_intensity,
    parse_intensity,
    validate_answer,
    validate_respondent,
)


# =============================================================================
# Intensity strings
# =============================================================================

class TestIntensityAccepted:
    """Intensity strings the form admits."""
    
    @pytest.mark.parametrize("value,expected", [
        ("1", 1.0),
        ("1.5", 1.5),
        ("10.25", 10.25),
        ("1.23", 1.23),
        ("10.05", 10.05),
        ("999", 999.0),
        ("999.00", 999.0),
        ("001", 1.0),
        ("42.1", 42.1),
    ])
    def test_valid_intensities(self, value, expected):
        assert is_valid_intensity(value)
        assert parse_intensity(value) == expected
    
    def test_trailing_point_is_accepted(self):
        """'1.' has an empty fractional part and still parses as 1"""
        assert parse_intensity("1.") == 1.0


class TestIntensityRejected:
    """Intensity strings the form refuses."""
    
    @pytest.mark.parametrize("value", [
        "",        # empty
        ".",       # no digits
        ".5",      # below 1
        "0",       # below 1
        "0.99",    # below 1
        "1000",    # above 999
        "999.01",  # above 999
        "999.99",  # above 999
        "1.234",   # three decimals
        "5.234",
        "1.2.3",   # several decimal points
        "1/2",     # fraction
        "10e2",    # scientific notation
        "1e3",
        " 123 ",   # whitespace
        "-5",      # sign
        "+5",
        "abc",
        "1,5",     # comma decimal separator
        "1,000",   # thousands separator
        "inf",
        "nan",
    ])
    def test_invalid_intensities(self, value):
        assert not is_valid_intensity(value)
        assert parse_intensity(value) is None
    
    @pytest.mark.parametrize("value", [None, 5, 5.0])
    def test_non_strings_are_rejected(self, value):
        """Only raw strings from the form are validated"""
        assert not is_valid_intensity(value)


# =============================================================================
# Full answer validation
# =============================================================================

class TestValidateAnswer:
    """Tests for validate_answer."""
    
    def test_valid_answer(self):
        assert validate_answer(2, "5", "  more users  ") == (2, 5.0, "more users")
    
    @pytest.mark.parametrize("choice", [None, 0, 3, "1", True])
    def test_missing_or_bad_choice(self, choice):
        with pytest.raises(InvalidInput) as exc_info:
            validate_answer(choice, "5", "reason")
        assert exc_info.value.field == "choice"
    
    def test_bad_intensity(self):
        with pytest.raises(InvalidInput) as exc_info:
            validate_answer(1, "1000", "reason")
        assert exc_info.value.field == "intensity"
    
    @pytest.mark.parametrize("reasoning", ["", "   ", "\n\t", None])
    def test_empty_reasoning(self, reasoning):
        with pytest.raises(InvalidInput) as exc_info:
            validate_answer(1, "5", reasoning)
        assert exc_info.value.field == "reasoning"
    
    def test_choice_checked_before_intensity(self):
        """The first failing field is reported"""
        with pytest.raises(InvalidInput) as exc_info:
            validate_answer(None, "", "")
        assert exc_info.value.field == "choice"


# =============================================================================
# Respondent validation
# =============================================================================

class TestValidateRespondent:
    """Tests for the sign-in form."""
    
    def test_valid_respondent_is_stripped(self):
        respondent = validate_respondent(" Ada ", " ada@example.com ", " CODE1 ")
        assert respondent.name == "Ada"
        assert respondent.email == "ada@example.com"
        assert respondent.invite_code == "CODE1"
    
    @pytest.mark.parametrize("name,email,code,field", [
        ("", "ada@example.com", "CODE1", "name"),
        ("Ada", "ada@example.com", "  ", "invite_code"),
        ("Ada", "ada@example.com", None, "invite_code"),
    ])
    def test_missing_fields(self, name, email, code, field):
        with pytest.raises(InvalidInput) as exc_info:
            validate_respondent(name, email, code)
        assert exc_info.value.field == field
        assert str(exc_info.value) == "All fields are required"
    
    @pytest.mark.parametrize("email", ["ada", "ada@example", "ada @example.com", "@example.com"])
    def test_invalid_email(self, email):
        with pytest.raises(InvalidInput) as exc_info:
            validate_respondent("Ada", email, "CODE1")
        assert exc_info.value.field == "email"
        assert str(exc_info.value).startswith("Invalid email format")
