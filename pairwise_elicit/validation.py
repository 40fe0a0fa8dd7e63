"""
Input validation for the answer form and the sign-in form.

Intensities arrive as raw strings from the presentation layer and are
accepted only in plain decimal notation with at most two fractional
digits, inside [MIN_INTENSITY, MAX_INTENSITY].
"""

import re
from typing import Optional, Tuple

from pydantic import ValidationError

from pairwise_elicit.errors import InvalidInput
from pairwise_elicit.response_models.session import Respondent

MIN_INTENSITY = 1
MAX_INTENSITY = 999

# Optional integer part, optional point, up to two fractional digits.
# "1." is accepted on purpose; ".5" passes the pattern but fails the range.
INTENSITY_PATTERN = re.compile(r"[0-9]*\.?[0-9]{0,2}")


def parse_intensity(value: str) -> Optional[float]:
    """Return the numeric intensity for an admissible string, else None."""
    if not isinstance(value, str) or not INTENSITY_PATTERN.fullmatch(value):
        return None
    try:
        number = float(value)
    except ValueError:
        # "" and "." match the pattern but are not numbers
        return None
    if not MIN_INTENSITY <= number <= MAX_INTENSITY:
        return None
    return number


def is_valid_intensity(value: str) -> bool:
    """Check whether an intensity string is admissible."""
    return parse_intensity(value) is not None


def validate_answer(choice, intensity: str, reasoning: str) -> Tuple[int, float, str]:
    """
    Validate a full answer for one pair.
    
    Returns:
        (choice, intensity, reasoning) with intensity parsed and reasoning stripped
        
    Raises:
        InvalidInput: Naming the first field that failed
    """
    if isinstance(choice, bool) or choice not in (1, 2):
        raise InvalidInput("Select which project is more valuable", field="choice")
    
    number = parse_intensity(intensity)
    if number is None:
        raise InvalidInput(
            f"Enter a number between {MIN_INTENSITY} and {MAX_INTENSITY} "
            "with at most two decimal places",
            field="intensity",
        )
    
    if reasoning is None or not reasoning.strip():
        raise InvalidInput("Reasoning is required", field="reasoning")
    
    return int(choice), number, reasoning.strip()


def validate_respondent(name: str, email: str, invite_code: str) -> Respondent:
    """
    Build a Respondent from sign-in form values.
    
    Raises:
        InvalidInput: If a field is missing or the email is malformed
    """
    try:
        return Respondent(name=name or "", email=email or "", invite_code=invite_code or "")
    except ValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        message = first["msg"].removeprefix("Value error, ")
        raise InvalidInput(message, field=field) from e
