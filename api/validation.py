"""
Input Validation
----------------
Format checks run before any request is rate limited or sent.

Each check returns a ValidationOutcome and never raises. Turning an
Invalid outcome into an error is a separate step (ensure_valid) done at
the call boundary.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import re

from core.errors import ValidationError


MIN_TOKEN_LENGTH = 32
MAX_TOKEN_LENGTH = 2048

# Dot-separated multi-part tokens (JWT) are allowed
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_\-=.]+$")
CUSTOMER_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]{4,128}$")
ORDER_ID_PATTERN = re.compile(r"^[0-9]+$")
POSTAL_CODE_PATTERN = re.compile(r"^[0-9]{5}$")


class RecommendationType(str, Enum):
    """Recommendation lists offered by the API."""
    PRECISION = "precision"  # What I buy most
    RECALL = "recall"        # I also buy


@dataclass(frozen=True)
class Valid:
    is_valid = True
    error_message = None


@dataclass(frozen=True)
class Invalid:
    reason: str
    is_valid = False

    @property
    def error_message(self) -> str:
        return self.reason


ValidationOutcome = Union[Valid, Invalid]

VALID = Valid()


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_token(token: Optional[str]) -> ValidationOutcome:
    if _blank(token):
        return Invalid("Token cannot be empty")
    if len(token) < MIN_TOKEN_LENGTH:
        return Invalid(f"Token is too short (minimum {MIN_TOKEN_LENGTH} characters)")
    if len(token) > MAX_TOKEN_LENGTH:
        return Invalid("Token is too long")
    if not TOKEN_PATTERN.fullmatch(token):
        return Invalid("Token contains invalid characters")
    return VALID


def validate_customer_id(customer_id: Optional[str]) -> ValidationOutcome:
    if _blank(customer_id):
        return Invalid("Customer ID cannot be empty")
    if not CUSTOMER_ID_PATTERN.fullmatch(customer_id):
        return Invalid("Customer ID must be 4-128 letters, digits or dashes")
    return VALID


def validate_order_id(order_id: Optional[str]) -> ValidationOutcome:
    if _blank(order_id):
        return Invalid("Order ID cannot be empty")
    if not ORDER_ID_PATTERN.fullmatch(order_id):
        return Invalid("Order ID must be numeric")
    return VALID


def validate_postal_code(postal_code: Optional[str]) -> ValidationOutcome:
    if _blank(postal_code):
        return Invalid("Postal code cannot be empty")
    if not POSTAL_CODE_PATTERN.fullmatch(postal_code):
        return Invalid("Postal code must be 5 digits")
    return VALID


def validate_recommendation_type(rec_type: Optional[str]) -> ValidationOutcome:
    allowed = [t.value for t in RecommendationType]
    if _blank(rec_type):
        return Invalid("Recommendation type cannot be empty")
    if rec_type not in allowed:
        return Invalid(f"Recommendation type must be one of: {', '.join(allowed)}")
    return VALID


def ensure_valid(outcome: ValidationOutcome, field_name: str) -> None:
    """
    Raise ValidationError (HTTP-like code 400) for an Invalid outcome.

    The message names the offending field.
    """
    if isinstance(outcome, Invalid):
        raise ValidationError(
            f"Validation failed for {field_name}: {outcome.reason}",
            field_name=field_name,
        )


class Validator:
    """
    Groups the input checks so they can be injected into the API client.
    """

    def token(self, value: Optional[str]) -> ValidationOutcome:
        return validate_token(value)

    def customer_id(self, value: Optional[str]) -> ValidationOutcome:
        return validate_customer_id(value)

    def order_id(self, value: Optional[str]) -> ValidationOutcome:
        return validate_order_id(value)

    def postal_code(self, value: Optional[str]) -> ValidationOutcome:
        return validate_postal_code(value)

    def recommendation_type(self, value: Optional[str]) -> ValidationOutcome:
        return validate_recommendation_type(value)
