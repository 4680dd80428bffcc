from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from clubpos.money import to_decimal
from clubpos.time_utils import parse_iso_date


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., day already closed)."""


PHONE_PATTERN = re.compile(r"^[+\-\d\s()]{10,}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a single predicate.

    Predicates never raise; callers decide whether a failure rejects the
    operation (raise_for_error) or is shown inline.
    """
    valid: bool
    error: Optional[str] = None

    def raise_for_error(self) -> None:
        if not self.valid:
            raise ValidationError(self.error or "Invalid value")

    def to_dict(self) -> dict:
        data: dict = {"valid": self.valid}
        if self.error is not None:
            data["error"] = self.error
        return data


OK = ValidationResult(valid=True)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(valid=False, error=message)


def _as_number(value: Any) -> Optional[Decimal]:
    """Decimal for numeric input, None for anything that is not a finite number."""
    if value is None:
        return None
    try:
        number = to_decimal(value)
    except (TypeError, ValueError, InvalidOperation):
        return None
    if not number.is_finite():
        return None
    return number


def validate_positive_number(value: Any, field_name: str = "Value") -> ValidationResult:
    """Quantity, price, rate: must be > 0."""
    number = _as_number(value)
    if number is None:
        return _fail(f"{field_name} must be a number")
    if number <= 0:
        return _fail(f"{field_name} must be greater than zero")
    return OK


def validate_non_negative_number(value: Any, field_name: str = "Value") -> ValidationResult:
    """Discounts and counted amounts can be 0."""
    number = _as_number(value)
    if number is None:
        return _fail(f"{field_name} must be a number")
    if number < 0:
        return _fail(f"{field_name} cannot be negative")
    return OK


def validate_non_empty_string(value: Any, field_name: str = "Field") -> ValidationResult:
    if not isinstance(value, str) or not value.strip():
        return _fail(f"{field_name} cannot be empty")
    return OK


def validate_percentage(value: Any) -> ValidationResult:
    number = _as_number(value)
    if number is None:
        return _fail("Percentage must be a number")
    if number < 0 or number > 100:
        return _fail("Percentage must be between 0 and 100")
    return OK


def validate_discount_amount(discount: Any, subtotal: Any) -> ValidationResult:
    """Fixed discount: non-negative and never more than the subtotal."""
    result = validate_non_negative_number(discount, "Discount")
    if not result.valid:
        return result

    subtotal_value = to_decimal(subtotal)
    if to_decimal(discount) > subtotal_value:
        return _fail(f"Discount cannot exceed subtotal ({subtotal_value:.2f})")
    return OK


def validate_phone_number(phone: Optional[str]) -> ValidationResult:
    if not phone or not phone.strip():
        return OK  # Phone is optional

    if not PHONE_PATTERN.match(phone.strip()):
        return _fail(
            "Phone number must be at least 10 digits and contain only numbers, spaces, +, -, ()"
        )
    return OK


def validate_email(email: Optional[str]) -> ValidationResult:
    if not email or not email.strip():
        return OK  # Email is optional

    if not EMAIL_PATTERN.match(email.strip()):
        return _fail("Invalid email format")
    return OK


def validate_customer(name: Any, phone: Optional[str] = None, email: Optional[str] = None) -> ValidationResult:
    for result in (
        validate_non_empty_string(name, "Customer name"),
        validate_phone_number(phone),
        validate_email(email),
    ):
        if not result.valid:
            return result
    return OK


def validate_iso_date(value: Any, field_name: str = "date") -> ValidationResult:
    if not isinstance(value, str):
        return _fail(f"{field_name} must be a YYYY-MM-DD string")
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        return _fail(f"{field_name} must be a YYYY-MM-DD string")
    return OK


def sanitize_string(value: str) -> str:
    """Trim whitespace and drop angle brackets."""
    return value.strip().replace("<", "").replace(">", "")


def normalize_phone_number(phone: str) -> str:
    return re.sub(r"[\s\-()]", "", phone)
