"""
Swap Adapter Validation and Hardening

Input validation and invariant enforcement shared by the adapter and its
reference collaborators:

1. Address and unsigned-integer validation with sanitization
2. Zero-custody balance invariants checked around every swap

Guarantees:
    - Addresses leave validation lowercased and 0x-prefixed
    - Amounts are checked against their declared bit width
    - A custody check failure aborts the enclosing atomic block

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional


# =============================================================================
# VALIDATION ERROR TYPES
# =============================================================================

class ValidationError(Exception):
    """A single field failed validation."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class ValidationErrors(Exception):
    """One or more fields failed validation."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        messages = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Validation failed: {messages}")


class InvariantViolation(Exception):
    """Custody or balance invariant violated."""
    pass


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Outcome of validating one value, with its sanitized form."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise ValidationErrors if validation failed."""
        if not self.is_valid:
            raise ValidationErrors(self.errors)

    @classmethod
    def success(cls, sanitized_value: Any = None) -> 'ValidationResult':
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> 'ValidationResult':
        return cls(is_valid=False, errors=errors)


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Address and integer validators."""

    HEX40_PATTERN = re.compile(r'^0x[a-f0-9]{40}$')

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> ValidationResult:
        """Validate an EVM-style address and normalise it to lowercase."""
        if not isinstance(value, str):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected string, got {type(value).__name__}", value)
            ])

        lower = value.strip().replace('\x00', '').lower()
        if not cls.HEX40_PATTERN.match(lower):
            return ValidationResult.failure([
                ValidationError(field_name, "Must be valid address (0x + 40 hex)", value)
            ])

        return ValidationResult.success(lower)

    @classmethod
    def validate_uint(
        cls,
        value: Any,
        field_name: str = "value",
        bits: int = 256,
    ) -> ValidationResult:
        """Validate a non-negative integer that fits in ``bits`` bits."""
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected int, got {type(value).__name__}", value)
            ])

        errors = []
        if value < 0:
            errors.append(ValidationError(field_name, "Cannot be negative", value))
        elif value >> bits:
            errors.append(ValidationError(field_name, f"Does not fit in uint{bits}", value))

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(value)


def normalize_address(value: Any, field_name: str = "address") -> str:
    """Validate ``value`` as an address and return its lowercase form."""
    result = Validators.validate_address(value, field_name)
    result.raise_if_invalid()
    return result.sanitized_value


# =============================================================================
# CUSTODY INVARIANTS
# =============================================================================

class InvariantChecker:
    """Enforces balance invariants around adapter calls."""

    @staticmethod
    def check_balance_delta(
        before: Mapping[str, int],
        after: Mapping[str, int],
        expected_delta: Optional[Mapping[str, int]] = None,
    ) -> None:
        """
        Ensure every tracked balance moved by exactly its expected delta.

        Balances absent from ``expected_delta`` must be unchanged.
        """
        expected_delta = expected_delta or {}
        for key in sorted(set(before) | set(after)):
            old = before.get(key, 0)
            new = after.get(key, 0)
            want = expected_delta.get(key, 0)
            if new - old != want:
                raise InvariantViolation(
                    f"{key} balance moved by {new - old}, expected {want} "
                    f"(before {old}, after {new})"
                )
