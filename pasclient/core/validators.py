"""Input validation helpers for request arguments."""
from __future__ import annotations
from typing import Optional

from .exceptions import PASValidationError


def require_non_empty(value: Optional[str], field: str) -> str:
    """Ensure a required string argument was supplied.

    Args:
        value: Raw argument value
        field: Field name for error messages (e.g., "username")

    Returns:
        The value, unchanged

    Raises:
        PASValidationError: If value is None or empty
    """
    if not value:
        raise PASValidationError(f"{field} is required")
    return value

