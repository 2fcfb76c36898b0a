"""Model-level validation utilities for data integrity.

Provides reusable validators that enforce business rules at the ORM level,
preventing invalid data from reaching the database regardless of which
API endpoint or service writes the data.
"""

import re
from decimal import Decimal

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v < 0:
            raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    """Validate that a numeric value is > 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v <= 0:
            raise ValueError(f"{key} must be positive, got {value}")
    return value


def hhmm(key: str, value):
    """Validate a zero-padded 24h "HH:MM" clock string."""
    if value is not None and not _HHMM.match(value):
        raise ValueError(f"{key} must be an HH:MM time, got {value!r}")
    return value
