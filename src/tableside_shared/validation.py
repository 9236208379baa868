"""
Input validation utilities.
"""

import re

from tableside_shared.constants import CUSTOMER_TOKEN_MAX_LENGTH, TableStatus


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


_TOKEN_RE = re.compile(r"^[A-Za-z0-9_\-.:]+$")


def validate_customer_token(token: str | None) -> str:
    """Customer tokens are opaque, but must be short printable identifiers."""
    token = (token or "").strip()
    if not token:
        raise ValidationError("customer_token is required")
    if len(token) > CUSTOMER_TOKEN_MAX_LENGTH:
        raise ValidationError(
            f"customer_token must be at most {CUSTOMER_TOKEN_MAX_LENGTH} characters"
        )
    if not _TOKEN_RE.match(token):
        raise ValidationError("customer_token contains invalid characters")
    return token


def validate_table_status(status: str | None) -> TableStatus:
    try:
        return TableStatus((status or "").strip().lower())
    except ValueError:
        allowed = ", ".join(sorted(TableStatus.all_values()))
        raise ValidationError(f"Invalid table status: {status}. Allowed: {allowed}") from None
