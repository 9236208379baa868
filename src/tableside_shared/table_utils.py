"""
Utilities for table labels and QR session tokens.

Labels are what guests see printed on the table ("12", "A3", "T-04"):
1-50 characters, letters, digits, spaces and dashes.
"""

from __future__ import annotations

import re
import uuid

from tableside_shared.validation import ValidationError

TABLE_LABEL_REGEX = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 \-]{0,49}$")


def normalize_table_label(label: str) -> str:
    """Validate a table label; returns the normalized label or raises ValidationError."""
    normalized = re.sub(r"\s+", " ", (label or "").strip()).upper()
    if not TABLE_LABEL_REGEX.match(normalized):
        raise ValidationError(
            "Invalid table label. Use letters, digits, spaces or dashes (e.g. 12, A3, T-04)."
        )
    return normalized


def generate_session_id() -> str:
    """Fresh opaque QR session token."""
    return uuid.uuid4().hex


def session_matches(expected: str | None, presented: str | None) -> bool:
    """
    Compare the table's current session with the one a device presents.

    A device that presents nothing is trusted to the auth collaborator.
    """
    if presented is None:
        return True
    return (expected or "") == presented.strip()
