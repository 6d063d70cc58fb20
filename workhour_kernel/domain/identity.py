"""
Identity helpers (``workhour_kernel.domain.identity``).

Email address is the identity key of every person in the kernel.  Only
well-formedness is checked here; whether the address belongs to a real
account is the identity provider's concern.

Normalization is ``strip()`` followed by ``lower()``.  Every operation that
compares two people compares normalized emails.
"""

from __future__ import annotations

import re

from workhour_kernel.exceptions import ValidationError

MAX_EMAIL_LENGTH = 255

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9]([a-zA-Z0-9.-]*[a-zA-Z0-9])?\.[a-zA-Z]{2,}$"
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_well_formed_email(email: str | None) -> bool:
    """True when ``email`` (after stripping) matches the address pattern."""
    if email is None:
        return False
    candidate = email.strip()
    if not candidate or len(candidate) > MAX_EMAIL_LENGTH:
        return False
    return EMAIL_PATTERN.match(candidate) is not None


def require_email(email: str | None, field: str = "email") -> str:
    """
    Validate and normalize an email.

    Raises:
        ValidationError: if missing, too long, or malformed.
    """
    if email is None or not str(email).strip():
        raise ValidationError(field, "is required")
    candidate = str(email).strip()
    if len(candidate) > MAX_EMAIL_LENGTH:
        raise ValidationError(field, f"must be at most {MAX_EMAIL_LENGTH} characters")
    if EMAIL_PATTERN.match(candidate) is None:
        raise ValidationError(field, f"malformed address: {candidate!r}")
    return candidate.lower()
