"""
Validators for contact routing fields.

Usage:
    from toolkit.validators import validate_phone_number

    owner_phone = models.CharField(validators=[validate_phone_number])
"""

from __future__ import annotations

import re

from django.core.exceptions import ValidationError

_PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{6,14}$")


def validate_phone_number(value: str) -> None:
    """
    Validate a phone number the SMS gateway can route.

    Spaces, dashes, dots and parentheses are ignored; the rest must be an
    optional ``+`` followed by 7 to 15 digits (E.164 length).

    Raises:
        ValidationError: If the number cannot be routed
    """
    cleaned = re.sub(r"[\s\-\.\(\)]", "", value or "")
    if not _PHONE_PATTERN.match(cleaned):
        raise ValidationError(
            "Enter a valid phone number, e.g. +15551234567.",
            code="invalid_phone",
        )
