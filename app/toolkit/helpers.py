"""
PII helpers for log output.

Phone numbers routinely pass through delivery logs; mask_phone keeps enough
of each number to correlate without exposing it.

Usage:
    from toolkit.helpers import mask_phone

    logger.info(f"SMS queued to {mask_phone(contact.phone)}")
"""

from __future__ import annotations

import re


def mask_phone(phone: str | None) -> str:
    """
    Mask a phone number, keeping the last 4 digits.

    Example:
        mask_phone("+1 (555) 123-4567")  # "***4567"
        mask_phone("12")                 # "***"
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) < 4:
        return "***"
    return f"***{digits[-4:]}"
