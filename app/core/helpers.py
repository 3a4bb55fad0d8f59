"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- UUID validation
- Lenient integer parsing of query parameters
- Offset pagination metadata

These utilities are pure infrastructure - they have no knowledge
of notifications, businesses, or channel semantics.

Usage:
    from core.helpers import calculate_offset_pagination, parse_int, validate_uuid

    limit = parse_int(request.query_params.get("limit"), default=20)
    pagination = calculate_offset_pagination(total=42, limit=limit, offset=0)
"""

from __future__ import annotations

import re
import uuid
from typing import Any

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def validate_uuid(value: Any) -> bool:
    """
    Check if a value is a valid UUID.

    Example:
        is_valid = validate_uuid("550e8400-e29b-41d4-a716-446655440000")  # True
    """
    if isinstance(value, uuid.UUID):
        return True
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError, AttributeError):
        return False


def parse_int(value: Any, default: int) -> int:
    """
    Parse the leading integer of a value, truncating any fraction.

    Mirrors how browser clients build query strings: ``"5.7"`` reads as 5,
    ``"12abc"`` as 12, and anything without a leading integer falls back to
    ``default``.

    Example:
        parse_int("5.7", default=20)   # 5
        parse_int(None, default=20)    # 20
        parse_int("abc", default=20)   # 20
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else default  # NaN check
    match = _LEADING_INT.match(str(value))
    if match is None:
        return default
    return int(match.group(1))


def calculate_offset_pagination(total: int, limit: int, offset: int) -> dict:
    """
    Calculate offset pagination metadata.

    ``has_more`` is true exactly when rows remain past the current window.

    Example:
        calculate_offset_pagination(total=45, limit=20, offset=20)
        # {"limit": 20, "offset": 20, "has_more": True}
    """
    return {
        "limit": limit,
        "offset": offset,
        "has_more": total > offset + limit,
    }
