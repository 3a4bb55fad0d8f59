"""
Notification-specific exceptions.

Exception Hierarchy:
    ExternalServiceError (core)
    └── ChannelDeliveryError - a channel could not deliver
        ├── ChannelNotConfiguredError - gateway credentials absent
        └── UnimplementedChannelError - channel has no transport yet
    BaseApplicationError (core)
    └── PersistenceError - the store could not be written or read

Channel errors never escape the dispatcher: senders convert them into a
failed SendResult that is recorded on the row. PersistenceError on a read
path becomes a 500 with a generic message.

Usage:
    from notifications.exceptions import ChannelDeliveryError

    raise ChannelDeliveryError("Gateway returned 503", error_code="GATEWAY_ERROR")
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError, ExternalServiceError


class ChannelDeliveryError(ExternalServiceError):
    """A channel attempted delivery and failed (possibly transient)."""

    default_error_code: str = "CHANNEL_DELIVERY_FAILED"


class ChannelNotConfiguredError(ChannelDeliveryError):
    """The channel's gateway is missing credentials or a sender identity."""

    default_error_code: str = "CHANNEL_NOT_CONFIGURED"


class UnimplementedChannelError(ChannelDeliveryError):
    """
    The channel has no transport integrated.

    Deterministic: retrying will fail the same way, so callers can tell it
    apart from a transient ChannelDeliveryError by its error code.
    """

    default_error_code: str = "CHANNEL_NOT_IMPLEMENTED"


class PersistenceError(BaseApplicationError):
    """The notification store is unavailable for this operation."""

    default_error_code: str = "PERSISTENCE_ERROR"
