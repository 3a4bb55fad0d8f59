"""
Channel senders: one delivery implementation per channel.

Every sender satisfies toolkit.protocols.ChannelSender and reports its
outcome as a SendResult instead of raising, so one channel's failure never
interrupts the others in a dispatch.

Channels:
    InAppSender: Always succeeds; the persisted row is the delivery
    PushSender: Delegates to a PushTransport; with none wired it reports
        success (queued for pull)
    SmsSender: Resolves the owner's phone and sends through an SmsGateway,
        truncating to the gateway maximum
    EmailSender: Not integrated; fails deterministically with
        CHANNEL_NOT_IMPLEMENTED

Usage:
    from notifications.senders import build_default_senders

    senders = build_default_senders()
    result = senders["sms"].send(contact, "New lead", "Jane Doe", {})
    if not result.success:
        logger.warning(result.error)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from notifications.exceptions import (
    ChannelDeliveryError,
    ChannelNotConfiguredError,
    UnimplementedChannelError,
)
from notifications.gateways import TwilioSmsGateway
from notifications.models import NotificationChannel
from toolkit.helpers import mask_phone

if TYPE_CHECKING:
    from typing import Any

    from businesses.directory import BusinessContact
    from toolkit.protocols import ChannelSender, PushTransport, SmsGateway

logger = logging.getLogger(__name__)

NO_PHONE_ERROR = "No phone number on file"
SMS_NOT_CONFIGURED_ERROR = "Twilio not configured"
SMS_NO_SENDER_ERROR = "Twilio phone number not configured"
EMAIL_NOT_IMPLEMENTED_ERROR = "Email notifications not yet implemented"


@dataclass(frozen=True)
class SendResult:
    """
    Outcome of one channel send.

    Attributes:
        success: Whether the channel accepted the notification
        error: Human-readable failure reason (stored on the row)
        error_code: Machine-readable failure code
        delivery_ref: Vendor reference (e.g. Twilio SID), if any
    """

    success: bool
    error: str | None = None
    error_code: str | None = None
    delivery_ref: str | None = None

    @classmethod
    def ok(cls, delivery_ref: str | None = None) -> SendResult:
        return cls(success=True, delivery_ref=delivery_ref)

    @classmethod
    def failed(cls, error: str, error_code: str | None = None) -> SendResult:
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def from_error(cls, exc: ChannelDeliveryError) -> SendResult:
        return cls.failed(exc.message, exc.error_code)


class InAppSender:
    """In-app delivery is the persisted row itself."""

    def send(self, contact, title, message, metadata) -> SendResult:
        return SendResult.ok()


class PushSender:
    """
    Push delivery through an optional transport.

    With no transport wired the notification stays available for pull and
    the send reports success; that is "not yet wired", not "failed".
    """

    def __init__(self, transport: PushTransport | None = None):
        self.transport = transport

    def send(
        self,
        contact: BusinessContact,
        title: str,
        message: str,
        metadata: dict[str, Any],
    ) -> SendResult:
        if self.transport is None:
            logger.debug(f"No push transport; queued for pull (business {contact.business_id})")
            return SendResult.ok()

        try:
            ref = self.transport.push(contact.business_id, title, message, metadata)
        except ChannelDeliveryError as e:
            return SendResult.from_error(e)
        except Exception as e:
            logger.warning(f"Push transport failed for business {contact.business_id}: {e}")
            return SendResult.failed(str(e) or e.__class__.__name__, "PUSH_FAILED")
        return SendResult.ok(ref)


class SmsSender:
    """
    SMS delivery to the business owner's phone.

    Fails with distinct errors, checked in order: no phone on file, gateway
    credentials absent, sender number absent, gateway call failed. The body
    is ``"{title}\\n\\n{message}"`` truncated to ``max_length``.
    """

    def __init__(self, gateway: SmsGateway, max_length: int = 1600):
        self.gateway = gateway
        self.max_length = max_length

    def build_body(self, title: str, message: str) -> str:
        return f"{title}\n\n{message}"[: self.max_length]

    def send(
        self,
        contact: BusinessContact,
        title: str,
        message: str,
        metadata: dict[str, Any],
    ) -> SendResult:
        if not contact.phone:
            return SendResult.failed(NO_PHONE_ERROR, "NO_DESTINATION")

        try:
            if not self.gateway.is_configured:
                raise ChannelNotConfiguredError(SMS_NOT_CONFIGURED_ERROR)
            if not self.gateway.has_sender_number:
                raise ChannelNotConfiguredError(SMS_NO_SENDER_ERROR)
            sid = self.gateway.send_sms(contact.phone, self.build_body(title, message))
        except ChannelDeliveryError as e:
            logger.warning(
                f"SMS to {mask_phone(contact.phone)} failed for business "
                f"{contact.business_id}: {e}"
            )
            return SendResult.from_error(e)

        return SendResult.ok(sid or None)


class EmailSender:
    """Email has no transport integrated; every attempt fails the same way."""

    def send(self, contact, title, message, metadata) -> SendResult:
        return SendResult.from_error(UnimplementedChannelError(EMAIL_NOT_IMPLEMENTED_ERROR))


def build_default_senders(
    push_transport: PushTransport | None = None,
    sms_gateway: SmsGateway | None = None,
) -> dict[str, ChannelSender]:
    """Wire one sender per channel from settings."""
    return {
        NotificationChannel.IN_APP: InAppSender(),
        NotificationChannel.PUSH: PushSender(push_transport),
        NotificationChannel.SMS: SmsSender(
            sms_gateway or TwilioSmsGateway.from_settings(),
            max_length=settings.SMS_MAX_LENGTH,
        ),
        NotificationChannel.EMAIL: EmailSender(),
    }
