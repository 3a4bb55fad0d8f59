"""
Protocol definitions (interfaces) for notification collaborators.

The notification core never talks to a vendor or a tenancy model directly.
It depends on these contracts, and concrete implementations are injected
at construction time.

Protocols define contracts that implementations must fulfill, enabling:
- Duck typing with static type checking
- Dependency inversion (depend on abstractions, not concretions)
- Easy fakes in tests

Available Protocols:
    BusinessDirectory: Resolve a business id to its contact routing
    ChannelSender: Deliver one notification over one channel
    PushTransport: Vendor push integration behind the push channel
    SmsGateway: Vendor SMS integration behind the SMS channel

Usage:
    from toolkit.protocols import ChannelSender

    class PagerSender:
        def send(self, contact, title, message, metadata):
            return SendResult.ok()

    sender: ChannelSender = PagerSender()

Note:
    - @runtime_checkable allows isinstance() checks
    - Value types (BusinessContact, SendResult) live with their owning app
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID

    from businesses.directory import BusinessContact
    from notifications.senders import SendResult


@runtime_checkable
class BusinessDirectory(Protocol):
    """
    Protocol for tenant contact resolution.

    Example:
        contact = directory.get_contact(business_id)
        if contact is None:
            ...  # unknown business
    """

    def get_contact(self, business_id: UUID | str) -> BusinessContact | None:
        """
        Resolve a business to its contact routing.

        Returns:
            BusinessContact, or None if the business does not exist
        """
        ...


@runtime_checkable
class ChannelSender(Protocol):
    """
    Protocol for a single delivery channel (in_app, push, sms, email).

    Implementations report the outcome instead of raising: a failed
    delivery is a SendResult with success=False and a stable error message.
    """

    def send(
        self,
        contact: BusinessContact,
        title: str,
        message: str,
        metadata: dict[str, Any],
    ) -> SendResult:
        """
        Attempt delivery.

        Args:
            contact: Destination routing for the owning business
            title: Notification title
            message: Notification body
            metadata: Caller-supplied context (read-only)

        Returns:
            SendResult describing success or the failure reason
        """
        ...


@runtime_checkable
class PushTransport(Protocol):
    """
    Protocol for a push vendor (FCM, APNs, web push).

    Example:
        class FCMTransport:
            def push(self, business_id, title, body, data):
                return "projects/x/messages/123"
    """

    def push(
        self,
        business_id: str,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> str | None:
        """
        Send a push message.

        Returns:
            Vendor message reference, if any

        Raises:
            Exception: Any vendor failure; the push sender records it
        """
        ...


@runtime_checkable
class SmsGateway(Protocol):
    """
    Protocol for an SMS vendor.

    ``is_configured`` and ``has_sender_number`` let the SMS channel report
    missing credentials distinctly from a failed call.
    """

    is_configured: bool
    has_sender_number: bool

    def send_sms(self, to: str, body: str) -> str:
        """
        Send one SMS.

        Returns:
            Vendor message id

        Raises:
            ChannelDeliveryError: On gateway or transport failure
        """
        ...
