"""
SMS gateway adapter for the Twilio REST API.

Wraps Twilio's Messages endpoint behind the SmsGateway protocol so the SMS
channel can be exercised without the network.

Error Handling:
    - httpx transport errors and non-2xx responses are translated into
      ChannelDeliveryError with the gateway's own message where available
    - Missing credentials are not checked here; the SMS sender asks
      ``is_configured``/``has_sender_number`` first

Usage:
    from notifications.gateways import TwilioSmsGateway

    gateway = TwilioSmsGateway.from_settings()
    sid = gateway.send_sms("+15551234567", "Payment received")
"""

from __future__ import annotations

import logging

import httpx
from django.conf import settings

from notifications.exceptions import ChannelDeliveryError
from toolkit.helpers import mask_phone

logger = logging.getLogger(__name__)


class TwilioSmsGateway:
    """
    Send SMS through Twilio's ``Messages.json`` endpoint.

    Attributes:
        account_sid: Twilio account SID
        auth_token: Twilio auth token
        from_number: Sending phone number
        base_url: API root (overridable for tests and regional endpoints)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        account_sid: str = "",
        auth_token: str = "",
        from_number: str = "",
        base_url: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls) -> TwilioSmsGateway:
        return cls(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            base_url=settings.TWILIO_API_BASE_URL,
            timeout=settings.SMS_GATEWAY_TIMEOUT,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    @property
    def has_sender_number(self) -> bool:
        return bool(self.from_number)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"

    def send_sms(self, to: str, body: str) -> str:
        """
        Send one message and return its Twilio SID.

        Raises:
            ChannelDeliveryError: On transport error or non-2xx response
        """
        data = {"To": to, "From": self.from_number, "Body": body}
        auth = (self.account_sid, self.auth_token)

        try:
            if self._client is not None:
                response = self._client.post(
                    self.messages_url, data=data, auth=auth, timeout=self.timeout
                )
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.messages_url, data=data, auth=auth)
        except httpx.HTTPError as e:
            logger.warning(f"Twilio request to {mask_phone(to)} failed: {e}")
            raise ChannelDeliveryError(
                f"SMS gateway unreachable: {e}",
                error_code="GATEWAY_UNREACHABLE",
            ) from e

        if response.is_success:
            sid = self._message_sid(response)
            logger.info(f"Twilio accepted SMS to {mask_phone(to)}, sid={sid}")
            return sid

        message = self._error_message(response)
        logger.warning(
            f"Twilio rejected SMS to {mask_phone(to)}: "
            f"status={response.status_code} message={message}"
        )
        raise ChannelDeliveryError(
            message,
            error_code="GATEWAY_ERROR",
            details={"status_code": response.status_code},
        )

    @staticmethod
    def _message_sid(response: httpx.Response) -> str:
        # Accepted with an unreadable body: the message went out, only the SID is lost
        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Twilio accepted SMS but returned no JSON body ({response.status_code})")
            return ""
        if not isinstance(payload, dict):
            return ""
        return payload.get("sid") or ""

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        return payload.get("message") or f"Twilio API error ({response.status_code})"
