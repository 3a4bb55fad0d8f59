"""
Toolkit - cross-app interfaces and PII helpers.

This app has no models. It holds:
- protocols.py: collaborator interfaces the notification core depends on
  (BusinessDirectory, ChannelSender, PushTransport, SmsGateway)
- helpers.py: PII masking for logs (mask_phone)
- validators.py: phone number validation for SMS routing

Usage:
    from toolkit.protocols import ChannelSender
    from toolkit.helpers import mask_phone
    from toolkit.validators import validate_phone_number

Note:
    - For generic infrastructure (ServiceResult, BaseModel), see core/
"""
