"""
Businesses app: the tenant boundary for notification data.

This app provides:
- Business model (owner contact routing: phone, email)
- BusinessDirectory protocol and its Django implementation, used by the
  notification dispatcher to resolve where a channel should deliver

Usage:
    from businesses.directory import DjangoBusinessDirectory

    contact = DjangoBusinessDirectory().get_contact(business_id)
    if contact is None:
        ...  # unknown business
"""
