"""
Producer helpers: typed shortcuts for the events the product emits.

Each helper builds a DispatchRequest with the right type, priority, and
channels for its event and hands it to the dispatcher. Channel selection by
priority lives here, not in the dispatcher.

Helpers:
    send_owner_alert: Generic alert; channels escalate with priority
    send_daily_briefing: Morning summary of yesterday's numbers
    queue_payment_reminder: Unpaid invoice, priority grows with age
    queue_lead_alert: New lead came in
    send_missed_call_alert: Owner missed a call
    send_payment_received_alert: Invoice paid
    send_co_founder_insight: Suggestion from the assistant

Usage:
    from notifications.alerts import queue_lead_alert

    result = queue_lead_alert(business.id, contact_id=lead.id, name="Jane")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.utils import timezone

from notifications.models import NotificationChannel, NotificationPriority, NotificationType
from notifications.services import DispatchRequest, get_dispatcher

if TYPE_CHECKING:
    from typing import Any

    from core.services import ServiceResult
    from notifications.services import DispatchOutcome, NotificationDispatcher

IN_APP = NotificationChannel.IN_APP.value
PUSH = NotificationChannel.PUSH.value
SMS = NotificationChannel.SMS.value

OVERDUE_URGENT_DAYS = 30
OVERDUE_HIGH_DAYS = 14
MAX_FOCUS_TASKS = 3


def channels_for_priority(priority: str) -> list[str]:
    """
    Channels an owner alert goes out on.

    low/medium: in_app
    high: in_app, push
    urgent: in_app, push, sms
    """
    channels = [IN_APP]
    if priority in (NotificationPriority.HIGH, NotificationPriority.URGENT):
        channels.append(PUSH)
    if priority == NotificationPriority.URGENT:
        channels.append(SMS)
    return channels


def _dispatch(dispatcher: NotificationDispatcher | None, **kwargs) -> ServiceResult[DispatchOutcome]:
    return (dispatcher or get_dispatcher()).dispatch(DispatchRequest.build(**kwargs))


def _money(amount: float) -> str:
    return f"${amount:,.2f}"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def send_owner_alert(
    business_id,
    title: str,
    message: str,
    priority: str = NotificationPriority.MEDIUM,
    type: str = NotificationType.SYSTEM_ALERT,
    metadata: dict[str, Any] | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> ServiceResult[DispatchOutcome]:
    return _dispatch(
        dispatcher,
        type=type,
        title=title,
        message=message,
        business_id=business_id,
        channel=channels_for_priority(priority),
        priority=priority,
        metadata=metadata,
    )


def build_briefing_message(date_label: str, briefing: dict[str, Any]) -> str:
    """
    Render the daily briefing body.

    Keys (all optional): new_leads, messages_handled, invoices_sent,
    revenue_collected, highlights, concerns, upcoming_tasks.
    """
    lines = [f"Good morning! Here's your briefing for {date_label}:"]

    if briefing.get("new_leads") is not None:
        lines.append(f"- {_plural(briefing['new_leads'], 'new lead')}")
    if briefing.get("messages_handled") is not None:
        lines.append(f"- {briefing['messages_handled']} messages handled")
    if briefing.get("invoices_sent") is not None:
        lines.append(f"- {_plural(briefing['invoices_sent'], 'invoice')} sent")
    if briefing.get("revenue_collected") is not None:
        lines.append(f"- {_money(briefing['revenue_collected'])} collected")

    if briefing.get("highlights"):
        lines.append("\nHighlights:")
        lines.extend(f"  + {item}" for item in briefing["highlights"])
    if briefing.get("concerns"):
        lines.append("\nNeeds attention:")
        lines.extend(f"  ! {item}" for item in briefing["concerns"])
    if briefing.get("upcoming_tasks"):
        lines.append("\nToday's focus:")
        lines.extend(f"  - {item}" for item in briefing["upcoming_tasks"][:MAX_FOCUS_TASKS])

    return "\n".join(lines)


def send_daily_briefing(
    business_id,
    briefing: dict[str, Any],
    dispatcher: NotificationDispatcher | None = None,
) -> ServiceResult[DispatchOutcome]:
    today = timezone.localdate()
    date_label = briefing.get("date") or f"{today:%A, %b} {today.day}"
    return _dispatch(
        dispatcher,
        type=NotificationType.DAILY_BRIEFING,
        title=f"Daily Briefing - {date_label}",
        message=build_briefing_message(date_label, briefing),
        business_id=business_id,
        channel=[IN_APP, PUSH],
        priority=NotificationPriority.MEDIUM,
        metadata={"briefing": briefing},
    )


def payment_reminder_priority(days_since_sent: int) -> str:
    if days_since_sent > OVERDUE_URGENT_DAYS:
        return NotificationPriority.URGENT
    if days_since_sent > OVERDUE_HIGH_DAYS:
        return NotificationPriority.HIGH
    return NotificationPriority.MEDIUM


def queue_payment_reminder(
    business_id,
    invoice_id,
    amount_cents: int,
    contact_name: str | None,
    days_since_sent: int,
    dispatcher: NotificationDispatcher | None = None,
) -> ServiceResult[DispatchOutcome]:
    """
    Remind the owner about an unpaid invoice.

    Older than 30 days is urgent (adds SMS); older than 14 days is high.
    """
    amount = _money(amount_cents / 100)
    contact_name = contact_name or "Customer"
    priority = payment_reminder_priority(days_since_sent)

    urgency = ""
    if priority == NotificationPriority.URGENT:
        urgency = f" ({days_since_sent} days overdue)"
    elif priority == NotificationPriority.HIGH:
        urgency = f" ({days_since_sent} days since sent)"

    channels = [IN_APP, PUSH]
    if priority == NotificationPriority.URGENT:
        channels.append(SMS)

    return _dispatch(
        dispatcher,
        type=NotificationType.INVOICE_OVERDUE,
        title=f"Payment Reminder: {amount} from {contact_name}",
        message=(
            f"Invoice for {amount} to {contact_name} is awaiting payment{urgency}. "
            "Consider sending a follow-up."
        ),
        business_id=business_id,
        channel=channels,
        priority=priority,
        metadata={
            "invoiceId": str(invoice_id),
            "amount": amount_cents,
            "contactName": contact_name,
            "daysSinceSent": days_since_sent,
        },
    )


def queue_lead_alert(
    business_id,
    contact_id,
    name: str | None = None,
    source: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> ServiceResult[DispatchOutcome]:
    name = name or phone or "Unknown"
    source = source or "direct"
    return _dispatch(
        dispatcher,
        type=NotificationType.NEW_LEAD,
        title=f"New Lead: {name}",
        message=(
            f"A new lead just came in from {source}. "
            "You can respond directly or let the assistant engage."
        ),
        business_id=business_id,
        channel=[IN_APP, PUSH],
        priority=NotificationPriority.HIGH,
        metadata={
            "contactId": str(contact_id),
            "contactName": name,
            "source": source,
            "phone": phone,
            "email": email,
        },
    )


def send_missed_call_alert(
    business_id,
    phone_number: str,
    contact_name: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> ServiceResult[DispatchOutcome]:
    if contact_name:
        message = f"{contact_name} ({phone_number}) called and you missed it. A text-back was sent."
    else:
        message = f"You missed a call from {phone_number}. A text-back was sent to keep them engaged."

    return _dispatch(
        dispatcher,
        type=NotificationType.MISSED_CALL,
        title=f"Missed Call from {contact_name or phone_number}",
        message=message,
        business_id=business_id,
        channel=[IN_APP, PUSH],
        priority=NotificationPriority.MEDIUM,
        metadata={
            "phoneNumber": phone_number,
            "contactName": contact_name,
            "timestamp": timezone.now().isoformat(),
        },
    )


def send_payment_received_alert(
    business_id,
    amount: float,
    contact_name: str,
    invoice_id=None,
    dispatcher: NotificationDispatcher | None = None,
) -> ServiceResult[DispatchOutcome]:
    return _dispatch(
        dispatcher,
        type=NotificationType.PAYMENT_RECEIVED,
        title=f"Payment Received: {_money(amount)}",
        message=f"{contact_name} just paid {_money(amount)}. Nice!",
        business_id=business_id,
        channel=[IN_APP, PUSH],
        priority=NotificationPriority.LOW,
        metadata={
            "amount": amount,
            "contactName": contact_name,
            "invoiceId": str(invoice_id) if invoice_id else None,
        },
    )


def send_co_founder_insight(
    business_id,
    insight: str,
    action_suggestion: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> ServiceResult[DispatchOutcome]:
    message = insight
    if action_suggestion:
        message = f"{insight}\n\nSuggested action: {action_suggestion}"

    return _dispatch(
        dispatcher,
        type=NotificationType.CO_FOUNDER_INSIGHT,
        title="Insight from your AI Co-Founder",
        message=message,
        business_id=business_id,
        channel=[IN_APP],
        priority=NotificationPriority.LOW,
        metadata={"insight": insight, "actionSuggestion": action_suggestion},
    )
