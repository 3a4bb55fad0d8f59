"""
Notifications app: dispatch and delivery state for business notifications.

This app provides:
- Notification model, one row per event per channel, with an FSM status
- NotificationDispatcher for fan-out, per-channel delivery, and aggregation
- Channel senders (in-app, push, SMS via Twilio, email placeholder)
- NotificationReadService for mark-read, dismiss, and retention
- Live toasts over websockets and a polling bell fallback
- Celery tasks for re-delivering deferred notifications and purging old ones
- REST API for dispatching, listing, and updating notifications

Usage:
    from notifications.services import DispatchRequest, get_dispatcher

    result = get_dispatcher().dispatch(
        DispatchRequest.build(
            type="new_lead",
            title="New lead: Jane",
            message="From website form",
            business_id=business.id,
            channel=["in_app", "push"],
        )
    )

    if result.success:
        outcome = result.data
"""
