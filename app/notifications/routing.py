"""
WebSocket URL routing for live notifications.

URL Patterns:
    ws/notifications/<business_id>/ - Live toasts for one business
"""

from django.urls import path

from notifications import consumers

websocket_urlpatterns = [
    path(
        "ws/notifications/<uuid:business_id>/",
        consumers.NotificationConsumer.as_asgi(),
    ),
]
