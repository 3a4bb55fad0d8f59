"""
URL configuration for the notification API.

Routes:
    /        - List (GET), update read state (PATCH), purge (DELETE)
    /send/   - Dispatch (POST)
"""

from django.urls import path

from notifications.views import NotificationsView, SendNotificationView

app_name = "notifications"
urlpatterns = [
    path("", NotificationsView.as_view(), name="notifications"),
    path("send/", SendNotificationView.as_view(), name="send"),
]
