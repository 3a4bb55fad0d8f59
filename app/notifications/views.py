"""
Views for the notification API.

Views:
    SendNotificationView: Dispatch one event over one or more channels
    NotificationsView: Feed listing, read-state updates, and retention purge

Endpoints:
    POST   /api/v1/notifications/send/ - Dispatch (200 / 207 / 500, 400, 404)
    GET    /api/v1/notifications/      - Paged feed for a business
    PATCH  /api/v1/notifications/      - mark_read / mark_all_read / dismiss
    DELETE /api/v1/notifications/      - Purge old read notifications

Authentication happens upstream of this service, so every view is AllowAny
and scoped purely by ``businessId``.

Related files:
    - services.py: NotificationDispatcher, NotificationReadService,
      NotificationFeedService
    - serializers.py: Request/response serializers
    - urls.py: URL routing
"""

from __future__ import annotations

import logging

from django.conf import settings

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.helpers import calculate_offset_pagination, parse_int
from notifications.serializers import (
    CountResponseSerializer,
    DispatchResponseSerializer,
    NotificationListQuerySerializer,
    NotificationListResponseSerializer,
    NotificationSerializer,
    SendNotificationRequestSerializer,
    UpdateNotificationsRequestSerializer,
)
from notifications.services import (
    DispatchRequest,
    NotificationFeedService,
    NotificationReadService,
    get_dispatcher,
)

logger = logging.getLogger(__name__)

ACTIONS = ("mark_read", "mark_all_read", "dismiss")
INVALID_ACTION_MESSAGE = "Invalid action. Must be: mark_read, mark_all_read, or dismiss"

FETCH_FAILED_MESSAGE = "Failed to fetch notifications"
UPDATE_FAILED_MESSAGE = "Failed to update notifications"
DELETE_FAILED_MESSAGE = "Failed to delete notifications"


def error_response(message: str, http_status: int, errors=None) -> Response:
    body = {"success": False, "error": message}
    if errors:
        body["errors"] = errors
    return Response(body, status=http_status)


class SendNotificationView(APIView):
    """
    Dispatch a notification.

    POST /api/v1/notifications/send/

    Request body:
        {
            "type": "new_lead",
            "title": "New lead: Jane",
            "message": "From website form",
            "businessId": "<uuid>",
            "channel": ["in_app", "sms"],
            "priority": "high",
            "metadata": {"leadId": "..."},
            "scheduledFor": "2026-01-01T09:00:00Z"
        }

    Returns:
        {"success", "results": [...], "message"} with 200 when every channel
        succeeded, 207 when some did, 500 when none did
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="send_notification",
        summary="Dispatch a notification",
        description=(
            "Create one notification row per requested channel and deliver the "
            "immediate ones. Per-channel outcomes are returned; partial success "
            "is reported with 207."
        ),
        request=SendNotificationRequestSerializer,
        responses={
            200: DispatchResponseSerializer,
            207: DispatchResponseSerializer,
            400: OpenApiResponse(description="Missing or invalid fields"),
            404: OpenApiResponse(description="Business not found"),
            500: DispatchResponseSerializer,
        },
        tags=["Notifications - Dispatch"],
    )
    def post(self, request):
        serializer = SendNotificationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "Invalid request body",
                status.HTTP_400_BAD_REQUEST,
                errors=serializer.errors,
            )
        data = serializer.validated_data

        dispatch_request = DispatchRequest.build(
            type=data.get("type"),
            title=data.get("title"),
            message=data.get("message"),
            business_id=data.get("businessId"),
            channel=data.get("channel"),
            priority=data.get("priority"),
            metadata=data.get("metadata"),
            scheduled_for=data.get("scheduledFor"),
        )

        result = get_dispatcher().dispatch(dispatch_request)

        if not result.success:
            http_status = (
                status.HTTP_404_NOT_FOUND
                if result.error_code == "BUSINESS_NOT_FOUND"
                else status.HTTP_400_BAD_REQUEST
            )
            return Response(result.to_response(), status=http_status)

        outcome = result.data
        return Response(outcome.to_dict(), status=outcome.http_status)


class NotificationsView(APIView):
    """
    Feed and read-state management for one business.

    GET    ?businessId&unreadOnly&limit&offset&type
    PATCH  {businessId, action, notificationId? | notificationIds?}
    DELETE ?businessId&olderThanDays
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="list_notifications",
        summary="List notifications",
        description=(
            "Newest-first page of a business's notifications with total and "
            "unread counts. limit/offset are parsed leniently (\"5.7\" reads as 5) "
            f"and limit is capped at {settings.NOTIFICATION_MAX_PAGE_SIZE}."
        ),
        parameters=[
            OpenApiParameter(
                name="businessId",
                type=str,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Owning business UUID",
            ),
            OpenApiParameter(
                name="unreadOnly",
                type=bool,
                location=OpenApiParameter.QUERY,
                description="Only pending or sent notifications",
            ),
            OpenApiParameter(
                name="limit",
                type=int,
                location=OpenApiParameter.QUERY,
                description=(
                    f"Page size (default {settings.NOTIFICATION_PAGE_SIZE}, max "
                    f"{settings.NOTIFICATION_MAX_PAGE_SIZE}). Larger values are capped "
                    "and pagination.limit reports the size applied."
                ),
            ),
            OpenApiParameter(
                name="offset",
                type=int,
                location=OpenApiParameter.QUERY,
                description="Rows to skip (default 0)",
            ),
            OpenApiParameter(
                name="type",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by notification type",
            ),
        ],
        responses={
            200: NotificationListResponseSerializer,
            400: OpenApiResponse(description="Missing or invalid businessId"),
            500: OpenApiResponse(description=FETCH_FAILED_MESSAGE),
        },
        tags=["Notifications - Feed"],
    )
    def get(self, request):
        params = request.query_params
        query = NotificationListQuerySerializer(data=params)
        if not query.is_valid():
            return error_response(
                "Missing or invalid businessId",
                status.HTTP_400_BAD_REQUEST,
                errors=query.errors,
            )

        result = NotificationFeedService().page(
            query.validated_data["businessId"],
            limit=parse_int(params.get("limit"), default=settings.NOTIFICATION_PAGE_SIZE),
            offset=parse_int(params.get("offset"), default=0),
            unread_only=params.get("unreadOnly") == "true",
            type=query.validated_data.get("type") or None,
        )
        if not result.success:
            logger.error(f"Failed to fetch notifications: {result.error}")
            return error_response(FETCH_FAILED_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR)

        page = result.data
        pagination = calculate_offset_pagination(page.total, page.limit, page.offset)
        return Response(
            {
                "notifications": NotificationSerializer(page.notifications, many=True).data,
                "total": page.total,
                "unreadCount": page.unread_count,
                "pagination": {
                    "limit": pagination["limit"],
                    "offset": pagination["offset"],
                    "hasMore": pagination["has_more"],
                },
            }
        )

    @extend_schema(
        operation_id="update_notifications",
        summary="Update notification read state",
        description=(
            "mark_read and dismiss act on notificationId/notificationIds; "
            "mark_all_read marks every pending or sent notification read. "
            "All actions are idempotent."
        ),
        request=UpdateNotificationsRequestSerializer,
        responses={
            200: CountResponseSerializer,
            400: OpenApiResponse(description="Invalid action or missing ids"),
            500: OpenApiResponse(description=UPDATE_FAILED_MESSAGE),
        },
        tags=["Notifications - Feed"],
    )
    def patch(self, request):
        serializer = UpdateNotificationsRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "Missing or invalid businessId",
                status.HTTP_400_BAD_REQUEST,
                errors=serializer.errors,
            )
        data = serializer.validated_data

        action = data.get("action")
        if action not in ACTIONS:
            return error_response(INVALID_ACTION_MESSAGE, status.HTTP_400_BAD_REQUEST)

        business_id = data["businessId"]
        service = NotificationReadService()

        if action == "mark_all_read":
            result = service.mark_all_read(business_id)
            message = "Marked all notifications as read"
        else:
            ids = data.get("notificationIds") or (
                [data["notificationId"]] if data.get("notificationId") else []
            )
            if action == "mark_read":
                result = service.mark_read(business_id, ids)
                message = f"Marked {len(ids)} notification(s) as read"
            else:
                result = service.dismiss(business_id, ids)
                message = f"Dismissed {len(ids)} notification(s)"

        if not result.success:
            if result.error_code == "VALIDATION_ERROR":
                return error_response(
                    result.error, status.HTTP_400_BAD_REQUEST, errors=result.errors
                )
            logger.error(f"Failed to {action} for business {business_id}: {result.error}")
            return error_response(UPDATE_FAILED_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({"success": True, "message": message, "count": result.data})

    @extend_schema(
        operation_id="purge_notifications",
        summary="Delete old read notifications",
        description=(
            "Hard-delete read notifications created more than olderThanDays "
            "days ago. Unread and failed notifications are never deleted."
        ),
        parameters=[
            OpenApiParameter(
                name="businessId",
                type=str,
                location=OpenApiParameter.QUERY,
                required=True,
            ),
            OpenApiParameter(
                name="olderThanDays",
                type=int,
                location=OpenApiParameter.QUERY,
                description="Retention window in days (default 30)",
            ),
        ],
        responses={
            200: CountResponseSerializer,
            400: OpenApiResponse(description="Missing or invalid businessId"),
            500: OpenApiResponse(description=DELETE_FAILED_MESSAGE),
        },
        tags=["Notifications - Feed"],
    )
    def delete(self, request):
        params = request.query_params
        business_id = params.get("businessId")
        older_than_days = parse_int(
            params.get("olderThanDays"), default=settings.NOTIFICATION_RETENTION_DAYS
        )

        result = NotificationReadService().purge_old(business_id, older_than_days)

        if not result.success:
            if result.error_code == "VALIDATION_ERROR":
                return error_response(result.error, status.HTTP_400_BAD_REQUEST)
            logger.error(f"Failed to purge notifications for business {business_id}: {result.error}")
            return error_response(DELETE_FAILED_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR)

        count = result.data
        return Response(
            {"success": True, "message": f"Deleted {count} old notifications", "count": count}
        )
