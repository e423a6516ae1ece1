import logging
from typing import Any, Dict, Optional

from src.core.context import DispatchContext
from src.crud import crud_notification_request
from src.models.notification_request import (
    NotificationRequest,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_SENT,
)
from src.services.notification_service import (
    build_message,
    clear_invalid_token,
    error_code_of,
    select_channel,
)
from src.services.push_transport import PushDeliveryError

logger = logging.getLogger(__name__)

MISSING_FIELDS_ERROR = "Missing required fields (fcmToken, title, or body)"
INVALID_FIELDS_ERROR = "Invalid notification request fields"


async def _record_failure(
    ctx: DispatchContext, request_id: str, error: str, error_code: Optional[str] = None
) -> Optional[str]:
    try:
        await crud_notification_request.mark_request_failed(
            ctx.db, request_id, error, error_code
        )
    except Exception as e:
        logger.error(
            f"Could not record failure for notification request {request_id}: {e}",
            exc_info=True,
        )
    return STATUS_FAILED


async def dispatch_notification_request(
    ctx: DispatchContext, request: NotificationRequest
) -> Optional[str]:
    """
    Sends a single queued notification request and records the outcome on it.

    Only requests whose status is exactly "pending" are processed; anything
    else returns None without touching the store or the transport. The
    returned value is the status written to the request. Never raises.
    """
    if request.status != STATUS_PENDING:
        logger.info(
            f"Request {request.id} status is not pending, skipping: {request.status}"
        )
        return None

    if request.missing_required_fields():
        logger.error(
            f"Missing required fields in notification request {request.id}: "
            f"hasToken={bool(request.fcm_token)}, hasTitle={bool(request.title)}, "
            f"hasBody={bool(request.body)}"
        )
        return await _record_failure(ctx, request.id, MISSING_FIELDS_ERROR)

    data = dict(request.data or {})
    data["type"] = request.notification_type
    logger.info(
        f"Sending notification request {request.id} on channel {select_channel(data)}"
    )

    try:
        message = build_message(request.fcm_token, request.title, request.body, data)
        message_id = await ctx.transport.send(message)
    except Exception as e:
        logger.error(f"Error sending message for request {request.id}: {e}")
        if isinstance(e, PushDeliveryError) and e.is_invalid_token:
            logger.info("Invalid or unregistered token, removing from user document")
            if request.user_id:
                await clear_invalid_token(ctx, request.user_id)
        return await _record_failure(ctx, request.id, str(e), error_code_of(e))

    logger.info(f"Successfully sent message: {message_id}")
    try:
        await crud_notification_request.mark_request_sent(ctx.db, request.id, message_id)
    except Exception as e:
        # The push went out; only the bookkeeping failed.
        logger.error(
            f"Could not mark notification request {request.id} as sent: {e}",
            exc_info=True,
        )
    return STATUS_SENT


async def handle_request_created(
    ctx: DispatchContext, request_id: str, fields: Dict[str, Any]
) -> Optional[str]:
    """Entry point for a newly created notification_requests document."""
    try:
        request = NotificationRequest(**{**fields, "id": request_id})
    except Exception as e:
        logger.error(f"Malformed notification request {request_id}: {e}")
        if fields.get("status") != STATUS_PENDING:
            return None
        return await _record_failure(ctx, request_id, INVALID_FIELDS_ERROR)
    return await dispatch_notification_request(ctx, request)
