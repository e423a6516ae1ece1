import logging
from typing import Any, Dict, Mapping, Optional

from firebase_admin import messaging

from src.core.context import DispatchContext
from src.crud import crud_recipient
from src.models.push import ERROR_INVALID_TOKEN, ERROR_OTHER, SendOutcome
from src.models.recipient import Recipient
from src.services.push_transport import PushDeliveryError, UNKNOWN_ERROR

logger = logging.getLogger(__name__)

PRAYER_TIME_TYPE = "prayer_time"
PRAYER_TIME_CHANNEL = "prayer_time_channel"
DEFAULT_CHANNEL = "attendance_app_channel"
DEFAULT_NOTIFICATION_TYPE = "general"


def _to_data_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # Booleans and numbers as the mobile client expects them ("true", "3")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def sanitize_data(data: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """FCM requires every data value to be a string."""
    sanitized = {str(key): _to_data_string(value) for key, value in (data or {}).items()}
    sanitized["type"] = str((data or {}).get("type") or DEFAULT_NOTIFICATION_TYPE)
    return sanitized


def select_channel(data: Optional[Mapping[str, Any]]) -> str:
    if (data or {}).get("type") == PRAYER_TIME_TYPE:
        return PRAYER_TIME_CHANNEL
    return DEFAULT_CHANNEL


def build_message(
    token: str, title: str, body: str, data: Optional[Mapping[str, Any]] = None
) -> messaging.Message:
    return messaging.Message(
        notification=messaging.Notification(title=title, body=body),
        data=sanitize_data(data),
        token=token,
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                sound="default",
                channel_id=select_channel(data),
            ),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(aps=messaging.Aps(sound="default", badge=1)),
        ),
    )


async def clear_invalid_token(ctx: DispatchContext, recipient_id: str) -> None:
    """
    Removes a dead token from the recipient document.
    Failures are logged and swallowed so the send outcome stays the one reported.
    """
    try:
        await crud_recipient.clear_recipient_token(ctx.db, recipient_id)
        logger.info(f"Removed invalid FCM token for user {recipient_id}")
    except Exception as e:
        logger.error(
            f"Error removing invalid token for user {recipient_id}: {e}", exc_info=True
        )


def error_code_of(error: Exception) -> str:
    if isinstance(error, PushDeliveryError):
        return error.code
    return UNKNOWN_ERROR


async def send_to_recipient(
    ctx: DispatchContext,
    recipient: Recipient,
    title: str,
    body: str,
    data: Optional[Mapping[str, Any]] = None,
) -> SendOutcome:
    """
    Sends one message to one recipient's token and classifies the result.
    On an invalid or unregistered token the token is removed from the
    recipient. The send itself is never retried.
    """
    message = build_message(recipient.fcm_token, title, body, data)
    try:
        message_id = await ctx.transport.send(message)
    except PushDeliveryError as e:
        logger.error(
            f"Error sending to {recipient.id} ({recipient.display_email}): {e.code} {e}"
        )
        if e.is_invalid_token:
            await clear_invalid_token(ctx, recipient.id)
            return SendOutcome(
                recipient_id=recipient.id,
                delivered=False,
                error_kind=ERROR_INVALID_TOKEN,
                error=str(e),
            )
        return SendOutcome(
            recipient_id=recipient.id, delivered=False, error_kind=ERROR_OTHER, error=str(e)
        )
    except Exception as e:
        logger.error(
            f"Unexpected error sending to {recipient.id} ({recipient.display_email}): {e}",
            exc_info=True,
        )
        return SendOutcome(
            recipient_id=recipient.id, delivered=False, error_kind=ERROR_OTHER, error=str(e)
        )

    logger.info(f"Successfully sent FCM message to {recipient.id}: {message_id}")
    return SendOutcome(recipient_id=recipient.id, delivered=True, message_id=message_id)
