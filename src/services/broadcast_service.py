import asyncio
import logging
from typing import Any, Mapping, Optional, Sequence

from src.core.context import DispatchContext
from src.crud import crud_recipient
from src.models.push import BroadcastSummary, ERROR_OTHER, FanOutResult, SendOutcome
from src.models.recipient import Recipient
from src.services.notification_service import PRAYER_TIME_TYPE, send_to_recipient

logger = logging.getLogger(__name__)


def prayer_time_data(prayer_name: str) -> dict:
    return {"type": PRAYER_TIME_TYPE, "prayerName": prayer_name}


async def fan_out(
    ctx: DispatchContext,
    recipients: Sequence[Recipient],
    title: str,
    body: str,
    data: Optional[Mapping[str, Any]] = None,
) -> FanOutResult:
    """
    Sends the same notification to every recipient concurrently and waits for
    all sends to settle. One recipient's failure never cancels the others.
    """
    results = await asyncio.gather(
        *(send_to_recipient(ctx, r, title, body, data) for r in recipients),
        return_exceptions=True,
    )

    fan_out_result = FanOutResult()
    for recipient, result in zip(recipients, results):
        if isinstance(result, BaseException):
            logger.error(f"Send task for {recipient.id} raised: {result}")
            result = SendOutcome(
                recipient_id=recipient.id,
                delivered=False,
                error_kind=ERROR_OTHER,
                error=str(result),
            )
        if result.delivered:
            fan_out_result.success_count += 1
        else:
            fan_out_result.failure_count += 1
        fan_out_result.outcomes.append(result)
    return fan_out_result


async def broadcast_prayer_notification(
    ctx: DispatchContext, prayer_name: str, message: str
) -> BroadcastSummary:
    """
    Sends a prayer time notification to every employee that has a token.
    Store errors propagate to the caller; send errors are counted.
    """
    logger.info(f"Sending prayer time notification: {prayer_name}")
    logger.info(f"Message: {message}")

    recipients = await crud_recipient.list_recipients(ctx.db)
    logger.info(f"Total employees found: {len(recipients)}")

    with_tokens = []
    for recipient in recipients:
        if recipient.has_token:
            with_tokens.append(recipient)
        else:
            logger.info(
                f"No FCM token found for user {recipient.id} ({recipient.display_email})"
            )
    without_token_count = len(recipients) - len(with_tokens)

    logger.info(
        f"Sending to {len(with_tokens)} users with tokens, "
        f"{without_token_count} users without tokens"
    )

    result = await fan_out(
        ctx, with_tokens, prayer_name, message, prayer_time_data(prayer_name)
    )

    logger.info(
        f"Prayer time notification sent: {result.success_count} successful, "
        f"{result.failure_count} failed"
    )

    return BroadcastSummary(
        success=True,
        message=f"Prayer time notification sent: {prayer_name}",
        recipients=len(with_tokens),
        success_count=result.success_count,
        failure_count=result.failure_count,
        total_employees=len(recipients),
        users_with_tokens=len(with_tokens),
        users_without_tokens=without_token_count,
    )
