import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional, Tuple

from src.core.context import DispatchContext
from src.crud import crud_recipient, crud_scheduled_notification, crud_sent_marker
from src.models.scheduled_notification import ScheduledNotification, ScheduledRunSummary
from src.services.broadcast_service import fan_out, prayer_time_data

logger = logging.getLogger(__name__)

# Entries due longer ago than this are never sent
DUE_WINDOW = timedelta(minutes=2)
ALREADY_SENT_REASON = "Already sent today"
MISSING_PRAYER_NAME_ERROR = "Missing prayerName"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def filter_due(
    entries: List[ScheduledNotification], now: datetime
) -> List[ScheduledNotification]:
    """
    In-process half of the two-stage filter: keeps entries scheduled within
    [now - DUE_WINDOW, now], both ends inclusive, preserving query order.
    """
    window_start = now - DUE_WINDOW
    return [
        entry
        for entry in entries
        if entry.scheduled_for is not None
        and window_start <= _as_utc(entry.scheduled_for) <= now
    ]


def day_key(now: datetime, tz: tzinfo = timezone.utc) -> Tuple[str, datetime]:
    """Returns the YYYY-MM-DD key for the current day and the day's midnight."""
    local_now = now.astimezone(tz)
    day_start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return day_start.strftime("%Y-%m-%d"), day_start


async def process_scheduled_notifications(
    ctx: DispatchContext, now: Optional[datetime] = None, tz: tzinfo = timezone.utc
) -> ScheduledRunSummary:
    """
    One poll of the scheduled_push_notifications collection.

    Due entries are handled one at a time in query order. An entry whose
    prayer was already sent today is skipped; otherwise the day's sent marker
    is created before any push goes out, then the notification is fanned out
    to every employee with a token. Status writes are committed together in
    one batch at the end of the run. Never raises.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    summary = ScheduledRunSummary()
    logger.info("=== Checking for scheduled push notifications ===")

    try:
        pending = await crud_scheduled_notification.get_pending_scheduled_notifications(
            ctx.db
        )
        due = filter_due(pending, now)
        summary.pending_count = len(pending)
        summary.due_count = len(due)
        logger.info(
            f"Found {len(pending)} pending notifications, "
            f"{len(due)} within last 2 minutes to process"
        )

        if not due:
            logger.info("No scheduled notifications to process")
            return summary

        recipients = await crud_recipient.list_recipients_with_tokens(ctx.db)
        logger.info(f"Found {len(recipients)} employees with FCM tokens")
        if not recipients:
            logger.info("No employees with FCM tokens found")
            return summary

        batch = ctx.db.batch()
        for entry in due:
            await _process_entry(ctx, batch, entry, recipients, now, tz, summary)

        if summary.processed_count > 0:
            await batch.commit()

        logger.info(
            f"=== Processed {summary.processed_count} scheduled notifications: "
            f"{summary.success_count} successful, {summary.failure_count} failed ==="
        )
    except Exception as e:
        logger.error(f"Error processing scheduled notifications: {e}", exc_info=True)

    return summary


async def _process_entry(ctx, batch, entry, recipients, now, tz, summary) -> None:
    prayer_name = entry.prayer_name
    logger.info(f"Processing scheduled notification: {prayer_name}")
    try:
        if not prayer_name:
            raise ValueError(MISSING_PRAYER_NAME_ERROR)
        date_string, day_start = day_key(now, tz)

        already_sent = await crud_sent_marker.sent_marker_exists(
            ctx.db, prayer_name, date_string
        )
        # Creating the marker before sending closes the window against a
        # concurrent run; losing the create race counts as already sent.
        if already_sent or not await crud_sent_marker.create_sent_marker(
            ctx.db, prayer_name, date_string, day_start
        ):
            logger.info(
                f"Push notification for {prayer_name} already sent today, skipping"
            )
            crud_scheduled_notification.stage_entry_skipped(
                batch, ctx.db, entry.id, ALREADY_SENT_REASON
            )
            summary.processed_count += 1
            return

        result = await fan_out(
            ctx, recipients, prayer_name, entry.body, prayer_time_data(prayer_name)
        )
        summary.success_count += result.success_count
        summary.failure_count += result.failure_count
        logger.info(
            f"Sent {prayer_name} notification: {result.success_count} successful, "
            f"{result.failure_count} failed"
        )
        crud_scheduled_notification.stage_entry_sent(
            batch, ctx.db, entry.id, result.success_count, result.failure_count
        )
    except Exception as e:
        logger.error(f"Error processing {prayer_name}: {e}", exc_info=True)
        crud_scheduled_notification.stage_entry_failed(batch, ctx.db, entry.id, str(e))
        summary.failure_count += 1
    summary.processed_count += 1
